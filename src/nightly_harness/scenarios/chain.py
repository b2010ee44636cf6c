"""Stateful chain runs.

A chain run drives a multi-stage test (e.g. successive protocol upgrades)
where later steps depend on the live network left by earlier ones. A step
that does not skip setup makes the chain program provision and start a
fresh network; skip-setup steps reuse that network in place.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable

from ..config import HarnessConfig
from ..errors import ChainStepFailure
from ..shared.logging import get_logger
from .models import ChainRun, ChainStep, RunResult
from .process import ProcessExecutor

if TYPE_CHECKING:
    from ..provision import EnvironmentProvisioner

logger = get_logger(__name__)


class ChainRunner:
    """Run the steps of a ChainRun in order against one shared environment."""

    def __init__(
        self,
        provisioner: EnvironmentProvisioner,
        executor: ProcessExecutor,
        config: HarnessConfig,
    ):
        self.provisioner = provisioner
        self.executor = executor
        self.config = config

    def command_for(self, step: ChainStep) -> list[str]:
        return [*self.config.chain_command, *step.to_args()]

    def run_chain(
        self,
        chain: ChainRun,
        on_result: Callable[[RunResult], None] | None = None,
    ) -> list[RunResult]:
        """Run every step of the chain.

        Args:
            chain: Validated chain steps.
            on_result: Called with each step result as soon as it is produced.

        Returns:
            One passing RunResult per step.

        Raises:
            ChainStepFailure: At the first failing step. Later steps assume
                its state, so nothing further runs and nothing is rolled back.
        """
        results: list[RunResult] = []
        env = {"HARNESS_CLIENT_BRANCH": self.config.client_branch()}

        try:
            for step in chain:
                if not step.skip_setup:
                    handle = self.provisioner.adopt(step.label)
                else:
                    handle = self.provisioner.live_handle
                    if handle is None:
                        logger.warning("chain step reuses an environment that does not exist", step=step.label)

                step_env = dict(env)
                if handle is not None:
                    step_env.update(handle.environment())

                logger.info("starting chain step", test_id=step.test_id, skip_setup=step.skip_setup)
                start = time.monotonic()
                outcome = self.executor.run(
                    self.command_for(step),
                    label=step.label,
                    cwd=self.config.root_dir,
                    env=step_env,
                )
                result = RunResult(step.label, outcome.exit_status, time.monotonic() - start, kind="chain")
                results.append(result)
                if on_result:
                    on_result(result)

                if not result.passed:
                    logger.error("chain step failed", test_id=step.test_id, exit_status=result.exit_status)
                    raise ChainStepFailure.from_result(result, results)
        finally:
            self.provisioner.teardown()

        return results
