"""Single scenario execution against a fresh environment."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from ..config import HarnessConfig
from ..errors import ProvisioningError
from ..shared.logging import get_logger
from .models import RunResult, ScenarioSpec
from .process import ProcessExecutor

if TYPE_CHECKING:
    from ..provision import EnvironmentHandle, EnvironmentProvisioner, OverrideResolver

logger = get_logger(__name__)


class ScenarioRunner:
    """Run one scenario: provision, start, settle, execute, tear down.

    Teardown runs on every exit path of a lifecycle-wrapped scenario, so a
    crashing scenario never leaves processes behind for the next one.
    Scenarios with an intrinsic lifecycle manage their own environment and
    are only executed.
    """

    def __init__(
        self,
        provisioner: EnvironmentProvisioner,
        resolver: OverrideResolver,
        executor: ProcessExecutor,
        config: HarnessConfig,
    ):
        self.provisioner = provisioner
        self.resolver = resolver
        self.executor = executor
        self.config = config

    def command_for(self, spec: ScenarioSpec) -> list[str]:
        """argv for a scenario program."""
        program = self.config.scenarios_dir / spec.name
        if spec.name.endswith(".sh") and self.config.scenario_launcher:
            return [self.config.scenario_launcher, str(program), *spec.args]
        return [str(program), *spec.args]

    def run(self, spec: ScenarioSpec) -> RunResult:
        """Run a scenario.

        Args:
            spec: Scenario to run.

        Returns:
            RunResult carrying the program's exit status.

        Raises:
            ProvisioningError: If the environment cannot be set up or started
                (after tearing it down again).
        """
        if spec.intrinsic_lifecycle:
            logger.info("starting scenario with its own lifecycle", scenario=spec.invocation)
            return self._execute(spec, None)

        start = time.monotonic()
        try:
            self.provisioner.teardown()
            bundle = self.resolver.resolve(spec)
            if not bundle.is_empty:
                logger.info("applying overrides", scenario=spec.name, **bundle.to_dict())
            handle = self.provisioner.provision(bundle)
            self.provisioner.start(handle)

            logger.info("starting scenario", scenario=spec.invocation, handle=handle.id)
            result = self._execute(spec, handle)
        except ProvisioningError as e:
            e.scenario = e.scenario or spec.name
            raise
        finally:
            self.provisioner.release()

        result.duration = time.monotonic() - start
        return result

    def _execute(self, spec: ScenarioSpec, handle: EnvironmentHandle | None) -> RunResult:
        env = handle.environment() if handle is not None else {}
        outcome = self.executor.run(
            self.command_for(spec),
            label=spec.base_name,
            cwd=self.config.scenarios_dir,
            env=env,
        )
        if outcome.exit_status != 0:
            logger.error("scenario failed", scenario=spec.invocation, exit_status=outcome.exit_status)
        return RunResult(spec.invocation, outcome.exit_status, outcome.duration, kind="scenario")
