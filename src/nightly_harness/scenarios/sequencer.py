"""Fail-fast execution of an ordered scenario list."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..errors import ScenarioFailure
from ..shared.logging import get_logger
from .models import RunResult, ScenarioSpec
from .runner import ScenarioRunner

logger = get_logger(__name__)


class ScenarioSequencer:
    """Run scenarios one after another, stopping at the first failure.

    Scenarios share ports, data directories and the process table, so they
    never run concurrently, and they are never retried or reordered.
    """

    def __init__(self, runner: ScenarioRunner):
        self.runner = runner

    def run_all(
        self,
        specs: Iterable[ScenarioSpec],
        on_result: Callable[[RunResult], None] | None = None,
    ) -> list[RunResult]:
        """Run every scenario in order.

        Args:
            specs: Scenarios in execution order.
            on_result: Called with each result as soon as it is produced.

        Returns:
            One RunResult per scenario, all passing.

        Raises:
            ScenarioFailure: At the first non-zero result; carries the
                results collected so far, the failing one included.
        """
        results: list[RunResult] = []
        for spec in specs:
            result = self.runner.run(spec)
            results.append(result)
            if on_result:
                on_result(result)
            if not result.passed:
                logger.error(
                    "stopping sequence at failed scenario",
                    scenario=result.name,
                    exit_status=result.exit_status,
                )
                raise ScenarioFailure.from_result(result, results)
        return results
