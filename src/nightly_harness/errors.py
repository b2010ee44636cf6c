"""Error kinds raised by the harness.

Every failure surfaces to the session driver and terminates the run; there
are no retries. ``exit_status`` is what the harness process exits with when
the error stops the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .scenarios.models import RunResult


@dataclass
class HarnessError(Exception):
    """Base error class for harness errors."""

    message: str
    exit_status: int = 1

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigError(HarnessError):
    """Configuration or session plan could not be loaded."""


@dataclass
class ProvisioningError(HarnessError):
    """Environment setup or start failed (bad override file, resource exhaustion)."""

    scenario: str | None = None


@dataclass
class ScenarioFailure(HarnessError):
    """An external scenario program exited non-zero."""

    result: RunResult | None = None
    results: list[RunResult] = field(default_factory=list)

    @classmethod
    def from_result(
        cls, result: RunResult, results: list[RunResult] | None = None
    ) -> ScenarioFailure:
        """Build the failure for a non-zero RunResult.

        Args:
            result: The failing result.
            results: Results collected up to and including the failure.
        """
        return cls(
            message=f"{result.kind} '{result.name}' exited with status {result.exit_status}",
            exit_status=result.exit_status,
            result=result,
            results=list(results) if results is not None else [result],
        )


@dataclass
class ChainStepFailure(ScenarioFailure):
    """A chain step failed; later steps depend on its state so the chain stops."""
