"""Scenario, chain and result types."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any


@dataclass(frozen=True)
class ScenarioSpec:
    """A single named scenario and the tokens forwarded to its program.

    Attributes:
        name: Scenario program name, e.g. ``itst01.sh``.
        args: key=value style tokens passed verbatim to the program.
        intrinsic_lifecycle: The scenario sets up, starts and tears down its
            own environment; the runner only forwards control.
    """

    name: str
    args: tuple[str, ...] = ()
    intrinsic_lifecycle: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Scenario name must not be empty")
        # Accept any sequence for args but store a tuple
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))

    @classmethod
    def from_invocation(cls, invocation: str, intrinsic_lifecycle: bool = False) -> ScenarioSpec:
        """Build a spec from an invocation line such as ``sync_test.sh timeout=500``."""
        tokens = shlex.split(invocation)
        if not tokens:
            raise ValueError("Scenario invocation must not be empty")
        return cls(tokens[0], tuple(tokens[1:]), intrinsic_lifecycle)

    @property
    def base_name(self) -> str:
        """Name with its file-extension suffix stripped (``itst01.sh`` -> ``itst01``)."""
        return PurePosixPath(self.name).stem

    @property
    def invocation(self) -> str:
        return shlex.join([self.name, *self.args])


@dataclass(frozen=True)
class ChainStep:
    """One stage of a stateful chain run."""

    test_id: int
    skip_setup: bool = False

    def to_args(self) -> list[str]:
        """Argument tokens for the chain step program."""
        args = [f"test_id={self.test_id}"]
        if self.skip_setup:
            args.append("skip_setup=true")
        return args

    @property
    def label(self) -> str:
        return f"chain-test-{self.test_id}"


@dataclass(frozen=True)
class ChainRun:
    """Ordered chain steps sharing one live environment.

    The first step must establish the environment, so it can never skip
    setup. Later steps conventionally skip it and reuse the live network.
    """

    steps: tuple[ChainStep, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise ValueError("A chain run needs at least one step")
        if self.steps[0].skip_setup:
            raise ValueError(
                f"First chain step (test_id={self.steps[0].test_id}) must not skip setup"
            )

    @classmethod
    def from_ids(cls, setup_id: int, *reuse_ids: int) -> ChainRun:
        """Chain where only the first step sets up the environment."""
        steps = [ChainStep(setup_id)] + [ChainStep(i, skip_setup=True) for i in reuse_ids]
        return cls(tuple(steps))

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def setup_steps(self) -> int:
        return sum(1 for step in self.steps if not step.skip_setup)


@dataclass
class RunResult:
    """Outcome of one scenario, chain step, soundness session or session stage."""

    name: str
    exit_status: int
    duration: float = 0.0
    kind: str = "scenario"

    @property
    def passed(self) -> bool:
        return self.exit_status == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "exit_status": self.exit_status,
            "duration": round(self.duration, 3),
        }


@dataclass
class SessionReport:
    """Aggregated outcome of a full session."""

    results: list[RunResult] = field(default_factory=list)
    exit_status: int = 0
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.exit_status == 0

    def record(self, result: RunResult) -> None:
        self.results.append(result)
        if self.exit_status == 0 and result.exit_status != 0:
            self.exit_status = result.exit_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "exit_status": self.exit_status,
            "error": self.error,
            "results": [r.to_dict() for r in self.results],
        }
