"""Shared test fixtures for nightly-harness tests.

This module provides in-memory collaborators for the harness:
- FakeToolkit: Simulates the asset toolkit and counts live environments
- RecordingExecutor: Records program invocations and returns scripted statuses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from nightly_harness.config import HarnessConfig
from nightly_harness.provision import (
    EnvironmentProvisioner,
    OverrideResolver,
    ReadinessWaiter,
)
from nightly_harness.scenarios import ProcessOutcome

# =============================================================================
# Fake toolkit - simulates nctl-assets-setup / nctl-start / nctl-assets-teardown
# =============================================================================


class FakeToolkit:
    """In-memory toolkit tracking how many environments are live at once."""

    def __init__(
        self,
        setup_ok: bool = True,
        start_ok: bool = True,
        teardown_ok: bool = True,
        stuck_active: bool = False,
    ):
        self.setup_ok = setup_ok
        self.start_ok = start_ok
        self.teardown_ok = teardown_ok
        self.stuck_active = stuck_active
        self.calls: list[tuple[str, list[str]]] = []
        self.provisioned = False
        self.running = False
        self.live = 0
        self.max_live = 0
        self.max_running = 0

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def setup(self, args: list[str] | None = None) -> tuple[bool, str]:
        self.calls.append(("setup", list(args or [])))
        if not self.setup_ok:
            return False, "Failed to set up assets: malformed chainspec"
        self.provisioned = True
        self.live += 1
        self.max_live = max(self.max_live, self.live)
        return True, "set up assets completed"

    def start(self) -> tuple[bool, str]:
        self.calls.append(("start", []))
        if not self.start_ok:
            return False, "Failed to start network: port in use"
        self.running = True
        self.max_running = max(self.max_running, int(self.running) * self.live)
        return True, "start network completed"

    def teardown(self) -> tuple[bool, str]:
        self.calls.append(("teardown", []))
        if self.provisioned:
            self.live -= 1
        self.provisioned = False
        self.running = False
        if not self.teardown_ok:
            return False, "Failed to tear down assets: busy"
        return True, "tear down assets completed"

    def is_active(self) -> bool:
        self.calls.append(("is_active", []))
        return self.stuck_active or self.provisioned


# =============================================================================
# Recording executor - stands in for ProcessExecutor
# =============================================================================


@dataclass
class ExecutedCall:
    """One recorded program invocation."""

    argv: list[str]
    label: str
    cwd: Path | None
    env: dict[str, str]
    network_running: bool | None


@dataclass
class RecordingExecutor:
    """Executor returning scripted exit statuses by run label."""

    statuses: dict[str, int] = field(default_factory=dict)
    toolkit: FakeToolkit | None = None
    calls: list[ExecutedCall] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [c.label for c in self.calls]

    def run(self, argv, label, cwd=None, env=None) -> ProcessOutcome:
        running = self.toolkit.running if self.toolkit is not None else None
        self.calls.append(ExecutedCall(list(argv), label, cwd, dict(env or {}), running))
        return ProcessOutcome(self.statuses.get(label, 0), 0.01)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def harness_config(tmp_path: Path) -> HarnessConfig:
    """Config rooted in a temp checkout with all waits disabled."""
    return HarnessConfig(
        root_dir=tmp_path,
        shell_rc=tmp_path / "home" / ".bashrc",
        setup_delay=0,
        settle_delay=0,
        cooldown_delay=0,
    )


@pytest.fixture
def overrides_dir(harness_config: HarnessConfig) -> Path:
    """Created override store of the temp checkout."""
    harness_config.overrides_dir.mkdir(parents=True, exist_ok=True)
    return harness_config.overrides_dir


@pytest.fixture
def toolkit() -> FakeToolkit:
    return FakeToolkit()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the durations passed to the waiter's sleep function."""
    return []


@pytest.fixture
def waiter(sleeps: list[float]) -> ReadinessWaiter:
    return ReadinessWaiter(
        setup_delay=1.0,
        settle_delay=10.0,
        cooldown_delay=1.0,
        sleep=sleeps.append,
    )


@pytest.fixture
def provisioner(toolkit: FakeToolkit, waiter: ReadinessWaiter, harness_config) -> EnvironmentProvisioner:
    return EnvironmentProvisioner(toolkit, waiter, harness_config.assets_dir)


@pytest.fixture
def resolver(harness_config: HarnessConfig) -> OverrideResolver:
    return OverrideResolver(harness_config.overrides_dir)


@pytest.fixture
def executor(toolkit: FakeToolkit) -> RecordingExecutor:
    return RecordingExecutor(toolkit=toolkit)
