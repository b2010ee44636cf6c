"""Top-level nightly session.

Composes the sequencer, the chain runner and the soundness session into the
full nightly run:

1. Prepare (compile) the programs under test, when configured
2. Activate global override files, when configured
3. Run the standalone scenarios, each in a fresh environment
4. Run the scenarios that manage their own environment
5. Run the upgrade chain
6. Run the network soundness session

The run stops at the first failure; its exit status becomes the session's.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from .config import HarnessConfig
from .errors import ConfigError, HarnessError, ProvisioningError
from .provision import EnvironmentProvisioner, OverrideResolver, ReadinessWaiter, Toolkit
from .scenarios import (
    ChainRun,
    ChainRunner,
    ChainStep,
    ProcessExecutor,
    RunResult,
    ScenarioRunner,
    ScenarioSequencer,
    ScenarioSpec,
    SessionReport,
    SoundnessSession,
)
from .shared.logging import get_logger

logger = get_logger(__name__)

# Standalone scenarios of the nightly run, in execution order
NIGHTLY_SCENARIOS = [
    "client.sh",
    "itst01.sh",
    "itst02.sh",
    "itst06.sh",
    "itst07.sh",
    "itst11.sh",
    "itst13.sh",
    "itst14.sh",
    "bond_its.sh",
    "emergency_upgrade_test.sh",
    "emergency_upgrade_test_balances.sh",
    "upgrade_after_emergency_upgrade_test.sh",
    "sync_test.sh timeout=500",
    "gov96.sh",
    "swap_validator_set.sh",
    "sync_upgrade_test.sh node=6 era=5 timeout=500",
]

# Scenarios performing their own asset setup, network start and teardown
NIGHTLY_INTRINSIC = [
    "upgrade_after_emergency_upgrade_test_pre_1.5.sh",
]

# (test_id, skip_setup) for the nightly upgrade chain
NIGHTLY_CHAIN = [
    (4, False),
    (5, True),
    (6, True),
    (7, True),
    (8, True),
    (9, True),
    (10, False),
    (11, False),
    (12, False),
    (13, False),
]


def _parse_scenario(entry: Any, intrinsic: bool) -> ScenarioSpec:
    if isinstance(entry, str):
        return ScenarioSpec.from_invocation(entry, intrinsic_lifecycle=intrinsic)
    if isinstance(entry, dict) and isinstance(entry.get("name"), str):
        args = entry.get("args") or []
        if not isinstance(args, list):
            raise ValueError(f"args of scenario '{entry['name']}' must be a list")
        return ScenarioSpec(entry["name"], tuple(str(a) for a in args), intrinsic)
    raise ValueError(f"Invalid scenario entry: {entry!r}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_step(entry: Any) -> ChainStep:
    if _is_int(entry):
        return ChainStep(entry)
    if isinstance(entry, dict) and _is_int(entry.get("test_id")):
        skip_setup = entry.get("skip_setup", False)
        if not isinstance(skip_setup, bool):
            raise ValueError(f"skip_setup of chain step {entry['test_id']} must be true or false")
        return ChainStep(entry["test_id"], skip_setup)
    raise ValueError(f"Invalid chain step: {entry!r}")


def _entries(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return value


@dataclass
class SessionPlan:
    """What a session runs."""

    scenarios: list[ScenarioSpec] = field(default_factory=list)
    intrinsic: list[ScenarioSpec] = field(default_factory=list)
    chain: ChainRun | None = None
    soundness: bool = True

    @classmethod
    def nightly(cls) -> SessionPlan:
        """The built-in nightly plan."""
        return cls(
            scenarios=[ScenarioSpec.from_invocation(s) for s in NIGHTLY_SCENARIOS],
            intrinsic=[
                ScenarioSpec.from_invocation(s, intrinsic_lifecycle=True) for s in NIGHTLY_INTRINSIC
            ],
            chain=ChainRun(tuple(ChainStep(i, skip) for i, skip in NIGHTLY_CHAIN)),
            soundness=True,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionPlan:
        """Build a plan from its YAML mapping.

        Example:
            scenarios:
              - itst01.sh
              - sync_test.sh timeout=500
              - {name: gov96.sh, args: [era=3]}
            intrinsic:
              - upgrade_after_emergency_upgrade_test_pre_1.5.sh
            chain:
              - {test_id: 4}
              - {test_id: 5, skip_setup: true}
            soundness: false

        Raises:
            ConfigError: If an entry is malformed or the chain is invalid.
        """
        if not isinstance(data, dict):
            raise ConfigError("Session plan must be a mapping")

        unknown = sorted(set(data) - {"scenarios", "intrinsic", "chain", "soundness"})
        if unknown:
            raise ConfigError(f"Unknown session plan keys: {', '.join(unknown)}")

        try:
            scenarios = [_parse_scenario(e, False) for e in _entries(data, "scenarios")]
            intrinsic = [_parse_scenario(e, True) for e in _entries(data, "intrinsic")]
            steps = [_parse_step(e) for e in _entries(data, "chain")]
            soundness = data.get("soundness", True)
            if not isinstance(soundness, bool):
                raise ValueError("'soundness' must be true or false")
            chain = ChainRun(tuple(steps)) if steps else None
        except ValueError as e:
            raise ConfigError(f"Invalid session plan: {e}") from e

        return cls(
            scenarios=scenarios,
            intrinsic=intrinsic,
            chain=chain,
            soundness=soundness,
        )

    @classmethod
    def load(cls, path: str | Path) -> SessionPlan:
        """Load a plan from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read session plan {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenarios": [s.invocation for s in self.scenarios],
            "intrinsic": [s.invocation for s in self.intrinsic],
            "chain": [
                {"test_id": step.test_id, "skip_setup": step.skip_setup}
                for step in (self.chain or ())
            ],
            "soundness": self.soundness,
        }


class SessionDriver:
    """Run a full session and report its overall outcome."""

    def __init__(
        self,
        config: HarnessConfig,
        plan: SessionPlan | None = None,
        toolkit: Toolkit | None = None,
        executor: ProcessExecutor | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the driver and wire every component to one config.

        Args:
            config: Harness configuration.
            plan: Session plan (default: the built-in nightly plan).
            toolkit: Environment control capability (default: from config).
            executor: Program executor (default: from config).
            sleep: Blocking wait function.
        """
        self.config = config
        self.plan = plan or SessionPlan.nightly()
        self.toolkit = toolkit or Toolkit.from_config(config)
        self.executor = executor or ProcessExecutor(log_dir=config.log_dir, base_env=config.extra_env)

        self.resolver = OverrideResolver(config.overrides_dir)
        self.provisioner = EnvironmentProvisioner(
            self.toolkit,
            ReadinessWaiter.from_config(config, sleep=sleep),
            config.assets_dir,
        )
        self.runner = ScenarioRunner(self.provisioner, self.resolver, self.executor, config)
        self.sequencer = ScenarioSequencer(self.runner)
        self.chain_runner = ChainRunner(self.provisioner, self.executor, config)
        self.soundness = SoundnessSession(self.provisioner, self.executor, config)

    def run_stage(self, name: str, argv: list[str]) -> RunResult:
        """Run a one-off session stage program (prepare, override activation).

        Raises:
            ProvisioningError: If the stage program fails.
        """
        logger.info("running session stage", stage=name)
        outcome = self.executor.run(list(argv), label=name, cwd=self.config.root_dir)
        result = RunResult(name, outcome.exit_status, outcome.duration, kind="stage")
        if not result.passed:
            raise ProvisioningError(
                f"Session stage '{name}' exited with status {outcome.exit_status}",
                exit_status=outcome.exit_status,
            )
        return result

    def _run_steps(self, report: SessionReport) -> None:
        if self.config.prepare_command:
            report.record(self.run_stage("prepare", self.config.prepare_command))
        if self.config.override_activation_command:
            report.record(self.run_stage("override-activation", self.config.override_activation_command))

        self.sequencer.run_all(self.plan.scenarios, on_result=report.record)
        self.sequencer.run_all(self.plan.intrinsic, on_result=report.record)

        if self.plan.chain is not None:
            self.chain_runner.run_chain(self.plan.chain, on_result=report.record)

        if self.plan.soundness:
            self.soundness.run(on_result=report.record)

    def run(self) -> SessionReport:
        """Run the session.

        Returns:
            SessionReport whose exit_status is 0 on full success, otherwise
            the status of the first failing step.
        """
        report = SessionReport()
        try:
            self._run_steps(report)
        except HarnessError as e:
            report.exit_status = e.exit_status or 1
            report.error = e.message

        if report.passed:
            logger.info("session passed", steps=len(report.results))
        else:
            logger.error("session failed", exit_status=report.exit_status, error=report.error)
        return report
