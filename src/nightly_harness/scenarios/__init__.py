"""Scenario orchestration package.

Runs external scenario programs against the provisioned network:
- ScenarioRunner wraps one scenario in a full environment lifecycle
- ScenarioSequencer runs an ordered list fail-fast
- ChainRunner drives dependent steps sharing one live environment
- SoundnessSession runs the self-provisioning soundness driver
"""

from .chain import ChainRunner
from .models import ChainRun, ChainStep, RunResult, ScenarioSpec, SessionReport
from .process import ProcessExecutor, ProcessOutcome
from .runner import ScenarioRunner
from .sequencer import ScenarioSequencer
from .soundness import SoundnessSession, ensure_shell_activation

__all__ = [
    # Models
    "ScenarioSpec",
    "ChainStep",
    "ChainRun",
    "RunResult",
    "SessionReport",
    # Execution
    "ProcessExecutor",
    "ProcessOutcome",
    "ScenarioRunner",
    "ScenarioSequencer",
    "ChainRunner",
    "SoundnessSession",
    "ensure_shell_activation",
]
