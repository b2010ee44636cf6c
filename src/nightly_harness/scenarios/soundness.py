"""Network soundness session.

The soundness driver provisions, starts, checks and tears down its own
networks; the harness only makes sure the environment is clean before and
after it runs.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ..config import HarnessConfig
from ..errors import ScenarioFailure
from ..shared.logging import get_logger
from .models import RunResult
from .process import ProcessExecutor

if TYPE_CHECKING:
    from ..provision import EnvironmentProvisioner

logger = get_logger(__name__)


def activation_line(activate_script: Path) -> str:
    return f". {activate_script}"


def ensure_shell_activation(shell_rc: Path, activate_script: Path) -> bool:
    """Make interactive child shells source the toolkit activation script.

    Args:
        shell_rc: Shell rc file read by child shells (e.g. ~/.bashrc).
        activate_script: Toolkit activation script.

    Returns:
        True if the line was appended, False if it was already present.
    """
    line = activation_line(activate_script)
    existing = shell_rc.read_text() if shell_rc.exists() else ""
    if line in existing.splitlines():
        return False

    shell_rc.parent.mkdir(parents=True, exist_ok=True)
    with open(shell_rc, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(line + "\n")
    return True


class SoundnessSession:
    """Run the external soundness driver between two defensive teardowns."""

    def __init__(
        self,
        provisioner: EnvironmentProvisioner,
        executor: ProcessExecutor,
        config: HarnessConfig,
    ):
        self.provisioner = provisioner
        self.executor = executor
        self.config = config

    def run(self, on_result: Callable[[RunResult], None] | None = None) -> RunResult:
        """Run the soundness session.

        Args:
            on_result: Called with the driver result before any failure is raised.

        Raises:
            ScenarioFailure: If the soundness driver exits non-zero.
        """
        logger.info("starting network soundness test")
        self.provisioner.teardown()

        if self.config.in_ci():
            logger.info("running on CI, activating toolkit for child shells", shell_rc=str(self.config.shell_rc))
            ensure_shell_activation(self.config.shell_rc, self.config.activate_script)
        else:
            logger.info("not running on CI")

        start = time.monotonic()
        try:
            outcome = self.executor.run(
                list(self.config.soundness_command),
                label="network_soundness",
                cwd=self.config.scenarios_dir,
            )
        finally:
            self.provisioner.teardown()

        result = RunResult("network_soundness", outcome.exit_status, time.monotonic() - start, kind="soundness")
        if on_result:
            on_result(result)
        if not result.passed:
            raise ScenarioFailure.from_result(result)
        return result
