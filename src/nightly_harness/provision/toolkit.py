"""Environment control capability of the external asset toolkit.

This module wraps the toolkit commands (nctl-assets-setup, nctl-start,
nctl-assets-teardown and an optional status query) that place network
binaries, generate keys and launch the nodes.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from ..config import HarnessConfig
from ..shared.logging import get_logger

logger = get_logger(__name__)


class Toolkit:
    """Run toolkit commands for one checkout."""

    def __init__(
        self,
        setup_command: list[str],
        start_command: list[str],
        teardown_command: list[str],
        status_command: list[str] | None = None,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ):
        """Initialize toolkit.

        Args:
            setup_command: argv prefix for asset setup; setup args are appended.
            start_command: argv that launches the network's nodes.
            teardown_command: argv that releases all environment resources.
            status_command: Optional argv exiting 0 while a network is active.
            cwd: Working directory for every command.
            env: Extra environment variables for every command.
        """
        self.setup_command = list(setup_command)
        self.start_command = list(start_command)
        self.teardown_command = list(teardown_command)
        self.status_command = list(status_command or [])
        self.cwd = cwd
        self.env = dict(env or {})

    @classmethod
    def from_config(cls, config: HarnessConfig) -> Toolkit:
        return cls(
            setup_command=config.setup_command,
            start_command=config.start_command,
            teardown_command=config.teardown_command,
            status_command=config.status_command,
            cwd=config.root_dir,
            env=config.extra_env,
        )

    def _run(self, args: list[str], action: str) -> tuple[bool, str]:
        if not args:
            return False, f"No {action} command configured"

        try:
            result = subprocess.run(
                args,
                cwd=self.cwd,
                env={**os.environ, **self.env},
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError:
            return False, f"Toolkit command not found: {args[0]}"
        except OSError as e:
            return False, f"Failed to run {args[0]}: {e}"

        if result.stdout:
            logger.debug("toolkit output", action=action, output=result.stdout.strip())

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit status {result.returncode}"
            return False, f"Failed to {action}: {detail}"

        return True, f"{action} completed"

    def setup(self, args: list[str] | None = None) -> tuple[bool, str]:
        """Materialize network assets.

        Args:
            args: key=value setup tokens (override paths).

        Returns:
            Tuple of (success, message).
        """
        if not self.setup_command:
            return self._run([], "set up assets")
        return self._run(self.setup_command + list(args or []), "set up assets")

    def start(self) -> tuple[bool, str]:
        """Launch the network's nodes in the background.

        Returns:
            Tuple of (success, message).
        """
        return self._run(self.start_command, "start network")

    def teardown(self) -> tuple[bool, str]:
        """Stop nodes and remove generated assets.

        Returns:
            Tuple of (success, message).
        """
        return self._run(self.teardown_command, "tear down assets")

    def is_active(self) -> bool:
        """Check whether a network is currently active.

        Returns False when no status command is configured or the status
        command cannot be run.
        """
        if not self.status_command:
            return False

        success, _ = self._run(self.status_command, "query status")
        return success
