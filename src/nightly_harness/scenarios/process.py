"""External program invocation.

Scenario scripts, chain step programs and the soundness driver are opaque
executables. Their output is streamed to the console and, when a log
directory is configured, kept in a per-run log file for diagnosis.
"""

from __future__ import annotations

import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from ..shared.logging import get_logger
from ..shared.paths import get_log_file

logger = get_logger(__name__)

# Exit status reported when the program cannot be launched at all
LAUNCH_FAILURE_STATUS = 127


@dataclass
class ProcessOutcome:
    """Exit status and wall-clock duration of one program run."""

    exit_status: int
    duration: float


class ProcessExecutor:
    """Run external programs to completion."""

    def __init__(
        self,
        log_dir: Path | None = None,
        base_env: dict[str, str] | None = None,
        stream: TextIO | None = None,
    ):
        """Initialize executor.

        Args:
            log_dir: Directory for per-run log files (none when unset).
            base_env: Variables added to every child environment.
            stream: Where program output is echoed (default: stdout).
        """
        self.log_dir = log_dir
        self.base_env = dict(base_env or {})
        self.stream = stream

    def run(
        self,
        argv: list[str],
        label: str,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessOutcome:
        """Run a program and wait for it to exit.

        Args:
            argv: Program and argument tokens, forwarded verbatim.
            label: Run label for logs.
            cwd: Working directory.
            env: Variables layered over the harness environment.

        Returns:
            ProcessOutcome. A program that cannot be launched reports
            exit status 127.
        """
        child_env = {**os.environ, **self.base_env, **(env or {})}
        stream = self.stream or sys.stdout
        log_file = None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = get_log_file(self.log_dir, label)

        logger.info("starting program", label=label, argv=argv, cwd=str(cwd) if cwd else None)
        start = time.monotonic()

        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                env=child_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error("failed to launch program", label=label, error=str(e))
            return ProcessOutcome(LAUNCH_FAILURE_STATUS, time.monotonic() - start)

        log = open(log_file, "w", encoding="utf-8") if log_file else None
        try:
            for line in proc.stdout:
                stream.write(line)
                if log:
                    log.write(line)
            exit_status = proc.wait()
        finally:
            if log:
                log.close()
            if proc.poll() is None:
                proc.kill()
                proc.wait()

        duration = time.monotonic() - start
        logger.info(
            "program finished",
            label=label,
            exit_status=exit_status,
            duration=round(duration, 2),
            log_file=str(log_file) if log_file else None,
        )
        return ProcessOutcome(exit_status, duration)
