"""Readiness waiting after the network is started.

The default ``sleep`` mode keeps the fixed settle delay: a liveness heuristic,
not a protocol-level readiness check, so a scenario may still start against
a network that is not ready yet. ``probe`` mode polls a node status endpoint
instead.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

import httpx

from ..config import HarnessConfig
from ..errors import ProvisioningError
from ..shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReadinessResult:
    """Result of readiness polling."""

    ready: bool
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None


class ReadinessPoller:
    """Poll a node status endpoint until it answers 200."""

    def __init__(
        self,
        max_attempts: int = 30,
        interval_seconds: float = 2.0,
        timeout_seconds: float = 5.0,
    ):
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

    @staticmethod
    async def _check(client: httpx.AsyncClient, url: str) -> str | None:
        """Request the status once; returns None when ready, else why not."""
        try:
            response = await client.get(url)
        except httpx.ConnectError:
            return "Connection refused"
        except httpx.TimeoutException:
            return "Request timeout"
        except httpx.HTTPError as e:
            return str(e)
        if response.status_code != 200:
            return f"HTTP {response.status_code}"
        return None

    async def wait_until_ready(
        self,
        url: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ReadinessResult:
        """Poll the status endpoint until it answers 200 or attempts run out.

        Nodes come up one by one, so refused connections are expected for the
        first few attempts.

        Args:
            url: Full status URL of one node.
            on_attempt: Called with (attempt, max_attempts, error) after each failed attempt.
        """
        started = time.monotonic()
        error: str | None = None

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            for attempt in range(1, self.max_attempts + 1):
                error = await self._check(client, url)
                if error is None:
                    return ReadinessResult(
                        ready=True, attempts=attempt, elapsed_seconds=time.monotonic() - started
                    )
                if on_attempt:
                    on_attempt(attempt, self.max_attempts, error)
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.interval_seconds)

        return ReadinessResult(
            ready=False,
            attempts=self.max_attempts,
            elapsed_seconds=time.monotonic() - started,
            error=f"Network not ready after {self.max_attempts} attempts: {error}",
        )

    def wait_until_ready_sync(
        self,
        url: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ReadinessResult:
        return asyncio.run(self.wait_until_ready(url, on_attempt))


class ReadinessWaiter:
    """Blocking waits around environment setup, start and teardown."""

    def __init__(
        self,
        setup_delay: float = 1.0,
        settle_delay: float = 10.0,
        cooldown_delay: float = 1.0,
        mode: str = "sleep",
        url: str | None = None,
        poller: ReadinessPoller | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.setup_delay = setup_delay
        self.settle_delay = settle_delay
        self.cooldown_delay = cooldown_delay
        self.mode = mode
        self.url = url
        self.poller = poller or ReadinessPoller()
        self.sleep = sleep

    @classmethod
    def from_config(
        cls, config: HarnessConfig, sleep: Callable[[float], None] = time.sleep
    ) -> ReadinessWaiter:
        return cls(
            setup_delay=config.setup_delay,
            settle_delay=config.settle_delay,
            cooldown_delay=config.cooldown_delay,
            mode=config.readiness_mode,
            url=config.readiness_url,
            poller=ReadinessPoller(
                max_attempts=config.readiness_attempts,
                interval_seconds=config.readiness_interval,
            ),
            sleep=sleep,
        )

    @staticmethod
    def _log_attempt(attempt: int, max_attempts: int, error: str | None) -> None:
        logger.debug("network not ready", attempt=attempt, max_attempts=max_attempts, error=error)

    def after_setup(self) -> None:
        self.sleep(self.setup_delay)

    def after_start(self) -> None:
        """Wait for the started network to become operable.

        Raises:
            ProvisioningError: In probe mode, if the network never answers.
        """
        if self.mode == "probe" and self.url:
            logger.info("polling network readiness", url=self.url)
            result = self.poller.wait_until_ready_sync(self.url, on_attempt=self._log_attempt)
            if not result.ready:
                raise ProvisioningError(result.error or "Network did not become ready")
            logger.info("network ready", attempts=result.attempts, elapsed=result.elapsed_seconds)
            return

        logger.info("sleeping to allow network startup", seconds=self.settle_delay)
        self.sleep(self.settle_delay)

    def after_teardown(self) -> None:
        self.sleep(self.cooldown_delay)
