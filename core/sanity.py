"""Sanity Monitor - detects the avatar dog-pile and reports it upward

When Hubs' reticulum restarts, bots can reconnect into a state where peers
are visible on the network but no avatar entity is ever rendered. That state
does not heal. The monitor samples the page periodically and, on detecting
it, resolves a fatal signal that the supervisor (HubsBot.exec) turns into a
non-zero exit so the process manager restarts the bot.

RESPONSIBILITY:
- Typed sample and health result
- Classification rule
- Periodic sampling loop on the host

DOES NOT:
- Exit the process (the supervisor decides)
- Talk to the page directly (takes a sampler coroutine)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from core.exceptions import DogPileDetected


# More than two connections leaves a margin for a peer whose A-Frame entity
# has not initialized yet.
CONNECTION_MARGIN = 2


@dataclass(frozen=True)
class SanitySample:
    """One reading of peer connections vs. remote avatars rendered locally."""
    connection_count: int
    avatar_count: int

    @classmethod
    def from_page(cls, data: Optional[Dict[str, Any]]) -> Optional["SanitySample"]:
        """Build from the page's {connectionCount, avatarCount} payload."""
        if not data:
            return None
        return cls(
            connection_count=int(data["connectionCount"]),
            avatar_count=int(data["avatarCount"]),
        )


class HealthStatus(Enum):
    OK = "ok"
    DOG_PILE = "dog_pile"
    UNKNOWN = "unknown"


def classify(sample: Optional[SanitySample]) -> HealthStatus:
    """Classify a sample. A missing sample (page tearing down) is UNKNOWN."""
    if sample is None:
        return HealthStatus.UNKNOWN
    if sample.connection_count > CONNECTION_MARGIN and sample.avatar_count == 0:
        return HealthStatus.DOG_PILE
    return HealthStatus.OK


class SanityMonitor:
    """Periodic host-side health check.

    Usage:
        monitor = SanityMonitor(bot.sample_sanity, period_s=60)
        monitor.start()
        await monitor.fatal  # raises DogPileDetected
    """

    def __init__(
        self,
        sampler: Callable[[], Awaitable[Optional[Dict[str, Any]]]],
        period_s: float = 60.0,
    ):
        self._sampler = sampler
        self.period_s = period_s
        self._task: Optional[asyncio.Task] = None
        self._fatal: Optional[asyncio.Future] = None

    @property
    def fatal(self) -> asyncio.Future:
        """Future that fails with DogPileDetected when the condition is seen.

        One future serves every start/stop cycle on the running loop, so a
        supervisor awaiting it also sees dog-piles from later sessions.
        """
        loop = asyncio.get_running_loop()
        if self._fatal is None or self._fatal.cancelled() or self._fatal.get_loop() is not loop:
            self._fatal = loop.create_future()
        return self._fatal

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sampling. Calling again while running is a no-op."""
        if self.running:
            return
        _ = self.fatal
        self._task = asyncio.ensure_future(self._run())

    def stop(self) -> None:
        """Stop sampling. The fatal signal outlives the run."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def check_once(self) -> HealthStatus:
        """Take one sample and classify it. Sampler errors count as UNKNOWN."""
        try:
            sample = SanitySample.from_page(await self._sampler())
        except Exception as e:
            # Usually the page is shutting down.
            logging.debug(f"Sanity sample failed: {e}")
            return HealthStatus.UNKNOWN

        status = classify(sample)
        if status is HealthStatus.DOG_PILE:
            logging.error("Detected avatar dog-pile. Restarting.")
            if not self.fatal.done():
                self.fatal.set_exception(DogPileDetected(sample))
        elif sample is not None:
            logging.debug(f"Sanity: {sample}")
        return status

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.period_s)
            if await self.check_once() is HealthStatus.DOG_PILE:
                return
