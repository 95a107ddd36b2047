"""Sliding-window rate limiter for outbound LocalRank API calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Async sliding-window limiter shared by every request of one client.

    Usage::

        limiter = RateLimiter(requests_per_minute=120)
        async with limiter:
            await client.get(...)
    """

    def __init__(
        self,
        requests_per_minute: Optional[int] = 120,
        name: str = "localrank",
        clock: Callable[[], float] = time.monotonic,
        window: float = 60.0,
    ):
        self._rpm = requests_per_minute
        self._name = name
        self._clock = clock
        self._window = window
        self._stamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self._rpm)

    def _prune(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self._window:
            self._stamps.popleft()

    def wait_time(self) -> float:
        """Seconds until another request may be sent (0 when free)."""
        if not self.enabled:
            return 0.0
        now = self._clock()
        self._prune(now)
        if len(self._stamps) < self._rpm:
            return 0.0
        return max(0.0, self._window - (now - self._stamps[0]))

    async def acquire(self) -> None:
        if not self.enabled:
            return
        async with self._lock:
            while True:
                wait = self.wait_time()
                if wait <= 0:
                    break
                logger.debug("RateLimiter(%s) sleeping %.2fs", self._name, wait)
                await asyncio.sleep(wait)
            self._stamps.append(self._clock())

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *args):
        pass

    @property
    def requests_in_window(self) -> int:
        self._prune(self._clock())
        return len(self._stamps)
