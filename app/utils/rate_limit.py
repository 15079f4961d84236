"""Rolling-window rate limiting for outbound API calls."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` starts in any ``period_seconds`` window.

    Callers over the ceiling wait until the oldest start leaves the window.
    """

    def __init__(
        self,
        *,
        max_requests: int = 50,
        period_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")
        self._max_requests = max_requests
        self._period = period_seconds
        self._clock = clock
        self._sleep = sleep
        self._starts: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= self._period:
            self._starts.popleft()

    async def acquire(self) -> None:
        while True:
            async with self._lock:
                now = self._clock()
                self._evict(now)
                if len(self._starts) < self._max_requests:
                    self._starts.append(now)
                    return
                wait_for = self._period - (now - self._starts[0])
            await self._sleep(max(wait_for, 0.0))


__all__ = ["SlidingWindowRateLimiter"]
