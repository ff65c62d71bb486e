"""Rolling-window request limiter shared by every outbound API call."""

import asyncio
import time
from collections import deque
from collections.abc import Callable

from bybit_funding.exceptions import LimiterClosedError
from bybit_funding.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Allows at most ``max_requests`` acquisitions inside any ``period`` window.

    Grant times are kept in a deque; a caller that finds the window full
    sleeps until the oldest grant ages out. Callers queue on an asyncio.Lock,
    which wakes waiters in arrival order, so throughput is bounded FIFO-ish.

    Usage:
        limiter = RateLimiter(max_requests=10, period=1.0)
        async with limiter:
            await client.get(...)
    """

    def __init__(
        self,
        max_requests: int = 10,
        period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if period <= 0:
            raise ValueError("period must be positive")

        self.max_requests = max_requests
        self.period = period
        self._clock = clock
        self._grants: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> None:
        """Wait until one more request fits in the window, then record it.

        Raises:
            LimiterClosedError: If the limiter is closed before or while waiting.
        """
        if self._closed:
            raise LimiterClosedError("rate limiter is closed")

        async with self._lock:
            while True:
                if self._closed:
                    raise LimiterClosedError("rate limiter is closed")

                now = self._clock()
                while self._grants and now - self._grants[0] >= self.period:
                    self._grants.popleft()

                if len(self._grants) < self.max_requests:
                    self._grants.append(now)
                    return

                delay = self._grants[0] + self.period - now
                logger.debug("rate_limit_wait", delay=round(delay, 3))
                await asyncio.sleep(delay)

    def close(self) -> None:
        """Reject all further acquisitions. Waiters fail when they next wake."""
        if not self._closed:
            self._closed = True
            logger.debug("rate_limiter_closed", granted_in_window=len(self._grants))

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None
