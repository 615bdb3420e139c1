"""Fixed-interval pacing for outbound API requests."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from types import TracebackType

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class FixedIntervalRateLimiter:
    """Serialise requests and keep ``interval`` seconds between them.

    The gap is measured from the end of one request to the start of the
    next, so slow responses do not eat into the pause. Use as::

        async with limiter:
            await client.fetch_activity_map(activity_id)
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_release: float | None = None

    async def acquire(self) -> None:
        await self._lock.acquire()
        if self._last_release is None:
            return
        remaining = self._last_release + self.interval - self._clock()
        if remaining > 0:
            try:
                await self._sleep(remaining)
            except BaseException:
                self._lock.release()
                raise

    def release(self) -> None:
        self._last_release = self._clock()
        self._lock.release()

    async def __aenter__(self) -> FixedIntervalRateLimiter:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
