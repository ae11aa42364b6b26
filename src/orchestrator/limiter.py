"""Admission control for the LLM gateway.

A single process-wide limiter combining:
- a concurrency bound (maximum in-flight calls)
- a minimum spacing between successive dispatches
- a permit reservoir reset to a fixed level on a fixed interval

Callers that cannot be admitted wait in submission order; the limiter
never rejects a call.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from shared.config import GatewaySettings
from shared.logging import get_logger
from shared.models import RateLimiterState

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    Token-bucket / concurrency limiter.

    Permits are consumed one per dispatched call. Every ``refresh_interval``
    seconds the reservoir is reset to ``refresh_amount`` (not incremented),
    so over any window the number of dispatched calls is bounded by
    ``initial reservoir + refills * refresh_amount``.

    All state changes happen while holding ``_admission``, an asyncio lock
    whose waiters are served first-in first-out.
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        min_time: float = 0.03,
        reservoir: Optional[int] = 200,
        refresh_amount: int = 200,
        refresh_interval: Optional[float] = 60.0,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize the limiter.

        Args:
            max_concurrent: Maximum number of calls in flight
            min_time: Minimum seconds between two dispatches
            reservoir: Initial permits; None disables the reservoir
            refresh_amount: Level the reservoir is reset to on each refresh
            refresh_interval: Seconds between refreshes; required with a reservoir
            clock: Monotonic time source
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if reservoir is not None and not refresh_interval:
            raise ValueError("A reservoir requires a positive refresh interval")

        self.max_concurrent = max_concurrent
        self.min_time = min_time
        self.refresh_amount = refresh_amount
        self.refresh_interval = refresh_interval
        self._clock = clock

        self._reservoir = reservoir
        self._last_refresh = clock()
        self._last_dispatch: Optional[float] = None

        self._admission = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrent)

        self._in_flight = 0
        self._consumed = 0
        self._refills = 0

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> "RateLimiter":
        return cls(
            max_concurrent=settings.max_concurrent,
            min_time=settings.min_time_ms / 1000,
            reservoir=settings.reservoir,
            refresh_amount=settings.refresh_amount,
            refresh_interval=settings.refresh_interval_seconds,
        )

    def _refresh(self, now: float) -> None:
        """Reset the reservoir if one or more refresh intervals elapsed."""
        if self._reservoir is None or not self.refresh_interval:
            return

        elapsed = now - self._last_refresh
        if elapsed < self.refresh_interval:
            return

        periods = int(elapsed // self.refresh_interval)
        self._last_refresh += periods * self.refresh_interval
        self._reservoir = self.refresh_amount
        self._refills += 1

        logger.debug("Reservoir refreshed", reservoir=self._reservoir)

    async def _wait_for_permit(self) -> None:
        while True:
            now = self._clock()
            self._refresh(now)

            if self._reservoir is None or self._reservoir > 0:
                return

            delay = self._last_refresh + self.refresh_interval - now
            logger.debug("Reservoir empty, waiting for refresh", delay=round(delay, 3))
            await asyncio.sleep(max(delay, 0))

    async def _wait_for_spacing(self) -> None:
        if self._last_dispatch is None or not self.min_time:
            return

        delay = self._last_dispatch + self.min_time - self._clock()
        if delay > 0:
            await asyncio.sleep(delay)

    async def acquire(self) -> None:
        """
        Wait until a call may be dispatched, then claim a slot and a permit.

        Must be paired with ``release()``; prefer ``slot()`` or ``schedule()``.
        """
        async with self._admission:
            await self._slots.acquire()
            try:
                await self._wait_for_permit()
                await self._wait_for_spacing()
            except BaseException:
                self._slots.release()
                raise

            if self._reservoir is not None:
                self._reservoir -= 1
            self._consumed += 1
            self._in_flight += 1
            self._last_dispatch = self._clock()

    def release(self) -> None:
        """Free the concurrency slot claimed by ``acquire()``."""
        self._in_flight -= 1
        self._slots.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold an admitted slot for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def schedule(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any
    ) -> T:
        """Run ``fn`` once admitted."""
        async with self.slot():
            return await fn(*args, **kwargs)

    def state(self) -> RateLimiterState:
        """Return a snapshot of the limiter state."""
        return RateLimiterState(
            reservoir=self._reservoir,
            max_concurrent=self.max_concurrent,
            min_time=self.min_time,
            refresh_amount=self.refresh_amount,
            refresh_interval=self.refresh_interval,
            in_flight=self._in_flight,
            consumed=self._consumed,
            refills=self._refills,
        )
