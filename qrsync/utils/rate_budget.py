"""Admission control for outbound Notion API calls."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
import itertools
import time
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from qrsync.config import RateLimitConfig

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

__all__ = ["Permit", "RateBudget"]


@dataclass(slots=True, frozen=True)
class Permit:
    """One token plus one concurrency slot, held for a single remote call."""

    permit_id: int
    acquired_at: float


class RateBudget:
    """Token reservoir refilled on a fixed schedule plus a concurrency ceiling.

    At every refill boundary ``refill_amount`` tokens are added, capped at
    ``reservoir``; a window therefore never hands out more than ``reservoir``
    tokens. Callers hold a concurrency slot while waiting for a token, so the
    number of outstanding permits never exceeds ``max_concurrent``.
    """

    def __init__(
        self,
        *,
        reservoir: int,
        refill_amount: int,
        refill_interval_s: float,
        max_concurrent: int,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if refill_interval_s <= 0:
            raise ValueError("refill_interval_s must be positive")
        self._reservoir = max(1, int(reservoir))
        self._refill_amount = max(1, min(int(refill_amount), self._reservoir))
        self._interval = float(refill_interval_s)
        self._max_concurrent = max(1, int(max_concurrent))
        self._clock = clock
        self._sleep = sleep
        self._slots = asyncio.Semaphore(self._max_concurrent)
        self._token_lock = asyncio.Lock()
        self._tokens = self._reservoir
        self._window_start: float | None = None
        self._outstanding: set[int] = set()
        self._ids = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> RateBudget:
        return cls(
            reservoir=config.reservoir,
            refill_amount=config.refill_amount,
            refill_interval_s=config.refill_interval_ms / 1000.0,
            max_concurrent=config.max_concurrent,
            clock=clock,
            sleep=sleep,
        )

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def in_flight(self) -> int:
        return len(self._outstanding)

    @property
    def available_tokens(self) -> int:
        return self._tokens

    async def acquire(self) -> Permit:
        """Wait until both a concurrency slot and a token are available."""

        await self._slots.acquire()
        try:
            await self._take_token()
        except BaseException:
            self._slots.release()
            raise
        permit = Permit(permit_id=next(self._ids), acquired_at=self._clock())
        self._outstanding.add(permit.permit_id)
        return permit

    def release(self, permit: Permit) -> None:
        if permit.permit_id not in self._outstanding:
            raise ValueError(f"permit {permit.permit_id} is not outstanding")
        self._outstanding.discard(permit.permit_id)
        self._slots.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[Permit]:
        acquired = await self.acquire()
        try:
            yield acquired
        finally:
            self.release(acquired)

    async def schedule(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` while holding a permit."""

        async with self.permit():
            return await fn()

    def _refill(self, now: float) -> None:
        if self._window_start is None:
            self._window_start = now
            return
        elapsed = now - self._window_start
        if elapsed < self._interval:
            return
        windows = int(elapsed // self._interval)
        self._tokens = min(self._reservoir, self._tokens + windows * self._refill_amount)
        self._window_start += windows * self._interval

    async def _take_token(self) -> None:
        # Waiters queue on the lock, so tokens are handed out in arrival order.
        async with self._token_lock:
            while True:
                now = self._clock()
                self._refill(now)
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                assert self._window_start is not None
                wait = self._window_start + self._interval - now
                await self._sleep(max(0.0, wait))
