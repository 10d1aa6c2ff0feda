"""
deadline.py — Per-request time budget

Every outbound provider call (generation, search) for one request shares a
single wall-clock ceiling. The Deadline object is created once per request
and passed explicitly to each call; each call awaits through ``run()`` so it
is cancelled once the budget is spent.
"""

import asyncio
import time
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class DeadlineExceeded(TimeoutError):
    """Raised when the request's time budget runs out before a call finishes."""


class Deadline:
    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self.budget = float(seconds)
        self.expires_at = clock() + self.budget

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    async def run(self, awaitable: Awaitable[T], cap: Optional[float] = None) -> T:
        """
        Await ``awaitable`` within the remaining budget.

        ``cap`` optionally shortens the wait for this one call. Raises
        DeadlineExceeded on expiry; the awaited task is cancelled.
        """
        timeout = self.remaining()
        if cap is not None:
            timeout = min(timeout, cap)
        if timeout <= 0:
            # Close the coroutine so it never runs and never warns.
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceeded("request time budget exhausted")
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded(f"call exceeded {timeout:.1f}s of remaining budget") from e
