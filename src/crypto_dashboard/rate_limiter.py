"""Cooperative rate limiting for provider clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket holding at most one token, refilled once per interval.

    Each ``acquire()`` consumes the token; if it has not refilled yet the
    caller sleeps for the remaining part of the interval. Acquisitions are
    serialized through an ``asyncio.Lock`` so concurrent callers sharing one
    instance still observe the spacing between dispatches.

    Example:
        limiter = RateLimiter(min_interval=2.0)
        await limiter.acquire()
        response = await client.get("/global")
    """

    def __init__(self, min_interval: float):
        """Initialize rate limiter.

        Args:
            min_interval: Minimum spacing between acquisitions in seconds
        """
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self._min_interval = min_interval
        self._last_acquired: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_acquired(self) -> Optional[float]:
        """Event loop time of the last granted acquisition."""
        return self._last_acquired

    async def acquire(self) -> float:
        """Wait until a token is available.

        Returns:
            Seconds spent waiting
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            waited = 0.0
            if self._last_acquired is not None:
                elapsed = loop.time() - self._last_acquired
                if elapsed < self._min_interval:
                    waited = self._min_interval - elapsed
                    logger.debug(f"Rate limit: sleeping {waited:.3f}s")
                    await asyncio.sleep(waited)
            self._last_acquired = loop.time()
            return waited
