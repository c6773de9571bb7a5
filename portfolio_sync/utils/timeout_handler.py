"""
Timeout and deadline utilities for remote calls made during a scan
"""

import asyncio
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class TimeoutConfig:
    """Configuration for different service timeouts"""
    DEFAULT_TIMEOUT = 30  # seconds

    # Per-call ceilings for the summarizer providers
    TIMEOUTS = {
        "openai": 45,
        "anthropic": 60,
    }

    @classmethod
    def get_timeout(cls, service: str) -> int:
        """Get timeout for a specific service"""
        return cls.TIMEOUTS.get(service.lower(), cls.DEFAULT_TIMEOUT)


class Deadline:
    """
    Overall time budget for one invocation.

    Built once per request and passed down; every stage checks it between
    remote calls so an expiring budget yields partial results instead of a
    killed function.
    """

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded. Never negative."""
        if self.seconds is None:
            return None
        return max(0.0, self.seconds - (self._clock() - self._started))

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def __repr__(self) -> str:
        return f"Deadline(seconds={self.seconds}, remaining={self.remaining()})"


class KeyedLocks:
    """Per-key asyncio locks; writes to the same record key run one at a time."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, key: Optional[str]):
        if not key:
            yield
            return
        async with self._locks[key]:
            yield
