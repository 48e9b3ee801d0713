"""
Sliding Window Counter
======================
In-memory per-identifier request counter with a fixed window that starts
at each identifier's first request.
"""

import time
from typing import Callable, Dict, Optional

import structlog

from .models import RateLimitDecision, RateLimitEntry

logger = structlog.get_logger(__name__)

# Tracked identifiers above which expired entries are swept.
SWEEP_THRESHOLD = 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class SlidingWindowCounter:
    """
    Counts requests per identifier inside a window of ``window_ms``.

    Counts are window-relative, not a rolling average: a burst just before a
    window boundary and another just after can together exceed the nominal
    rate. State lives in this instance only.
    """

    def __init__(
        self,
        limit: int,
        window_ms: int,
        clock: Optional[Callable[[], int]] = None,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ):
        """
        Args:
            limit: Requests allowed per window
            window_ms: Window length in milliseconds
            clock: Returns the current time in epoch milliseconds
            sweep_threshold: Entry count that triggers an expiry sweep
        """
        self.limit = limit
        self.window_ms = window_ms
        self.sweep_threshold = sweep_threshold
        self._clock = clock or now_ms
        self._entries: Dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> int:
        return self._clock()

    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        return self._entries.get(identifier)

    def check(self, identifier: str) -> RateLimitDecision:
        """
        Record a request from ``identifier`` and decide whether it is limited.

        Args:
            identifier: Caller key, usually the client IP

        Returns:
            RateLimitDecision for this request
        """
        now = self._clock()

        if len(self._entries) > self.sweep_threshold:
            self.sweep(now)

        entry = self._entries.get(identifier)

        if entry is None or entry.is_expired(now):
            entry = RateLimitEntry(
                identifier=identifier, count=1, reset_at=now + self.window_ms
            )
            self._entries[identifier] = entry
            return RateLimitDecision(
                limited=False,
                remaining=self.limit - 1,
                reset_at=entry.reset_at,
                limit=self.limit,
            )

        entry.count += 1

        if entry.count > self.limit:
            return RateLimitDecision(
                limited=True,
                remaining=0,
                reset_at=entry.reset_at,
                limit=self.limit,
            )

        return RateLimitDecision(
            limited=False,
            remaining=self.limit - entry.count,
            reset_at=entry.reset_at,
            limit=self.limit,
        )

    def sweep(self, now: Optional[int] = None) -> int:
        """Remove expired entries. Returns how many were removed."""
        if now is None:
            now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if entry.is_expired(now)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(
                "rate_limit_sweep", removed=len(expired), tracked=len(self._entries)
            )
        return len(expired)
