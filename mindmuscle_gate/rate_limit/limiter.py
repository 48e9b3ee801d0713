"""
Rate Limiter
============
Fixed ``(limit, window_ms)`` policy over a sliding window counter. One
instance per protected route family.
"""

from typing import Callable, Dict, Optional, Tuple

from ..errors import GateConfigError
from .models import RateLimitDecision
from .sliding_window import SlidingWindowCounter


class RateLimiter:
    """
    In-memory rate limiter.

    State resets on process restart, and every process enforces its own
    quota. Use RedisWindowLimiter to share one quota across processes.
    """

    def __init__(
        self,
        limit: int,
        window_ms: int,
        name: str = "default",
        clock: Optional[Callable[[], int]] = None,
    ):
        if not isinstance(limit, int) or limit <= 0:
            raise GateConfigError(f"limit must be a positive integer, got {limit!r}")
        if not isinstance(window_ms, int) or window_ms <= 0:
            raise GateConfigError(
                f"window_ms must be a positive integer, got {window_ms!r}"
            )
        self.name = name
        self.limit = limit
        self.window_ms = window_ms
        self._counter = SlidingWindowCounter(limit, window_ms, clock=clock)

    def __repr__(self) -> str:
        return f"RateLimiter(name={self.name!r}, limit={self.limit}, window_ms={self.window_ms})"

    @property
    def counter(self) -> SlidingWindowCounter:
        return self._counter

    def now(self) -> int:
        return self._counter.now()

    def check(self, identifier: str) -> RateLimitDecision:
        return self._counter.check(identifier)


def build_route_limiters(
    rate_limits: Dict[str, Tuple[int, int]],
    clock: Optional[Callable[[], int]] = None,
) -> Dict[str, RateLimiter]:
    """Create one limiter per named policy, e.g. ``{"checkout": (3, 60000)}``."""
    return {
        name: RateLimiter(limit, window_ms, name=name, clock=clock)
        for name, (limit, window_ms) in rate_limits.items()
    }
