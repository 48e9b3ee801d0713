"""
Rate Limiting
=============
In-memory and Redis window limiters plus the admin login throttle.
"""

from .models import RateLimitEntry, RateLimitDecision
from .sliding_window import SlidingWindowCounter, SWEEP_THRESHOLD
from .limiter import RateLimiter, build_route_limiters
from .redis_limiter import RedisWindowLimiter
from .lockout import LoginThrottle, LoginAttemptResult

__all__ = [
    # Models
    "RateLimitEntry",
    "RateLimitDecision",
    # Limiters
    "SlidingWindowCounter",
    "SWEEP_THRESHOLD",
    "RateLimiter",
    "RedisWindowLimiter",
    "build_route_limiters",
    # Login throttle
    "LoginThrottle",
    "LoginAttemptResult",
]
