"""
Rate Limit Models
=================
Per-identifier window state and the decision returned by a check.
"""

import math
from dataclasses import dataclass
from typing import Dict


@dataclass
class RateLimitEntry:
    """Requests seen from one identifier in its current window."""
    identifier: str
    count: int
    reset_at: int  # epoch ms

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.reset_at


@dataclass
class RateLimitDecision:
    """Rate limit check result with quota information."""
    limited: bool
    remaining: int
    reset_at: int  # epoch ms
    limit: int

    @property
    def allowed(self) -> bool:
        return not self.limited

    def retry_after(self, now_ms: int) -> int:
        """Whole seconds until the window resets."""
        return max(0, math.ceil((self.reset_at - now_ms) / 1000))

    def headers(self, now_ms: int) -> Dict[str, str]:
        """Standard rate limit headers; Retry-After only when limited."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at / 1000)),
        }
        if self.limited:
            headers["Retry-After"] = str(self.retry_after(now_ms))
        return headers
