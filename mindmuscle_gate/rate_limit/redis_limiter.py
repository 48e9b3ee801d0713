"""
Redis Window Limiter
====================
Redis-backed counterpart of RateLimiter so several processes share one quota.
"""

import time
from typing import Callable, Optional

import structlog

from ..errors import GateConfigError
from .models import RateLimitDecision

logger = structlog.get_logger(__name__)

# Lua script: count the request and start the window atomically
WINDOW_COUNTER_SCRIPT = """
local key = KEYS[1]
local window_ms = tonumber(ARGV[1])

local count = redis.call('INCR', key)
local ttl = redis.call('PTTL', key)

if count == 1 or ttl < 0 then
    redis.call('PEXPIRE', key, window_ms)
    ttl = window_ms
end

return {count, ttl}
"""


class RedisWindowLimiter:
    """
    Same window semantics as the in-memory limiter, stored in Redis.

    The first INCR of a key starts the window and sets its expiry; the key's
    remaining TTL gives the reset time. Fails open if Redis is unreachable.
    """

    def __init__(
        self,
        redis_client,
        limit: int,
        window_ms: int,
        prefix: str = "default",
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis), may be
                shared between limiters
            limit: Requests per window
            window_ms: Window length in milliseconds
            prefix: Key namespace, one per route family
        """
        if limit <= 0 or window_ms <= 0:
            raise GateConfigError("limit and window_ms must be positive")
        self.redis = redis_client
        self.limit = limit
        self.window_ms = window_ms
        self.prefix = prefix
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._script_sha: Optional[str] = None

    def get_key(self, identifier: str) -> str:
        return f"ratelimit:{self.prefix}:{identifier}"

    def now(self) -> int:
        return self._clock()

    async def _ensure_script(self) -> str:
        """Load the Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(WINDOW_COUNTER_SCRIPT)
        return self._script_sha

    async def check(self, identifier: str) -> RateLimitDecision:
        """
        Record a request from ``identifier`` in Redis.

        Args:
            identifier: Caller key, usually the client IP

        Returns:
            RateLimitDecision for this request
        """
        key = self.get_key(identifier)
        now = self._clock()

        try:
            script_sha = await self._ensure_script()
            count, ttl = await self.redis.evalsha(script_sha, 1, key, self.window_ms)
            count = int(count)
            reset_at = now + int(ttl)
        except Exception as e:
            logger.error("rate_limit_redis_failed", key=key, error=str(e))
            # Redis may have been flushed; reload the script next time
            self._script_sha = None
            return RateLimitDecision(
                limited=False,
                remaining=self.limit,
                reset_at=now + self.window_ms,
                limit=self.limit,
            )

        if count > self.limit:
            return RateLimitDecision(
                limited=True, remaining=0, reset_at=reset_at, limit=self.limit
            )

        return RateLimitDecision(
            limited=False,
            remaining=self.limit - count,
            reset_at=reset_at,
            limit=self.limit,
        )
