"""
Login Throttle
==============
Per-IP failed login tracking for the admin password form and the admin
password header.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 5
BLOCK_DURATION_MS = 15 * 60 * 1000
ATTEMPT_WINDOW_MS = 15 * 60 * 1000

# Tracked IPs above which stale records are swept.
SWEEP_THRESHOLD = 1000


class LoginAttemptResult(str, Enum):
    ALLOWED = "allowed"
    RATE_LIMITED = "rate_limited"
    BLOCKED = "blocked"


@dataclass
class _AttemptRecord:
    failures: int = 0
    window_until: int = 0
    blocked_until: int = 0

    def is_stale(self, now: int) -> bool:
        if self.blocked_until:
            return now >= self.blocked_until
        return now >= self.window_until


class LoginThrottle:
    """
    Blocks an IP for ``block_ms`` after ``max_attempts`` failures inside
    ``window_ms`` of its first failure.

    Failures older than the window are forgotten. A successful login resets
    the IP's record.
    """

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        block_ms: int = BLOCK_DURATION_MS,
        window_ms: int = ATTEMPT_WINDOW_MS,
        clock: Optional[Callable[[], int]] = None,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ):
        self.max_attempts = max_attempts
        self.block_ms = block_ms
        self.window_ms = window_ms
        self.sweep_threshold = sweep_threshold
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._records: Dict[str, _AttemptRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    @property
    def block_minutes(self) -> int:
        return self.block_ms // 60000

    def is_blocked(self, ip: str) -> bool:
        record = self._records.get(ip)
        if record is None or not record.blocked_until:
            return False
        if self._clock() >= record.blocked_until:
            del self._records[ip]
            return False
        return True

    def record_failure(self, ip: str) -> LoginAttemptResult:
        if self.is_blocked(ip):
            return LoginAttemptResult.BLOCKED

        now = self._clock()
        if len(self._records) > self.sweep_threshold:
            self.sweep(now)

        record = self._records.get(ip)
        if record is None or record.is_stale(now):
            record = _AttemptRecord(window_until=now + self.window_ms)
            self._records[ip] = record
        record.failures += 1

        if record.failures >= self.max_attempts:
            record.blocked_until = now + self.block_ms
            logger.warning(
                "admin_login_blocked",
                ip=ip,
                failures=record.failures,
                block_minutes=self.block_minutes,
            )
            return LoginAttemptResult.RATE_LIMITED

        return LoginAttemptResult.ALLOWED

    def record_success(self, ip: str) -> None:
        self._records.pop(ip, None)

    def sweep(self, now: Optional[int] = None) -> int:
        """Drop expired blocks and lapsed attempt windows. Returns the count removed."""
        now = self._clock() if now is None else now
        stale = [ip for ip, record in self._records.items() if record.is_stale(now)]
        for ip in stale:
            del self._records[ip]
        if stale:
            logger.debug("login_throttle_swept", removed=len(stale), remaining=len(self._records))
        return len(stale)
