"""
Auth Gate
=========
Shared-secret password wall backed by a marker cookie.

The cookie carries the literal value ``"authenticated"``; holding it is the
whole trust boundary. There is no per-user identity and no server-side
session state. Suitable for preview/demo content and the internal admin
tool only.
"""

import hmac
from enum import Enum
from typing import Mapping, Optional

from starlette.requests import Request
from starlette.responses import Response
import structlog

from ..client_ip import resolve_client_ip
from ..config import GateSettings
from ..rate_limit.lockout import LoginAttemptResult, LoginThrottle

logger = structlog.get_logger(__name__)

SESSION_MARKER = "authenticated"
SESSION_MAX_AGE = 60 * 60 * 24 * 30  # 30 days

PREVIEW_COOKIE = "preview_auth"
ADMIN_COOKIE = "admin_auth"
ADMIN_PASSWORD_HEADER = "X-Admin-Password"


class GateCheck(str, Enum):
    PASSED = "passed"
    DENIED = "denied"
    BLOCKED = "blocked"
    LOCKED_OUT = "locked_out"


class AuthGate:
    """
    One password gate with its own cookie namespace.

    Args:
        kind: "preview" or "admin", used in logs
        cookie_name: Session cookie name
        secret: Expected password; None or empty fails closed
        secure: Set the Secure cookie flag
        samesite: SameSite cookie policy
        header_name: Optional header that may carry the password instead
            of a session cookie (API callers)
        throttle: Failed-attempt lockout applied to header passwords
    """

    def __init__(
        self,
        kind: str,
        cookie_name: str,
        secret: Optional[str],
        secure: bool = False,
        samesite: str = "lax",
        header_name: Optional[str] = None,
        throttle: Optional[LoginThrottle] = None,
    ):
        self.kind = kind
        self.cookie_name = cookie_name
        self.secure = secure
        self.samesite = samesite
        self.header_name = header_name
        self.throttle = throttle
        self._secret = secret or None
        self._missing_secret_logged = False

    def __repr__(self) -> str:
        return f"AuthGate(kind={self.kind!r}, cookie_name={self.cookie_name!r})"

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def verify(self, supplied_password: Optional[str]) -> bool:
        """Exact match against the configured secret; unconfigured fails closed."""
        if self._secret is None:
            if not self._missing_secret_logged:
                logger.warning("auth_gate_secret_missing", gate=self.kind)
                self._missing_secret_logged = True
            return False
        if not isinstance(supplied_password, str) or not supplied_password:
            return False
        return hmac.compare_digest(
            supplied_password.encode("utf-8"), self._secret.encode("utf-8")
        )

    def issue_session(self, response: Response) -> Response:
        response.set_cookie(
            self.cookie_name,
            SESSION_MARKER,
            max_age=SESSION_MAX_AGE,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
        return response

    def check_session(self, cookies: Mapping[str, str]) -> bool:
        return cookies.get(self.cookie_name) == SESSION_MARKER

    def clear_session(self, response: Response) -> Response:
        """Delete the session cookie. Safe to call repeatedly."""
        response.delete_cookie(
            self.cookie_name,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
        return response

    def evaluate(self, request: Request, client_ip: Optional[str] = None) -> GateCheck:
        """
        Check the session cookie, then the password header if this gate
        accepts one.

        Header passwords go through the throttle: a blocked IP is refused
        without comparing the password, a failure counts toward the lockout
        and a success clears it.
        """
        if self.check_session(request.cookies):
            return GateCheck.PASSED
        if not self.header_name:
            return GateCheck.DENIED
        supplied = request.headers.get(self.header_name)
        if not supplied:
            return GateCheck.DENIED

        if self.throttle is None:
            return GateCheck.PASSED if self.verify(supplied) else GateCheck.DENIED

        ip = client_ip or resolve_client_ip(request.headers)
        if self.throttle.is_blocked(ip):
            return GateCheck.BLOCKED
        if self.verify(supplied):
            self.throttle.record_success(ip)
            return GateCheck.PASSED
        if self.throttle.record_failure(ip) is not LoginAttemptResult.ALLOWED:
            return GateCheck.LOCKED_OUT
        return GateCheck.DENIED

    def check_request(self, request: Request) -> bool:
        return self.evaluate(request) is GateCheck.PASSED


def preview_gate(settings: GateSettings) -> AuthGate:
    return AuthGate(
        kind="preview",
        cookie_name=PREVIEW_COOKIE,
        secret=settings.preview_password,
        secure=settings.is_production,
        samesite="lax",
    )


def admin_gate(
    settings: GateSettings, throttle: Optional[LoginThrottle] = None
) -> AuthGate:
    return AuthGate(
        kind="admin",
        cookie_name=ADMIN_COOKIE,
        secret=settings.admin_password,
        secure=settings.is_production,
        samesite="strict",
        header_name=ADMIN_PASSWORD_HEADER,
        throttle=throttle,
    )
