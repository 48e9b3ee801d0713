"""
CORS Gate
=========
Exact-match origin allow-list with pre-flight handling.
"""

from typing import Dict, FrozenSet, Iterable, Optional

from starlette.requests import Request
from starlette.responses import Response
import structlog

from .errors import AdmissionErrors

logger = structlog.get_logger(__name__)

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"
MAX_AGE_SECONDS = 86400


class CorsGate:
    """
    Validates the Origin header against a closed set of origins.

    Requests without an Origin (same-origin or non-browser clients) are
    trusted. Allowed origins are echoed back, never ``*``.
    """

    def __init__(self, allowed_origins: Iterable[str]):
        origins = frozenset(o for o in allowed_origins if o)
        if "*" in origins:
            logger.warning(
                "cors_wildcard_ignored",
                reason="origins are matched exactly, '*' matches nothing",
            )
        self._allowed: FrozenSet[str] = origins

    @property
    def allowed_origins(self) -> FrozenSet[str]:
        return self._allowed

    def is_allowed_origin(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        return origin in self._allowed

    def cors_headers(self, origin: Optional[str]) -> Dict[str, str]:
        """CORS headers for ``origin``, empty when it is not allowed."""
        if not self.is_allowed_origin(origin):
            return {}
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
        }

    def preflight_response(self, request: Request) -> Response:
        origin = request.headers.get("origin")
        return Response(status_code=204, headers=self.cors_headers(origin))

    def validate(self, request: Request) -> Optional[Response]:
        """Return a 403 response for a disallowed Origin, otherwise None."""
        origin = request.headers.get("origin")
        if not origin:
            return None
        if self.is_allowed_origin(origin):
            return None

        try:
            logger.warning(
                "cors_origin_rejected",
                origin=origin,
                path=request.url.path,
                method=request.method,
            )
        except Exception:
            pass  # logging must never fail the request
        return AdmissionErrors.invalid_origin()

    def apply(self, response: Response, request: Request) -> Response:
        """Attach CORS headers for the request's Origin to ``response``."""
        for key, value in self.cors_headers(request.headers.get("origin")).items():
            response.headers[key] = value
        return response
