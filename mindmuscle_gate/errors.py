"""
Admission Errors
================
Configuration errors and the generic rejection responses returned by the
admission layer.

CRITICAL: Never expose internal error details to callers. Log the technical
detail, return a generic message.
"""

from typing import Dict, Optional

from starlette.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


GENERIC_UNAVAILABLE_MESSAGE = "Service temporarily unavailable"
INVALID_ORIGIN_MESSAGE = "Forbidden: Invalid origin"
RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."
UNAUTHORIZED_MESSAGE = "Unauthorized"
INCORRECT_PASSWORD_MESSAGE = "Incorrect password"


class GateConfigError(ValueError):
    """Raised when a limiter, gate or route policy is built with invalid settings."""


def error_response(
    message: str,
    status_code: int,
    headers: Optional[Dict[str, str]] = None,
    internal_code: Optional[str] = None,
    log_message: Optional[str] = None,
    **extra,
) -> JSONResponse:
    """
    Build a JSON error response with a caller-safe message.

    Args:
        message: Message shown to the caller
        status_code: HTTP status code
        headers: Extra response headers
        internal_code: Code for logs only
        log_message: Technical detail for logs only
        extra: Additional body fields (e.g. retryAfter)
    """
    if log_message:
        logger.warning("admission_error", code=internal_code, detail=log_message)

    content = {"error": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


class AdmissionErrors:
    """Standard rejection factory methods."""

    @staticmethod
    def invalid_origin() -> JSONResponse:
        return error_response(INVALID_ORIGIN_MESSAGE, 403)

    @staticmethod
    def rate_limited(retry_after: int, headers: Dict[str, str]) -> JSONResponse:
        return error_response(
            RATE_LIMITED_MESSAGE, 429, headers=headers, retryAfter=retry_after
        )

    @staticmethod
    def unauthorized() -> JSONResponse:
        return error_response(UNAUTHORIZED_MESSAGE, 401)

    @staticmethod
    def incorrect_password() -> JSONResponse:
        return error_response(INCORRECT_PASSWORD_MESSAGE, 401)

    @staticmethod
    def unavailable(log_detail: Optional[str] = None) -> JSONResponse:
        """Admission layer failed internally."""
        return error_response(
            GENERIC_UNAVAILABLE_MESSAGE,
            503,
            internal_code="ADMISSION_FAILURE",
            log_message=log_detail,
        )

    @staticmethod
    def login_blocked(minutes: int) -> JSONResponse:
        """IP is already locked out; the password is not checked."""
        return error_response(
            f"Too many failed attempts. Please try again in {minutes} minutes.", 429
        )

    @staticmethod
    def login_locked_out(minutes: int) -> JSONResponse:
        """This failure reached the attempt limit."""
        return error_response(
            f"Too many failed attempts. You are blocked for {minutes} minutes.", 429
        )
