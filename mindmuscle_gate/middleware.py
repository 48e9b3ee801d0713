"""
Error Boundary Middleware
=========================
Turns unhandled route errors into a generic 500 so internals never reach
the caller.
"""

from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import structlog

logger = structlog.get_logger(__name__)


class SanitizedErrorMiddleware(BaseHTTPMiddleware):
    """
    Catches exceptions raised by downstream handlers.

    In production the caller gets ``{"error": "Internal server error"}``;
    in development the exception is re-raised for debugging.
    """

    def __init__(self, app, environment: str = "production"):
        super().__init__(app)
        self.is_production = environment.lower() in ("production", "prod", "staging")

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "unhandled_exception",
                error=str(e),
                path=request.url.path,
                method=request.method,
                exc_info=True,
            )
            if not self.is_production:
                raise
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"},
            )
