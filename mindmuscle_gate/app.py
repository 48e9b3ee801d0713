"""
Application Factory
===================
FastAPI app wired with the admission pipeline and auth endpoints.

Usage:
    uvicorn mindmuscle_gate.app:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
import redis.asyncio as aioredis
import structlog

from .admission import AdmissionMiddleware, build_pipeline
from .auth import admin_gate, create_auth_router, preview_gate
from .config import GateSettings
from .logging_setup import setup_logging
from .middleware import SanitizedErrorMiddleware
from .rate_limit import LoginThrottle, RedisWindowLimiter, build_route_limiters

logger = structlog.get_logger(__name__)


def _redis_limiters(redis_client, settings: GateSettings) -> Dict[str, Any]:
    return {
        name: RedisWindowLimiter(redis_client, limit, window_ms, prefix=name)
        for name, (limit, window_ms) in settings.rate_limits.items()
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Shutdown: close the shared Redis client, if any."""
    yield
    redis_client = getattr(app.state, "redis", None)
    if redis_client is not None:
        await redis_client.aclose()
        logger.info("redis_client_closed")


def create_app(
    settings: Optional[GateSettings] = None,
    limiters: Optional[Dict[str, Any]] = None,
    throttle: Optional[LoginThrottle] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the app.

    Args:
        settings: Defaults to GateSettings.from_env()
        limiters: Named limiters; Redis-backed when REDIS_URL is set,
            in-memory otherwise
        throttle: Admin login throttle, shared by the login endpoint and
            the admin password header
        configure_logging: Call setup_logging from settings
    """
    settings = settings or GateSettings.from_env()
    if configure_logging:
        setup_logging(
            settings.service_name,
            level=settings.log_level,
            json_output=settings.log_json,
        )

    redis_client = None
    if limiters is None:
        if settings.redis_url:
            # One connection pool for every route limiter
            redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)
            limiters = _redis_limiters(redis_client, settings)
        else:
            limiters = build_route_limiters(settings.rate_limits)

    throttle = throttle or LoginThrottle()
    preview = preview_gate(settings)
    admin = admin_gate(settings, throttle=throttle)

    app = FastAPI(
        title="Mind & Muscle Web",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.limiters = limiters
    app.state.redis = redis_client
    app.state.throttle = throttle

    app.include_router(create_auth_router(preview, admin, throttle))

    pipeline = build_pipeline(settings, limiters=limiters, preview=preview, admin=admin)
    app.state.admission = pipeline

    # Last added runs first
    app.add_middleware(AdmissionMiddleware, pipeline=pipeline)
    app.add_middleware(SanitizedErrorMiddleware, environment=settings.environment)

    return app
