"""
Mind & Muscle Gate
==================
Request admission and authentication control plane: rate limiting, client
IP resolution, CORS validation and password gates.
"""

__version__ = "0.3.0"

# Rate Limiting
from mindmuscle_gate.rate_limit import (
    RateLimitEntry,
    RateLimitDecision,
    SlidingWindowCounter,
    RateLimiter,
    RedisWindowLimiter,
    LoginThrottle,
    build_route_limiters,
)

# Identity
from mindmuscle_gate.client_ip import resolve_client_ip, UNKNOWN_CLIENT

# CORS
from mindmuscle_gate.cors import CorsGate

# Auth
from mindmuscle_gate.auth import (
    AuthGate,
    preview_gate,
    admin_gate,
    create_auth_router,
)

# Admission
from mindmuscle_gate.admission import (
    AdmissionPipeline,
    AdmissionMiddleware,
    RoutePolicy,
    build_pipeline,
)

# Config & errors
from mindmuscle_gate.config import GateSettings
from mindmuscle_gate.errors import GateConfigError, AdmissionErrors
from mindmuscle_gate.logging_setup import setup_logging

__all__ = [
    "__version__",
    # Rate Limiting
    "RateLimitEntry",
    "RateLimitDecision",
    "SlidingWindowCounter",
    "RateLimiter",
    "RedisWindowLimiter",
    "LoginThrottle",
    "build_route_limiters",
    # Identity
    "resolve_client_ip",
    "UNKNOWN_CLIENT",
    # CORS
    "CorsGate",
    # Auth
    "AuthGate",
    "preview_gate",
    "admin_gate",
    "create_auth_router",
    # Admission
    "AdmissionPipeline",
    "AdmissionMiddleware",
    "RoutePolicy",
    "build_pipeline",
    # Config & errors
    "GateSettings",
    "GateConfigError",
    "AdmissionErrors",
    "setup_logging",
]
