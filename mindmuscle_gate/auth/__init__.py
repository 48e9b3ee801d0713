"""
Auth Gates
==========
Preview and admin password walls plus their endpoints.
"""

from .gate import (
    AuthGate,
    GateCheck,
    preview_gate,
    admin_gate,
    SESSION_MARKER,
    SESSION_MAX_AGE,
    PREVIEW_COOKIE,
    ADMIN_COOKIE,
    ADMIN_PASSWORD_HEADER,
)
from .routes import create_auth_router

__all__ = [
    "AuthGate",
    "GateCheck",
    "preview_gate",
    "admin_gate",
    "create_auth_router",
    "SESSION_MARKER",
    "SESSION_MAX_AGE",
    "PREVIEW_COOKIE",
    "ADMIN_COOKIE",
    "ADMIN_PASSWORD_HEADER",
]
