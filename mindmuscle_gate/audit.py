"""
Admin Audit Events
==================
Structured log events for admin authentication actions.
"""

from enum import Enum
from typing import Any, Dict, Optional

from starlette.requests import Request
import structlog

from .client_ip import resolve_client_ip

logger = structlog.get_logger("mindmuscle_gate.audit")


class AdminAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"


def get_request_info(request: Request) -> Dict[str, Optional[str]]:
    """Client IP and user agent for audit attribution."""
    return {
        "ip_address": resolve_client_ip(request.headers),
        "user_agent": request.headers.get("user-agent"),
    }


def log_admin_action(
    action: AdminAction,
    request: Request,
    outcome: str = "success",
    **details: Any,
) -> None:
    """
    Emit an ``admin_action`` event.

    Args:
        action: What the admin did
        request: Incoming request, for IP and user agent
        outcome: "success", "failure" or "blocked"
        details: Extra key/value context
    """
    try:
        logger.info(
            "admin_action",
            action=action.value,
            outcome=outcome,
            admin_identifier="admin",
            **get_request_info(request),
            **details,
        )
    except Exception:
        pass  # audit logging is best effort
