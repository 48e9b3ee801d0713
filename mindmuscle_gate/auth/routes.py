"""
Auth Routes
===========
Password submission, logout and session check endpoints for the preview
and admin gates.
"""

import json
from typing import Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import structlog

from ..audit import AdminAction, log_admin_action
from ..client_ip import resolve_client_ip
from ..errors import AdmissionErrors, error_response
from ..rate_limit import LoginAttemptResult, LoginThrottle
from .gate import AuthGate, GateCheck

logger = structlog.get_logger(__name__)


async def _read_password(request: Request) -> Tuple[Optional[str], Optional[JSONResponse]]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, error_response("Invalid request body", 400)
    if not isinstance(body, dict):
        return None, error_response("Invalid request body", 400)
    password = body.get("password")
    return (password if isinstance(password, str) else None), None


def create_auth_router(
    preview: AuthGate,
    admin: AuthGate,
    throttle: Optional[LoginThrottle] = None,
) -> APIRouter:
    """
    Build the auth endpoints.

    Args:
        preview: Site-wide preview gate
        admin: Admin dashboard gate
        throttle: Failed admin login tracker; the admin gate's own, or a
            fresh one if neither is given
    """
    throttle = throttle or admin.throttle or LoginThrottle()
    router = APIRouter(tags=["auth"])

    @router.post("/api/auth/verify-gate")
    async def verify_gate(request: Request):
        password, invalid = await _read_password(request)
        if invalid is not None:
            return invalid

        if not preview.verify(password):
            logger.info("preview_gate_login_failed", client_ip=resolve_client_ip(request.headers))
            return AdmissionErrors.incorrect_password()

        return preview.issue_session(JSONResponse({"success": True}))

    @router.post("/api/admin/auth")
    async def admin_login(request: Request):
        password, invalid = await _read_password(request)
        if invalid is not None:
            return invalid
        if not password:
            return error_response("Password is required", 400)

        ip = resolve_client_ip(request.headers)
        minutes = throttle.block_minutes

        if throttle.is_blocked(ip):
            log_admin_action(AdminAction.LOGIN, request, outcome="blocked")
            return AdmissionErrors.login_blocked(minutes)

        if not admin.verify(password):
            log_admin_action(AdminAction.LOGIN, request, outcome="failure")
            if throttle.record_failure(ip) is not LoginAttemptResult.ALLOWED:
                return AdmissionErrors.login_locked_out(minutes)
            return AdmissionErrors.incorrect_password()

        throttle.record_success(ip)
        log_admin_action(AdminAction.LOGIN, request)
        return admin.issue_session(JSONResponse({"success": True}))

    @router.delete("/api/admin/auth")
    async def admin_logout(request: Request):
        log_admin_action(AdminAction.LOGOUT, request)
        return admin.clear_session(JSONResponse({"success": True}))

    @router.get("/api/admin/check-auth")
    async def admin_check_auth(request: Request):
        outcome = admin.evaluate(request)
        if outcome is GateCheck.PASSED:
            return JSONResponse({"authenticated": True})
        if outcome is GateCheck.BLOCKED:
            return AdmissionErrors.login_blocked(throttle.block_minutes)
        if outcome is GateCheck.LOCKED_OUT:
            return AdmissionErrors.login_locked_out(throttle.block_minutes)
        return JSONResponse({"authenticated": False}, status_code=401)

    return router
