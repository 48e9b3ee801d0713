"""
Shared fixtures: controllable clock, request builder and app factory.
"""

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.testclient import TestClient

from mindmuscle_gate.app import create_app
from mindmuscle_gate.config import GateSettings
from mindmuscle_gate.rate_limit import build_route_limiters

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock moved by hand."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


def make_request(method="GET", path="/", headers=None, cookies=None) -> Request:
    raw_headers = [
        (key.lower().encode(), value.encode()) for key, value in (headers or {}).items()
    ]
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
    }
    return Request(scope)


def add_site_routes(app: FastAPI) -> None:
    """Stand-in handlers for the protected route families."""

    @app.get("/")
    async def home():
        return JSONResponse({"page": "home"})

    @app.get("/robots.txt")
    async def robots():
        return JSONResponse({"file": "robots"})

    @app.post("/api/lookup-team")
    async def lookup_team():
        return JSONResponse({"team": "TEAM-ABCD-EFGH-JKLM"})

    @app.post("/api/create-checkout-session")
    async def checkout():
        return JSONResponse({"url": "https://checkout.example/session"})

    @app.get("/api/admin/promo-codes")
    async def promo_codes():
        return JSONResponse({"codes": []})

    @app.get("/admin/login")
    async def admin_login_page():
        return JSONResponse({"page": "admin-login"})

    @app.get("/admin/partners")
    async def admin_partners():
        return JSONResponse({"page": "partners"})

    @app.post("/api/webhooks/stripe")
    async def stripe_webhook():
        return JSONResponse({"received": True})

    @app.get("/api/feedback")
    async def feedback():
        raise RuntimeError("database unreachable")


@pytest.fixture
def settings():
    return GateSettings(
        environment="development",
        preview_password="mindmuscle2025",
        admin_password="admin-secret",
    )


@pytest.fixture
def build_client(clock):
    """Return a factory building a TestClient over the full app."""

    def _build(settings, base_url="http://testserver", throttle=None, raise_server_exceptions=True):
        limiters = build_route_limiters(settings.rate_limits, clock=clock)
        app = create_app(
            settings, limiters=limiters, throttle=throttle, configure_logging=False
        )
        add_site_routes(app)
        return TestClient(
            app, base_url=base_url, raise_server_exceptions=raise_server_exceptions
        )

    return _build


@pytest.fixture
def client(build_client, settings):
    return build_client(settings)
