"""
Tests for the application factory wiring.
"""

from starlette.testclient import TestClient

from mindmuscle_gate.app import create_app
from mindmuscle_gate.config import GateSettings
from mindmuscle_gate.rate_limit import RedisWindowLimiter


class TestRedisWiring:
    """Redis-backed limiters when REDIS_URL is set."""

    def _app(self):
        settings = GateSettings(redis_url="redis://localhost:6379/0")
        return create_app(settings, configure_logging=False)

    def test_route_limiters_share_one_client(self):
        app = self._app()

        limiters = app.state.limiters.values()
        assert all(isinstance(limiter, RedisWindowLimiter) for limiter in limiters)
        assert {id(limiter.redis) for limiter in limiters} == {id(app.state.redis)}

    def test_client_closed_on_shutdown(self, monkeypatch):
        app = self._app()
        closed = []

        async def fake_aclose():
            closed.append(True)

        monkeypatch.setattr(app.state.redis, "aclose", fake_aclose)

        with TestClient(app):
            assert closed == []

        assert closed == [True]

    def test_in_memory_app_has_no_client(self):
        app = create_app(GateSettings(), configure_logging=False)

        with TestClient(app):
            pass

        assert app.state.redis is None


class TestThrottleWiring:

    def test_admin_gate_and_login_share_throttle(self):
        app = create_app(GateSettings(admin_password="admin-secret"), configure_logging=False)

        assert app.state.admission.match("/api/admin/x").gate.throttle is app.state.throttle
