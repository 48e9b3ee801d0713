"""
Tests for the CORS gate.
"""

from starlette.responses import JSONResponse

from conftest import make_request
from mindmuscle_gate.cors import CorsGate

ORIGIN = "https://mindandmuscle.ai"
EVIL = "https://evil.example"


def make_gate():
    return CorsGate([ORIGIN, "https://www.mindandmuscle.ai"])


class TestCorsGate:
    """Origin validation and header set."""

    def test_allowed_origin_headers(self):
        headers = make_gate().cors_headers(ORIGIN)

        assert headers == {
            "Access-Control-Allow-Origin": ORIGIN,
            "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
            "Access-Control-Max-Age": "86400",
        }

    def test_unknown_origin_gets_no_headers(self):
        assert make_gate().cors_headers(EVIL) == {}
        assert make_gate().cors_headers(None) == {}

    def test_exact_match_only(self):
        gate = make_gate()

        assert gate.is_allowed_origin(ORIGIN + "/") is False
        assert gate.is_allowed_origin("https://sub.mindandmuscle.ai") is False
        assert gate.is_allowed_origin("http://mindandmuscle.ai") is False

    def test_wildcard_is_not_a_pattern(self):
        gate = CorsGate(["*"])

        assert gate.is_allowed_origin(EVIL) is False

    def test_validate_rejects_bad_origin(self):
        response = make_gate().validate(
            make_request("POST", "/api/lookup-team", headers={"Origin": EVIL})
        )

        assert response.status_code == 403
        assert b"Forbidden: Invalid origin" in response.body
        assert "access-control-allow-origin" not in response.headers

    def test_validate_allows_good_or_missing_origin(self):
        gate = make_gate()

        assert gate.validate(make_request(headers={"Origin": ORIGIN})) is None
        assert gate.validate(make_request()) is None

    def test_preflight(self):
        response = make_gate().preflight_response(
            make_request("OPTIONS", headers={"Origin": ORIGIN})
        )

        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-max-age"] == "86400"

    def test_preflight_unknown_origin_has_no_cors_headers(self):
        response = make_gate().preflight_response(
            make_request("OPTIONS", headers={"Origin": EVIL})
        )

        assert response.status_code == 204
        assert "access-control-allow-origin" not in response.headers

    def test_apply_echoes_origin(self):
        response = make_gate().apply(
            JSONResponse({"ok": True}), make_request(headers={"Origin": ORIGIN})
        )

        assert response.headers["access-control-allow-origin"] == ORIGIN
