"""
Request Admission Pipeline
==========================
Ordered checks applied before a request reaches route logic:

1. OPTIONS pre-flight (answered here)
2. Bypass rules (auth endpoints, webhooks, static assets, SEO files)
3. Client IP resolution
4. CORS origin validation
5. Rate limiting
6. Auth gates (preview wall, then the route's own gate)
7. Forward to the handler

Each stage may short-circuit with a terminal response. Admission failures
never raise past the pipeline; they resolve to a generic 503.

Usage:
    from mindmuscle_gate.admission import build_pipeline, AdmissionMiddleware

    pipeline = build_pipeline(settings)
    app.add_middleware(AdmissionMiddleware, pipeline=pipeline)
"""

import inspect
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
import structlog

from .auth.gate import AuthGate, GateCheck, admin_gate, preview_gate
from .client_ip import resolve_client_ip
from .config import GateSettings
from .cors import CorsGate
from .errors import AdmissionErrors, GateConfigError
from .rate_limit import LoginThrottle, RateLimitDecision, build_route_limiters

logger = structlog.get_logger(__name__)

DEFAULT_BYPASS_PREFIXES: Tuple[str, ...] = (
    "/auth/gate",
    "/api/auth/verify-gate",
    "/api/admin/auth",
    "/api/admin/check-auth",
    "/api/webhooks",
    "/_next",
    "/static",
    "/assets",
    "/public",
    "/favicon",
)
DEFAULT_BYPASS_PATHS: FrozenSet[str] = frozenset(
    {"/robots.txt", "/sitemap.xml", "/favicon.ico"}
)

PREVIEW_GATE_PAGE = "/auth/gate"
ADMIN_LOGIN_PAGE = "/admin/login"


@dataclass
class RoutePolicy:
    """
    Admission rules for one route family.

    Args:
        prefix: Path prefix; "/api/x" matches "/api/x" and "/api/x/..."
        cors: Route accepts cross-origin browser calls
        limiter: RateLimiter or RedisWindowLimiter keyed by client IP
        gate: AuthGate the caller must pass
        redirect_to: Gate page for browser routes; None answers 401
    """
    prefix: str
    cors: bool = False
    limiter: Optional[Any] = None
    gate: Optional[AuthGate] = None
    redirect_to: Optional[str] = None

    def __post_init__(self):
        if not self.prefix.startswith("/"):
            raise GateConfigError(f"Route prefix must start with '/': {self.prefix!r}")

    def matches(self, path: str) -> bool:
        prefix = self.prefix.rstrip("/")
        if not prefix:
            return True
        return path == prefix or path.startswith(prefix + "/")


def _log_rejection(event: str, request: Request, **context) -> None:
    try:
        logger.warning(
            event,
            path=request.url.path,
            method=request.method,
            **context,
        )
    except Exception:
        pass  # logging must never fail the request


class AdmissionPipeline:
    """Composes the CORS gate, IP resolver, rate limiters and auth gates."""

    def __init__(
        self,
        cors: CorsGate,
        policies: Sequence[RoutePolicy] = (),
        preview_gate: Optional[AuthGate] = None,
        bypass_prefixes: Sequence[str] = DEFAULT_BYPASS_PREFIXES,
        bypass_paths: FrozenSet[str] = DEFAULT_BYPASS_PATHS,
        preview_redirect: str = PREVIEW_GATE_PAGE,
    ):
        self.cors = cors
        self.policies: List[RoutePolicy] = list(policies)
        self.preview_gate = preview_gate
        self.bypass_prefixes = tuple(bypass_prefixes)
        self.bypass_paths = frozenset(bypass_paths)
        self.preview_redirect = preview_redirect

    def is_bypassed(self, path: str) -> bool:
        if path in self.bypass_paths:
            return True
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.bypass_prefixes
        )

    def match(self, path: str) -> Optional[RoutePolicy]:
        """First policy whose prefix matches ``path``."""
        for policy in self.policies:
            if policy.matches(path):
                return policy
        return None

    def _gates_for(
        self, policy: Optional[RoutePolicy]
    ) -> List[Tuple[AuthGate, Optional[str]]]:
        gates = []
        if self.preview_gate is not None:
            gates.append((self.preview_gate, self.preview_redirect))
        if policy is not None and policy.gate is not None:
            gates.append((policy.gate, policy.redirect_to))
        return gates

    async def admit(
        self, request: Request, policy: Optional[RoutePolicy]
    ) -> Tuple[Optional[Response], Optional[RateLimitDecision]]:
        """
        Run stages 3-6.

        Returns:
            (rejection response or None, rate limit decision or None)
        """
        path = request.url.path
        cors_active = policy is not None and policy.cors

        client_ip = resolve_client_ip(request.headers)
        request.state.client_ip = client_ip

        if cors_active:
            rejection = self.cors.validate(request)
            if rejection is not None:
                return rejection, None

        decision = None
        if policy is not None and policy.limiter is not None:
            decision = policy.limiter.check(client_ip)
            if inspect.isawaitable(decision):
                decision = await decision

            if decision.limited:
                now = policy.limiter.now()
                retry_after = decision.retry_after(now)
                _log_rejection(
                    "rate_limit_exceeded",
                    request,
                    client_ip=client_ip,
                    limit=decision.limit,
                    retry_after=retry_after,
                )
                response = AdmissionErrors.rate_limited(
                    retry_after, decision.headers(now)
                )
                if cors_active:
                    self.cors.apply(response, request)
                return response, decision

        for gate, redirect_to in self._gates_for(policy):
            outcome = gate.evaluate(request, client_ip)
            if outcome is GateCheck.PASSED:
                continue

            _log_rejection(
                "auth_gate_rejected",
                request,
                gate=gate.kind,
                client_ip=client_ip,
                outcome=outcome.value,
            )
            if outcome is GateCheck.BLOCKED:
                response = AdmissionErrors.login_blocked(gate.throttle.block_minutes)
            elif outcome is GateCheck.LOCKED_OUT:
                response = AdmissionErrors.login_locked_out(gate.throttle.block_minutes)
            elif redirect_to:
                query = urlencode({"returnUrl": path})
                return RedirectResponse(f"{redirect_to}?{query}", status_code=307), decision
            else:
                response = AdmissionErrors.unauthorized()

            if cors_active:
                self.cors.apply(response, request)
            return response, decision

        return None, decision

    async def handle(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        if request.method != "OPTIONS" and self.is_bypassed(path):
            return await call_next(request)

        try:
            if request.method == "OPTIONS":
                return self.cors.preflight_response(request)

            policy = self.match(path)
            rejection, decision = await self.admit(request, policy)
        except Exception as e:
            logger.error(
                "admission_failed",
                path=path,
                method=request.method,
                error=str(e),
                exc_info=True,
            )
            return AdmissionErrors.unavailable()

        if rejection is not None:
            return rejection

        response = await call_next(request)

        if decision is not None and policy is not None:
            for key, value in decision.headers(policy.limiter.now()).items():
                response.headers[key] = value
        if policy is not None and policy.cors:
            self.cors.apply(response, request)
        return response


class AdmissionMiddleware(BaseHTTPMiddleware):
    """Runs an AdmissionPipeline in front of every request."""

    def __init__(self, app, pipeline: AdmissionPipeline):
        super().__init__(app)
        self.pipeline = pipeline

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        return await self.pipeline.handle(request, call_next)


def default_policies(
    limiters: Dict[str, Any],
    admin: AuthGate,
) -> List[RoutePolicy]:
    """Route families of the marketing site, most specific first."""
    return [
        RoutePolicy("/api/auth/callback", limiter=limiters.get("auth-callback")),
        RoutePolicy("/api/lookup-team", cors=True, limiter=limiters.get("lookup-team")),
        RoutePolicy(
            "/api/create-checkout-session", cors=True, limiter=limiters.get("checkout")
        ),
        RoutePolicy(
            "/api/partner-application", cors=True, limiter=limiters.get("partner-app")
        ),
        RoutePolicy("/api/add-team-seats", cors=True, limiter=limiters.get("add-seats")),
        RoutePolicy("/api/validate-promo-code", cors=True, limiter=limiters.get("strict")),
        RoutePolicy("/api/feedback", limiter=limiters.get("feedback")),
        RoutePolicy("/api/admin", gate=admin),
        RoutePolicy(ADMIN_LOGIN_PAGE),
        RoutePolicy("/admin", gate=admin, redirect_to=ADMIN_LOGIN_PAGE),
    ]


def build_pipeline(
    settings: GateSettings,
    limiters: Optional[Dict[str, Any]] = None,
    preview: Optional[AuthGate] = None,
    admin: Optional[AuthGate] = None,
) -> AdmissionPipeline:
    """
    Build the site's admission pipeline from settings.

    Args:
        settings: GateSettings
        limiters: Named limiters; built from settings.rate_limits if omitted
        preview: Preview gate override
        admin: Admin gate override
    """
    if limiters is None:
        limiters = build_route_limiters(settings.rate_limits)
    admin = admin or admin_gate(settings, throttle=LoginThrottle())

    wall = None
    if settings.preview_gate_enabled:
        wall = preview or preview_gate(settings)

    pipeline = AdmissionPipeline(
        cors=CorsGate(settings.cors_origins),
        policies=default_policies(limiters, admin),
        preview_gate=wall,
    )
    logger.info(
        "admission_pipeline_configured",
        policies=len(pipeline.policies),
        preview_gate=wall is not None,
        origins_count=len(pipeline.cors.allowed_origins),
    )
    return pipeline
