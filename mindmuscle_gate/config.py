"""
Gate Configuration
==================
Settings read from the environment at process start.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from .errors import GateConfigError

logger = structlog.get_logger(__name__)

PRODUCTION_ORIGINS = (
    "https://mindandmuscle.ai",
    "https://www.mindandmuscle.ai",
)
DEVELOPMENT_ORIGIN = "http://localhost:3000"

# name -> (limit, window_ms)
DEFAULT_RATE_LIMITS: Dict[str, Tuple[int, int]] = {
    "auth-callback": (10, 60 * 1000),
    "lookup-team": (5, 60 * 1000),
    "checkout": (3, 60 * 1000),
    "partner-app": (2, 5 * 60 * 1000),
    "add-seats": (3, 60 * 1000),
    "strict": (10, 60 * 1000),
    "feedback": (5, 60 * 60 * 1000),
}

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def parse_rate_limit(value: str) -> Tuple[int, int]:
    """
    Parse a ``<limit>/<window_ms>`` override.

    Raises:
        GateConfigError: if the value is malformed or not positive
    """
    try:
        limit_str, window_str = value.split("/", 1)
        limit, window_ms = int(limit_str.strip()), int(window_str.strip())
    except ValueError as e:
        raise GateConfigError(f"Invalid rate limit override: {value!r}") from e
    if limit <= 0 or window_ms <= 0:
        raise GateConfigError(f"Rate limit values must be positive: {value!r}")
    return limit, window_ms


def default_origins(is_production: bool) -> List[str]:
    origins = list(PRODUCTION_ORIGINS)
    if not is_production:
        origins.append(DEVELOPMENT_ORIGIN)
    return origins


def _load_rate_limits() -> Dict[str, Tuple[int, int]]:
    limits = dict(DEFAULT_RATE_LIMITS)
    for name in DEFAULT_RATE_LIMITS:
        env_name = "RATE_LIMIT_" + name.replace("-", "_").upper()
        raw = os.getenv(env_name)
        if not raw:
            continue
        try:
            limits[name] = parse_rate_limit(raw)
        except GateConfigError as e:
            logger.warning("rate_limit_override_ignored", env=env_name, error=str(e))
    return limits


@dataclass
class GateSettings:
    """Process-wide admission settings."""
    environment: str = "development"
    preview_mode: bool = False
    preview_password: Optional[str] = None
    admin_password: Optional[str] = None
    cors_origins: List[str] = field(default_factory=list)
    rate_limits: Dict[str, Tuple[int, int]] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    redis_url: Optional[str] = None
    service_name: str = "mindmuscle-web"
    log_level: str = "INFO"
    log_json: bool = True

    def __post_init__(self):
        if not self.cors_origins:
            self.cors_origins = default_origins(self.is_production)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @property
    def preview_gate_enabled(self) -> bool:
        """The preview wall only guards production deployments in preview mode."""
        return self.is_production and self.preview_mode

    @classmethod
    def from_env(cls) -> "GateSettings":
        environment = os.getenv("ENVIRONMENT", "development")
        origins_str = os.getenv("CORS_ORIGINS", "")
        origins = [o.strip().rstrip("/") for o in origins_str.split(",") if o.strip()]

        return cls(
            environment=environment,
            preview_mode=_env_flag("PREVIEW_MODE"),
            preview_password=os.getenv("PREVIEW_PASSWORD") or None,
            admin_password=os.getenv("ADMIN_DASHBOARD_PASSWORD") or None,
            cors_origins=origins,
            rate_limits=_load_rate_limits(),
            redis_url=os.getenv("REDIS_URL") or None,
            service_name=os.getenv("SERVICE_NAME", "mindmuscle-web"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_flag("LOG_JSON", default=True),
        )
