"""
Configuration and startup security checks for EduManage.

Why: The API currently trusts request headers for identity and talks to a
payment processor. We must prevent an accidental insecure deployment without
burdening local development.

Permissions: The caller needs no special privileges. `load_config()` reads
environment variables; `ensure_secure_config_on_startup()` raises
`SystemExit` on fatal misconfiguration in prod-like environments.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Mapping, Tuple


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _flag(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def _int(value: str | None, default: int) -> int:
    try:
        return int((value or "").strip())
    except ValueError:
        return default


def _float(value: str | None, default: float) -> float:
    try:
        return float((value or "").strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    env: str = "dev"
    store_backend: str = "postgres"
    database_url: str = ""
    store_pool_min: int = 1
    store_pool_max: int = 10
    store_statement_timeout_ms: int = 5000
    payments_api_key: str = ""
    payments_api_base: str = "https://api.stripe.com"
    payments_currency: str = "usd"
    payments_timeout_seconds: float = 10.0
    cors_allow_origins: Tuple[str, ...] = field(default_factory=tuple)
    allow_header_identity: bool = False

    @property
    def prod_like(self) -> bool:
        return _is_prod_like(self.env)


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build `AppConfig` from the environment (or an explicit mapping in tests)."""
    env = os.environ if environ is None else environ
    origins = tuple(o.strip() for o in (env.get("CORS_ALLOW_ORIGINS") or "").split(",") if o.strip())
    return AppConfig(
        env=(env.get("EDUMANAGE_ENV") or "dev").strip().lower(),
        store_backend=(env.get("STORE_BACKEND") or "postgres").strip().lower(),
        database_url=(env.get("DATABASE_URL") or "").strip(),
        store_pool_min=_int(env.get("STORE_POOL_MIN"), 1),
        store_pool_max=_int(env.get("STORE_POOL_MAX"), 10),
        store_statement_timeout_ms=_int(env.get("STORE_STATEMENT_TIMEOUT_MS"), 5000),
        payments_api_key=(env.get("PAYMENTS_API_KEY") or "").strip(),
        payments_api_base=(env.get("PAYMENTS_API_BASE") or "https://api.stripe.com").strip(),
        payments_currency=(env.get("PAYMENTS_CURRENCY") or "usd").strip().lower(),
        payments_timeout_seconds=_float(env.get("PAYMENTS_TIMEOUT_SECONDS"), 10.0),
        cors_allow_origins=origins,
        allow_header_identity=_flag(env.get("EDUMANAGE_ALLOW_HEADER_IDENTITY")),
    )


def ensure_secure_config_on_startup(config: AppConfig | None = None) -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - The in-memory store must not back a production deployment.
    - DATABASE_URL must be set and must not explicitly disable TLS.
    - PAYMENTS_API_KEY must be set and not a placeholder.
    - Header-derived identity requires EDUMANAGE_ALLOW_HEADER_IDENTITY=true.
    """
    cfg = config or load_config()
    if not cfg.prod_like:
        return  # dev/test remain permissive

    # 1) Persistence
    if cfg.store_backend == "memory":
        raise SystemExit("Refusing to start: STORE_BACKEND=memory is not allowed in production/staging.")
    if not cfg.database_url:
        raise SystemExit("Refusing to start: DATABASE_URL is unset in production.")
    if "sslmode=disable" in cfg.database_url:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    # 2) Payment processor credentials
    key = cfg.payments_api_key
    if not key or key.upper().startswith("CHANGE_ME") or key.upper() == "DUMMY_DO_NOT_USE":
        raise SystemExit("Refusing to start: PAYMENTS_API_KEY is unset or a placeholder in production.")
    if cfg.payments_api_base.lower().startswith("http://"):
        raise SystemExit("Refusing to start: PAYMENTS_API_BASE must use https in production (got http).")

    # 3) Unverified identity headers need an explicit opt-in
    if not cfg.allow_header_identity:
        raise SystemExit(
            "Refusing to start: header-based identity is unverified. "
            "Set EDUMANAGE_ALLOW_HEADER_IDENTITY=true to accept it in production."
        )
