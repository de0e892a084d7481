from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    admin_api_key: str | None
    auth_header_mode: str
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    trust_x_forwarded_for: bool
    database_path: str
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    signup_credits: int
    free_daily_action_limit: int
    debug_routes_enabled: bool
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_webhook_secret: str
    razorpay_api_base: str
    razorpay_timeout_s: float
    default_order_credits: int


settings = Settings(
    admin_api_key=_get_env("ADMIN_API_KEY"),
    auth_header_mode=(_get_env("AUTH_HEADER_MODE", "trusted") or "trusted").strip().lower(),
    rate_limit=_get_env("RATE_LIMIT", "120/minute") or "120/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", True),
    trust_x_forwarded_for=_get_env_bool("TRUST_X_FORWARDED_FOR", False),
    database_path=_get_env("DATABASE_PATH", "data/resumes.db") or "data/resumes.db",
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 180),
    signup_credits=_get_env_int("SIGNUP_CREDITS", 1),
    free_daily_action_limit=_get_env_int("FREE_DAILY_ACTION_LIMIT", 1),
    debug_routes_enabled=_get_env_bool("DEBUG_ROUTES_ENABLED", False),
    razorpay_key_id=_get_env("RAZORPAY_KEY_ID", "") or "",
    razorpay_key_secret=_get_env("RAZORPAY_KEY_SECRET", "") or "",
    razorpay_webhook_secret=_get_env("RAZORPAY_WEBHOOK_SECRET", "") or "",
    razorpay_api_base=(_get_env("RAZORPAY_API_BASE", "https://api.razorpay.com/v1") or "").rstrip("/"),
    razorpay_timeout_s=float(_get_env("RAZORPAY_TIMEOUT_S", "20") or "20"),
    default_order_credits=_get_env_int("DEFAULT_ORDER_CREDITS", 7),
)

if settings.auth_header_mode not in {"trusted", "protected"}:
    raise RuntimeError("AUTH_HEADER_MODE must be either 'trusted' or 'protected'.")

if settings.auth_header_mode == "protected" and not settings.admin_api_key:
    raise RuntimeError("AUTH_HEADER_MODE=protected requires ADMIN_API_KEY to be set.")

if settings.signup_credits < 0:
    raise RuntimeError("SIGNUP_CREDITS must not be negative.")
