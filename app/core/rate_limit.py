from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings


def client_key(request: Request) -> str:
    """Caller address; X-Forwarded-For is honoured only behind a trusted proxy."""
    if settings.trust_x_forwarded_for:
        forwarded_for = request.headers.get("x-forwarded-for", "").strip()
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return get_remote_address(request) or "unknown"


limiter = Limiter(
    key_func=client_key,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)
