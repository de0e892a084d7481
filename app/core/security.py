from __future__ import annotations

import hmac
from typing import Any

from fastapi import Depends, Header, HTTPException, status

from app.core.config import settings
from app.services.user_service import get_or_create_user


def _keys_match(provided: str | None, expected: str | None) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def check_api_key(x_api_key: str | None) -> None:
    if not settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API key is not configured.")
    if not _keys_match(x_api_key, settings.admin_api_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key.")


def require_admin(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    check_api_key(x_api_key)


def _trusted_user_id(user_id: str | None, x_api_key: str | None) -> str | None:
    user_id = (user_id or "").strip()
    if not user_id:
        return None
    # Protected mode only trusts identity headers from a caller holding the gateway key.
    if settings.auth_header_mode == "protected" and not _keys_match(x_api_key, settings.admin_api_key):
        return None
    return user_id


def get_optional_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str | None:
    return _trusted_user_id(x_user_id, x_api_key)


def get_current_user_id(user_id: str | None = Depends(get_optional_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
) -> dict[str, Any]:
    return get_or_create_user(user_id, email=x_user_email, name=x_user_name)


def get_optional_user(
    user_id: str | None = Depends(get_optional_user_id),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
) -> dict[str, Any] | None:
    if not user_id:
        return None
    return get_or_create_user(user_id, email=x_user_email, name=x_user_name)
