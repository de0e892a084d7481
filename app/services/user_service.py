from __future__ import annotations

import logging
from typing import Any

from app.core.config import settings
from app.services.errors import NotFoundError, ServiceError
from app.store import users as users_store

logger = logging.getLogger(__name__)


def get_or_create_user(external_id: str, email: str | None = None, name: str | None = None) -> dict[str, Any]:
    user = users_store.get_user_by_external_id(external_id)
    if user:
        return user
    user = users_store.create_user(
        external_id=external_id,
        email=(email or "").strip(),
        name=(name or "").strip() or None,
        credits=settings.signup_credits,
    )
    logger.info("user_created user_id=%s credits=%s", user["id"], user["credits"])
    return user


def onboard(external_id: str, name: str | None, email: str | None = None) -> dict[str, Any]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ServiceError("Name is required", status_code=400)
    user = get_or_create_user(external_id, email=email, name=clean_name)
    if user.get("name") != clean_name:
        user = users_store.update_user_name(user["id"], clean_name) or user
    return user


def update_name(user: dict[str, Any], name: str | None) -> dict[str, Any]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ServiceError("Name is required", status_code=400)
    updated = users_store.update_user_name(user["id"], clean_name)
    if updated is None:
        raise NotFoundError("User not found")
    return updated


def public_profile(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "email": user.get("email") or "",
        "name": user.get("name"),
        "role": user.get("role") or "user",
        "credits": int(user.get("credits") or 0),
        "createdAt": user.get("created_at"),
    }
