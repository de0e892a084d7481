from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.core.config import settings
from app.core.security import get_current_user, get_current_user_id
from app.schemas.users import CheckCreditsRequest, DeductCreditsRequest, NameUpdateRequest
from app.services import credits_service, user_service

router = APIRouter()

DEBUG_CREDITS = 5


@router.get("/user/credits")
def user_credits(user: dict[str, Any] = Depends(get_current_user)):
    return {"credits": int(user.get("credits") or 0)}


@router.get("/user/me")
def user_me(user: dict[str, Any] = Depends(get_current_user)):
    return user_service.public_profile(user)


@router.post("/users/onboard")
def users_onboard(
    payload: NameUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
):
    user = user_service.onboard(user_id, payload.name, email=x_user_email)
    return {"success": True, "user": user_service.public_profile(user)}


@router.post("/users/update")
def users_update(payload: NameUpdateRequest, user: dict[str, Any] = Depends(get_current_user)):
    updated = user_service.update_name(user, payload.name)
    return {"success": True, "user": user_service.public_profile(updated)}


@router.post("/user/check-credits")
def check_credits(payload: CheckCreditsRequest, user: dict[str, Any] = Depends(get_current_user)):
    return credits_service.check_credits(user, payload.action, payload.required_credits)


@router.post("/user/deduct-credits")
def deduct_credits(payload: DeductCreditsRequest, user: dict[str, Any] = Depends(get_current_user)):
    return credits_service.deduct_credits(user, payload.service, payload.credits)


@router.post("/debug/add-credits")
def debug_add_credits(user: dict[str, Any] = Depends(get_current_user)):
    if not settings.debug_routes_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    balance = credits_service.add_credits(
        user["id"],
        DEBUG_CREDITS,
        service="debug_credit",
        description=f"Debug top-up of {DEBUG_CREDITS} credits",
    )
    return {"success": True, "creditsAdded": DEBUG_CREDITS, "newBalance": balance}
