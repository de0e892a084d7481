from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user
from app.services import subscription_service

router = APIRouter()


@router.get("/features/check")
def check_feature(
    feature_id: str | None = Query(default=None, alias="featureId"),
    resume_id: str | None = Query(default=None, alias="resumeId"),
    user: dict[str, Any] = Depends(get_current_user),
):
    if not feature_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Feature ID is required")
    subscription = subscription_service.get_user_subscription(user["id"])
    return {
        "isUnlocked": subscription_service.is_feature_unlocked(user["id"], feature_id, resume_id),
        "subscription": subscription_service.serialize_subscription(subscription),
    }


@router.get("/user/subscription")
def user_subscription(user: dict[str, Any] = Depends(get_current_user)):
    subscription = subscription_service.get_user_subscription(user["id"])
    return {
        "subscription": subscription_service.serialize_subscription(subscription),
        "unlockedFeatures": subscription_service.get_unlocked_features(user["id"]),
        "remainingScans": subscription_service.get_remaining_scans(user["id"]),
        "credits": int(user.get("credits") or 0),
    }


@router.get("/user/features/{feature_id}/access")
def feature_access(
    feature_id: str,
    resume_id: str | None = Query(default=None, alias="resumeId"),
    user: dict[str, Any] = Depends(get_current_user),
):
    return subscription_service.can_user_access_feature(user["id"], feature_id, resume_id)
