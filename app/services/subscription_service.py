from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from app.core.catalog import get_catalog_list, get_catalog_value
from app.store import subscriptions as subscriptions_store
from app.store.db import utc_now, utc_now_iso

logger = logging.getLogger(__name__)

PRO_PLAN = "PRO"
FREE_PLAN = "FREE"


def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _default_subscription() -> dict[str, Any]:
    return {
        "plan": FREE_PLAN,
        "status": "ACTIVE",
        "monthly_scans_used": 0,
        "last_scan_reset": utc_now_iso(),
        "start_date": None,
        "end_date": None,
        "canceled_at": None,
    }


def get_user_subscription(user_id: str) -> dict[str, Any]:
    subscription = subscriptions_store.get_subscription(user_id)
    if not subscription:
        return _default_subscription()

    end_date = _parse_dt(subscription.get("end_date"))
    if end_date and end_date <= utc_now():
        if subscription.get("status") != "INACTIVE":
            subscriptions_store.set_subscription_fields(user_id, {"status": "INACTIVE"})
            logger.info("subscription_expired user_id=%s", user_id)
        return {**subscription, "status": "EXPIRED"}
    return subscription


def is_pro_active(subscription: dict[str, Any]) -> bool:
    return subscription.get("plan") == PRO_PLAN and subscription.get("status") == "ACTIVE"


def is_feature_unlocked(user_id: str, feature_id: str, resume_id: str | None = None) -> bool:
    subscription = subscriptions_store.get_subscription(user_id)
    if subscription and is_pro_active(subscription):
        end_date = _parse_dt(subscription.get("end_date"))
        if end_date and end_date > utc_now():
            return True

    unlock = subscriptions_store.find_active_unlock(user_id, feature_id, resume_id, utc_now_iso())
    return unlock is not None


def get_unlocked_features(user_id: str) -> list[str]:
    subscription = get_user_subscription(user_id)
    if is_pro_active(subscription):
        return get_catalog_list("plans.pro_features")
    return subscriptions_store.list_active_unlocks(user_id, utc_now_iso())


def can_user_access_feature(user_id: str, feature_id: str, resume_id: str | None = None) -> dict[str, Any]:
    subscription = get_user_subscription(user_id)
    if is_pro_active(subscription) or is_feature_unlocked(user_id, feature_id, resume_id):
        return {"canAccess": True, "subscription": serialize_subscription(subscription)}

    reason = "Feature not unlocked"
    if subscription.get("plan") == PRO_PLAN and subscription.get("status") == "EXPIRED":
        reason = "Subscription expired"
    elif subscription.get("plan") == PRO_PLAN and subscription.get("status") == "CANCELLED":
        reason = "Subscription cancelled"
    return {"canAccess": False, "reason": reason, "subscription": serialize_subscription(subscription)}


def _scan_limit(plan: str) -> int:
    return int(get_catalog_value(f"plans.scan_limits.{plan}", 0) or 0)


def increment_monthly_scans(user_id: str) -> bool:
    subscriptions_store.ensure_subscription(user_id)
    subscription = get_user_subscription(user_id)

    now = utc_now()
    last_reset = _parse_dt(subscription.get("last_scan_reset")) or now
    if (now.year, now.month) != (last_reset.year, last_reset.month):
        subscriptions_store.set_subscription_fields(
            user_id, {"monthly_scans_used": 1, "last_scan_reset": now.isoformat()}
        )
        return True

    used = int(subscription.get("monthly_scans_used") or 0)
    if used >= _scan_limit(str(subscription.get("plan") or FREE_PLAN)):
        return False

    subscriptions_store.set_subscription_fields(user_id, {"monthly_scans_used": used + 1})
    return True


def get_remaining_scans(user_id: str) -> int:
    subscription = get_user_subscription(user_id)
    if is_pro_active(subscription):
        return _scan_limit(PRO_PLAN)
    used = int(subscription.get("monthly_scans_used") or 0)
    return max(0, _scan_limit(FREE_PLAN) - used)


def serialize_subscription(subscription: dict[str, Any]) -> dict[str, Any]:
    return {
        "plan": subscription.get("plan") or FREE_PLAN,
        "status": subscription.get("status") or "ACTIVE",
        "monthlyScansUsed": int(subscription.get("monthly_scans_used") or 0),
        "lastScanReset": subscription.get("last_scan_reset"),
        "startDate": subscription.get("start_date"),
        "endDate": subscription.get("end_date"),
        "canceledAt": subscription.get("canceled_at"),
    }
