from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from app.core.config import settings
from app.services.errors import DailyLimitError, InsufficientCreditsError, ServiceError
from app.services.subscription_service import get_user_subscription, is_pro_active
from app.store import users as users_store

logger = logging.getLogger(__name__)


def _local_midnight(now: datetime | None = None) -> datetime:
    local_now = (now or datetime.now(timezone.utc)).astimezone()
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_today_iso(now: datetime | None = None) -> str:
    return _local_midnight(now).astimezone(timezone.utc).isoformat()


def next_reset_time(now: datetime | None = None) -> str:
    return (_local_midnight(now) + timedelta(days=1)).isoformat()


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def _validate_amount(value: Any, field: str) -> int:
    try:
        amount = int(value)
    except (TypeError, ValueError) as exc:
        raise ServiceError(f"{field} must be a positive integer", status_code=400) from exc
    if amount <= 0:
        raise ServiceError(f"{field} must be a positive integer", status_code=400)
    return amount


def _daily_usage(user: dict[str, Any], action: str) -> tuple[bool, int]:
    premium = is_pro_active(get_user_subscription(user["id"]))
    if premium:
        return True, 0
    return False, users_store.count_usage_since(user["id"], action, start_of_today_iso())


def check_credits(user: dict[str, Any], action: str | None, required_credits: Any = 1) -> dict[str, Any]:
    if not action:
        raise ServiceError("Action type is required", status_code=400)
    required = _validate_amount(required_credits, "requiredCredits")
    balance = int(user.get("credits") or 0)

    if balance < required:
        return {
            "success": False,
            "hasEnoughCredits": False,
            "userCredits": balance,
            "requiredCredits": required,
            "error": (
                f"Insufficient credits. This action requires {required} credit{_plural(required)}, "
                f"but you only have {balance}."
            ),
        }

    premium, today_usage = _daily_usage(user, action)
    limit = max(0, settings.free_daily_action_limit)
    if not premium and today_usage >= limit:
        return {
            "success": False,
            "hasEnoughCredits": True,
            "userCredits": balance,
            "requiredCredits": required,
            "rateLimited": True,
            "error": (
                f"Free accounts are limited to {limit} {action.replace('_', ' ')} per day. "
                "Your limit will reset tomorrow."
            ),
            "resetTime": next_reset_time(),
        }

    return {
        "success": True,
        "hasEnoughCredits": True,
        "userCredits": balance,
        "requiredCredits": required,
        "rateLimited": False,
        "remaining": -1 if premium else limit - today_usage,
    }


def deduct_credits(user: dict[str, Any], service: str | None, credits: Any = 1) -> dict[str, Any]:
    if not service:
        raise ServiceError("Service name is required", status_code=400)
    amount = _validate_amount(credits, "credits")
    balance = int(user.get("credits") or 0)

    if balance < amount:
        raise InsufficientCreditsError(
            status_code=400,
            creditsNeeded=amount,
            creditsAvailable=balance,
        )

    premium, today_usage = _daily_usage(user, service)
    limit = max(0, settings.free_daily_action_limit)
    if not premium and today_usage >= limit:
        raise DailyLimitError(
            f"Free accounts are limited to {limit} {service.replace('_', ' ')} per day. "
            "Your limit resets at midnight.",
            reset_time=next_reset_time(),
        )

    result = users_store.try_debit_credits(
        user_id=user["id"],
        amount=amount,
        service=service,
        description=f"Used {amount} credit{_plural(amount)} for {service}",
    )
    if result is None:
        # Balance changed between the read and the conditional update.
        raise InsufficientCreditsError(status_code=400, creditsNeeded=amount, creditsAvailable=0)

    remaining, usage = result
    logger.info("credits_deducted user_id=%s service=%s amount=%s remaining=%s", user["id"], service, amount, remaining)
    return {
        "success": True,
        "remainingCredits": remaining,
        "usage": {
            "id": usage["id"],
            "amount": usage["amount"],
            "service": usage["service"],
            "timestamp": usage["created_at"],
        },
    }


def charge_for_service(user: dict[str, Any], service: str, credits: int = 1) -> int:
    """Charge a paid operation without the free-tier daily limit; returns the new balance."""
    result = users_store.try_debit_credits(
        user_id=user["id"],
        amount=credits,
        service=service,
        description=f"Used {credits} credit{_plural(credits)} for {service}",
    )
    if result is None:
        raise InsufficientCreditsError(status_code=402)
    return result[0]


def add_credits(user_id: str, credits: int, *, service: str | None = None, description: str = "") -> int:
    amount = _validate_amount(credits, "credits")
    balance = users_store.credit_user(user_id=user_id, amount=amount, service=service, description=description)
    logger.info("credits_added user_id=%s amount=%s balance=%s", user_id, amount, balance)
    return balance


def ensure_can_spend(user: dict[str, Any], service: str, credits: int = 1) -> None:
    """Pre-flight check for paid routes that charge only after the work succeeds."""
    if int(user.get("credits") or 0) < credits:
        raise InsufficientCreditsError("Insufficient credits. Please purchase more to continue.", status_code=402)
    premium, today_usage = _daily_usage(user, service)
    limit = max(0, settings.free_daily_action_limit)
    if not premium and today_usage >= limit:
        raise DailyLimitError(
            f"Free accounts are limited to {limit} {service.replace('_', ' ')} per day. "
            "Upgrade to Pro for unlimited access.",
            reset_time=next_reset_time(),
        )
