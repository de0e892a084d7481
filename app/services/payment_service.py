from __future__ import annotations

import calendar
import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timedelta
from typing import Any

import httpx

from app.core.catalog import get_catalog_value
from app.core.config import settings
from app.services.credits_service import add_credits
from app.services.errors import ForbiddenError, InvalidSignatureError, NotFoundError, PaymentError, ServiceError
from app.store import payments as payments_store
from app.store import subscriptions as subscriptions_store
from app.store.db import utc_now

logger = logging.getLogger(__name__)

CURRENCY = "INR"
PAYMENT_TYPES = ("credits", "subscription", "feature_unlock")


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    if not settings.razorpay_key_secret or not signature:
        return False
    expected = _hmac_hex(settings.razorpay_key_secret, f"{order_id}|{payment_id}".encode("utf-8"))
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(raw_body: bytes, signature: str | None) -> bool:
    if not settings.razorpay_webhook_secret or not signature:
        return False
    expected = _hmac_hex(settings.razorpay_webhook_secret, raw_body)
    return hmac.compare_digest(expected, signature)


def _receipt(user_id: str) -> str:
    millis = str(int(time.time() * 1000))
    return f"cr_{millis[-8:]}_{user_id[-8:]}"


def _positive_int(value: Any, message: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ServiceError(message, status_code=400) from exc
    if number <= 0:
        raise ServiceError(message, status_code=400)
    return number


def _create_gateway_order(amount_paise: int, receipt: str, notes: dict[str, Any]) -> dict[str, Any]:
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise PaymentError("Payment gateway is not configured", status_code=503)
    try:
        response = httpx.post(
            f"{settings.razorpay_api_base}/orders",
            json={"amount": amount_paise, "currency": CURRENCY, "receipt": receipt, "notes": notes},
            auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
            timeout=settings.razorpay_timeout_s,
        )
        response.raise_for_status()
        order = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("razorpay_order_failed receipt=%s: %s", receipt, exc)
        raise PaymentError("Failed to create order", status_code=502) from exc
    if not isinstance(order, dict) or not order.get("id"):
        raise PaymentError("Failed to create order", status_code=502)
    return order


def _check_payment_type(payment_type: str | None, feature_id: str | None) -> None:
    if payment_type not in PAYMENT_TYPES or (payment_type == "feature_unlock" and not feature_id):
        raise PaymentError("Unknown payment type", status_code=400)


def create_order(
    user: dict[str, Any],
    amount: Any,
    credits: Any = None,
    package_id: str | None = None,
    *,
    payment_type: str = "credits",
    feature_id: str | None = None,
    resume_id: str | None = None,
) -> dict[str, Any]:
    amount_value = _positive_int(amount, "Invalid amount")
    _check_payment_type(payment_type, feature_id)
    credits_value = _positive_int(
        settings.default_order_credits if credits is None else credits,
        "Invalid credits",
    )
    package = package_id or "basic"
    receipt = _receipt(user["id"])

    order = _create_gateway_order(
        amount_value * 100,
        receipt,
        {"userId": user["id"], "credits": credits_value, "packageId": package, "type": payment_type},
    )
    payments_store.create_payment(
        user_id=user["id"],
        amount=amount_value,
        currency=CURRENCY,
        razorpay_order_id=order["id"],
        credits_added=credits_value if payment_type == "credits" else 0,
        receipt=receipt,
        payment_type=payment_type,
        feature_id=feature_id,
        resume_id=resume_id,
    )
    logger.info(
        "order_created user_id=%s order_id=%s amount=%s type=%s", user["id"], order["id"], amount_value, payment_type
    )
    return {
        "success": True,
        "key": settings.razorpay_key_id,
        "order": {
            "id": order["id"],
            "amount": order.get("amount", amount_value * 100),
            "currency": order.get("currency", CURRENCY),
        },
    }


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _apply_credits(user: dict[str, Any], payment: dict[str, Any], package_id: str | None) -> dict[str, Any]:
    credits = int(payment.get("credits_added") or 0)
    package = package_id or "basic"
    balance = add_credits(
        user["id"],
        credits,
        service="credit_purchase",
        description=f"Purchased {credits} credits via {package} package",
    )
    return {
        "success": True,
        "message": "Payment verified and credits added",
        "type": "credits",
        "creditsAdded": credits,
        "newBalance": balance,
        "packageId": package,
    }


def _apply_subscription(user: dict[str, Any], razorpay_payment_id: str) -> dict[str, Any]:
    start = utc_now()
    months = int(get_catalog_value("plans.subscription_months", 1) or 1)
    subscriptions_store.activate_pro(
        user_id=user["id"],
        start_date=start.isoformat(),
        end_date=add_months(start, months).isoformat(),
        razorpay_sub_id=razorpay_payment_id,
    )
    logger.info("subscription_activated user_id=%s", user["id"])
    return {
        "success": True,
        "message": "Payment verified and subscription activated",
        "type": "subscription",
    }


def _apply_feature_unlock(
    user: dict[str, Any],
    razorpay_payment_id: str,
    feature_id: str,
    resume_id: str | None,
) -> dict[str, Any]:
    created = subscriptions_store.create_feature_unlock(
        user_id=user["id"],
        feature=feature_id,
        resume_id=resume_id,
        razorpay_payment_id=razorpay_payment_id,
    )
    if not created:
        return {"success": True, "message": "Feature already unlocked", "type": "feature_unlock", "featureId": feature_id}
    logger.info("feature_unlocked user_id=%s feature=%s", user["id"], feature_id)
    return {
        "success": True,
        "message": "Payment verified and feature unlocked",
        "type": "feature_unlock",
        "featureId": feature_id,
    }


def verify_payment(
    user: dict[str, Any],
    *,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
    payment_type: str | None,
    package_id: str | None = None,
    feature_id: str | None = None,
) -> dict[str, Any]:
    if not verify_payment_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature):
        logger.warning("payment_signature_invalid order_id=%s", razorpay_order_id)
        raise InvalidSignatureError()

    payment = payments_store.get_payment_by_order(razorpay_order_id)
    if payment is None:
        raise NotFoundError("Payment record not found")
    if payment["user_id"] != user["id"]:
        raise ForbiddenError("Payment does not belong to this user")

    # The order row decides what the payment buys; the verify body may only confirm it.
    ordered_type = payment.get("payment_type") or "credits"
    if payment_type is not None and payment_type != ordered_type:
        _check_payment_type(payment_type, feature_id)
        logger.warning(
            "payment_type_mismatch order_id=%s ordered=%s requested=%s", razorpay_order_id, ordered_type, payment_type
        )
        raise PaymentError("Payment type does not match the order", status_code=400)
    if feature_id is not None and payment.get("feature_id") and feature_id != payment["feature_id"]:
        raise PaymentError("Feature does not match the order", status_code=400)
    payment_type = ordered_type

    if not payments_store.mark_payment_completed(payment["id"], razorpay_payment_id):
        logger.info("payment_already_processed order_id=%s", razorpay_order_id)
        return {"success": True, "alreadyProcessed": True, "message": "Payment already processed"}

    logger.info("payment_verified order_id=%s type=%s", razorpay_order_id, payment_type)
    if payment_type == "credits":
        return _apply_credits(user, payment, package_id)
    if payment_type == "subscription":
        return _apply_subscription(user, razorpay_payment_id)
    return _apply_feature_unlock(user, razorpay_payment_id, str(payment["feature_id"]), payment.get("resume_id"))


def _entity_id(payload: dict[str, Any], kind: str, field: str = "id") -> str | None:
    entity = ((payload.get("payload") or {}).get(kind) or {}).get("entity") or {}
    value = entity.get(field)
    return str(value) if value else None


def _renew_subscription(razorpay_sub_id: str) -> None:
    subscription = subscriptions_store.get_subscription_by_gateway_id(razorpay_sub_id)
    if not subscription:
        return
    current_end = subscription.get("end_date")
    base = datetime.fromisoformat(current_end) if current_end else utc_now()
    days = int(get_catalog_value("plans.renewal_days", 30) or 30)
    subscriptions_store.set_fields_by_gateway_id(
        razorpay_sub_id,
        {"status": "ACTIVE", "end_date": (base + timedelta(days=days)).isoformat()},
    )


def handle_webhook(raw_body: bytes, signature: str | None) -> dict[str, Any]:
    if not verify_webhook_signature(raw_body, signature):
        raise InvalidSignatureError("Invalid webhook signature")
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ServiceError("Invalid webhook payload", status_code=400) from exc
    if not isinstance(payload, dict):
        raise ServiceError("Invalid webhook payload", status_code=400)

    event = payload.get("event")
    if event == "payment.captured":
        order_id = _entity_id(payload, "payment", "order_id")
        if order_id:
            payments_store.mark_order_captured(order_id)
    elif event in {"subscription.charged", "subscription.cancelled", "subscription.completed"}:
        sub_id = _entity_id(payload, "subscription")
        if sub_id and event == "subscription.charged":
            _renew_subscription(sub_id)
        elif sub_id and event == "subscription.cancelled":
            subscriptions_store.set_fields_by_gateway_id(
                sub_id, {"status": "CANCELLED", "canceled_at": utc_now().isoformat()}
            )
        elif sub_id:
            subscriptions_store.set_fields_by_gateway_id(sub_id, {"status": "INACTIVE"})
    else:
        logger.info("webhook_event_ignored event=%s", event)
        return {"received": True}

    logger.info("webhook_event_processed event=%s", event)
    return {"received": True}
