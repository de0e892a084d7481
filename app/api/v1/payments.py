from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Request

from app.core.security import get_current_user
from app.schemas.payments import CreateOrderRequest, VerifyPaymentRequest
from app.services import payment_service

router = APIRouter()


@router.post("/payments/create-order")
def create_order(payload: CreateOrderRequest, user: dict[str, Any] = Depends(get_current_user)):
    return payment_service.create_order(
        user,
        payload.amount,
        payload.credits,
        payload.package_id,
        payment_type=payload.type,
        feature_id=payload.feature_id,
        resume_id=payload.resume_id,
    )


@router.post("/payments/verify")
def verify_payment(payload: VerifyPaymentRequest, user: dict[str, Any] = Depends(get_current_user)):
    return payment_service.verify_payment(
        user,
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
        payment_type=payload.type,
        package_id=payload.package_id,
        feature_id=payload.feature_id,
    )


@router.post("/webhooks/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None, alias="X-Razorpay-Signature"),
):
    raw_body = await request.body()
    return payment_service.handle_webhook(raw_body, x_razorpay_signature)
