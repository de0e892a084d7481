from __future__ import annotations

from typing import Any

from pydantic import Field

from app.schemas.common import ApiModel


class CreateOrderRequest(ApiModel):
    amount: Any = None
    credits: Any = None
    package_id: str | None = Field(default=None, max_length=100)
    type: str = Field(default="credits", max_length=50)
    feature_id: str | None = Field(default=None, max_length=100)
    resume_id: str | None = Field(default=None, max_length=100)


class VerifyPaymentRequest(ApiModel):
    razorpay_order_id: str = Field(min_length=1, max_length=200)
    razorpay_payment_id: str = Field(min_length=1, max_length=200)
    razorpay_signature: str = Field(min_length=1, max_length=500)
    type: str | None = Field(default=None, max_length=50)
    credits: int | None = None
    package_id: str | None = Field(default=None, max_length=100)
    feature_id: str | None = Field(default=None, max_length=100)
    resume_id: str | None = Field(default=None, max_length=100)
