from __future__ import annotations

from typing import Any

from app.store.db import fetch_one, new_id, transaction, utc_now_iso


def create_payment(
    *,
    user_id: str,
    amount: int,
    currency: str,
    razorpay_order_id: str,
    credits_added: int,
    receipt: str,
    payment_type: str = "credits",
    feature_id: str | None = None,
    resume_id: str | None = None,
) -> dict[str, Any]:
    now = utc_now_iso()
    payment = {
        "id": new_id(),
        "user_id": user_id,
        "amount": amount,
        "currency": currency,
        "razorpay_order_id": razorpay_order_id,
        "razorpay_payment_id": None,
        "status": "pending",
        "credits_added": credits_added,
        "payment_type": payment_type,
        "feature_id": feature_id,
        "resume_id": resume_id,
        "receipt": receipt,
        "created_at": now,
        "updated_at": now,
    }
    with transaction() as cur:
        cur.execute(
            """
            INSERT INTO payments (
                id, user_id, amount, currency, razorpay_order_id, razorpay_payment_id,
                status, credits_added, payment_type, feature_id, resume_id, receipt,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            tuple(payment.values()),
        )
    return payment


def get_payment_by_order(razorpay_order_id: str) -> dict[str, Any] | None:
    return fetch_one("SELECT * FROM payments WHERE razorpay_order_id = ?", (razorpay_order_id,))


def mark_payment_completed(payment_id: str, razorpay_payment_id: str) -> bool:
    """Flip a payment to completed once; False when another request already did."""
    with transaction() as cur:
        cur.execute(
            """
            UPDATE payments
            SET status = 'completed', razorpay_payment_id = ?, updated_at = ?
            WHERE id = ? AND status != 'completed'
            """,
            (razorpay_payment_id, utc_now_iso(), payment_id),
        )
        return cur.rowcount == 1


def mark_order_captured(razorpay_order_id: str) -> int:
    with transaction() as cur:
        cur.execute(
            """
            UPDATE payments SET status = 'successful', updated_at = ?
            WHERE razorpay_order_id = ? AND status = 'pending'
            """,
            (utc_now_iso(), razorpay_order_id),
        )
        return int(cur.rowcount or 0)
