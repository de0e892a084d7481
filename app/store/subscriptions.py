from __future__ import annotations

import sqlite3
from typing import Any

from app.store.db import fetch_all, fetch_one, new_id, transaction, utc_now_iso


def get_subscription(user_id: str) -> dict[str, Any] | None:
    return fetch_one("SELECT * FROM subscriptions WHERE user_id = ?", (user_id,))


def get_subscription_by_gateway_id(razorpay_sub_id: str) -> dict[str, Any] | None:
    return fetch_one("SELECT * FROM subscriptions WHERE razorpay_sub_id = ?", (razorpay_sub_id,))


def ensure_subscription(user_id: str) -> dict[str, Any]:
    existing = get_subscription(user_id)
    if existing:
        return existing
    now = utc_now_iso()
    with transaction() as cur:
        cur.execute(
            """
            INSERT OR IGNORE INTO subscriptions (
                id, user_id, plan, status, monthly_scans_used, last_scan_reset, created_at, updated_at
            ) VALUES (?, ?, 'FREE', 'ACTIVE', 0, ?, ?, ?)
            """,
            (new_id(), user_id, now, now, now),
        )
    return get_subscription(user_id) or {}


def set_subscription_fields(user_id: str, fields: dict[str, Any]) -> None:
    assignments = ", ".join(f"{column} = ?" for column in fields)
    with transaction() as cur:
        cur.execute(
            f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE user_id = ?",
            (*fields.values(), utc_now_iso(), user_id),
        )


def set_fields_by_gateway_id(razorpay_sub_id: str, fields: dict[str, Any]) -> int:
    assignments = ", ".join(f"{column} = ?" for column in fields)
    with transaction() as cur:
        cur.execute(
            f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE razorpay_sub_id = ?",
            (*fields.values(), utc_now_iso(), razorpay_sub_id),
        )
        return int(cur.rowcount or 0)


def activate_pro(
    *,
    user_id: str,
    start_date: str,
    end_date: str,
    razorpay_sub_id: str,
) -> None:
    """Upsert a PRO subscription and drop one-off unlocks it supersedes."""
    now = utc_now_iso()
    with transaction() as cur:
        cur.execute(
            """
            INSERT INTO subscriptions (
                id, user_id, plan, status, start_date, end_date, canceled_at,
                monthly_scans_used, last_scan_reset, razorpay_sub_id, created_at, updated_at
            ) VALUES (?, ?, 'PRO', 'ACTIVE', ?, ?, NULL, 0, ?, ?, ?, ?)
            ON CONFLICT (user_id) DO UPDATE SET
                plan = 'PRO',
                status = 'ACTIVE',
                start_date = excluded.start_date,
                end_date = excluded.end_date,
                canceled_at = NULL,
                monthly_scans_used = 0,
                last_scan_reset = excluded.last_scan_reset,
                razorpay_sub_id = excluded.razorpay_sub_id,
                updated_at = excluded.updated_at
            """,
            (new_id(), user_id, start_date, end_date, start_date, razorpay_sub_id, now, now),
        )
        cur.execute("DELETE FROM feature_unlocks WHERE user_id = ?", (user_id,))


def create_feature_unlock(
    *,
    user_id: str,
    feature: str,
    resume_id: str | None,
    razorpay_payment_id: str | None,
    expires_at: str | None = None,
) -> bool:
    """Insert an unlock; False when the same unlock already exists."""
    try:
        with transaction() as cur:
            cur.execute(
                """
                INSERT INTO feature_unlocks (
                    id, user_id, feature, resume_id, razorpay_payment_id, expires_at, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (new_id(), user_id, feature, resume_id, razorpay_payment_id, expires_at, utc_now_iso()),
            )
    except sqlite3.IntegrityError:
        return False
    return True


def find_active_unlock(user_id: str, feature: str, resume_id: str | None, now_iso: str) -> dict[str, Any] | None:
    query = """
        SELECT * FROM feature_unlocks
        WHERE user_id = ? AND feature = ? AND (expires_at IS NULL OR expires_at > ?)
    """
    params: tuple[Any, ...] = (user_id, feature, now_iso)
    if resume_id:
        query += " AND resume_id = ?"
        params = (*params, resume_id)
    return fetch_one(query + " LIMIT 1", params)


def list_active_unlocks(user_id: str, now_iso: str) -> list[str]:
    rows = fetch_all(
        """
        SELECT DISTINCT feature FROM feature_unlocks
        WHERE user_id = ? AND (expires_at IS NULL OR expires_at > ?)
        ORDER BY feature
        """,
        (user_id, now_iso),
    )
    return [row["feature"] for row in rows]
