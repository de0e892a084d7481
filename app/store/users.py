from __future__ import annotations

import sqlite3
from typing import Any

from app.store.db import fetch_one, new_id, transaction, utc_now_iso


def get_user(user_id: str) -> dict[str, Any] | None:
    return fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))


def get_user_by_external_id(external_id: str) -> dict[str, Any] | None:
    return fetch_one("SELECT * FROM users WHERE external_id = ?", (external_id,))


def create_user(*, external_id: str, email: str, name: str | None, credits: int) -> dict[str, Any]:
    now = utc_now_iso()
    user_id = new_id()
    try:
        with transaction() as cur:
            cur.execute(
                """
                INSERT INTO users (id, external_id, email, name, role, credits, created_at, updated_at)
                VALUES (?, ?, ?, ?, 'user', ?, ?, ?)
                """,
                (user_id, external_id, email, name, credits, now, now),
            )
    except sqlite3.IntegrityError:
        # Another request created the same identity first.
        existing = get_user_by_external_id(external_id)
        if existing is None:
            raise
        return existing
    return {
        "id": user_id,
        "external_id": external_id,
        "email": email,
        "name": name,
        "role": "user",
        "credits": credits,
        "created_at": now,
        "updated_at": now,
    }


def update_user_name(user_id: str, name: str) -> dict[str, Any] | None:
    with transaction() as cur:
        cur.execute(
            "UPDATE users SET name = ?, updated_at = ? WHERE id = ?",
            (name, utc_now_iso(), user_id),
        )
    return get_user(user_id)


def record_credit_usage(
    cur: sqlite3.Cursor,
    *,
    user_id: str,
    amount: int,
    service: str,
    description: str,
) -> dict[str, Any]:
    usage = {
        "id": new_id(),
        "user_id": user_id,
        "amount": amount,
        "service": service,
        "description": description,
        "created_at": utc_now_iso(),
    }
    cur.execute(
        """
        INSERT INTO credit_usage (id, user_id, amount, service, description, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (usage["id"], user_id, amount, service, description, usage["created_at"]),
    )
    return usage


def try_debit_credits(
    *,
    user_id: str,
    amount: int,
    service: str,
    description: str,
) -> tuple[int, dict[str, Any]] | None:
    """Debit credits only when the balance covers them; returns the new balance and usage row."""
    with transaction() as cur:
        cur.execute(
            """
            UPDATE users SET credits = credits - ?, updated_at = ?
            WHERE id = ? AND credits >= ?
            """,
            (amount, utc_now_iso(), user_id, amount),
        )
        if cur.rowcount != 1:
            return None
        usage = record_credit_usage(cur, user_id=user_id, amount=amount, service=service, description=description)
        cur.execute("SELECT credits FROM users WHERE id = ?", (user_id,))
        balance = int(cur.fetchone()[0])
    return balance, usage


def credit_user(
    *,
    user_id: str,
    amount: int,
    service: str | None = None,
    description: str = "",
) -> int:
    with transaction() as cur:
        cur.execute(
            "UPDATE users SET credits = credits + ?, updated_at = ? WHERE id = ?",
            (amount, utc_now_iso(), user_id),
        )
        if service:
            record_credit_usage(cur, user_id=user_id, amount=amount, service=service, description=description)
        cur.execute("SELECT credits FROM users WHERE id = ?", (user_id,))
        row = cur.fetchone()
    return int(row[0]) if row else 0


def count_usage_since(user_id: str, service: str, since_iso: str) -> int:
    row = fetch_one(
        """
        SELECT COUNT(1) AS total
        FROM credit_usage
        WHERE user_id = ? AND service = ? AND created_at >= ?
        """,
        (user_id, service, since_iso),
    )
    return int(row["total"]) if row else 0
