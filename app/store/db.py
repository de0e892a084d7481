from __future__ import annotations

import json
import os
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from app.core.config import settings

_conn: sqlite3.Connection | None = None
_conn_lock = threading.RLock()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        external_id TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL DEFAULT '',
        name TEXT,
        role TEXT NOT NULL DEFAULT 'user',
        credits INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS resumes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        job_title TEXT,
        job_description TEXT,
        company_targeted TEXT,
        template_id TEXT NOT NULL DEFAULT 'professional',
        color_palette_index INTEGER NOT NULL DEFAULT 0,
        font_family TEXT NOT NULL DEFAULT 'Inter',
        ats_score INTEGER,
        format_score INTEGER,
        content_json TEXT NOT NULL,
        analysis_json TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_resumes_user_updated
    ON resumes (user_id, updated_at);
    """,
    """
    CREATE TABLE IF NOT EXISTS templates (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        company_name TEXT NOT NULL,
        job_title TEXT NOT NULL,
        seniority_level TEXT,
        industry TEXT,
        company_size TEXT,
        department TEXT,
        description TEXT,
        success_rate REAL,
        ats_score INTEGER,
        culture_fit_json TEXT,
        key_skills_json TEXT,
        tips_json TEXT,
        red_flags_json TEXT,
        interview_questions_json TEXT,
        resume_content TEXT NOT NULL,
        recruiter_verified INTEGER NOT NULL DEFAULT 0,
        downloads INTEGER NOT NULL DEFAULT 0,
        views INTEGER NOT NULL DEFAULT 0,
        is_public INTEGER NOT NULL DEFAULT 1,
        is_anonymized INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_templates_user
    ON templates (user_id, updated_at);
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        amount INTEGER NOT NULL,
        currency TEXT NOT NULL DEFAULT 'INR',
        razorpay_order_id TEXT NOT NULL UNIQUE,
        razorpay_payment_id TEXT,
        status TEXT NOT NULL,
        credits_added INTEGER NOT NULL DEFAULT 0,
        payment_type TEXT NOT NULL DEFAULT 'credits',
        feature_id TEXT,
        resume_id TEXT,
        receipt TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS credit_usage (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        amount INTEGER NOT NULL,
        service TEXT NOT NULL,
        description TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_credit_usage_lookup
    ON credit_usage (user_id, service, created_at);
    """,
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE REFERENCES users (id) ON DELETE CASCADE,
        plan TEXT NOT NULL DEFAULT 'FREE',
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        start_date TEXT,
        end_date TEXT,
        canceled_at TEXT,
        monthly_scans_used INTEGER NOT NULL DEFAULT 0,
        last_scan_reset TEXT NOT NULL,
        razorpay_sub_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS feature_unlocks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        feature TEXT NOT NULL,
        resume_id TEXT,
        razorpay_payment_id TEXT,
        expires_at TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_feature_unlocks_unique
    ON feature_unlocks (user_id, feature, COALESCE(resume_id, ''));
    """,
    """
    CREATE TABLE IF NOT EXISTS route_hits (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        route_key TEXT NOT NULL,
        created_at REAL NOT NULL
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_route_hits_lookup
    ON route_hits (user_id, route_key, created_at);
    """,
)

_TABLES = (
    "route_hits",
    "feature_unlocks",
    "subscriptions",
    "credit_usage",
    "payments",
    "templates",
    "resumes",
    "users",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


def dump_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def load_json(raw: str | None, default: Any = None) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.database_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        _conn.row_factory = sqlite3.Row
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA synchronous=NORMAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute("PRAGMA foreign_keys=ON;")
        for statement in _SCHEMA:
            _conn.execute(statement)
        return _conn


def init_store() -> None:
    _get_connection()


@contextmanager
def transaction() -> Iterator[sqlite3.Cursor]:
    conn = _get_connection()
    with _conn_lock:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
        except Exception:
            conn.rollback()
            raise
        conn.commit()


def fetch_one(query: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
    conn = _get_connection()
    with _conn_lock:
        row = conn.execute(query, params).fetchone()
    return dict(row) if row else None


def fetch_all(query: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
    conn = _get_connection()
    with _conn_lock:
        rows = conn.execute(query, params).fetchall()
    return [dict(row) for row in rows]


def execute(query: str, params: tuple[Any, ...] = ()) -> int:
    conn = _get_connection()
    with _conn_lock:
        cur = conn.execute(query, params)
        conn.commit()
        return int(cur.rowcount or 0)


def clear_store() -> None:
    conn = _get_connection()
    with _conn_lock:
        for table in _TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
