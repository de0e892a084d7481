from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


_schema_ready = False


def _ensure_schema() -> None:
    global _schema_ready
    if _schema_ready:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_analysis_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                tool_slug TEXT NOT NULL,
                model TEXT NOT NULL,
                schema_valid INTEGER NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ai_analysis_runs_created_at
            ON ai_analysis_runs (created_at)
            """
        )
        conn.commit()
    _schema_ready = True


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    _ensure_schema()
    purge_old_records()


def log_ai_analysis_run(
    *,
    run_id: str,
    tool_slug: str,
    model: str,
    schema_valid: bool,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    _ensure_schema()
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute(
            """
            INSERT INTO ai_analysis_runs (
                created_at, run_id, tool_slug, model, schema_valid, status, error_code, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                tool_slug,
                model,
                1 if schema_valid else 0,
                status,
                error_code,
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"ai_analysis_runs": 0}

    retention = max(1, int(settings.analytics_retention_days))
    deleted = {"ai_analysis_runs": 0}
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            "DELETE FROM ai_analysis_runs WHERE created_at < datetime('now', ?)",
            (f"-{retention} days",),
        )
        deleted["ai_analysis_runs"] = int(cur.rowcount or 0)
        conn.commit()

    return deleted


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_ai_run_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    _ensure_schema()
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute("SELECT COUNT(*) FROM ai_analysis_runs")
        total = cur.fetchone()[0]
        cur = conn.execute(
            """
            SELECT status, COUNT(*) AS count, AVG(latency_ms) AS avg_latency_ms
            FROM ai_analysis_runs
            GROUP BY status
            ORDER BY count DESC
            """
        )
        by_status = [_row_to_dict(cur, row) for row in cur.fetchall()]
        cur = conn.execute(
            """
            SELECT tool_slug, COUNT(*) AS count
            FROM ai_analysis_runs
            GROUP BY tool_slug
            ORDER BY count DESC
            """
        )
        by_tool = [_row_to_dict(cur, row) for row in cur.fetchall()]
    return {
        "enabled": True,
        "total": total,
        "by_status": by_status,
        "by_tool": by_tool,
    }


def get_latest_runs(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    _ensure_schema()
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT created_at, run_id, tool_slug, model, schema_valid, status, error_code, latency_ms
            FROM ai_analysis_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]


def clear_ai_runs() -> None:
    if not settings.analytics_enabled:
        return
    _ensure_schema()
    with sqlite3.connect(_get_db_path()) as conn:
        conn.execute("DELETE FROM ai_analysis_runs")
        conn.commit()
