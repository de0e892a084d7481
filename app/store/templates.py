from __future__ import annotations

from typing import Any

from app.store.db import dump_json, fetch_all, fetch_one, load_json, new_id, transaction, utc_now_iso

_SCALAR_COLUMNS = {
    "company_name": "company_name",
    "job_title": "job_title",
    "seniority_level": "seniority_level",
    "industry": "industry",
    "company_size": "company_size",
    "department": "department",
    "description": "description",
    "success_rate": "success_rate",
    "ats_score": "ats_score",
    "resume_content": "resume_content",
}
_JSON_COLUMNS = {
    "culture_fit_indicators": "culture_fit_json",
    "key_skills": "key_skills_json",
    "tips_and_insights": "tips_json",
    "red_flags": "red_flags_json",
    "sample_interview_questions": "interview_questions_json",
}
_BOOL_COLUMNS = {
    "recruiter_verified": "recruiter_verified",
    "is_public": "is_public",
    "is_anonymized": "is_anonymized",
}


def _row_to_template(row: dict[str, Any]) -> dict[str, Any]:
    template = {key: row[column] for key, column in _SCALAR_COLUMNS.items()}
    template.update({key: load_json(row[column], []) for key, column in _JSON_COLUMNS.items()})
    template.update({key: bool(row[column]) for key, column in _BOOL_COLUMNS.items()})
    template.update(
        {
            "id": row["id"],
            "user_id": row["user_id"],
            "downloads": int(row["downloads"] or 0),
            "views": int(row["views"] or 0),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
    )
    return template


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in fields.items():
        if key in _SCALAR_COLUMNS:
            values[_SCALAR_COLUMNS[key]] = value
        elif key in _JSON_COLUMNS:
            values[_JSON_COLUMNS[key]] = dump_json(value)
        elif key in _BOOL_COLUMNS:
            values[_BOOL_COLUMNS[key]] = 1 if value else 0
    return values


def create_template(*, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    now = utc_now_iso()
    template_id = new_id()
    values = _column_values(fields)
    values.update({"id": template_id, "user_id": user_id, "created_at": now, "updated_at": now})
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    with transaction() as cur:
        cur.execute(f"INSERT INTO templates ({columns}) VALUES ({placeholders})", tuple(values.values()))
    created = get_template(template_id)
    return created or {}


def get_template(template_id: str) -> dict[str, Any] | None:
    row = fetch_one("SELECT * FROM templates WHERE id = ?", (template_id,))
    return _row_to_template(row) if row else None


def update_template(template_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
    values = _column_values(fields)
    if values:
        values["updated_at"] = utc_now_iso()
        assignments = ", ".join(f"{column} = ?" for column in values)
        with transaction() as cur:
            cur.execute(
                f"UPDATE templates SET {assignments} WHERE id = ?",
                (*values.values(), template_id),
            )
    return get_template(template_id)


def delete_template(template_id: str) -> bool:
    with transaction() as cur:
        cur.execute("DELETE FROM templates WHERE id = ?", (template_id,))
        return cur.rowcount == 1


def increment_counter(template_id: str, counter: str) -> None:
    if counter not in {"views", "downloads"}:
        raise ValueError(f"Unknown template counter '{counter}'.")
    with transaction() as cur:
        cur.execute(f"UPDATE templates SET {counter} = {counter} + 1 WHERE id = ?", (template_id,))


def list_visible_templates(viewer_id: str | None) -> list[dict[str, Any]]:
    rows = fetch_all(
        """
        SELECT * FROM templates
        WHERE is_public = 1 OR user_id = ?
        ORDER BY created_at DESC
        """,
        (viewer_id or "",),
    )
    return [_row_to_template(row) for row in rows]


def list_recent_public(limit: int = 5) -> list[dict[str, Any]]:
    rows = fetch_all(
        "SELECT * FROM templates WHERE is_public = 1 ORDER BY created_at DESC LIMIT ?",
        (limit,),
    )
    return [_row_to_template(row) for row in rows]


def owner_stats(user_id: str) -> dict[str, Any]:
    row = fetch_one(
        """
        SELECT
            COUNT(1) AS total_templates,
            COALESCE(SUM(downloads), 0) AS total_downloads,
            COALESCE(SUM(CASE WHEN downloads > 0 THEN 1 ELSE 0 END), 0) AS active_templates,
            AVG(success_rate) AS avg_success_rate
        FROM templates
        WHERE user_id = ?
        """,
        (user_id,),
    )
    return row or {}


def owner_window_totals(user_id: str, since_iso: str) -> dict[str, Any]:
    row = fetch_one(
        """
        SELECT
            COALESCE(SUM(views), 0) AS total_views,
            COALESCE(SUM(downloads), 0) AS total_downloads,
            AVG(success_rate) AS avg_success_rate
        FROM templates
        WHERE user_id = ? AND updated_at >= ?
        """,
        (user_id, since_iso),
    )
    return row or {}


def owner_top_templates(user_id: str, since_iso: str, limit: int = 5) -> list[dict[str, Any]]:
    return fetch_all(
        """
        SELECT id, company_name, job_title, downloads, success_rate
        FROM templates
        WHERE user_id = ? AND updated_at >= ?
        ORDER BY downloads DESC, COALESCE(success_rate, 0) DESC
        LIMIT ?
        """,
        (user_id, since_iso, limit),
    )
