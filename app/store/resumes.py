from __future__ import annotations

from typing import Any

from app.store.db import dump_json, fetch_all, fetch_one, load_json, new_id, transaction, utc_now_iso
from app.store.users import record_credit_usage

_UPDATABLE_COLUMNS = {
    "title": "title",
    "content": "content_json",
    "template_id": "template_id",
    "color_palette_index": "color_palette_index",
    "font_family": "font_family",
    "ats_score": "ats_score",
    "format_score": "format_score",
    "analysis_data": "analysis_json",
}
_JSON_COLUMNS = {"content_json", "analysis_json"}


def _row_to_resume(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "title": row["title"],
        "job_title": row["job_title"],
        "job_description": row["job_description"],
        "company_targeted": row["company_targeted"],
        "template_id": row["template_id"],
        "color_palette_index": int(row["color_palette_index"] or 0),
        "font_family": row["font_family"],
        "ats_score": row["ats_score"],
        "format_score": row["format_score"],
        "content": load_json(row["content_json"], {}),
        "analysis_data": load_json(row["analysis_json"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def create_resume_with_charge(
    *,
    user_id: str,
    fields: dict[str, Any],
    cost: int,
    service: str,
) -> dict[str, Any] | None:
    """Insert a resume and charge its cost in one transaction; None when credits are short."""
    now = utc_now_iso()
    resume_id = new_id()
    with transaction() as cur:
        cur.execute(
            """
            UPDATE users SET credits = credits - ?, updated_at = ?
            WHERE id = ? AND credits >= ?
            """,
            (cost, now, user_id, cost),
        )
        if cur.rowcount != 1:
            return None
        cur.execute(
            """
            INSERT INTO resumes (
                id, user_id, title, job_title, job_description, company_targeted, template_id,
                color_palette_index, font_family, ats_score, format_score, content_json,
                analysis_json, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                resume_id,
                user_id,
                fields["title"],
                fields.get("job_title"),
                fields.get("job_description"),
                fields.get("company_targeted"),
                fields.get("template_id") or "professional",
                int(fields.get("color_palette_index") or 0),
                fields.get("font_family") or "Inter",
                fields.get("ats_score"),
                fields.get("format_score"),
                dump_json(fields.get("content") or {}),
                dump_json(fields.get("analysis_data")),
                now,
                now,
            ),
        )
        record_credit_usage(
            cur,
            user_id=user_id,
            amount=cost,
            service=service,
            description=f"Created resume: {fields['title']}",
        )
    return get_resume(resume_id)


def get_resume(resume_id: str) -> dict[str, Any] | None:
    row = fetch_one("SELECT * FROM resumes WHERE id = ?", (resume_id,))
    return _row_to_resume(row) if row else None


def list_resumes(user_id: str) -> list[dict[str, Any]]:
    rows = fetch_all(
        "SELECT * FROM resumes WHERE user_id = ? ORDER BY updated_at DESC",
        (user_id,),
    )
    return [_row_to_resume(row) for row in rows]


def update_resume(resume_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
    assignments: list[str] = []
    params: list[Any] = []
    for key, value in changes.items():
        column = _UPDATABLE_COLUMNS.get(key)
        if column is None:
            continue
        assignments.append(f"{column} = ?")
        params.append(dump_json(value) if column in _JSON_COLUMNS else value)
    if assignments:
        assignments.append("updated_at = ?")
        params.append(utc_now_iso())
        params.append(resume_id)
        with transaction() as cur:
            cur.execute(f"UPDATE resumes SET {', '.join(assignments)} WHERE id = ?", tuple(params))
    return get_resume(resume_id)


def delete_resume(resume_id: str) -> bool:
    with transaction() as cur:
        cur.execute("DELETE FROM resumes WHERE id = ?", (resume_id,))
        return cur.rowcount == 1
