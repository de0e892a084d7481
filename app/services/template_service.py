from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from app.core.catalog import get_catalog_list, get_catalog_value
from app.services.errors import ForbiddenError, NotFoundError, ServiceError
from app.store import templates as templates_store
from app.store.db import utc_now

logger = logging.getLogger(__name__)

_FIELD_ALIASES = {
    "companyName": "company_name",
    "jobTitle": "job_title",
    "seniorityLevel": "seniority_level",
    "industry": "industry",
    "companySize": "company_size",
    "department": "department",
    "description": "description",
    "successRate": "success_rate",
    "atsScore": "ats_score",
    "cultureFitIndicators": "culture_fit_indicators",
    "keySkills": "key_skills",
    "tipsAndInsights": "tips_and_insights",
    "redFlags": "red_flags",
    "sampleInterviewQuestions": "sample_interview_questions",
    "resumeContent": "resume_content",
    "recruiterVerified": "recruiter_verified",
    "isPublic": "is_public",
    "isAnonymized": "is_anonymized",
}


class UnauthenticatedError(ServiceError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


def _store_fields(payload: dict[str, Any]) -> dict[str, Any]:
    fields = {_FIELD_ALIASES[key]: value for key, value in payload.items() if key in _FIELD_ALIASES}

    seniority = fields.get("seniority_level")
    if seniority is not None and seniority not in get_catalog_list("templates.seniority_levels"):
        raise ServiceError(f"Invalid seniority level: {seniority}", status_code=400)
    size = fields.get("company_size")
    if size is not None and size not in get_catalog_list("templates.company_sizes"):
        raise ServiceError(f"Invalid company size: {size}", status_code=400)
    for key in ("success_rate", "ats_score"):
        value = fields.get(key)
        if value is not None and not 0 <= float(value) <= 100:
            raise ServiceError(f"{key} must be between 0 and 100", status_code=400)
    return fields


def create_template(user: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    fields = _store_fields(payload)
    missing = [
        label
        for label, key in (("companyName", "company_name"), ("jobTitle", "job_title"), ("resumeContent", "resume_content"))
        if not str(fields.get(key) or "").strip()
    ]
    if missing:
        raise ServiceError(f"Missing required fields: {', '.join(missing)}", status_code=400)

    fields.setdefault("is_public", True)
    template = templates_store.create_template(user_id=user["id"], fields=fields)
    logger.info("template_created user_id=%s template_id=%s", user["id"], template.get("id"))
    return template


def _since_iso(days: int) -> str:
    return (utc_now() - timedelta(days=days)).isoformat()


def _matches_any(value: Any, needles: list[str]) -> bool:
    text = str(value or "").lower()
    return any(needle.lower() in text for needle in needles)


def list_templates(viewer_id: str | None, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    filters = filters or {}
    templates = templates_store.list_visible_templates(viewer_id)

    companies = [item for item in filters.get("companies") or [] if item]
    roles = [item for item in filters.get("roles") or [] if item]
    seniority = [item for item in filters.get("seniority") or [] if item]
    industry = [item for item in filters.get("industry") or [] if item]
    min_ats = filters.get("min_ats_score")
    min_success = filters.get("min_success_rate")
    verified = filters.get("verified")
    date_range = filters.get("date_range")

    since = None
    if date_range:
        days = get_catalog_value(f"templates.date_ranges.{date_range}")
        if days is None:
            raise ServiceError(f"Invalid dateRange: {date_range}", status_code=400)
        since = _since_iso(int(days))

    result = []
    for template in templates:
        if companies and not _matches_any(template["company_name"], companies):
            continue
        if roles and not _matches_any(template["job_title"], roles):
            continue
        if seniority and template["seniority_level"] not in seniority:
            continue
        if industry and template["industry"] not in industry:
            continue
        if min_ats is not None and (template["ats_score"] or 0) < min_ats:
            continue
        if min_success is not None and (template["success_rate"] or 0) < min_success:
            continue
        if verified is not None and template["recruiter_verified"] != verified:
            continue
        if since and template["created_at"] < since:
            continue
        result.append(template)
    return result


def _get_or_404(template_id: str) -> dict[str, Any]:
    template = templates_store.get_template(template_id)
    if template is None:
        raise NotFoundError("Template not found")
    return template


def _ensure_readable(template: dict[str, Any], viewer_id: str | None) -> None:
    if template["is_public"] or template["user_id"] == viewer_id:
        return
    if viewer_id is None:
        raise UnauthenticatedError()
    raise ForbiddenError("Unauthorized")


def view_template(template_id: str, viewer_id: str | None) -> dict[str, Any]:
    template = _get_or_404(template_id)
    _ensure_readable(template, viewer_id)
    templates_store.increment_counter(template_id, "views")
    return {**template, "views": template["views"] + 1}


def _get_owned(user: dict[str, Any], template_id: str) -> dict[str, Any]:
    template = _get_or_404(template_id)
    if template["user_id"] != user["id"]:
        raise ForbiddenError("Unauthorized")
    return template


def update_template(user: dict[str, Any], template_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    _get_owned(user, template_id)
    updated = templates_store.update_template(template_id, _store_fields(payload))
    if updated is None:
        raise NotFoundError("Template not found")
    return updated


def delete_template(user: dict[str, Any], template_id: str) -> dict[str, Any]:
    _get_owned(user, template_id)
    templates_store.delete_template(template_id)
    logger.info("template_deleted user_id=%s template_id=%s", user["id"], template_id)
    return {"success": True}


def download_template(template_id: str, viewer_id: str | None) -> dict[str, Any]:
    template = _get_or_404(template_id)
    _ensure_readable(template, viewer_id)
    templates_store.increment_counter(template_id, "downloads")
    return {
        "success": True,
        "templateId": template_id,
        "resumeContent": template["resume_content"],
        "downloads": template["downloads"] + 1,
    }


def template_stats(user: dict[str, Any]) -> dict[str, Any]:
    row = templates_store.owner_stats(user["id"])
    avg = row.get("avg_success_rate")
    return {
        "totalTemplates": int(row.get("total_templates") or 0),
        "totalDownloads": int(row.get("total_downloads") or 0),
        "activeTemplates": int(row.get("active_templates") or 0),
        "avgSuccessRate": round(avg) if avg is not None else 0,
    }


def template_analytics(user: dict[str, Any], timeframe: str | None = None) -> dict[str, Any]:
    timeframe = timeframe or "30days"
    days = get_catalog_value(f"templates.analytics_timeframes.{timeframe}")
    if days is None:
        raise ServiceError(f"Invalid timeframe: {timeframe}", status_code=400)
    since = _since_iso(int(days))

    totals = templates_store.owner_window_totals(user["id"], since)
    views = int(totals.get("total_views") or 0)
    downloads = int(totals.get("total_downloads") or 0)
    avg = totals.get("avg_success_rate")
    performance = [
        {
            "name": f"{row['company_name']} - {row['job_title']}",
            "downloads": int(row["downloads"] or 0),
            "successRate": row["success_rate"] or 0,
        }
        for row in templates_store.owner_top_templates(user["id"], since)
    ]
    return {
        "timeframe": timeframe,
        "totalViews": views,
        "totalDownloads": downloads,
        "conversionRate": round(downloads / views * 100) if views else 0,
        "avgSuccessRate": round(avg) if avg is not None else 0,
        "templatePerformance": performance,
    }


def recent_templates(limit: int = 5) -> list[dict[str, Any]]:
    return templates_store.list_recent_public(limit)


def serialize_template(template: dict[str, Any]) -> dict[str, Any]:
    reverse = {store_key: api_key for api_key, store_key in _FIELD_ALIASES.items()}
    body = {reverse[key]: template.get(key) for key in reverse}
    body.update(
        {
            "id": template["id"],
            "userId": template["user_id"],
            "downloads": template["downloads"],
            "views": template["views"],
            "createdAt": template["created_at"],
            "updatedAt": template["updated_at"],
        }
    )
    return body
