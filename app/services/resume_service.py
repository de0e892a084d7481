from __future__ import annotations

import logging
from typing import Any

from app.core.catalog import get_catalog_value
from app.services.errors import ForbiddenError, InsufficientCreditsError, NotFoundError
from app.services.keyword_service import count_ats_keyword_matches, keyword_match
from app.store import resumes as resumes_store

logger = logging.getLogger(__name__)

RESUME_CREATE_COST = 1
RESUME_CREATE_SERVICE = "resume_create"


def _ats(key: str, default: int) -> int:
    return int(get_catalog_value(f"ats.{key}", default) or default)


def calculate_ats_score(resume_data: dict[str, Any]) -> int:
    score = _ats("base_score", 60)
    skills = resume_data.get("skills") or []
    summary = resume_data.get("summary") or ""
    experience = resume_data.get("experience") or []
    education = resume_data.get("education") or []

    job_description = resume_data.get("jobDescription") or resume_data.get("job_description")
    if job_description:
        matches = count_ats_keyword_matches(skills, summary, job_description)
        score += min(matches * _ats("keyword_points", 2), _ats("keyword_cap", 20))

    bonus = _ats("completeness_bonus", 5)
    if len(summary) > 50:
        score += bonus
    if len(experience) >= 2:
        score += bonus
    if len(education) >= 1:
        score += bonus
    if len(skills) >= 5:
        score += bonus

    return min(max(score, _ats("min_score", 30)), _ats("max_score", 100))


def _content_from_payload(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "personalInfo": payload.get("personalInfo") or {},
        "summary": payload.get("summary") or "",
        "experience": payload.get("experience") or [],
        "education": payload.get("education") or [],
        "skills": payload.get("skills") or [],
        "projects": payload.get("projects") or [],
    }


def create_resume(user: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    if int(user.get("credits") or 0) < RESUME_CREATE_COST:
        raise InsufficientCreditsError(status_code=402)

    content = _content_from_payload(payload)
    ats_score = calculate_ats_score({**content, "jobDescription": payload.get("jobDescription")})
    fields = {
        "title": payload.get("title") or "Untitled Resume",
        "job_title": payload.get("jobTitle"),
        "job_description": payload.get("jobDescription"),
        "company_targeted": payload.get("companyName"),
        "template_id": payload.get("templateId") or "professional",
        "color_palette_index": 0,
        "font_family": "Inter",
        "ats_score": ats_score,
        "content": content,
        "analysis_data": payload.get("analysisData"),
    }
    resume = resumes_store.create_resume_with_charge(
        user_id=user["id"],
        fields=fields,
        cost=RESUME_CREATE_COST,
        service=RESUME_CREATE_SERVICE,
    )
    if resume is None:
        raise InsufficientCreditsError(status_code=402)
    logger.info("resume_created user_id=%s resume_id=%s ats_score=%s", user["id"], resume["id"], ats_score)
    return resume


def get_owned_resume(user: dict[str, Any], resume_id: str) -> dict[str, Any]:
    resume = resumes_store.get_resume(resume_id)
    if resume is None:
        raise NotFoundError("Resume not found")
    if resume["user_id"] != user["id"]:
        raise ForbiddenError("Unauthorized")
    return resume


def list_resumes(user: dict[str, Any]) -> list[dict[str, Any]]:
    return resumes_store.list_resumes(user["id"])


def update_resume(user: dict[str, Any], resume_id: str, changes: dict[str, Any]) -> dict[str, Any]:
    get_owned_resume(user, resume_id)
    updated = resumes_store.update_resume(resume_id, changes)
    if updated is None:
        raise NotFoundError("Resume not found")
    return updated


def delete_resume(user: dict[str, Any], resume_id: str) -> dict[str, Any]:
    get_owned_resume(user, resume_id)
    resumes_store.delete_resume(resume_id)
    logger.info("resume_deleted user_id=%s resume_id=%s", user["id"], resume_id)
    return {"success": True, "message": "Resume deleted successfully"}


def resume_keyword_match(user: dict[str, Any], resume_id: str) -> dict[str, Any]:
    resume = get_owned_resume(user, resume_id)
    return keyword_match(resume.get("content") or {}, resume.get("job_description"))


def serialize_resume(resume: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": resume["id"],
        "title": resume["title"],
        "content": resume.get("content") or {},
        "atsScore": resume.get("ats_score"),
        "formatScore": resume.get("format_score"),
        "jobDescription": resume.get("job_description"),
        "jobTitle": resume.get("job_title"),
        "companyTargeted": resume.get("company_targeted"),
        "templateId": resume.get("template_id"),
        "colorPaletteIndex": resume.get("color_palette_index", 0),
        "fontFamily": resume.get("font_family"),
        "analysisData": resume.get("analysis_data"),
        "createdAt": resume.get("created_at"),
        "updatedAt": resume.get("updated_at"),
    }
