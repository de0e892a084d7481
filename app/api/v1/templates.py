from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from app.core.security import get_current_user, get_optional_user
from app.schemas.templates import TemplateFields
from app.services import template_service

router = APIRouter()


def _split(raw: str | None) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _viewer_id(viewer: dict[str, Any] | None) -> str | None:
    return viewer["id"] if viewer else None


@router.post("/templates", status_code=status.HTTP_201_CREATED)
def create_template(payload: TemplateFields, user: dict[str, Any] = Depends(get_current_user)):
    template = template_service.create_template(user, payload.model_dump(by_alias=True, exclude_none=True))
    return {"success": True, "template": template_service.serialize_template(template)}


@router.get("/templates")
def list_templates(
    companies: str | None = Query(default=None),
    roles: str | None = Query(default=None),
    seniority: str | None = Query(default=None),
    industry: str | None = Query(default=None),
    min_ats_score: int | None = Query(default=None, alias="minAtsScore", ge=0, le=100),
    min_success_rate: float | None = Query(default=None, alias="minSuccessRate", ge=0, le=100),
    date_range: str | None = Query(default=None, alias="dateRange"),
    verified: bool | None = Query(default=None),
    viewer: dict[str, Any] | None = Depends(get_optional_user),
):
    templates = template_service.list_templates(
        _viewer_id(viewer),
        {
            "companies": _split(companies),
            "roles": _split(roles),
            "seniority": _split(seniority),
            "industry": _split(industry),
            "min_ats_score": min_ats_score,
            "min_success_rate": min_success_rate,
            "date_range": date_range,
            "verified": verified,
        },
    )
    return [template_service.serialize_template(template) for template in templates]


@router.get("/templates/stats")
def template_stats(user: dict[str, Any] = Depends(get_current_user)):
    return template_service.template_stats(user)


@router.get("/templates/analytics")
def template_analytics(
    timeframe: str = Query(default="30days"),
    user: dict[str, Any] = Depends(get_current_user),
):
    return template_service.template_analytics(user, timeframe)


@router.get("/templates/recent")
def recent_templates():
    return [template_service.serialize_template(template) for template in template_service.recent_templates()]


@router.get("/templates/{template_id}")
def get_template(template_id: str, viewer: dict[str, Any] | None = Depends(get_optional_user)):
    return template_service.serialize_template(template_service.view_template(template_id, _viewer_id(viewer)))


@router.put("/templates/{template_id}")
def update_template(template_id: str, payload: TemplateFields, user: dict[str, Any] = Depends(get_current_user)):
    updated = template_service.update_template(user, template_id, payload.model_dump(by_alias=True, exclude_none=True))
    return {"success": True, "template": template_service.serialize_template(updated)}


@router.delete("/templates/{template_id}")
def delete_template(template_id: str, user: dict[str, Any] = Depends(get_current_user)):
    return template_service.delete_template(user, template_id)


@router.post("/templates/{template_id}/download")
def download_template(template_id: str, viewer: dict[str, Any] | None = Depends(get_optional_user)):
    return template_service.download_template(template_id, _viewer_id(viewer))
