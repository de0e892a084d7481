from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.common import require_feature
from app.core.security import get_current_user
from app.schemas.analysis import KeywordSuggestionsRequest
from app.services import keyword_service

router = APIRouter()


@router.get("/keywords/industry")
def industry_keywords(
    job_title: str | None = Query(default=None, alias="jobTitle"),
    user: dict[str, Any] = Depends(get_current_user),
):
    if not (job_title or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Job title is required")
    return keyword_service.industry_keywords(job_title or "")


@router.post("/keywords/suggestions")
def keyword_suggestions(payload: KeywordSuggestionsRequest, user: dict[str, Any] = Depends(get_current_user)):
    require_feature(user["id"], "keyword_suggestions")
    if not (payload.job_title or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Job title is required")
    return {"suggestions": keyword_service.keyword_suggestions(payload.job_title or "", payload.missing_keywords)}
