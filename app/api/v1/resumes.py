from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.v1.common import require_feature
from app.core.security import get_current_user
from app.schemas.resumes import ResumeCreateRequest, ResumeUpdateRequest
from app.services import export_service, resume_service

router = APIRouter()


@router.post("/resumes", status_code=status.HTTP_201_CREATED)
def create_resume(payload: ResumeCreateRequest, user: dict[str, Any] = Depends(get_current_user)):
    resume = resume_service.create_resume(user, {**payload.model_dump(by_alias=True), **payload.to_document()})
    return {"success": True, "resumeId": resume["id"], "atsScore": resume["ats_score"]}


@router.get("/resumes")
def list_resumes(user: dict[str, Any] = Depends(get_current_user)):
    return [resume_service.serialize_resume(resume) for resume in resume_service.list_resumes(user)]


@router.get("/resumes/{resume_id}")
def get_resume(resume_id: str, user: dict[str, Any] = Depends(get_current_user)):
    return resume_service.serialize_resume(resume_service.get_owned_resume(user, resume_id))


@router.put("/resumes/{resume_id}")
def update_resume(resume_id: str, payload: ResumeUpdateRequest, user: dict[str, Any] = Depends(get_current_user)):
    changes = payload.model_dump(exclude_none=True, exclude={"content"})
    if payload.content is not None:
        changes["content"] = payload.content.to_document()
    updated = resume_service.update_resume(user, resume_id, changes)
    return {"success": True, "resume": resume_service.serialize_resume(updated)}


@router.delete("/resumes/{resume_id}")
def delete_resume(resume_id: str, user: dict[str, Any] = Depends(get_current_user)):
    return resume_service.delete_resume(user, resume_id)


@router.get("/resumes/{resume_id}/keyword-match")
def keyword_match(resume_id: str, user: dict[str, Any] = Depends(get_current_user)):
    return resume_service.resume_keyword_match(user, resume_id)


@router.get("/resumes/{resume_id}/download")
def download_resume(
    resume_id: str,
    fmt: str = Query(default="text", alias="format"),
    user: dict[str, Any] = Depends(get_current_user),
):
    resume = resume_service.get_owned_resume(user, resume_id)
    fmt = fmt.strip().lower()
    if fmt not in export_service.EXPORT_FORMATS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported format")
    if fmt == "pdf":
        require_feature(user["id"], "pdf_export", resume_id)

    exported = export_service.export_resume(resume, fmt)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
