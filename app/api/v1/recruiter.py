from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import ValidationError

from app.api.v1.common import enforce_route_limit, raise_llm_unavailable, read_upload
from app.core.security import get_current_user
from app.parsing.parse import extract_text
from app.schemas.recruiter import BulkMatchFilters
from app.schemas.templates import RecruiterUploadRequest
from app.services import recruiter_service, template_service
from app.services.llm import LLMError

router = APIRouter()

MAX_BULK_FILES = 50


def _parse_filters(raw: str | None) -> BulkMatchFilters:
    if not raw or not raw.strip():
        return BulkMatchFilters()
    try:
        return BulkMatchFilters.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid filters: {exc}") from exc


@router.post("/recruiter/resume-match")
async def resume_match(
    request: Request,
    job_description: str | None = Form(default=None, alias="jobDescription"),
    resume_text: str | None = Form(default=None, alias="resumeText"),
    resume: UploadFile | None = File(default=None),
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    file_name = None
    file_size = None
    if resume is not None:
        file_name, content = await read_upload(resume)
        file_size = len(content)
        try:
            resume_text = extract_text(file_name, content)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    analysis = recruiter_service.match_resume(job_description, resume_text)
    return {**analysis.model_dump(by_alias=True), "fileName": file_name, "fileSize": file_size}


@router.post("/recruiter/bulk-resume-match")
async def bulk_resume_match(
    request: Request,
    job_description: str | None = Form(default=None, alias="jobDescription"),
    filters: str | None = Form(default=None),
    resumes: list[UploadFile] | None = File(default=None),
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=5)
    parsed_filters = _parse_filters(filters)
    resumes = resumes or []
    if len(resumes) > MAX_BULK_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_BULK_FILES} resumes can be matched at once.",
        )

    entries: list[tuple[str, str | None, int]] = []
    rejected: list[tuple[str, str]] = []
    for upload in resumes:
        try:
            filename, content = await read_upload(upload)
        except HTTPException as exc:
            rejected.append((upload.filename or "uploaded-file", str(exc.detail)))
            continue
        try:
            text = extract_text(filename, content)
        except ValueError:
            text = None
        entries.append((filename, text, len(content)))

    try:
        return recruiter_service.bulk_match(job_description, entries, parsed_filters, rejected)
    except LLMError as exc:
        raise_llm_unavailable(exc)


@router.post("/ai/recruiter-upload", status_code=status.HTTP_201_CREATED)
def recruiter_upload(payload: RecruiterUploadRequest, user: dict[str, Any] = Depends(get_current_user)):
    template = recruiter_service.recruiter_upload(user, payload.model_dump(by_alias=True))
    return {"success": True, "upload": template_service.serialize_template(template)}
