from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from app.api.v1.common import read_upload
from app.core.security import get_current_user
from app.parsing.parse import extract_document
from app.schemas.resumes import HtmlToDocxRequest
from app.services.export_service import html_to_docx

router = APIRouter()


@router.post("/documents/parse")
async def parse_document(file: UploadFile = File(...), user: dict[str, Any] = Depends(get_current_user)):
    filename, content = await read_upload(file)
    try:
        parsed = extract_document(filename, content)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    text = parsed.text.strip()
    if not text:
        reason = parsed.parsing_warnings[0] if parsed.parsing_warnings else "No text could be extracted."
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=reason)
    return {
        "success": True,
        "text": text,
        "fileName": parsed.file_name,
        "fileSize": parsed.file_size,
        "warnings": parsed.parsing_warnings,
    }


@router.post("/documents/convert-to-docx")
def convert_to_docx(payload: HtmlToDocxRequest, user: dict[str, Any] = Depends(get_current_user)):
    try:
        exported = html_to_docx(payload.html or "", payload.title)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
