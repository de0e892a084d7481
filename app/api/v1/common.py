from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request, UploadFile, status

from app.parsing.parse import SUPPORTED_EXTENSIONS, extract_text
from app.services.errors import ForbiddenError
from app.services.llm import LLMError
from app.services.subscription_service import is_feature_unlocked
from app.store.route_limits import record_route_hit

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB


def enforce_route_limit(request: Request, user: dict[str, Any], limit: int, window_seconds: int = 60) -> None:
    """Per-user sliding window on top of the global per-IP limit."""
    route_key = request.url.path
    if not record_route_hit(user_id=user["id"], route_key=route_key, limit=limit, window_seconds=window_seconds):
        logger.info("route_limit_exceeded user_id=%s route=%s limit=%s", user["id"], route_key, limit)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please wait a minute and try again.",
        )


def raise_llm_unavailable(exc: LLMError) -> None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def require_feature(user_id: str, feature_id: str, resume_id: str | None = None) -> None:
    if not is_feature_unlocked(user_id, feature_id, resume_id):
        raise ForbiddenError("Feature not unlocked")


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


async def read_upload(file: UploadFile) -> tuple[str, bytes]:
    """Read an upload in chunks, enforcing the size cap and the document whitelist."""
    filename = file.filename or "uploaded-file"
    ext = _extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {ext or 'unknown'}. Please upload a PDF, DOC, DOCX, or TXT file.",
        )

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum allowed size is {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)
    return filename, b"".join(chunks)


async def upload_text(file: UploadFile) -> str:
    filename, content = await read_upload(file)
    try:
        return extract_text(filename, content)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
