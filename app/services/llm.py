from __future__ import annotations

import json
import logging
import os
import time
import uuid
from functools import lru_cache
from typing import Any

from openai import OpenAI

from app.analytics.db import log_ai_analysis_run

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def llm_enabled() -> bool:
    if not _env_bool("LLM_ENABLED", True):
        return False
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not api_key or _looks_like_placeholder(api_key):
        return False
    return True


@lru_cache(maxsize=1)
def _client() -> OpenAI:
    return OpenAI(
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("LLM_TIMEOUT_S", "45")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "2")),
    )


def _model() -> str:
    return (os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()


def _log_ai_run(
    *,
    run_id: str,
    tool_slug: str,
    schema_valid: bool,
    status: str,
    latency_ms: int | None,
    error_code: str | None = None,
) -> None:
    try:
        log_ai_analysis_run(
            run_id=run_id,
            tool_slug=tool_slug or "unknown",
            model=_model(),
            schema_valid=schema_valid,
            status=status,
            error_code=error_code,
            latency_ms=latency_ms,
        )
    except Exception:  # pragma: no cover - analytics must not break AI responses
        logger.debug("ai_run_logging_failed", exc_info=True)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def json_completion(
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.3,
    max_output_tokens: int = 1500,
    tool_slug: str = "unknown",
) -> dict[str, Any] | list[Any] | None:
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    if not llm_enabled():
        _log_ai_run(
            run_id=run_id,
            tool_slug=tool_slug,
            schema_valid=False,
            status="skipped",
            error_code="llm_disabled",
            latency_ms=0,
        )
        return None

    try:
        response = _client().chat.completions.create(
            model=_model(),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        if not content:
            _log_ai_run(
                run_id=run_id,
                tool_slug=tool_slug,
                schema_valid=False,
                status="empty",
                error_code="empty_response",
                latency_ms=_elapsed_ms(started),
            )
            return None
        parsed = json.loads(content)
        schema_valid = isinstance(parsed, (dict, list))
        _log_ai_run(
            run_id=run_id,
            tool_slug=tool_slug,
            schema_valid=schema_valid,
            status="success" if schema_valid else "invalid_schema",
            error_code=None if schema_valid else "invalid_schema",
            latency_ms=_elapsed_ms(started),
        )
        return parsed if schema_valid else None
    except Exception as exc:  # noqa: BLE001 - callers fall back to defaults
        logger.warning("llm_json_failed model=%s tool=%s prompt_len=%s: %s", _model(), tool_slug, len(user_prompt), exc)
        _log_ai_run(
            run_id=run_id,
            tool_slug=tool_slug,
            schema_valid=False,
            status="error",
            error_code="llm_exception",
            latency_ms=_elapsed_ms(started),
        )
        return None


def json_completion_required(
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.3,
    max_output_tokens: int = 1500,
    tool_slug: str = "unknown",
) -> dict[str, Any] | list[Any]:
    if not llm_enabled():
        raise LLMError("AI analysis is not configured on this server.", code="llm_disabled")

    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        tool_slug=tool_slug,
    )
    if not payload:
        raise LLMError("AI analysis could not produce a valid response. Try again.", code="llm_invalid")
    return payload


def text_completion(
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.7,
    max_output_tokens: int = 1000,
    tool_slug: str = "unknown",
) -> str:
    if not llm_enabled():
        raise LLMError("AI generation is not configured on this server.", code="llm_disabled")

    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    try:
        response = _client().chat.completions.create(
            model=_model(),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
    except Exception as exc:  # noqa: BLE001
        logger.warning("llm_text_failed model=%s tool=%s: %s", _model(), tool_slug, exc)
        _log_ai_run(
            run_id=run_id,
            tool_slug=tool_slug,
            schema_valid=False,
            status="error",
            error_code="llm_exception",
            latency_ms=_elapsed_ms(started),
        )
        raise LLMError("AI generation failed. Try again.", code="llm_exception") from exc

    text = str(content or "").strip()
    _log_ai_run(
        run_id=run_id,
        tool_slug=tool_slug,
        schema_valid=bool(text),
        status="success" if text else "empty",
        error_code=None if text else "empty_response",
        latency_ms=_elapsed_ms(started),
    )
    if not text:
        raise LLMError("AI generation returned an empty response. Try again.", code="llm_invalid")
    return text
