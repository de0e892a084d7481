from __future__ import annotations

from pydantic import Field

from app.schemas.common import ApiModel


class NameUpdateRequest(ApiModel):
    name: str | None = Field(default=None, max_length=200)


class CheckCreditsRequest(ApiModel):
    action: str | None = Field(default=None, max_length=100)
    required_credits: int = 1


class DeductCreditsRequest(ApiModel):
    service: str | None = Field(default=None, max_length=100)
    credits: int = 1
