from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import ApiModel

Recommendation = Literal["HIRE", "MAYBE", "REJECT"]


class DetailedAnalysis(ApiModel):
    technical_skills: int = Field(default=50, ge=0, le=100)
    experience: int = Field(default=50, ge=0, le=100)
    education: int = Field(default=50, ge=0, le=100)
    keywords: int = Field(default=50, ge=0, le=100)


class ResumeMatchAnalysis(ApiModel):
    overall_score: int = Field(ge=0, le=100)
    keyword_matches: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    skills_match: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    experience_match: bool = False
    experience_gap: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    ats_score: int = Field(ge=0, le=100)
    detailed_analysis: DetailedAnalysis = Field(default_factory=DetailedAnalysis)
    source: Literal["ai", "keyword_overlap"] = "ai"


class BulkMatchFilters(ApiModel):
    min_experience: float | None = Field(default=None, ge=0)
    max_experience: float | None = Field(default=None, ge=0)
    required_skills: list[str] = Field(default_factory=list, max_length=50)
    location: str | None = Field(default=None, max_length=200)
    education: str | None = Field(default=None, max_length=200)
    min_score: int = Field(default=70, ge=0, le=100)
    max_candidates: int = Field(default=10, ge=1, le=50)


class BulkCandidate(ApiModel):
    file_name: str
    file_size: int = 0
    candidate_name: str = "Not Found"
    email: str = "Not Found"
    phone: str = "Not Found"
    location: str = "Not Found"
    experience: str = "Not specified"
    current_role: str = "Not Found"
    skills: list[str] = Field(default_factory=list)
    education: str = "Not Found"
    overall_score: int = Field(ge=0, le=100)
    keyword_matches: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    ats_score: int = Field(default=50, ge=0, le=100)
    recommendation: Recommendation = "MAYBE"
    reason_for_recommendation: str = ""

    @field_validator("recommendation", mode="before")
    @classmethod
    def _normalize_recommendation(cls, value: object) -> str:
        normalized = str(value or "").strip().upper()
        return normalized if normalized in {"HIRE", "MAYBE", "REJECT"} else "MAYBE"
