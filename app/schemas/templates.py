from __future__ import annotations

from pydantic import Field

from app.schemas.common import ApiModel


class TemplateFields(ApiModel):
    company_name: str | None = Field(default=None, max_length=200)
    job_title: str | None = Field(default=None, max_length=200)
    seniority_level: str | None = Field(default=None, max_length=50)
    industry: str | None = Field(default=None, max_length=100)
    company_size: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)
    success_rate: float | None = Field(default=None, ge=0, le=100)
    ats_score: int | None = Field(default=None, ge=0, le=100)
    culture_fit_indicators: list[str] | None = Field(default=None, max_length=50)
    key_skills: list[str] | None = Field(default=None, max_length=100)
    tips_and_insights: list[str] | None = Field(default=None, max_length=50)
    red_flags: list[str] | None = Field(default=None, max_length=50)
    sample_interview_questions: list[str] | None = Field(default=None, max_length=50)
    resume_content: str | None = Field(default=None, max_length=200000)
    recruiter_verified: bool | None = None
    is_public: bool | None = None
    is_anonymized: bool | None = None


class RecruiterUploadRequest(ApiModel):
    resume_content: str | None = Field(default=None, max_length=200000)
    company_name: str | None = Field(default=None, max_length=200)
    job_title: str | None = Field(default=None, max_length=200)
