from __future__ import annotations

from pydantic import Field

from app.schemas.common import ApiModel

TEXT_LIMIT = 120000


class CountryAware(ApiModel):
    country: str | None = Field(default=None, max_length=60)


class ATSCompatibilityRequest(CountryAware):
    resume_text: str | None = Field(default=None, max_length=TEXT_LIMIT)
    ats_system: str | None = Field(default=None, max_length=100)


class IndustryAnalysisRequest(CountryAware):
    resume_text: str | None = Field(default=None, max_length=TEXT_LIMIT)
    job_description: str | None = Field(default=None, max_length=TEXT_LIMIT)
    industry: str | None = Field(default=None, max_length=100)


class ExperienceLevelRequest(CountryAware):
    resume_text: str | None = Field(default=None, max_length=TEXT_LIMIT)
    job_description: str | None = Field(default=None, max_length=TEXT_LIMIT)
    experience_level: str | None = Field(default=None, max_length=50)


class InterviewQuestionsRequest(CountryAware):
    resume_text: str | None = Field(default=None, max_length=TEXT_LIMIT)
    job_description: str | None = Field(default=None, max_length=TEXT_LIMIT)


class SalaryPredictionRequest(CountryAware):
    job_description: str | None = Field(default=None, max_length=TEXT_LIMIT)
    location: str | None = Field(default=None, max_length=200)


class CareerPathRequest(CountryAware):
    resume_text: str | None = Field(default=None, max_length=TEXT_LIMIT)
    current_role: str | None = Field(default=None, max_length=200)


class ExtractKeywordsRequest(ApiModel):
    job_description: str | None = Field(default=None, max_length=TEXT_LIMIT)


class ExtractResumeDataRequest(ApiModel):
    prompt: str | None = Field(default=None, max_length=TEXT_LIMIT)
    job_title: str | None = Field(default=None, max_length=200)
    company: str | None = Field(default=None, max_length=200)


class KeywordSuggestionsRequest(ApiModel):
    job_title: str | None = Field(default=None, max_length=200)
    missing_keywords: list[str] = Field(default_factory=list, max_length=100)
