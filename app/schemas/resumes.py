from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.common import ApiModel


class PersonalInfo(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(default="", max_length=320)
    phone: str = Field(default="", max_length=60)
    location: str = Field(default="", max_length=200)
    linkedin: str = Field(default="", max_length=500)
    website: str = Field(default="", max_length=500)


class ResumeEntry(ApiModel):
    """A resume section entry; keys the editor adds beyond the typed ones are kept as sent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    start_date: str | None = Field(default=None, max_length=40)
    end_date: str | None = Field(default=None, max_length=40)
    location: str | None = Field(default=None, max_length=200)


class ExperienceEntry(ResumeEntry):
    position: str | None = Field(default=None, max_length=200)
    company: str | None = Field(default=None, max_length=200)
    current: bool = False
    responsibilities: list[str] = Field(default_factory=list, max_length=50)


class EducationEntry(ResumeEntry):
    institution: str | None = Field(default=None, max_length=200)
    degree: str | None = Field(default=None, max_length=200)
    field: str | None = Field(default=None, max_length=200)
    field_of_study: str | None = Field(default=None, max_length=200)
    gpa: str | float | None = None


class ProjectEntry(ResumeEntry):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    technologies: list[str] | str | None = None
    url: str | None = Field(default=None, max_length=500)
    link: str | None = Field(default=None, max_length=500)


class ResumeContent(ApiModel):
    personal_info: PersonalInfo
    summary: str = Field(default="", max_length=5000)
    experience: list[ExperienceEntry] = Field(default_factory=list, max_length=50)
    education: list[EducationEntry] = Field(default_factory=list, max_length=20)
    skills: list[str] = Field(default_factory=list, max_length=200)
    projects: list[ProjectEntry] = Field(default_factory=list, max_length=50)

    def to_document(self) -> dict[str, Any]:
        """The stored JSON shape: camelCase keys, entry fields only when the client sent them."""
        return {
            "personalInfo": self.personal_info.model_dump(by_alias=True),
            "summary": self.summary,
            "experience": [item.model_dump(by_alias=True, exclude_unset=True) for item in self.experience],
            "education": [item.model_dump(by_alias=True, exclude_unset=True) for item in self.education],
            "skills": self.skills,
            "projects": [item.model_dump(by_alias=True, exclude_unset=True) for item in self.projects],
        }


class ResumeCreateRequest(ResumeContent):
    title: str = Field(default="Untitled Resume", max_length=200)
    job_title: str | None = Field(default=None, max_length=200)
    job_description: str | None = Field(default=None, max_length=50000)
    company_name: str | None = Field(default=None, max_length=200)
    template_id: str | None = Field(default=None, max_length=100)
    analysis_data: dict[str, Any] | None = None


class ResumeUpdateRequest(ApiModel):
    title: str | None = Field(default=None, max_length=200)
    content: ResumeContent | None = None
    template_id: str | None = Field(default=None, max_length=100)
    color_palette_index: int | None = Field(default=None, ge=0, le=50)
    font_family: str | None = Field(default=None, max_length=100)


class HtmlToDocxRequest(ApiModel):
    html: str | None = Field(default=None, max_length=2_000_000)
    title: str | None = Field(default=None, max_length=200)
