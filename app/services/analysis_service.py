from __future__ import annotations

import logging
from typing import Any

from app.core.catalog import get_catalog_list
from app.parsing.parse import extract_text
from app.services.keyword_service import relevant_keywords
from app.services.llm import LLMError, json_completion, json_completion_required

logger = logging.getLogger(__name__)

MAX_RESUME_CHARS = 50000
EXTRACTED_PREVIEW_CHARS = 1000

_ANALYZE_SYSTEM_PROMPT = """You are an expert ATS (Applicant Tracking System) analyzer. Your task is to analyze a resume against a job description and provide feedback on how well it matches and how to improve it.

You must respond with a valid JSON object containing exactly these fields:
{
  "atsScore": number (0-100),
  "matchScore": number (0-100),
  "missingKeywords": string[],
  "recommendations": string[],
  "strengths": string[]
}

The atsScore should represent how well the resume would perform in an ATS system (formatting, keywords, etc.).
The matchScore should represent how well the candidate's qualifications match the job requirements.
Do not include any other text outside the JSON object."""

_RESUME_JSON_SHAPE = """{
  "personalInfo": {"name": "...", "email": "...", "phone": "...", "location": "...", "linkedin": "...", "website": "..."},
  "summary": "...",
  "experience": [{"company": "...", "position": "...", "date": "...", "location": "...", "responsibilities": ["..."]}],
  "education": [{"institution": "...", "degree": "...", "date": "...", "gpa": "..."}],
  "skills": ["..."],
  "projects": [{"name": "...", "description": "...", "technologies": "..."}]
}"""

_GENERATE_SYSTEM_PROMPT = f"""You are an expert resume writer. Your task is to create a highly optimized JSON resume specifically tailored for the job description provided. The resume should be ATS-friendly and highlight relevant skills and experiences.

Output a valid JSON with the following structure:
{_RESUME_JSON_SHAPE}

IMPORTANT:
1. Use the existing resume information as the source of truth for the person's actual experience, education, etc.
2. Focus on matching relevant keywords from the job description.
3. Use quantifiable achievements where possible, enhancing any that exist in the original resume.
4. Prioritize the most relevant experiences first.
5. Keep it to one page worth of content.
6. Return only a valid JSON object, no other text."""

_EXTRACT_DATA_SYSTEM_PROMPT = f"""You turn a free-form description of someone's career into a structured resume.
Only use facts present in the description; leave fields empty instead of inventing employers, dates or degrees.
Return a JSON object with this structure:
{_RESUME_JSON_SHAPE}"""

_KEYWORDS_SYSTEM_PROMPT = (
    "You extract the most important skills and keywords from job descriptions for ATS optimization. "
    'Return a JSON object {"keywords": string[]} with 10 to 15 short keywords, most important first.'
)


def clamp_score(value: Any, default: int = 50) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number == 0:
        # NaN or zero falls back the same way a falsy score does.
        return default
    return int(max(0, min(100, round(number))))


def clean_strings(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()][:limit]


def coerce_list(payload: Any, key: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


def truncate_resume_text(text: str) -> str:
    if len(text) > MAX_RESUME_CHARS:
        return text[:MAX_RESUME_CHARS] + "... [truncated]"
    return text


def _preview(text: str) -> str:
    return text[:EXTRACTED_PREVIEW_CHARS] + ("..." if len(text) > EXTRACTED_PREVIEW_CHARS else "")


def fallback_analysis(file_name: str, *, reason: str) -> dict[str, Any]:
    if reason == "empty":
        return {
            "atsScore": 50,
            "matchScore": 40,
            "missingKeywords": ["No readable text found in resume"],
            "recommendations": [
                "Please upload a resume with proper text content",
                "Ensure your PDF is not scanned or image-based",
                "Try using a .txt or .docx file instead",
            ],
            "strengths": ["Resume file uploaded successfully"],
            "extractedText": (
                f"No readable text found in {file_name}. The file may contain images or be formatted "
                "in a way that prevents text extraction."
            ),
            "fallback": True,
        }
    return {
        "atsScore": 50,
        "matchScore": 40,
        "missingKeywords": ["Could not extract resume text"],
        "recommendations": [
            "Please upload a plain text version of your resume",
            "Ensure your PDF is not scanned or image-based",
            "Try using a .txt or .docx file instead",
        ],
        "strengths": ["Resume uploaded successfully"],
        "extractedText": (
            f"Could not extract text from {file_name}. The file may be in a format that's not supported "
            "or may be password-protected."
        ),
        "fallback": True,
    }


def _unavailable_analysis(resume_text: str) -> dict[str, Any]:
    return {
        "atsScore": 50,
        "matchScore": 40,
        "missingKeywords": [],
        "recommendations": ["AI analysis is temporarily unavailable. Please try again later."],
        "strengths": [],
        "extractedText": _preview(resume_text),
        "fallback": True,
    }


def analyze_resume_text(resume_text: str, job_description: str, company_name: str | None = None) -> dict[str, Any]:
    resume_text = truncate_resume_text(resume_text)
    company_line = f"\nTARGET COMPANY:\n{company_name}\n" if company_name else ""
    user_prompt = f"""Please analyze this resume against the job description and provide a detailed analysis.

RESUME TEXT:
{resume_text}

JOB DESCRIPTION:
{job_description}
{company_line}
Provide your analysis as a JSON object with:
1. atsScore: ATS compatibility score (0-100)
2. matchScore: Job match percentage (0-100)
3. missingKeywords: Array of important keywords missing from the resume (max 10)
4. recommendations: Array of specific improvement suggestions (max 8)
5. strengths: Array of current resume strengths (max 5)

Respond only with the JSON object, no additional text."""

    payload = json_completion(
        system_prompt=_ANALYZE_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        temperature=0.3,
        max_output_tokens=1500,
        tool_slug="resume_analysis",
    )
    if not isinstance(payload, dict):
        return _unavailable_analysis(resume_text)

    return {
        "atsScore": clamp_score(payload.get("atsScore")),
        "matchScore": clamp_score(payload.get("matchScore")),
        "missingKeywords": clean_strings(payload.get("missingKeywords"), 10),
        "recommendations": clean_strings(payload.get("recommendations"), 8),
        "strengths": clean_strings(payload.get("strengths"), 5),
        "extractedText": _preview(resume_text),
        "fallback": False,
    }


def analyze_resume_file(
    file_name: str,
    content: bytes,
    job_description: str,
    company_name: str | None = None,
) -> dict[str, Any]:
    try:
        resume_text = extract_text(file_name, content)
    except ValueError as exc:
        message = str(exc)
        logger.info("resume_analysis_extract_failed file=%s: %s", file_name, message)
        if message.startswith("Unsupported file type"):
            raise
        reason = "empty" if message.startswith("No extractable text") else "extract"
        return fallback_analysis(file_name, reason=reason)
    return analyze_resume_text(resume_text, job_description, company_name)


def generate_resume_from_text(
    resume_text: str,
    job_description: str,
    company_name: str = "",
    template_id: str = "professional",
) -> dict[str, Any]:
    resume_text = truncate_resume_text(resume_text)
    user_prompt = f"""
Here is the original resume text:
{resume_text}

Here is the job description:
{job_description}

Target company: {company_name or "Not specified"}
Template style: {template_id}

Create an optimized resume that will maximize the chances of getting an interview for this position.
"""
    payload = json_completion_required(
        system_prompt=_GENERATE_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        temperature=0.7,
        max_output_tokens=2500,
        tool_slug="resume_generate",
    )
    if not isinstance(payload, dict):
        raise LLMError("AI returned an unexpected resume shape.", code="llm_invalid")
    return normalize_resume_content(payload)


def normalize_resume_content(payload: dict[str, Any]) -> dict[str, Any]:
    info = payload.get("personalInfo") if isinstance(payload.get("personalInfo"), dict) else {}

    def records(key: str) -> list[dict[str, Any]]:
        value = payload.get(key)
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []

    experience = []
    for item in records("experience"):
        experience.append({**item, "responsibilities": clean_strings(item.get("responsibilities"), 12)})

    return {
        "personalInfo": {
            key: str(info.get(key) or "") for key in ("name", "email", "phone", "location", "linkedin", "website")
        },
        "summary": str(payload.get("summary") or ""),
        "experience": experience,
        "education": records("education"),
        "skills": clean_strings(payload.get("skills"), 40),
        "projects": records("projects"),
    }


def extract_resume_data(prompt: str, job_title: str | None = None, company: str | None = None) -> dict[str, Any]:
    user_prompt = (
        f"Target job title: {job_title or 'Not specified'}\n"
        f"Target company: {company or 'Not specified'}\n\n"
        f"Career description:\n{truncate_resume_text(prompt)}"
    )
    payload = json_completion_required(
        system_prompt=_EXTRACT_DATA_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        temperature=0.4,
        max_output_tokens=2000,
        tool_slug="extract_resume_data",
    )
    if not isinstance(payload, dict):
        raise LLMError("AI returned an unexpected resume shape.", code="llm_invalid")
    return normalize_resume_content(payload)


def extract_keywords(job_description: str) -> dict[str, Any]:
    payload = json_completion(
        system_prompt=_KEYWORDS_SYSTEM_PROMPT,
        user_prompt=f"Job description:\n{truncate_resume_text(job_description)}",
        temperature=0.2,
        max_output_tokens=400,
        tool_slug="extract_keywords",
    )
    keywords = clean_strings(coerce_list(payload, "keywords"), 15)
    if keywords:
        return {"keywords": keywords, "source": "ai"}

    fallback = relevant_keywords(job_description, get_catalog_list("keyword_match.keywords"))
    return {"keywords": fallback[:15], "source": "catalog"}
