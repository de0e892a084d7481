from __future__ import annotations

import logging
from typing import Any

from app.services.analysis_service import clamp_score, clean_strings, coerce_list, truncate_resume_text
from app.services.llm import json_completion, text_completion

logger = logging.getLogger(__name__)

INDIA = "india"

_INDIA_RESUME_CONTEXT = (
    " The candidate is applying in India: weigh Indian employer expectations, common Indian "
    "qualifications and certifications, and the Indian job market."
)

_INDIA_COVER_LETTER_CONTEXT = """

For an Indian audience, consider:
- Appropriate formal salutations and closings
- Reference to relevant Indian qualifications or certifications
- Awareness of Indian business context and workplace culture
- Balance between confidence and respect (avoiding overly casual language)
- Include all contact details typically expected in Indian business communications"""

_INDIA_SALARY_CONTEXT = (
    " For jobs in India, provide salary in INR. Consider the tier of the city (metro vs non-metro), "
    "cost of living, and prevailing industry standards in India. Typically express Indian salaries in "
    "lakhs per annum (LPA) for professional jobs or thousands per month for entry-level positions."
)

SALARY_PERIODS = {"yearly", "monthly", "hourly"}


def _is_india(country: str | None) -> bool:
    return (country or "").strip().lower() == INDIA


def _country_context(country: str | None) -> str:
    return _INDIA_RESUME_CONTEXT if _is_india(country) else ""


def check_ats_compatibility(resume_text: str, ats_system: str, country: str | None = None) -> dict[str, Any]:
    system_prompt = (
        f"You are an expert in Applicant Tracking Systems, particularly {ats_system}. "
        f"Analyze this resume for compatibility issues specific to {ats_system} and provide targeted recommendations."
        f"{_country_context(country)}\n"
        'Respond in JSON format with: {"compatibilityScore": number (0-100), "specificIssues": string[], '
        '"formatRecommendations": string[], "keywordRecommendations": string[]}'
    )
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=f"Analyze this resume for compatibility with {ats_system}:\n\n{truncate_resume_text(resume_text)}",
        temperature=0.3,
        tool_slug="ats_compatibility",
    )
    payload = payload if isinstance(payload, dict) else {}
    return {
        "compatibilityScore": clamp_score(payload.get("compatibilityScore")),
        "specificIssues": clean_strings(payload.get("specificIssues"), 10),
        "formatRecommendations": clean_strings(payload.get("formatRecommendations"), 10),
        "keywordRecommendations": clean_strings(payload.get("keywordRecommendations"), 10),
    }


def analyze_for_industry(
    resume_text: str,
    job_description: str,
    industry: str,
    country: str | None = None,
) -> dict[str, Any]:
    system_prompt = (
        f"You are an expert resume analyst specializing in the {industry} industry. "
        f"Analyze this resume against the job description with specific insights for the {industry} sector."
        f"{_country_context(country)}\n"
        'Respond in JSON format with: {"industryFit": number (0-100), "industryCriticalKeywords": string[], '
        '"missingIndustryKeywords": string[], "industryTrendsToHighlight": string[], '
        '"industryCertificationsToAdd": string[]}'
    )
    user_prompt = (
        f"Analyze this resume for the {industry} industry against this job description:\n\n"
        f"RESUME:\n{truncate_resume_text(resume_text)}\n\nJOB DESCRIPTION:\n{job_description}"
    )
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=0.3,
        tool_slug="industry_analysis",
    )
    payload = payload if isinstance(payload, dict) else {}
    return {
        "industryFit": clamp_score(payload.get("industryFit")),
        "industryCriticalKeywords": clean_strings(payload.get("industryCriticalKeywords"), 15),
        "missingIndustryKeywords": clean_strings(payload.get("missingIndustryKeywords"), 15),
        "industryTrendsToHighlight": clean_strings(payload.get("industryTrendsToHighlight"), 10),
        "industryCertificationsToAdd": clean_strings(payload.get("industryCertificationsToAdd"), 10),
    }


def optimize_for_experience_level(
    resume_text: str,
    job_description: str,
    experience_level: str,
    country: str | None = None,
) -> dict[str, Any]:
    system_prompt = (
        f"You are an expert resume consultant specializing in {experience_level}-level positions. "
        "Analyze this resume against the job description and provide targeted advice for a "
        f"{experience_level}-level candidate.{_country_context(country)}\n"
        'Respond in JSON format with: {"levelAppropriatenessScore": number (0-100), '
        '"contentRecommendations": string[], "skillEmphasisSuggestions": string[], '
        '"experienceHighlightTips": string[], "careerProgressionAdvice": string[]}'
    )
    user_prompt = (
        f"Analyze this {experience_level}-level resume against this job description:\n\n"
        f"RESUME:\n{truncate_resume_text(resume_text)}\n\nJOB DESCRIPTION:\n{job_description}"
    )
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=0.3,
        tool_slug="experience_level",
    )
    payload = payload if isinstance(payload, dict) else {}
    return {
        "levelAppropriatenessScore": clamp_score(payload.get("levelAppropriatenessScore")),
        "contentRecommendations": clean_strings(payload.get("contentRecommendations"), 10),
        "skillEmphasisSuggestions": clean_strings(payload.get("skillEmphasisSuggestions"), 10),
        "experienceHighlightTips": clean_strings(payload.get("experienceHighlightTips"), 10),
        "careerProgressionAdvice": clean_strings(payload.get("careerProgressionAdvice"), 10),
    }


def generate_interview_questions(
    resume_text: str,
    job_description: str,
    country: str | None = None,
) -> list[str]:
    system_prompt = (
        "You are an expert interviewer and recruiter. Based on this resume and job description, "
        "generate 10 likely interview questions the candidate will face, focusing on potential gaps, "
        "required skills, and experience validation. Include both technical and behavioral questions."
        f"{_country_context(country)}\n"
        'Respond with a JSON object {"questions": string[]}, each entry containing one interview question.'
    )
    user_prompt = (
        "Generate interview questions based on this resume and job description:\n\n"
        f"RESUME:\n{truncate_resume_text(resume_text)}\n\nJOB DESCRIPTION:\n{job_description}"
    )
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=0.7,
        tool_slug="interview_questions",
    )
    return clean_strings(coerce_list(payload, "questions"), 10)


def generate_cover_letter(
    resume_text: str,
    job_description: str,
    company_name: str | None = None,
    country: str | None = None,
) -> str:
    company = company_name or "the company"
    system_prompt = (
        "You are an expert cover letter writer. Create a compelling, personalized cover letter "
        "for this candidate based on their resume and the job description."
    )
    if _is_india(country):
        system_prompt += " You are familiar with Indian business communication styles and employer expectations in India."
    system_prompt += (
        " The cover letter should be professional, highlight relevant skills and experiences, and explain "
        "why the candidate is a great fit for the role. Keep it to one page (300-400 words)."
    )
    if _is_india(country):
        system_prompt += _INDIA_COVER_LETTER_CONTEXT

    location = f" in {country}" if country else ""
    user_prompt = (
        f"Create a cover letter for a position at {company}{location} based on this resume and job description:"
        f"\n\nRESUME:\n{truncate_resume_text(resume_text)}\n\nJOB DESCRIPTION:\n{job_description}"
    )
    return text_completion(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=0.7,
        max_output_tokens=900,
        tool_slug="cover_letter",
    )


def _positive_number(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0:
        return None
    return number


def predict_salary_range(
    job_description: str,
    location: str | None = None,
    country: str | None = None,
) -> dict[str, Any] | None:
    system_prompt = "You are an expert in compensation analysis. Based on the job description"
    if location:
        system_prompt += f" and location ({location})"
    if country:
        system_prompt += f" in {country}"
    system_prompt += (
        ", estimate a realistic salary range for this position. Consider factors like required skills, "
        "experience level, industry standards, and geographic location."
    )
    if _is_india(country):
        system_prompt += _INDIA_SALARY_CONTEXT
    system_prompt += (
        ' Respond in JSON format with: {"min": number, "max": number, '
        '"currency": "USD" or "INR" or appropriate currency code, "period": "yearly" or "hourly" or "monthly"}'
    )

    where = f" in {location}" if location else ""
    if country:
        where += f" ({country})"
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=f"Estimate salary range for this position{where}:\n\n{job_description}",
        temperature=0.3,
        max_output_tokens=300,
        tool_slug="salary_prediction",
    )
    if not isinstance(payload, dict):
        return None

    low = _positive_number(payload.get("min"))
    high = _positive_number(payload.get("max"))
    if low is None or high is None:
        return None
    if low > high:
        low, high = high, low

    default_currency = "INR" if _is_india(country) else "USD"
    currency = str(payload.get("currency") or default_currency).strip().upper()[:8] or default_currency
    period = str(payload.get("period") or "yearly").strip().lower()
    return {
        "min": low,
        "max": high,
        "currency": currency,
        "period": period if period in SALARY_PERIODS else "yearly",
    }


def suggest_career_path(resume_text: str, current_role: str, country: str | None = None) -> dict[str, Any]:
    system_prompt = (
        "You are a career development expert. Based on this resume and current role, suggest potential "
        "career paths and next steps, including skills to develop and potential future roles."
        f"{_country_context(country)}\n"
        'Respond in JSON format with: {"nextRoles": string[], "skillsToAcquire": string[], '
        '"certificationsSuggestions": string[], "timelineEstimate": string, "industryTrends": string[]}'
    )
    payload = json_completion(
        system_prompt=system_prompt,
        user_prompt=(
            "Suggest career path options based on this resume for someone currently in the role of "
            f"{current_role}:\n\n{truncate_resume_text(resume_text)}"
        ),
        temperature=0.5,
        tool_slug="career_path",
    )
    if not isinstance(payload, dict) or not payload:
        return {}
    return {
        "nextRoles": clean_strings(payload.get("nextRoles"), 10),
        "skillsToAcquire": clean_strings(payload.get("skillsToAcquire"), 10),
        "certificationsSuggestions": clean_strings(payload.get("certificationsSuggestions"), 10),
        "timelineEstimate": str(payload.get("timelineEstimate") or ""),
        "industryTrends": clean_strings(payload.get("industryTrends"), 10),
    }
