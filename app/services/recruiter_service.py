from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from pydantic import ValidationError

from app.core.catalog import get_catalog_list
from app.schemas.recruiter import BulkCandidate, BulkMatchFilters, DetailedAnalysis, ResumeMatchAnalysis
from app.services.analysis_service import clamp_score, clean_strings, truncate_resume_text
from app.services.errors import ServiceError
from app.services.keyword_service import relevant_keywords
from app.services.llm import LLMError, json_completion, llm_enabled
from app.services.template_service import create_template

logger = logging.getLogger(__name__)

MIN_JD_CHARS = 50
MIN_RESUME_CHARS = 100

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z0-9+#.\-/]{1,}")
_YEARS_RE = re.compile(r"(\d{1,2})\s*\+?\s*(?:years?|yrs?)", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_DEGREE_TERMS = ("bachelor", "master", "phd", "b.sc", "m.sc", "b.tech", "m.tech", "mba", "degree", "diploma")
_SECTION_TERMS = ("experience", "education", "skills", "summary", "projects")
_STOPWORDS = {
    "the", "and", "for", "with", "from", "into", "that", "this", "your", "have", "has", "had",
    "are", "was", "were", "will", "can", "not", "you", "our", "their", "job", "role", "resume",
    "who", "what", "they", "them", "work", "team", "about", "also", "must", "should", "able",
    "including", "across", "within", "strong", "good", "years", "year", "experience",
}

_MATCH_SYSTEM_PROMPT = (
    "You are an expert ATS system and recruiter. Analyze resumes objectively and provide detailed "
    "matching scores. Return strict JSON only."
)

_MATCH_JSON_SHAPE = """{
  "overallScore": (0-100 integer score),
  "keywordMatches": ["matched keyword"],
  "missingKeywords": ["missing keyword"],
  "skillsMatch": ["matched skill"],
  "missingSkills": ["missing skill"],
  "experienceMatch": (boolean),
  "experienceGap": "description of experience gap or match",
  "strengths": ["strength"],
  "weaknesses": ["weakness"],
  "recommendations": ["recommendation"],
  "atsScore": (0-100 integer ATS compatibility score),
  "detailedAnalysis": {"technicalSkills": (0-100), "experience": (0-100), "education": (0-100), "keywords": (0-100)}
}"""

_BULK_SYSTEM_PROMPT = (
    "You are an expert recruiter and ATS system. Extract accurate information and provide honest assessments. "
    "Return strict JSON only."
)

_BULK_JSON_SHAPE = """{
  "candidateName": "extracted name or 'Not Found'",
  "email": "extracted email or 'Not Found'",
  "phone": "extracted phone or 'Not Found'",
  "location": "extracted location or 'Not Found'",
  "experience": "X years or 'Not specified'",
  "currentRole": "current job title or 'Not Found'",
  "skills": ["skill"],
  "education": "highest degree or 'Not Found'",
  "overallScore": (0-100 integer),
  "keywordMatches": ["matched keyword"],
  "missingSkills": ["missing skill"],
  "strengths": ["strength"],
  "weaknesses": ["weakness"],
  "atsScore": (0-100 integer),
  "recommendation": "HIRE" or "MAYBE" or "REJECT",
  "reasonForRecommendation": "brief explanation for the recommendation"
}"""


def _tokenize(text: str) -> list[str]:
    return [token.lower().strip(".-/") for token in _WORD_RE.findall(text or "")]


def _top_terms(text: str, limit: int = 25) -> list[str]:
    tokens = [token for token in _tokenize(text) if len(token) > 2 and token not in _STOPWORDS]
    counts = Counter(tokens)
    return [term for term, _ in counts.most_common(limit)]


def _max_years(text: str) -> int | None:
    values = [int(match) for match in _YEARS_RE.findall(text or "")]
    return max(values) if values else None


def _percent(part: int, whole: int, default: int = 50) -> int:
    if whole <= 0:
        return default
    return round(part / whole * 100)


def validate_match_inputs(job_description: str | None, resume_text: str | None) -> tuple[str, str]:
    jd = (job_description or "").strip()
    resume = (resume_text or "").strip()
    if len(jd) < MIN_JD_CHARS:
        raise ServiceError(f"Job description must be at least {MIN_JD_CHARS} characters", status_code=400)
    if len(resume) < MIN_RESUME_CHARS:
        raise ServiceError(f"Resume text must be at least {MIN_RESUME_CHARS} characters", status_code=422)
    return jd, resume


def _keyword_overlap_match(job_description: str, resume_text: str) -> ResumeMatchAnalysis:
    resume_lower = resume_text.lower()
    resume_terms = set(_top_terms(resume_text, limit=400))

    jd_terms = _top_terms(job_description, limit=30)
    keyword_matches = [term for term in jd_terms if term in resume_terms]
    missing_keywords = [term for term in jd_terms if term not in resume_terms]

    skills = relevant_keywords(job_description, get_catalog_list("keyword_match.keywords"))
    skills_match = [skill for skill in skills if skill in resume_lower]
    missing_skills = [skill for skill in skills if skill not in resume_lower]

    required_years = _max_years(job_description)
    candidate_years = _max_years(resume_text)
    if required_years is None:
        experience_match = True
        experience_gap = "The job description does not state a minimum number of years."
        experience_score = 70
    elif candidate_years is None:
        experience_match = False
        experience_gap = f"The role asks for {required_years}+ years; the resume does not state years of experience."
        experience_score = 40
    else:
        experience_match = candidate_years >= required_years
        experience_gap = (
            f"Resume shows {candidate_years} years against {required_years}+ required."
            if experience_match
            else f"Resume shows {candidate_years} years; the role asks for {required_years}+."
        )
        experience_score = min(100, _percent(candidate_years, required_years))

    education_score = 80 if any(term in resume_lower for term in _DEGREE_TERMS) else 40
    keyword_score = _percent(len(keyword_matches), len(jd_terms))
    technical_score = _percent(len(skills_match), len(skills), default=keyword_score)
    overall = round(0.4 * technical_score + 0.3 * keyword_score + 0.2 * experience_score + 0.1 * education_score)
    sections = sum(1 for term in _SECTION_TERMS if term in resume_lower)
    ats_score = round(0.6 * keyword_score + 0.4 * _percent(sections, len(_SECTION_TERMS)))

    strengths = []
    if skills_match:
        strengths.append(f"Covers {len(skills_match)} of {len(skills)} skills named in the job description.")
    if experience_match and required_years is not None:
        strengths.append("Meets the stated experience requirement.")
    if education_score >= 80:
        strengths.append("Lists a formal degree or diploma.")
    weaknesses = []
    if missing_skills:
        weaknesses.append(f"Missing skills: {', '.join(missing_skills[:5])}.")
    if not experience_match:
        weaknesses.append(experience_gap)
    recommendations = [f"Check hands-on depth with {skill} during screening." for skill in missing_skills[:3]]
    if sections < 3:
        recommendations.append("Ask for a resume with clear experience, education and skills sections.")

    return ResumeMatchAnalysis(
        overall_score=clamp_score(overall, default=0),
        keyword_matches=keyword_matches[:15],
        missing_keywords=missing_keywords[:15],
        skills_match=skills_match[:15],
        missing_skills=missing_skills[:15],
        experience_match=experience_match,
        experience_gap=experience_gap,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        ats_score=clamp_score(ats_score, default=0),
        detailed_analysis=DetailedAnalysis(
            technical_skills=clamp_score(technical_score, default=0),
            experience=clamp_score(experience_score, default=0),
            education=clamp_score(education_score, default=0),
            keywords=clamp_score(keyword_score, default=0),
        ),
        source="keyword_overlap",
    )


def _analysis_from_llm(payload: dict[str, Any]) -> ResumeMatchAnalysis:
    detailed = payload.get("detailedAnalysis") if isinstance(payload.get("detailedAnalysis"), dict) else {}
    return ResumeMatchAnalysis(
        overall_score=clamp_score(payload.get("overallScore")),
        keyword_matches=clean_strings(payload.get("keywordMatches"), 20),
        missing_keywords=clean_strings(payload.get("missingKeywords"), 20),
        skills_match=clean_strings(payload.get("skillsMatch"), 20),
        missing_skills=clean_strings(payload.get("missingSkills"), 20),
        experience_match=bool(payload.get("experienceMatch")),
        experience_gap=str(payload.get("experienceGap") or ""),
        strengths=clean_strings(payload.get("strengths"), 10),
        weaknesses=clean_strings(payload.get("weaknesses"), 10),
        recommendations=clean_strings(payload.get("recommendations"), 10),
        ats_score=clamp_score(payload.get("atsScore")),
        detailed_analysis=DetailedAnalysis(
            technical_skills=clamp_score(detailed.get("technicalSkills")),
            experience=clamp_score(detailed.get("experience")),
            education=clamp_score(detailed.get("education")),
            keywords=clamp_score(detailed.get("keywords")),
        ),
        source="ai",
    )


def match_resume(job_description: str | None, resume_text: str | None) -> ResumeMatchAnalysis:
    jd, resume = validate_match_inputs(job_description, resume_text)
    payload = json_completion(
        system_prompt=_MATCH_SYSTEM_PROMPT,
        user_prompt=(
            "As an expert ATS system and recruiter, analyze how well this resume matches the job description.\n\n"
            f"Job Description:\n{jd[:9000]}\n\nResume:\n{truncate_resume_text(resume)}\n\n"
            f"Provide a detailed analysis in the following JSON format:\n{_MATCH_JSON_SHAPE}\n\n"
            "Focus on technical skills, years of experience, education requirements, and keyword matching."
        ),
        temperature=0.3,
        max_output_tokens=1500,
        tool_slug="recruiter_resume_match",
    )
    if not isinstance(payload, dict):
        return _keyword_overlap_match(jd, resume)
    try:
        return _analysis_from_llm(payload)
    except ValidationError:
        logger.warning("resume_match_invalid_llm_payload")
        return _keyword_overlap_match(jd, resume)


def _filters_prompt(filters: BulkMatchFilters) -> str:
    return (
        "Filters to consider:\n"
        f"- Minimum Experience: {filters.min_experience if filters.min_experience is not None else 'Any'}\n"
        f"- Maximum Experience: {filters.max_experience if filters.max_experience is not None else 'Any'}\n"
        f"- Required Skills: {', '.join(filters.required_skills) or 'None specified'}\n"
        f"- Location: {filters.location or 'Any'}\n"
        f"- Education: {filters.education or 'Any'}\n"
        f"- Minimum Score Required: {filters.min_score}"
    )


def analyze_bulk_resume(
    job_description: str,
    resume_text: str,
    file_name: str,
    file_size: int,
    filters: BulkMatchFilters,
) -> BulkCandidate:
    payload = json_completion(
        system_prompt=_BULK_SYSTEM_PROMPT,
        user_prompt=(
            "As an expert recruiter and ATS system, analyze this resume against the job description.\n\n"
            f"Job Description:\n{job_description[:9000]}\n\nResume Content:\n{truncate_resume_text(resume_text)}\n\n"
            f"{_filters_prompt(filters)}\n\n"
            f"Extract information and provide analysis in this exact JSON format:\n{_BULK_JSON_SHAPE}\n"
            "Be accurate in extracting personal information and provide honest scoring."
        ),
        temperature=0.2,
        max_output_tokens=1200,
        tool_slug="recruiter_bulk_match",
    )
    if not isinstance(payload, dict):
        raise LLMError(f"Failed to analyze {file_name}", code="llm_invalid")

    def text(key: str, default: str) -> str:
        value = payload.get(key)
        return str(value).strip() if isinstance(value, (str, int, float)) and str(value).strip() else default

    return BulkCandidate(
        file_name=file_name,
        file_size=file_size,
        candidate_name=text("candidateName", "Not Found"),
        email=text("email", "Not Found"),
        phone=text("phone", "Not Found"),
        location=text("location", "Not Found"),
        experience=text("experience", "Not specified"),
        current_role=text("currentRole", "Not Found"),
        skills=clean_strings(payload.get("skills"), 40),
        education=text("education", "Not Found"),
        overall_score=clamp_score(payload.get("overallScore")),
        keyword_matches=clean_strings(payload.get("keywordMatches"), 20),
        missing_skills=clean_strings(payload.get("missingSkills"), 20),
        strengths=clean_strings(payload.get("strengths"), 10),
        weaknesses=clean_strings(payload.get("weaknesses"), 10),
        ats_score=clamp_score(payload.get("atsScore")),
        recommendation=payload.get("recommendation"),
        reason_for_recommendation=text("reasonForRecommendation", ""),
    )


def _experience_years(candidate: BulkCandidate) -> float | None:
    match = _LEADING_NUMBER_RE.search(candidate.experience)
    return float(match.group(0)) if match else None


def apply_bulk_filters(candidates: list[BulkCandidate], filters: BulkMatchFilters) -> list[BulkCandidate]:
    kept: list[BulkCandidate] = []
    required = {skill.strip().lower() for skill in filters.required_skills if skill.strip()}
    for candidate in candidates:
        if candidate.overall_score < filters.min_score:
            continue
        years = _experience_years(candidate)
        if filters.min_experience is not None and (years is None or years < filters.min_experience):
            continue
        if filters.max_experience is not None and (years is None or years > filters.max_experience):
            continue
        if filters.location and filters.location.lower() not in candidate.location.lower():
            continue
        if required and not required.intersection(skill.lower() for skill in candidate.skills):
            continue
        kept.append(candidate)
    kept.sort(key=lambda item: item.overall_score, reverse=True)
    return kept[: filters.max_candidates]


def bulk_match(
    job_description: str | None,
    resumes: list[tuple[str, str | None, int]],
    filters: BulkMatchFilters,
    rejected: list[tuple[str, str]] | None = None,
) -> dict[str, Any]:
    """Analyse each (file name, extracted text or None, size) entry; failures land in ``errors``.

    ``rejected`` lists (file name, reason) for uploads refused before text extraction.
    ``totalProcessed`` counts every uploaded file, rejected ones included.
    """
    rejected = rejected or []
    jd = (job_description or "").strip()
    if len(jd) < MIN_JD_CHARS:
        raise ServiceError(f"Job description must be at least {MIN_JD_CHARS} characters", status_code=400)
    if not resumes and not rejected:
        raise ServiceError("Job description and resume files are required", status_code=400)
    if not llm_enabled():
        raise LLMError("Bulk matching requires AI analysis, which is not configured on this server.")

    analysed: list[BulkCandidate] = []
    errors = [f"Failed to process {file_name}: {reason}" for file_name, reason in rejected]
    for file_name, text, size in resumes:
        if not text:
            errors.append(f"Failed to process {file_name}: no readable text")
            continue
        try:
            analysed.append(analyze_bulk_resume(jd, text, file_name, size, filters))
        except LLMError as exc:
            logger.info("bulk_match_file_failed file=%s code=%s", file_name, exc.code)
            errors.append(f"Failed to process {file_name}: {exc}")

    results = apply_bulk_filters(analysed, filters)
    total = len(resumes) + len(rejected)
    logger.info("bulk_match_completed files=%s analysed=%s matched=%s errors=%s", total, len(analysed), len(results), len(errors))
    return {
        "success": True,
        "results": [candidate.model_dump(by_alias=True) for candidate in results],
        "totalProcessed": total,
        "totalMatched": len(results),
        "errors": errors,
        "summary": bulk_summary(results),
    }


def bulk_summary(results: list[BulkCandidate]) -> dict[str, int]:
    recommendations = Counter(candidate.recommendation for candidate in results)
    average = round(sum(candidate.overall_score for candidate in results) / len(results)) if results else 0
    return {
        "hireRecommended": recommendations["HIRE"],
        "maybeRecommended": recommendations["MAYBE"],
        "rejected": recommendations["REJECT"],
        "averageScore": average,
    }


def recruiter_upload(user: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    return create_template(
        user,
        {
            "companyName": payload.get("companyName"),
            "jobTitle": payload.get("jobTitle"),
            "resumeContent": payload.get("resumeContent"),
            "recruiterVerified": True,
            "isPublic": True,
        },
    )
