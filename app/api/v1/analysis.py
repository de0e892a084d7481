from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from app.api.v1.common import enforce_route_limit, raise_llm_unavailable, read_upload, require_feature, upload_text
from app.core.security import get_current_user
from app.schemas.analysis import (
    ATSCompatibilityRequest,
    CareerPathRequest,
    ExperienceLevelRequest,
    ExtractKeywordsRequest,
    ExtractResumeDataRequest,
    IndustryAnalysisRequest,
    InterviewQuestionsRequest,
    SalaryPredictionRequest,
)
from app.services import analysis_service, career_service, credits_service
from app.services.llm import LLMError
from app.services.subscription_service import increment_monthly_scans

logger = logging.getLogger(__name__)

router = APIRouter()

ANALYSIS_SERVICE = "resume_analysis"
ANALYSIS_COST = 1


def _missing_fields(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if value is None or (isinstance(value, str) and not value.strip())]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(missing)}",
        )


@router.post("/resumes/analyze")
async def analyze_resume(
    request: Request,
    resume: UploadFile | None = File(default=None),
    job_description: str | None = Form(default=None, alias="jobDescription"),
    company_name: str | None = Form(default=None, alias="companyName"),
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=10)
    credits_service.ensure_can_spend(user, ANALYSIS_SERVICE, ANALYSIS_COST)
    _missing_fields(resume=resume, jobDescription=job_description)

    filename, content = await read_upload(resume)
    try:
        analysis = analysis_service.analyze_resume_file(filename, content, job_description or "", company_name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if analysis.get("fallback"):
        return {**analysis, "creditsCharged": 0}

    remaining = credits_service.charge_for_service(user, ANALYSIS_SERVICE, ANALYSIS_COST)
    if not increment_monthly_scans(user["id"]):
        logger.info("monthly_scan_limit_reached user_id=%s", user["id"])
    return {**analysis, "creditsCharged": ANALYSIS_COST, "remainingCredits": remaining}


@router.post("/resumes/generate")
async def generate_resume(
    request: Request,
    resume: UploadFile | None = File(default=None),
    resume_text: str | None = Form(default=None, alias="resumeText"),
    job_description: str | None = Form(default=None, alias="jobDescription"),
    company_name: str | None = Form(default=None, alias="companyName"),
    template_id: str | None = Form(default=None, alias="templateId"),
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=10)
    _missing_fields(jobDescription=job_description, companyName=company_name, templateId=template_id)
    if resume is not None:
        source_text = await upload_text(resume)
    elif resume_text and resume_text.strip():
        source_text = resume_text.strip()
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields: resume")

    try:
        content = analysis_service.generate_resume_from_text(
            source_text,
            job_description or "",
            company_name or "",
            template_id or "professional",
        )
    except LLMError as exc:
        raise_llm_unavailable(exc)
    logger.info("resume_generated user_id=%s template=%s", user["id"], template_id)
    return {"success": True, "resume": content}


@router.post("/extract-keywords")
def extract_keywords(request: Request, payload: ExtractKeywordsRequest, user: dict[str, Any] = Depends(get_current_user)):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(jobDescription=payload.job_description)
    return analysis_service.extract_keywords(payload.job_description or "")


@router.post("/ai/extract-resume-data")
def extract_resume_data(
    request: Request,
    payload: ExtractResumeDataRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=10)
    _missing_fields(prompt=payload.prompt)
    try:
        data = analysis_service.extract_resume_data(payload.prompt or "", payload.job_title, payload.company)
    except LLMError as exc:
        raise_llm_unavailable(exc)
    return {"success": True, "resumeData": data}


@router.post("/resumes/ats-compatibility")
def ats_compatibility(
    request: Request,
    payload: ATSCompatibilityRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(resumeText=payload.resume_text, atsSystem=payload.ats_system)
    return career_service.check_ats_compatibility(payload.resume_text or "", payload.ats_system or "", payload.country)


@router.post("/resumes/industry-analysis")
def industry_analysis(
    request: Request,
    payload: IndustryAnalysisRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(resumeText=payload.resume_text, jobDescription=payload.job_description, industry=payload.industry)
    return career_service.analyze_for_industry(
        payload.resume_text or "",
        payload.job_description or "",
        payload.industry or "",
        payload.country,
    )


@router.post("/resumes/experience-level")
def experience_level(
    request: Request,
    payload: ExperienceLevelRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(
        resumeText=payload.resume_text,
        jobDescription=payload.job_description,
        experienceLevel=payload.experience_level,
    )
    return career_service.optimize_for_experience_level(
        payload.resume_text or "",
        payload.job_description or "",
        payload.experience_level or "",
        payload.country,
    )


@router.post("/resumes/interview-questions")
def interview_questions(
    request: Request,
    payload: InterviewQuestionsRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(resumeText=payload.resume_text, jobDescription=payload.job_description)
    questions = career_service.generate_interview_questions(
        payload.resume_text or "",
        payload.job_description or "",
        payload.country,
    )
    return {"success": True, "questions": questions}


@router.post("/resumes/cover-letter")
async def cover_letter(
    request: Request,
    file: UploadFile | None = File(default=None),
    resume_text: str | None = Form(default=None, alias="resumeText"),
    job_description: str | None = Form(default=None, alias="jobDescription"),
    company_name: str | None = Form(default=None, alias="companyName"),
    country: str | None = Form(default=None),
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=10)
    require_feature(user["id"], "cover_letter_generator")
    _missing_fields(jobDescription=job_description)
    if file is not None:
        source_text = await upload_text(file)
    elif resume_text and resume_text.strip():
        source_text = resume_text.strip()
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields: file")

    try:
        letter = career_service.generate_cover_letter(source_text, job_description or "", company_name, country)
    except LLMError as exc:
        raise_llm_unavailable(exc)
    return {"success": True, "coverLetter": letter}


@router.post("/resumes/salary-prediction")
def salary_prediction(
    request: Request,
    payload: SalaryPredictionRequest,
    user: dict[str, Any] = Depends(get_current_user),
):
    enforce_route_limit(request, user, limit=20)
    if not (payload.job_description or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing job description")
    salary = career_service.predict_salary_range(payload.job_description or "", payload.location, payload.country)
    return {"success": True, "salaryData": salary}


@router.post("/resumes/career-path")
def career_path(request: Request, payload: CareerPathRequest, user: dict[str, Any] = Depends(get_current_user)):
    enforce_route_limit(request, user, limit=20)
    _missing_fields(resumeText=payload.resume_text, currentRole=payload.current_role)
    return {
        "success": True,
        "careerPath": career_service.suggest_career_path(
            payload.resume_text or "",
            payload.current_role or "",
            payload.country,
        ),
    }
