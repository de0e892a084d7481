from __future__ import annotations

from typing import Any, Iterable

from app.core.catalog import get_catalog_list, get_catalog_value


def _lower_strings(values: Iterable[Any] | None) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    return [value.lower() for value in values if isinstance(value, str) and value.strip()]


def experience_text(experience: list[dict[str, Any]] | None) -> str:
    parts: list[str] = []
    if not isinstance(experience, list):
        return ""
    for item in experience:
        if not isinstance(item, dict):
            continue
        for key in ("position", "company"):
            value = item.get(key)
            if isinstance(value, str) and value:
                parts.append(value.lower())
        parts.extend(_lower_strings(item.get("responsibilities")))
    return " ".join(parts)


def relevant_keywords(job_description: str, keywords: list[str]) -> list[str]:
    jd_lower = (job_description or "").lower()
    return [keyword for keyword in keywords if keyword in jd_lower]


def count_ats_keyword_matches(skills: list[str] | None, summary: str | None, job_description: str) -> int:
    """Count catalog keywords from the JD found in a skill, or failing that, in the summary."""
    keywords = relevant_keywords(job_description, get_catalog_list("ats.common_keywords"))
    skills_lower = _lower_strings(skills)
    summary_lower = (summary or "").lower()
    count = 0
    for keyword in keywords:
        if any(keyword in skill for skill in skills_lower) or keyword in summary_lower:
            count += 1
    return count


def keyword_match(content: dict[str, Any], job_description: str | None) -> dict[str, Any]:
    if not job_description:
        return {"matched": [], "missing": [], "matchPercentage": 0}

    skills_lower = _lower_strings(content.get("skills"))
    summary_lower = str(content.get("summary") or "").lower()
    exp_text = experience_text(content.get("experience"))

    matched: list[str] = []
    missing: list[str] = []
    for keyword in relevant_keywords(job_description, get_catalog_list("keyword_match.keywords")):
        in_skills = any(keyword in skill for skill in skills_lower)
        if in_skills or keyword in summary_lower or keyword in exp_text:
            matched.append(keyword)
        else:
            missing.append(keyword)

    limit = int(get_catalog_value("keyword_match.max_listed", 12) or 12)
    matched = matched[:limit]
    missing = missing[:limit]
    total = len(matched) + len(missing)
    percentage = round(len(matched) / total * 100) if total else 0
    return {"matched": matched, "missing": missing, "matchPercentage": percentage}


def industry_for_title(job_title: str) -> str:
    title = (job_title or "").lower()
    for rule in get_catalog_value("industry_keywords.title_rules", []) or []:
        if any(fragment in title for fragment in rule.get("fragments", [])):
            return str(rule["industry"])
    return str(get_catalog_value("industry_keywords.default", "it"))


def industry_keywords(job_title: str) -> dict[str, Any]:
    industry = industry_for_title(job_title)
    keywords = get_catalog_list(f"industry_keywords.lists.{industry}")
    limit = int(get_catalog_value("industry_keywords.max_returned", 10) or 10)
    return {"industry": industry, "keywords": keywords[:limit]}


def keyword_variations(keyword: str) -> list[str]:
    variations = get_catalog_value("keyword_suggestions.variations", {}) or {}
    return [str(item) for item in variations.get(keyword.lower(), [])]


def keyword_suggestions(job_title: str, missing_keywords: list[str] | None) -> list[str]:
    title = (job_title or "").lower()
    suggestions: list[str] = []
    roles = get_catalog_value("keyword_suggestions.roles", {}) or {}
    for role, keywords in roles.items():
        if role.lower() in title:
            suggestions.extend(str(keyword) for keyword in keywords)
    for keyword in missing_keywords or []:
        if isinstance(keyword, str):
            suggestions.extend(keyword_variations(keyword))

    limit = int(get_catalog_value("keyword_suggestions.max_returned", 10) or 10)
    return list(dict.fromkeys(suggestions))[:limit]
