"""Fit scoring: a 0-100 estimate of how well a candidate matches a job."""

from __future__ import annotations

import logging

from auto_apply.description_parser import parse_json_reply
from auto_apply.models import JobData, JobFitResult, Profile
from auto_apply.question_answerer import TextGenerator

logger = logging.getLogger(__name__)

__all__ = ["RECOMMENDATIONS", "evaluate_job_fit", "recommendation_for", "parse_fit_reply"]

RECOMMENDATIONS: tuple[str, ...] = ("strong", "good", "stretch", "skip")
DEFAULT_SCORE: int = 50

_FIT_SYSTEM_PROMPT = (
    "You evaluate how well a candidate matches a job posting. Return ONLY "
    "valid JSON, no markdown fences, with the keys: score (0-100), "
    "reasoning (1-2 sentences), strongMatches (list), missingSkills (list), "
    'recommendation ("strong" | "good" | "stretch" | "skip"). '
    "80-100 strong, 60-79 good, 40-59 stretch, below 40 skip."
)


def recommendation_for(score: int) -> str:
    if score >= 80:
        return "strong"
    if score >= 60:
        return "good"
    if score >= 40:
        return "stretch"
    return "skip"


def parse_fit_reply(reply: str) -> JobFitResult:
    """Turn an LLM fit reply into a :class:`JobFitResult`.

    The score is clamped to 0..100; a missing, zero or non-numeric score
    becomes 50.  An unknown recommendation is derived from the score.
    An unparseable reply yields ``score=50, recommendation="good"``.
    """
    parsed = parse_json_reply(reply, expect=dict)
    if parsed is None:
        return JobFitResult(score=DEFAULT_SCORE, reasoning="Could not evaluate fit")

    try:
        raw_score = int(float(parsed.get("score") or 0))
    except (TypeError, ValueError):
        raw_score = 0
    score = min(100, max(0, raw_score or DEFAULT_SCORE))

    recommendation = str(parsed.get("recommendation", "")).lower()
    if recommendation not in RECOMMENDATIONS:
        recommendation = recommendation_for(score)

    def _strings(key: str) -> tuple[str, ...]:
        value = parsed.get(key)
        return tuple(str(v) for v in value) if isinstance(value, list) else ()

    return JobFitResult(
        score=score,
        reasoning=str(parsed.get("reasoning") or ""),
        strong_matches=_strings("strongMatches"),
        missing_skills=_strings("missingSkills"),
        recommendation=recommendation,
    )


async def evaluate_job_fit(llm: TextGenerator, profile: Profile, job: JobData) -> JobFitResult:
    """Ask the LLM to score ``profile`` against ``job``."""
    experience = "; ".join(
        f"{e.title} at {e.company} ({e.start_date} - {e.end_date or 'Present'})"
        for e in profile.experience[:3]
    )
    education = "; ".join(
        f"{e.degree}{' in ' + e.field_of_study if e.field_of_study else ''} - {e.institution}"
        for e in profile.education
    )
    prompt = (
        "Evaluate this candidate's fit for the role.\n\n"
        f"## Candidate\nSkills: {', '.join(profile.skills)}\n"
        f"Experience: {experience}\nEducation: {education}\n\n"
        f"## Job\nTitle: {job.title}\nCompany: {job.company}\n"
        f"Description: {job.description[:2000]}\n"
        f"Requirements: {'; '.join(job.requirements[:10])}\n"
        f"Qualifications: {'; '.join(job.qualifications[:10])}"
    )
    result = parse_fit_reply(await llm.generate_text(prompt, _FIT_SYSTEM_PROMPT))
    logger.info(
        "Fit for %s at %s: %d (%s)", job.title, job.company, result.score, result.recommendation
    )
    return result
