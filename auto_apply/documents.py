"""Tailored resume and cover-letter generation.

Each document is one ``generate_text`` call; the output is markdown and
is written to disk as-is for upload.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from auto_apply.models import GeneratedDocuments, JobData, Profile
from auto_apply.question_answerer import TextGenerator

logger = logging.getLogger(__name__)

__all__ = ["DocumentGenerator", "save_documents"]

_RESUME_SYSTEM_PROMPT = (
    "You write clean, single-column, ATS-friendly resumes in markdown. "
    "Order: name and contact line, skills, experience (most relevant "
    "first, 3-4 quantified bullets per role), education. Mirror the job's "
    "requirements in the skills line and stay truthful to the profile."
)

_COVER_LETTER_SYSTEM_PROMPT = (
    "You write short, warm, human cover letters of 3-4 paragraphs. Avoid "
    "stiff openings and skill lists. If the candidate supplied their own "
    "cover letter, keep its voice and adapt it to this role."
)


def _profile_block(profile: Profile) -> str:
    contact = " | ".join(
        v for v in (
            profile.email,
            profile.phone,
            profile.location,
            profile.linkedin_url,
            profile.github_url,
            profile.portfolio_url,
        ) if v
    )
    roles = []
    for e in profile.experience:
        bullets = "\n".join(f"- {h}" for h in e.highlights)
        roles.append(
            f"**{e.title}** at {e.company} ({e.start_date} - {e.end_date or 'Present'})\n"
            f"{e.description or ''}\n{bullets}".strip()
        )
    schools = [
        f"{ed.degree}{' in ' + ed.field_of_study if ed.field_of_study else ''} - {ed.institution}"
        for ed in profile.education
    ]
    return (
        f"**Name:** {profile.name}\n{contact}\n\n"
        f"### Skills\n{', '.join(profile.skills)}\n\n"
        f"### Experience\n" + "\n\n".join(roles) + "\n\n"
        f"### Education\n" + "\n".join(schools)
    )


def _job_block(job: JobData) -> str:
    return (
        f"**Position:** {job.title}\n**Company:** {job.company}\n"
        f"{'**Location:** ' + job.location if job.location else ''}\n\n"
        f"### Description\n{job.description}\n\n"
        "### Requirements\n" + "\n".join(f"- {r}" for r in job.requirements) + "\n\n"
        "### Qualifications\n" + "\n".join(f"- {q}" for q in job.qualifications)
    )


class DocumentGenerator:
    def __init__(self, llm: TextGenerator) -> None:
        self.llm = llm

    async def tailor_resume(self, profile: Profile, job: JobData) -> str:
        prompt = (
            "Tailor this candidate's resume for the job posting below.\n\n"
            f"## Candidate Profile\n{_profile_block(profile)}\n\n"
            + (f"### Base Resume\n{profile.base_resume}\n\n" if profile.base_resume else "")
            + f"---\n\n## Job Posting\n{_job_block(job)}"
        )
        return await self.llm.generate_text(prompt, _RESUME_SYSTEM_PROMPT)

    async def generate_cover_letter(self, profile: Profile, job: JobData) -> str:
        prompt = (
            "Write a cover letter for this application.\n\n"
            f"## Candidate Profile\n{_profile_block(profile)}\n\n"
            + (
                f"### Candidate's Existing Cover Letter\n{profile.base_cover_letter}\n\n"
                if profile.base_cover_letter
                else ""
            )
            + f"---\n\n## Job Posting\n{_job_block(job)}"
        )
        return await self.llm.generate_text(prompt, _COVER_LETTER_SYSTEM_PROMPT)

    async def generate(self, profile: Profile, job: JobData) -> GeneratedDocuments:
        resume = await self.tailor_resume(profile, job)
        logger.info("Resume generated for %s at %s", job.title, job.company)
        cover_letter = await self.generate_cover_letter(profile, job)
        logger.info("Cover letter generated for %s at %s", job.title, job.company)
        return GeneratedDocuments(resume=resume, cover_letter=cover_letter)


def save_documents(
    prefix: Union[int, str],
    documents: GeneratedDocuments,
    documents_dir: Union[str, Path],
) -> tuple[Optional[str], Optional[str]]:
    """Write the non-empty documents as markdown files.

    Returns:
        ``(resume_path, cover_letter_path)``; ``None`` for an empty document.
    """
    safe_prefix = re.sub(r"[^\w.-]+", "_", str(prefix)).strip("_") or "application"
    os.makedirs(documents_dir, exist_ok=True)

    paths: list[Optional[str]] = []
    for suffix, text in (("resume", documents.resume), ("cover_letter", documents.cover_letter)):
        if not text:
            paths.append(None)
            continue
        path = Path(documents_dir) / f"{safe_prefix}_{suffix}.md"
        path.write_text(text, encoding="utf-8")
        paths.append(str(path))
    logger.debug("Saved documents for %s to %s", safe_prefix, documents_dir)
    return paths[0], paths[1]
