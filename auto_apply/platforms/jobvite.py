"""Jobvite scraper (``jobs.jobvite.com/<company>/job/<id>``)."""

from __future__ import annotations

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper

__all__ = ["JobviteScraper"]


class JobviteScraper(BaseScraper):
    PLATFORM = Platform.JOBVITE

    TITLE_SELECTOR = ".jv-header h1, .jv-job-detail-name, h1.job-title"
    COMPANY_SELECTOR = ".jv-company-name, .company-name"
    DESCRIPTION_SELECTOR = ".jv-job-detail-description, .job-description"
    LOCATION_SELECTOR = ".jv-job-detail-location, .job-location"

    QUESTION_CONTAINER_SELECTOR = '.jv-question, [class*="custom-question"]'
    QUESTION_LABEL_SELECTOR = "label, .question-text"
    QUESTION_ID_PREFIX = "jobvite_q"

    APPLY_BUTTON_SELECTORS = (
        "a.jv-button-apply",
        'a:has-text("Apply")',
        'button:has-text("Apply")',
    )

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(".jv-page-body, .jv-job-detail")
