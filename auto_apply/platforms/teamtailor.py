"""Teamtailor scraper (``<company>.teamtailor.com/jobs/<id>``)."""

from __future__ import annotations

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper

__all__ = ["TeamtailorScraper"]


class TeamtailorScraper(BaseScraper):
    PLATFORM = Platform.TEAMTAILOR

    TITLE_SELECTOR = 'h1[class*="title"], .job-header h1, .careersite-job__title'
    COMPANY_SELECTOR = ""
    DESCRIPTION_SELECTOR = (
        '.job-ad__content, .careersite-job__content, [class*="job-description"]'
    )
    DESCRIPTION_JOINS_ALL = True
    LOCATION_SELECTOR = '[class*="location"], .job-header__location'
    JOB_TYPE_SELECTOR = '[class*="employment-type"]'

    QUESTION_CONTAINER_SELECTOR = (
        '.application-form__question, [class*="custom-question"], [class*="form-group"]'
    )
    QUESTION_LABEL_SELECTOR = "label, .question-label"
    QUESTION_ID_PREFIX = "teamtailor_q"

    async def wait_for_content(self) -> None:
        await self._wait_for_selector('.job-ad, .careersite-job, [class*="job-page"]')
