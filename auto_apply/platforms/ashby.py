"""Ashby scraper (``jobs.ashbyhq.com/<company>/<id>``).

Ashby exposes ``data-testid`` hooks on the posting; the application
lives on the same page under an "Application" tab.
"""

from __future__ import annotations

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper

__all__ = ["AshbyScraper"]


class AshbyScraper(BaseScraper):
    PLATFORM = Platform.ASHBY

    TITLE_SELECTOR = '[data-testid="job-post-title"], .ashby-job-posting-heading, h1'
    COMPANY_SELECTOR = '[data-testid="company-name"], .ashby-company-name'
    DESCRIPTION_SELECTOR = (
        '[data-testid="job-post-description"], .ashby-job-posting-description'
    )
    LOCATION_SELECTOR = '[data-testid="job-post-location"], .ashby-job-posting-location'

    QUESTION_CONTAINER_SELECTOR = (
        '[data-testid*="question"], [class*="customQuestion"], .ashby-application-form-field'
    )
    QUESTION_LABEL_SELECTOR = "label"
    QUESTION_ID_PREFIX = "ashby_q"

    APPLY_BUTTON_SELECTORS = (
        'a:has-text("Application")',
        'button:has-text("Apply for this Job")',
        'a[href$="/application"]',
    )

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(
            '[data-testid="job-post-title"], .ashby-job-posting-heading, h1'
        )
