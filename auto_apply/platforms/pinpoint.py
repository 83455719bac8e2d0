"""Pinpoint scraper (``<company>.pinpointhq.com/postings/<id>``)."""

from __future__ import annotations

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper

__all__ = ["PinpointScraper"]


class PinpointScraper(BaseScraper):
    PLATFORM = Platform.PINPOINT

    TITLE_SELECTOR = 'h1.job-title, h1[class*="title"], .vacancy-title'
    # Company comes from the subdomain.
    COMPANY_SELECTOR = ""
    DESCRIPTION_SELECTOR = ".job-description, .job-content, .vacancy-description"
    LOCATION_SELECTOR = '.job-location, [class*="location"], .vacancy-location'

    QUESTION_CONTAINER_SELECTOR = '[class*="question"], [class*="custom-field"]'
    QUESTION_LABEL_SELECTOR = 'label, .question-text, [class*="label"]'
    QUESTION_ID_PREFIX = "pinpoint_q"

    async def wait_for_content(self) -> None:
        await self._wait_for_selector('.job-page, .job-content, [class*="vacancy"]')
