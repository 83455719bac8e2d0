"""Fallback scraper for any URL no specific platform claims.

Extraction is best-effort: the page text goes to the AI pass, and the
heuristics (first ``h1``, page title, hostname) cover a missing or
failing collaborator.  Submission uses the shared flow unchanged.
"""

from __future__ import annotations

import logging

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from auto_apply.models import JobData, Platform
from auto_apply.platforms.base_platform import BaseScraper

logger = logging.getLogger(__name__)

__all__ = ["GenericScraper"]


class GenericScraper(BaseScraper):
    PLATFORM = Platform.GENERIC

    QUESTION_CONTAINER_SELECTOR = '[class*="question"], [class*="custom-field"], .field-group'
    QUESTION_ID_PREFIX = "generic_q"

    APPLY_BUTTON_SELECTORS = (
        'a:has-text("Apply")',
        'button:has-text("Apply")',
        '[class*="apply"]',
        'a[href*="apply"]',
    )
    FORM_SELECTORS = ('form, [class*="application"]',)

    async def wait_for_content(self) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.CONTENT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            self.logger.debug("Network never settled; extracting what rendered")

    async def extract_job_data(self, url: str) -> JobData:
        return await self.extract_ai_first(url)
