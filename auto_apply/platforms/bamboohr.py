"""BambooHR scraper (``<company>.bamboohr.com/careers/<id>``).

BambooHR careers pages are a client-rendered app with generated class
names, so extraction goes straight to the AI pass over the page text.
The form validates only on submit; the shared submit / repair / submit
sequence in :class:`BaseScraper` covers it.
"""

from __future__ import annotations

import logging

from auto_apply.models import JobData, Platform
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions

logger = logging.getLogger(__name__)

__all__ = ["BambooHRScraper"]


class BambooHRScraper(BaseScraper):
    PLATFORM = Platform.BAMBOOHR

    QUESTION_CONTAINER_SELECTOR = '[class*="question"], [class*="custom-field"], .field-group'
    QUESTION_LABEL_SELECTOR = "label, [class*='label']"
    QUESTION_ID_PREFIX = "bamboohr_q"

    APPLY_BUTTON_SELECTORS = (
        'button:has-text("Apply for this Job")',
        'a:has-text("Apply for this Job")',
        'button:has-text("Apply")',
    )
    FORM_SELECTORS = ('form, [class*="ApplicationForm"], #applicationForm',)
    SUBMIT_SELECTORS = (
        'button[type="submit"]',
        'button:has-text("Submit Application")',
        'button:has-text("Submit")',
    )

    async def wait_for_content(self) -> None:
        await self._wait_for_selector('[class*="JobDetails"], [class*="jobDetails"], h2, .fab-Page')
        await self.page.wait_for_timeout(2000)

    async def extract_job_data(self, url: str) -> JobData:
        job = await self.extract_ai_first(url)
        if not job.has_title:
            fallback = await self.extract_text("h2")
            if fallback:
                job.title = fallback
        return job

    async def fill_platform_fields(self, options: SubmitOptions) -> None:
        profile = options.profile
        await self._fill_selector('input[name*="firstName"]', profile.first_name)
        await self._fill_selector('input[name*="lastName"]', profile.last_name)
        await self._fill_selector('input[name*="email"]', profile.email)
        await self._fill_selector('input[name*="phone"]', profile.phone)
        await self._fill_selector('input[name*="linkedin" i]', profile.linkedin_url)
        await self._fill_selector('input[name*="website" i]', profile.portfolio_url)
        salary = profile.preferences.min_salary
        if salary:
            await self._fill_selector('input[name*="desiredPay" i]', str(salary))
