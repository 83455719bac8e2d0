"""Lever scraper (``jobs.lever.co``).

Lever splits the posting (``/company/id``) from the form
(``/company/id/apply``) and asks for the full name in one input.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions

logger = logging.getLogger(__name__)

__all__ = ["LeverScraper", "ADDITIONAL_INFO_NOTE"]

ADDITIONAL_INFO_NOTE = (
    "Please see my attached cover letter for more details about my interest "
    "in this position."
)


class LeverScraper(BaseScraper):
    PLATFORM = Platform.LEVER

    TITLE_SELECTOR = ".posting-headline h2, h1.posting-title"
    COMPANY_SELECTOR = ".posting-headline .company, .main-header-content h1"
    DESCRIPTION_SELECTOR = ".posting-description, .section-wrapper"
    DESCRIPTION_JOINS_ALL = True
    LOCATION_SELECTOR = ".posting-categories .location, .sort-by-commitment"

    QUESTION_CONTAINER_SELECTOR = '.custom-question, .application-question, [class*="custom-field"]'
    QUESTION_LABEL_SELECTOR = "label, .question-label"
    QUESTION_ID_PREFIX = "lever_q"

    APPLY_BUTTON_SELECTORS = (
        "a.posting-btn-submit",
        'a[href*="apply"]',
        ".apply-button",
        'a:has-text("Apply for this job")',
        ".postings-btn-wrapper a",
    )
    FORM_SELECTORS = (
        ".application-form",
        "#application-form",
        'form[class*="application"]',
        ".posting-application",
    )
    SUBMIT_SELECTORS = (
        'button[type="submit"]',
        'button:has-text("Submit application")',
    )

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(".posting-headline, .content")

    async def fill_platform_fields(self, options: SubmitOptions) -> None:
        profile = options.profile
        await self._fill_selector('input[name="name"]', profile.name)
        await self._fill_selector('input[name="email"]', profile.email)
        await self._fill_selector('input[name="phone"]', profile.phone)
        if profile.experience:
            await self._fill_selector('input[name="org"]', profile.experience[0].company)

        await self._fill_selector('input[name="urls[LinkedIn]"]', profile.linkedin_url)
        await self._fill_selector('input[name="urls[GitHub]"]', profile.github_url)
        await self._fill_selector('input[name="urls[Portfolio]"]', profile.portfolio_url)

        if options.cover_letter_path:
            await self._fill_selector('textarea[name="comments"]', ADDITIONAL_INFO_NOTE)

    async def upload_documents(self, options: SubmitOptions) -> list[str]:
        if options.resume_path:
            for selector in ('input[type="file"][name="resume"]', '.resume-upload input[type="file"]'):
                element = await self.page.query_selector(selector)
                if element is None:
                    continue
                try:
                    await element.set_input_files(options.resume_path)
                    await self.human_delay(short=True)
                    options = replace(options, resume_path=None)
                    break
                except Exception as exc:  # noqa: BLE001
                    self.logger.debug("Lever resume upload via %s failed: %s", selector, exc)
        return await super().upload_documents(options)
