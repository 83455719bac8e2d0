"""SmartRecruiters scraper (``jobs.smartrecruiters.com/<company>/<id>``).

The posting body is split across several ``.job-section`` blocks which
are joined into one description.
"""

from __future__ import annotations

from auto_apply.models import Platform
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions

__all__ = ["SmartRecruitersScraper"]


class SmartRecruitersScraper(BaseScraper):
    PLATFORM = Platform.SMARTRECRUITERS

    TITLE_SELECTOR = "h1.job-title, .job-details h1"
    COMPANY_SELECTOR = '.company-name, h2[class*="company"]'
    DESCRIPTION_SELECTOR = ".job-sections .job-section, .job-description"
    DESCRIPTION_JOINS_ALL = True
    LOCATION_SELECTOR = '.job-location, [class*="location"]'

    QUESTION_CONTAINER_SELECTOR = '.question-container, [class*="application-question"]'
    QUESTION_LABEL_SELECTOR = "label"
    QUESTION_ID_PREFIX = "sr_q"

    APPLY_BUTTON_SELECTORS = (
        "a.apply-button",
        'button:has-text("Apply")',
        'a:has-text("Apply now")',
    )
    SUBMIT_SELECTORS = ('button[type="submit"]', 'button:has-text("Submit")')

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(".job-sections, .job-ad-container")

    async def fill_platform_fields(self, options: SubmitOptions) -> None:
        profile = options.profile
        await self._fill_selector('input[name*="firstName"]', profile.first_name)
        await self._fill_selector('input[name*="lastName"]', profile.last_name)
        await self._fill_selector('input[name*="email"]', profile.email)
        await self._fill_selector('input[name*="phone"]', profile.phone)
