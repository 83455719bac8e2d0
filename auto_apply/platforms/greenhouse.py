"""Greenhouse scraper (``boards.greenhouse.io``, ``job-boards.greenhouse.io``).

Greenhouse renders the posting and the application form on one page.  The
basic fields use stable ids (``#first_name``, ``job_application[email]``);
screening questions on newer boards are React-select widgets rather than
native ``<select>`` elements, so they get their own pass after the
generic fill.
"""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import ElementHandle

from auto_apply.form_filler import find_best_matching_option, screening_answer_for
from auto_apply.models import Platform, Profile
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions, clean_label

logger = logging.getLogger(__name__)

__all__ = ["GreenhouseScraper"]

_BASIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("first_name", '#first_name, input[name="job_application[first_name]"]'),
    ("last_name", '#last_name, input[name="job_application[last_name]"]'),
    ("email", '#email, input[name="job_application[email]"]'),
    ("phone", '#phone, input[name="job_application[phone]"]'),
)

_LOCATION_INPUT = '#job_application_location, input[name*="location"], #candidate-location'
_AUTOCOMPLETE_OPTION = '[class*="autocomplete"] li, [role="option"]'

_REACT_SELECT_CONTAINER = "div.select:has(.select__control)"


class GreenhouseScraper(BaseScraper):
    PLATFORM = Platform.GREENHOUSE

    TITLE_SELECTOR = 'h1.app-title, h1[class*="job-title"], .job-title h1, h1'
    COMPANY_SELECTOR = '.company-name, [class*="company"]'
    DESCRIPTION_SELECTOR = '#content, .content, [class*="job-description"]'
    LOCATION_SELECTOR = '.location, [class*="location"]'

    QUESTION_CONTAINER_SELECTOR = (
        '[class*="custom-question"], [data-question], #custom_fields .field, '
        '.field:has(select), .field:has(input[type="radio"]), '
        '#additional_fields .field, [class*="question"]'
    )
    QUESTION_LABEL_SELECTOR = "label, .field-label"
    QUESTION_ID_PREFIX = "greenhouse_q"

    APPLY_BUTTON_SELECTORS = (
        "#apply_button",
        'a[href*="#app"]',
        'button:has-text("Apply")',
        'a:has-text("Apply for this job")',
        ".application-button",
        '[data-test="apply-button"]',
    )
    FORM_SELECTORS = (
        "#application_form",
        "#application",
        'form[id*="application"]',
        ".application-form",
        "#main_fields",
    )
    SUBMIT_SELECTORS = (
        "#submit_app",
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Submit Application")',
    )

    async def wait_for_content(self) -> None:
        await self._wait_for_selector('#app_body, .app-body, [data-mapped="true"], h1')

    async def fill_platform_fields(self, options: SubmitOptions) -> None:
        profile = options.profile
        values = {
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "email": profile.email,
            "phone": profile.phone,
        }
        for key, selector in _BASIC_FIELDS:
            await self._fill_selector(selector, values[key])

        if profile.location:
            await self._fill_location(profile.location)

        await self._fill_selector('input[name*="linkedin" i]', profile.linkedin_url)
        await self._fill_selector('input[name*="github" i]', profile.github_url)
        await self._fill_selector(
            'input[name*="website" i], input[name*="portfolio" i]', profile.portfolio_url
        )

        if profile.education:
            latest = profile.education[0]
            await self._fill_selector('input[name*="school" i]', latest.institution)
            await self._fill_selector('input[name*="degree" i]', latest.degree)
            await self._fill_selector('input[name*="major" i]', latest.field_of_study)

    async def _fill_location(self, location: str) -> None:
        """Type the location and pick the first autocomplete suggestion."""
        element = await self._visible(_LOCATION_INPUT)
        if element is None:
            return
        try:
            if (await element.input_value()).strip():
                return
            await element.click()
            await element.type(location, delay=60)
            await self.human_delay(short=True)
            option = await self._visible(_AUTOCOMPLETE_OPTION)
            if option is not None:
                await option.click()
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("Location autocomplete failed: %s", exc)

    async def fill_remaining_required_fields(self, profile: Profile) -> None:
        await super().fill_remaining_required_fields(profile)
        await self._fill_react_selects(profile)

    async def _fill_react_selects(self, profile: Profile) -> None:
        """Answer React-select screening dropdowns that have no value yet."""
        try:
            containers = await self.page.query_selector_all(_REACT_SELECT_CONTAINER)
        except Exception:  # noqa: BLE001
            return
        for container in containers:
            try:
                if await container.query_selector(".select__single-value") is not None:
                    continue
                label = await self._react_select_label(container)
                answer = screening_answer_for(label)
                if not answer:
                    continue
                control = await container.query_selector(".select__control")
                await control.click()
                await self.page.wait_for_selector(".select__menu", timeout=3000)
                option_elements = await self.page.query_selector_all(".select__option")
                texts = [clean_label(await o.text_content()) for o in option_elements]
                matched = find_best_matching_option(answer, texts)
                if matched is None:
                    await self.page.keyboard.press("Escape")
                    continue
                await option_elements[texts.index(matched)].click()
                await self.human_delay(short=True)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("React select skipped: %s", exc)

    async def _react_select_label(self, container: ElementHandle) -> str:
        text: Optional[str] = await container.evaluate(
            "el => { const f = el.closest('.field, .select, div');"
            " const l = f && f.querySelector('label'); return l ? l.textContent : ''; }"
        )
        return clean_label(text)
