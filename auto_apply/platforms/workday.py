"""Workday scraper (``*.myworkdayjobs.com`` and ``workday.com/.../job`` URLs).

Workday differs from the single-page boards in three ways:

1. Everything is addressed through ``data-automation-id`` attributes.
2. Applying may require a Workday account; a visible sign-in control on
   the form means the run cannot continue unattended.
3. The application is a wizard.  Each step is filled, then either the
   submit button (last step) or the Next button is clicked, up to
   ``MAX_STEPS`` steps.

Workday inputs are React-controlled and ignore a bare ``fill()``, so
text goes in through the native value setter first and keyboard typing
second.
"""

from __future__ import annotations

import asyncio
import logging

from agentops.sdk.decorators import operation
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from auto_apply.models import FieldType, Platform, SubmissionResult
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions

logger = logging.getLogger(__name__)

__all__ = ["WorkdayScraper"]

_SIGN_IN_SELECTOR = '[data-automation-id="signInLink"], button:has-text("Sign In")'
_FILE_INPUT_SELECTOR = '[data-automation-id="file-upload-input-ref"], input[type="file"]'
_SUBMIT_SELECTOR = '[data-automation-id="submit"], button:has-text("Submit")'
_NEXT_SELECTOR = '[data-automation-id="bottom-navigation-next-button"], button:has-text("Next")'
_CONFIRMATION_SELECTOR = '[data-automation-id="confirmationMessage"]'

_NATIVE_SETTER_JS = """
(args) => {
    const el = document.querySelector(args.selector);
    if (!el) return false;
    const proto = el.tagName === 'TEXTAREA'
        ? HTMLTextAreaElement.prototype
        : HTMLInputElement.prototype;
    const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
    if (!descriptor || !descriptor.set) return false;
    descriptor.set.call(el, args.value);
    el.dispatchEvent(new Event('input', {bubbles: true}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
    el.dispatchEvent(new Event('blur', {bubbles: true}));
    return true;
}
"""


class WorkdayScraper(BaseScraper):
    PLATFORM = Platform.WORKDAY
    MAX_STEPS: int = 15
    CONTENT_TIMEOUT_MS = 15000

    TITLE_SELECTOR = '[data-automation-id="jobPostingHeader"] h2, [data-automation-id="jobTitle"]'
    COMPANY_SELECTOR = '[data-automation-id="jobPostingCompanyName"]'
    DESCRIPTION_SELECTOR = (
        '[data-automation-id="jobPostingDescription"], [data-automation-id="jobDescription"]'
    )
    LOCATION_SELECTOR = (
        '[data-automation-id="locations"], [data-automation-id="jobPostingLocation"]'
    )

    QUESTION_CONTAINER_SELECTOR = (
        '[data-automation-id*="question"], [data-automation-id*="formField"]'
    )
    QUESTION_LABEL_SELECTOR = 'label, [data-automation-id*="label"]'
    QUESTION_ID_PREFIX = "workday_q"

    APPLY_BUTTON_SELECTORS = (
        '[data-automation-id="jobPostingApplyButton"]',
        'button:has-text("Apply")',
    )
    FORM_SELECTORS = ('[data-automation-id="applicationForm"], [data-automation-id*="input"]',)

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(
            '[data-automation-id="jobPostingHeader"], '
            '[data-automation-id="jobPostingDescription"]'
        )

    async def _fill_workday_field(self, automation_id: str, value: str) -> bool:
        """Set a React-controlled input by its ``data-automation-id``."""
        if not value:
            return False
        selector = f'[data-automation-id="{automation_id}"]'
        element = await self._visible(selector)
        if element is None:
            return False
        try:
            if (await element.input_value()).strip():
                return True
            if await self.page.evaluate(_NATIVE_SETTER_JS, {"selector": selector, "value": value}):
                await asyncio.sleep(0.3)
                if (await element.input_value()) == value:
                    return True
            await element.click()
            await self.page.keyboard.press("Control+a")
            await self.page.keyboard.press("Delete")
            await element.type(value, delay=50)
            await self.page.keyboard.press("Tab")
            return True
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("Workday fill failed for %s: %s", automation_id, exc)
            return False

    async def _fill_step(self, options: SubmitOptions, resume_uploaded: bool) -> bool:
        """Fill whatever the current wizard step shows.

        Returns:
            Whether the resume has been uploaded by this or an earlier step.
        """
        profile = options.profile
        await self._fill_workday_field("legalNameSection_firstName", profile.first_name)
        await self._fill_workday_field("legalNameSection_lastName", profile.last_name)
        await self._fill_workday_field("email", profile.email)
        await self._fill_workday_field("phone-number", profile.phone or "")

        if options.resume_path and not resume_uploaded:
            file_input = await self.page.query_selector(_FILE_INPUT_SELECTOR)
            if file_input is not None:
                try:
                    await file_input.set_input_files(options.resume_path)
                    await self.human_delay()
                    resume_uploaded = True
                except Exception as exc:  # noqa: BLE001
                    self.logger.debug("Workday resume upload failed: %s", exc)

        filler = self.create_form_filler(options)
        visible_fields = [f for f in options.job_data.form_fields if f.type != FieldType.FILE]
        if visible_fields:
            await filler.fill_form(visible_fields)
        if options.answered_questions:
            await filler.fill_custom_questions(options.answered_questions)
        await self.fill_remaining_required_fields(profile)
        return resume_uploaded

    @operation
    async def submit_application(self, url: str, options: SubmitOptions) -> SubmissionResult:
        """Walk the Workday wizard up to ``MAX_STEPS`` steps."""
        errors: list[str] = []
        try:
            await self._prepare_submission(url)
            await self.open_application_form()
            await self.wait_for_application_form()

            if await self._visible(_SIGN_IN_SELECTOR) is not None:
                errors.append("Authentication required")
                return self._failure("Workday requires sign-in before applying", errors)

            if await self._detect_captcha():
                errors.append("CAPTCHA detected")
                return self._failure("CAPTCHA requires manual completion", errors)

            resume_uploaded = False
            for step in range(1, self.MAX_STEPS + 1):
                self.logger.info("Workday step %d", step)
                resume_uploaded = await self._fill_step(options, resume_uploaded)

                if await self._click_first((_SUBMIT_SELECTOR,), wait_for_load=True):
                    await self.human_delay()
                    await self.resubmit_after_repair(options.profile, (_SUBMIT_SELECTOR,))
                    try:
                        await self.page.wait_for_selector(_CONFIRMATION_SELECTOR, timeout=10000)
                        confirmed, message = True, "Application submitted to Workday"
                    except PlaywrightTimeoutError:
                        confirmed, message = await self.wait_for_confirmation()
                    return SubmissionResult(
                        success=confirmed,
                        message=message,
                        screenshot_path=await self._capture_screenshot(),
                        errors=tuple(errors),
                    )

                if not await self._click_first((_NEXT_SELECTOR,), wait_for_load=True):
                    break
                await self.human_delay()

            return self._failure("Could not complete Workday application", errors)
        except Exception as exc:  # noqa: BLE001
            errors.append(str(exc))
            self.logger.error("Workday submission failed for %s: %s", url, exc)
            return self._failure("Workday submission failed", errors)
        finally:
            await self.cleanup()
