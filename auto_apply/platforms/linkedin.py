"""LinkedIn scraper (``linkedin.com/jobs/view/...``).

Postings are readable anonymously, but Easy Apply only opens for a
logged-in session, so submission requires ``browser.storage_state`` to
point at a saved login.  The Easy Apply modal is a short wizard walked
with Next / Review / Submit buttons.
"""

from __future__ import annotations

import logging
import os

from agentops.sdk.decorators import operation

from auto_apply.models import FieldType, Platform, SubmissionResult
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions

logger = logging.getLogger(__name__)

__all__ = ["LinkedInScraper"]

_EASY_APPLY_SELECTORS: tuple[str, ...] = (
    'button[aria-label*="Easy Apply"]',
    'button:has-text("Easy Apply")',
    '[data-tracking-control-name*="easy_apply"]',
)
_MODAL_SELECTOR = ".jobs-easy-apply-modal, [role='dialog']"
_MODAL_SUBMIT = (
    'button[aria-label*="Submit application"]',
    'button:has-text("Submit application")',
)
_MODAL_REVIEW = ('button[aria-label*="Review"]', 'button:has-text("Review")')
_MODAL_NEXT = (
    'button[aria-label*="Continue to next step"]',
    'button:has-text("Next")',
)
_APPLIED_SELECTOR = (
    'h3:has-text("Your application was sent"), '
    '[class*="post-apply"], :text("Application sent")'
)


class LinkedInScraper(BaseScraper):
    PLATFORM = Platform.LINKEDIN
    MAX_STEPS: int = 10
    CONTENT_TIMEOUT_MS = 15000

    TITLE_SELECTOR = (
        ".job-details-jobs-unified-top-card__job-title, "
        ".jobs-unified-top-card__job-title, h1.t-24"
    )
    COMPANY_SELECTOR = (
        ".job-details-jobs-unified-top-card__company-name, "
        ".jobs-unified-top-card__company-name"
    )
    DESCRIPTION_SELECTOR = (
        ".jobs-description-content__text, .jobs-box__html-content, .description__text"
    )
    LOCATION_SELECTOR = (
        ".job-details-jobs-unified-top-card__primary-description-container, "
        ".jobs-unified-top-card__bullet"
    )
    JOB_TYPE_SELECTOR = (
        ".job-details-jobs-unified-top-card__job-insight, "
        ".jobs-unified-top-card__workplace-type"
    )

    QUESTION_CONTAINER_SELECTOR = (
        '.jobs-easy-apply-form-section__grouping, [class*="fb-form-element"]'
    )
    QUESTION_LABEL_SELECTOR = "label, .fb-form-element-label"
    QUESTION_ID_PREFIX = "linkedin_q"

    async def wait_for_content(self) -> None:
        await self._wait_for_selector(".job-view-layout, .jobs-unified-top-card")

    def _has_login_state(self) -> bool:
        path = self.browser_config.storage_state
        return bool(path) and os.path.exists(path)

    async def _fill_modal_step(self, options: SubmitOptions) -> None:
        profile = options.profile
        await self._fill_selector('input[name="firstName"]', profile.first_name)
        await self._fill_selector('input[name="lastName"]', profile.last_name)
        await self._fill_selector('input[name="email"]', profile.email)
        await self._fill_selector('input[name="phoneNumber"], input[id*="phoneNumber"]', profile.phone)

        if options.resume_path:
            file_input = await self.page.query_selector(f"{_MODAL_SELECTOR} input[type='file']")
            if file_input is not None:
                try:
                    await file_input.set_input_files(options.resume_path)
                    await self.human_delay(short=True)
                except Exception as exc:  # noqa: BLE001
                    self.logger.debug("LinkedIn resume upload failed: %s", exc)

        if options.documents is not None:
            await self._fill_selector('textarea[name="coverLetter"]', options.documents.cover_letter)

        filler = self.create_form_filler(options)
        fields = [f for f in options.job_data.form_fields if f.type != FieldType.FILE]
        if fields:
            await filler.fill_form(fields)
        if options.answered_questions:
            await filler.fill_custom_questions(options.answered_questions)
        await self.fill_remaining_required_fields(profile)

    @operation
    async def submit_application(self, url: str, options: SubmitOptions) -> SubmissionResult:
        """Apply through the Easy Apply modal."""
        if not self._has_login_state():
            return self._failure(
                "LinkedIn Easy Apply requires a logged-in session",
                ["Authentication required"],
            )

        errors: list[str] = []
        try:
            await self._prepare_submission(url)
            if not await self._click_first(_EASY_APPLY_SELECTORS):
                return self._failure(
                    "Easy Apply button not found; this job may require an external application",
                    errors,
                )
            await self.page.wait_for_selector(_MODAL_SELECTOR, timeout=10000)

            for step in range(1, self.MAX_STEPS + 1):
                self.logger.info("LinkedIn Easy Apply step %d", step)
                if await self._detect_captcha():
                    errors.append("CAPTCHA detected")
                    return self._failure("CAPTCHA requires manual completion", errors)

                await self._fill_modal_step(options)

                if await self._click_first(_MODAL_SUBMIT):
                    await self.human_delay()
                    await self.resubmit_after_repair(options.profile, _MODAL_SUBMIT)
                    sent = await self._visible(_APPLIED_SELECTOR) is not None
                    success, message = (
                        (True, "Application sent via LinkedIn Easy Apply")
                        if sent
                        else await self.wait_for_confirmation()
                    )
                    return SubmissionResult(
                        success=success,
                        message=message,
                        screenshot_path=await self._capture_screenshot(),
                        errors=tuple(errors),
                    )
                if await self._click_first(_MODAL_REVIEW) or await self._click_first(_MODAL_NEXT):
                    await self.human_delay(short=True)
                    continue
                break

            return self._failure("Could not complete LinkedIn Easy Apply", errors)
        except Exception as exc:  # noqa: BLE001
            errors.append(str(exc))
            self.logger.error("LinkedIn submission failed for %s: %s", url, exc)
            return self._failure("Linkedin submission failed", errors)
        finally:
            await self.cleanup()
