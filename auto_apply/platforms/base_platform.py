"""Base class for all platform scrapers.

Every scraper drives one Playwright session through the same lifecycle::

    initialize -> navigate -> wait_for_content -> extract_job_data -> cleanup

and, on the submission path::

    initialize -> navigate -> open form -> fill -> submit
        -> validation-repair -> submit again -> confirmation -> cleanup

Subclasses set ``PLATFORM`` plus their selector tables and implement
:meth:`BaseScraper.wait_for_content`; most of them override only the
hooks they need (``fill_platform_fields``, ``open_application_form``).
Workday and LinkedIn replace :meth:`BaseScraper.submit_application`
with their multi-step flows.

Extraction is a triple fallback: platform selectors, then the AI
collaborator fed the raw page text, then pure heuristics.  A scrape never
returns nothing: the worst case is a sparse ``JobData`` carrying the
``UNKNOWN_TITLE`` sentinel.

Every Playwright helper here is fail-soft (returns ``False``/``None``/``""``)
except navigation, which raises :class:`~auto_apply.errors.NavigationError`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

from agentops.sdk.decorators import operation
from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from auto_apply.answer_cache import AnswerCache
from auto_apply.description_parser import (
    clean_text,
    company_from_url,
    extract_qualifications,
    extract_requirements,
    parse_json_reply,
)
from auto_apply.errors import NavigationError, ScrapeError
from auto_apply.form_filler import (
    FillResult,
    FormFiller,
    Prompter,
    find_best_matching_option,
    repair_default_for,
    resolve_profile_value,
    screening_answer_for,
)
from auto_apply.models import (
    UNKNOWN_COMPANY,
    UNKNOWN_TITLE,
    CustomQuestion,
    FieldType,
    FormField,
    GeneratedDocuments,
    JobData,
    Platform,
    Profile,
    SubmissionResult,
)
from auto_apply.question_answerer import TextGenerator
from config.settings import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "BaseScraper",
    "SubmitOptions",
    "NO_ERRORS_MESSAGE",
    "MAX_AI_PAGE_CHARS",
    "clean_label",
    "classify_upload_label",
    "first_real_option",
    "is_success_url",
    "job_data_from_ai_reply",
    "screenshot_path_for",
]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SHORT_DELAY_MS: tuple[int, int] = (300, 800)
LONG_DELAY_MS: tuple[int, int] = (1000, 3000)
MAX_AI_PAGE_CHARS: int = 15000
HEURISTIC_DESCRIPTION_CHARS: int = 4000
NO_ERRORS_MESSAGE: str = "Submission completed (no errors detected)"

LAUNCH_ARGS: list[str] = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]

STEALTH_SCRIPT: str = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined,
    });
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5],
    });
    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en'],
    });
    window.chrome = { runtime: {} };
"""

CONFIRMATION_SELECTORS: tuple[str, ...] = (
    ".confirmation",
    "#confirmation",
    "[class*='success']",
    "[class*='thank']",
    "h1:has-text('Thank')",
    "h2:has-text('Thank')",
    "text=/application.*(received|submitted)/i",
)

SUCCESS_URL_FRAGMENTS: tuple[str, ...] = ("thank", "confirmation", "success", "submitted")

ERROR_SELECTORS: tuple[str, ...] = (
    ".error-message",
    ".field-error",
    ".form-error",
    ".flash-error",
    "[role='alert']",
    ".invalid-feedback",
    "[aria-invalid='true']",
)

CAPTCHA_SELECTORS: tuple[str, ...] = (
    "iframe[src*='recaptcha']",
    "iframe[src*='hcaptcha']",
    "div.g-recaptcha",
    "div[data-sitekey]",
    "#captcha",
    "div.captcha",
    "iframe[title*='challenge']",
)

INVALID_FIELD_SELECTOR: str = (
    "input[aria-invalid='true'], textarea[aria-invalid='true'], "
    "input:invalid, textarea:invalid"
)

RESUME_LABEL_RE = re.compile(r"resume|\bcv\b", re.I)
COVER_LETTER_LABEL_RE = re.compile(r"cover[\s_-]*letter|motivation", re.I)

_PLACEHOLDER_OPTION_RE = re.compile(r"^(select|choose|--|please select)", re.I)
_SKIPPED_INPUT_TYPES = frozenset({"hidden", "submit", "button", "image", "reset"})
_TEXT_INPUT_TYPES = frozenset({"text", "email", "tel", "number", "url", "date", ""})

_AI_EXTRACTION_SYSTEM_PROMPT = (
    "You extract structured job data from web pages. Return valid JSON "
    "only, no markdown fences."
)

# Text around a file input: its field container, name, id and aria-label.
_FILE_INPUT_CONTEXT_JS = """
el => {
    const box = el.closest('.field, .form-group, fieldset, [class*="upload"],'
        + ' [class*="resume"], [class*="cover"], [class*="field"]') || el.parentElement;
    return [box ? box.textContent : '', el.name || '', el.id || '',
            el.getAttribute('aria-label') || ''].join(' ');
}
"""

# Label of a control from its container when no <label for> exists.
_CONTAINER_LABEL_JS = """
el => {
    if (el.id) {
        const byFor = document.querySelector(`label[for="${el.id}"]`);
        if (byFor && byFor.textContent.trim()) return byFor.textContent.trim();
    }
    const box = el.closest('.field, .form-group, fieldset, [class*="field"],'
        + ' [class*="Field"], [class*="question"]');
    if (box) {
        const lbl = box.querySelector('label, legend, .field-label, [class*="label"]');
        if (lbl && lbl.textContent.trim()) return lbl.textContent.trim();
        const first = (box.textContent || '').trim().split('\\n')[0];
        if (first) return first;
    }
    return el.getAttribute('aria-label') || el.getAttribute('placeholder')
        || el.getAttribute('name') || '';
}
"""


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class SubmitOptions:
    """Everything a scraper needs to submit one application.

    Attributes:
        profile: Candidate profile.
        job_data: The scraped posting (form fields, questions).
        documents: Generated resume / cover letter text.
        resume_path: File uploaded as the resume.
        cover_letter_path: File uploaded as the cover letter.
        answered_questions: Custom questions with resolved answers.
    """

    profile: Profile
    job_data: JobData
    documents: Optional[GeneratedDocuments] = None
    resume_path: Optional[str] = None
    cover_letter_path: Optional[str] = None
    answered_questions: list[CustomQuestion] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def clean_label(text: Optional[str]) -> str:
    """Collapse whitespace and drop a trailing required-marker asterisk."""
    collapsed = re.sub(r"\s+", " ", text or "").strip()
    return re.sub(r"\s*\*+$", "", collapsed).strip()


def classify_upload_label(text: str) -> Optional[str]:
    """Return ``"cover_letter"``, ``"resume"`` or ``None`` for file-input context text."""
    if COVER_LETTER_LABEL_RE.search(text or ""):
        return "cover_letter"
    if RESUME_LABEL_RE.search(text or ""):
        return "resume"
    return None


def first_real_option(options: list[tuple[str, str]]) -> Optional[str]:
    """First ``(value, text)`` option that is not an empty placeholder."""
    for value, text in options:
        text = (text or "").strip()
        if value and text and not _PLACEHOLDER_OPTION_RE.match(text):
            return value
    return None


def is_success_url(url: str) -> bool:
    lower = (url or "").lower()
    return any(fragment in lower for fragment in SUCCESS_URL_FRAGMENTS)


def screenshot_path_for(
    screenshots_dir: Union[str, Path],
    platform: Platform,
    now: Optional[datetime] = None,
) -> str:
    stamp = int((now or datetime.now()).timestamp() * 1000)
    return str(Path(screenshots_dir) / f"{Platform(platform).value}_{stamp}.png")


def job_data_from_ai_reply(
    reply: str,
    url: str,
    platform: Platform,
) -> Optional[JobData]:
    """Build ``JobData`` from an AI extraction reply.

    The reply must be a JSON object following the fixed schema
    ``{title, company, description, requirements[], qualifications[],
    location}``; markdown fences are tolerated.

    Returns:
        ``None`` when the reply does not parse or carries no title.
    """
    parsed = parse_json_reply(reply, expect=dict)
    if not parsed or not str(parsed.get("title") or "").strip():
        return None

    def _strings(key: str) -> list[str]:
        value = parsed.get(key)
        if not isinstance(value, list):
            return []
        return [str(v).strip() for v in value if str(v).strip()]

    description = clean_text(str(parsed.get("description") or ""))
    requirements = _strings("requirements") or extract_requirements(description)
    qualifications = _strings("qualifications") or extract_qualifications(description)
    location = str(parsed.get("location") or "").strip() or None

    return JobData(
        url=url,
        platform=platform,
        title=str(parsed["title"]).strip(),
        company=str(parsed.get("company") or "").strip() or company_from_url(url, platform),
        description=description,
        requirements=requirements,
        qualifications=qualifications,
        location=location,
    )


# ---------------------------------------------------------------------------
# Base Class
# ---------------------------------------------------------------------------


class BaseScraper(ABC):
    """Abstract base for every platform scraper.

    Subclasses must set ``PLATFORM`` and implement :meth:`wait_for_content`.
    The selector class variables drive the default
    :meth:`extract_job_data` and :meth:`submit_application`.

    Constructor Args:
        settings: Configuration bundle (browser, application, paths).
        llm: Text generator for the AI extraction fallback.  ``None``
            skips straight to heuristics.
        cache: Answer cache handed to each :class:`FormFiller`.
        prompter: Operator prompt handed to each :class:`FormFiller`.
    """

    PLATFORM: Platform = Platform.GENERIC

    # Extraction selectors (comma-separated CSS lists).
    TITLE_SELECTOR: str = "h1"
    COMPANY_SELECTOR: str = ""
    DESCRIPTION_SELECTOR: str = "[class*='description']"
    DESCRIPTION_JOINS_ALL: bool = False
    LOCATION_SELECTOR: str = "[class*='location']"
    JOB_TYPE_SELECTOR: str = ""
    CONTENT_TIMEOUT_MS: int = 10000

    # Custom-question discovery.
    QUESTION_CONTAINER_SELECTOR: str = "[class*='question'], [class*='custom-field'], .field-group"
    QUESTION_LABEL_SELECTOR: str = "label, .question-text, [class*='label']"
    QUESTION_ID_PREFIX: str = "question"

    # Submission selectors, tried in order.
    APPLY_BUTTON_SELECTORS: tuple[str, ...] = (
        "a:has-text('Apply')",
        "button:has-text('Apply')",
        "a[href*='apply']",
    )
    FORM_SELECTORS: tuple[str, ...] = ("form",)
    SUBMIT_SELECTORS: tuple[str, ...] = (
        "button[type='submit']",
        "input[type='submit']",
        "button:has-text('Submit Application')",
        "button:has-text('Submit')",
    )
    UPLOAD_TRIGGER_SELECTORS: tuple[str, ...] = (
        "[class*='dropzone']",
        "[class*='upload'] button",
        "button:has-text('Upload')",
        "button:has-text('Attach')",
    )

    def __init__(
        self,
        settings: Settings,
        llm: Optional[TextGenerator] = None,
        *,
        cache: Optional[AnswerCache] = None,
        prompter: Optional[Prompter] = None,
    ) -> None:
        self.settings = settings
        self.browser_config = settings.browser
        self.app_config = settings.application
        self.screenshots_dir = settings.paths.screenshots_dir
        self.llm = llm
        self.cache = cache
        self.prompter = prompter

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def platform_name(self) -> str:
        return self.PLATFORM.value

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Launch Chromium and open a stealth page.

        Reuses ``browser.storage_state`` when the file exists.
        """
        if self.page is not None:
            return

        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=self.browser_config.headless,
            args=LAUNCH_ARGS,
        )

        context_kwargs: dict[str, Any] = {
            "user_agent": self.browser_config.user_agent,
            "viewport": {"width": 1920, "height": 1080},
            "locale": "en-US",
        }
        storage_state = self.browser_config.storage_state
        if storage_state and os.path.exists(storage_state):
            context_kwargs["storage_state"] = storage_state
            self.logger.debug("Reusing storage state %s", storage_state)

        self.context = await self.browser.new_context(**context_kwargs)
        await self.context.add_init_script(STEALTH_SCRIPT)
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.browser_config.timeout)

    async def cleanup(self) -> None:
        """Close page, context, browser and Playwright. Safe to call twice."""
        for resource in (self.context, self.browser):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("cleanup: close failed: %s", exc)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("cleanup: playwright stop failed: %s", exc)
        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None

    async def human_delay(self, short: bool = False) -> None:
        """Sleep 300-800 ms (``short``) or 1-3 s between UI actions."""
        low, high = SHORT_DELAY_MS if short else LONG_DELAY_MS
        await asyncio.sleep(random.randint(low, high) / 1000.0)

    async def human_scroll(self) -> None:
        """Scroll down in 2-4 uneven mouse-wheel steps."""
        if self.page is None:
            return
        try:
            for _ in range(random.randint(2, 4)):
                await self.page.mouse.wheel(0, random.randint(100, 400))
                await asyncio.sleep(random.randint(500, 1500) / 1000.0)
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("human_scroll failed: %s", exc)

    async def _move_mouse(self) -> None:
        try:
            await self.page.mouse.move(random.randint(100, 800), random.randint(100, 600))
        except Exception:  # noqa: BLE001
            pass

    async def take_screenshot(self, path: str) -> None:
        if self.page is not None:
            await self.page.screenshot(path=path, full_page=True)

    async def navigate(self, url: str) -> None:
        """Load ``url``. Any failure here is fatal for the job.

        Raises:
            NavigationError: On timeout or network failure.
        """
        try:
            await self.page.goto(
                url, wait_until="networkidle", timeout=self.browser_config.timeout
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                f"Timed out loading page: {exc}", self.platform_name, url
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(
                f"Page failed to load: {exc}", self.platform_name, url
            ) from exc

    # ------------------------------------------------------------------
    # Scrape lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def wait_for_content(self) -> None:
        """Wait until the posting is rendered.

        May raise ``PlaywrightTimeoutError``; :meth:`scrape` tolerates it.
        """
        ...

    async def _wait_for_selector(self, selector: str, timeout: Optional[int] = None) -> None:
        await self.page.wait_for_selector(selector, timeout=timeout or self.CONTENT_TIMEOUT_MS)

    @operation
    async def scrape(self, url: str) -> JobData:
        """Scrape ``url`` into :class:`JobData`.

        Raises:
            NavigationError: The page never loaded.
            ScrapeError: Any other failure, tied to ``{platform, url}``.
        """
        try:
            await self.initialize()
            await self.human_delay()
            await self.navigate(url)
            await self.human_delay(short=True)
            await self._move_mouse()
            await self.human_scroll()

            try:
                await self.wait_for_content()
            except PlaywrightTimeoutError:
                self.logger.debug("Content wait timed out on %s; extracting anyway", url)

            job = await self.extract_job_data(url)
            if not job.has_title or not job.description:
                self.logger.warning(
                    "Extraction degraded on %s (%s); trying AI fallback",
                    url,
                    self.platform_name,
                )
                job = await self.extract_with_ai(url, job)

            self.logger.info(
                "Scraped %s at %s (%d fields, %d questions)",
                job.title,
                job.company,
                len(job.form_fields),
                len(job.custom_questions),
            )
            return job
        except ScrapeError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ScrapeError(str(exc), self.platform_name, url) from exc
        finally:
            await self.cleanup()

    async def extract_job_data(self, url: str) -> JobData:
        """Selector-driven extraction using the class selector tables."""
        title = await self.extract_text(self.TITLE_SELECTOR)
        if not title and self.TITLE_SELECTOR != "h1":
            title = await self.extract_text("h1")

        company = await self.extract_text(self.COMPANY_SELECTOR) if self.COMPANY_SELECTOR else ""
        if not company:
            company = company_from_url(url, self.PLATFORM)

        if self.DESCRIPTION_JOINS_ALL:
            description = "\n\n".join(await self.extract_all_text(self.DESCRIPTION_SELECTOR))
        else:
            description = await self.extract_text(self.DESCRIPTION_SELECTOR)
        description = clean_text(description)

        location = await self.extract_text(self.LOCATION_SELECTOR) if self.LOCATION_SELECTOR else ""
        job_type = await self.extract_text(self.JOB_TYPE_SELECTOR) if self.JOB_TYPE_SELECTOR else ""
        remote = "remote" in f"{location} {job_type}".lower() if (location or job_type) else None

        return JobData(
            url=url,
            platform=self.PLATFORM,
            title=clean_label(title) or UNKNOWN_TITLE,
            company=company.strip() or UNKNOWN_COMPANY,
            description=description,
            requirements=extract_requirements(description),
            qualifications=extract_qualifications(description),
            location=location.strip() or None,
            job_type=job_type.strip() or None,
            remote=remote,
            form_fields=await self.extract_form_fields(),
            custom_questions=await self.extract_custom_questions(),
        )

    # ------------------------------------------------------------------
    # AI and heuristic fallbacks
    # ------------------------------------------------------------------

    async def _page_text(self) -> str:
        try:
            return await self.page.evaluate("() => document.body.innerText") or ""
        except Exception:  # noqa: BLE001
            return ""

    async def _page_title(self) -> str:
        try:
            return await self.page.title()
        except Exception:  # noqa: BLE001
            return ""

    async def extract_with_ai(self, url: str, partial: Optional[JobData] = None) -> JobData:
        """AI extraction from raw page text, then heuristics.

        Form fields and custom questions found by the structural pass are
        carried over to the result.
        """
        page_text = await self._page_text()
        page_title = await self._page_title()

        if self.llm is not None and page_text:
            prompt = (
                "Extract job posting data from this page. Return ONLY valid JSON "
                "with these fields:\n"
                '{"title": "...", "company": "...", "description": "...", '
                '"requirements": ["..."], "qualifications": ["..."], "location": "..."}\n\n'
                f"Page title: {page_title}\n"
                f"Page content (truncated):\n{page_text[:MAX_AI_PAGE_CHARS]}"
            )
            try:
                reply = await self.llm.generate_text(prompt, _AI_EXTRACTION_SYSTEM_PROMPT)
                job = job_data_from_ai_reply(reply, url, self.PLATFORM)
                if job is not None:
                    if partial is not None:
                        job.form_fields = partial.form_fields
                        job.custom_questions = partial.custom_questions
                        job.job_type = partial.job_type
                        job.remote = partial.remote
                    return job
                self.logger.warning("AI extraction reply for %s did not parse", url)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("AI extraction failed for %s: %s", url, exc)

        return await self.heuristic_extract(url, page_text, page_title, partial)

    async def extract_ai_first(self, url: str) -> JobData:
        """Structural pass for the form only, then AI over the page text.

        Used by platforms whose posting markup has no stable selectors.
        """
        partial = JobData(
            url=url,
            platform=self.PLATFORM,
            form_fields=await self.extract_form_fields(),
            custom_questions=await self.extract_custom_questions(),
        )
        return await self.extract_with_ai(url, partial)

    async def heuristic_extract(
        self,
        url: str,
        page_text: str,
        page_title: str = "",
        partial: Optional[JobData] = None,
    ) -> JobData:
        """Last-resort extraction: first ``h1``, URL company, raw text."""
        job = partial or JobData(url=url, platform=self.PLATFORM)
        if not job.has_title:
            title = clean_label(await self.extract_text("h1")) or clean_label(page_title)
            job.title = title or UNKNOWN_TITLE
        if job.company == UNKNOWN_COMPANY:
            job.company = company_from_url(url, self.PLATFORM)
        if not job.description:
            job.description = clean_text(page_text[:HEURISTIC_DESCRIPTION_CHARS])
        if not job.requirements:
            job.requirements = extract_requirements(job.description)
        if not job.qualifications:
            job.qualifications = extract_qualifications(job.description)
        return job

    # ------------------------------------------------------------------
    # Extraction helpers
    # ------------------------------------------------------------------

    async def extract_text(self, selector: str) -> str:
        """Text of the first element matching ``selector``, or ``""``."""
        if not selector:
            return ""
        try:
            element = await self.page.query_selector(selector)
            if element is None:
                return ""
            return ((await element.text_content()) or "").strip()
        except Exception:  # noqa: BLE001
            return ""

    async def extract_all_text(self, selector: str) -> list[str]:
        """Non-empty texts of every element matching ``selector``."""
        if not selector:
            return []
        try:
            elements = await self.page.query_selector_all(selector)
        except Exception:  # noqa: BLE001
            return []
        texts: list[str] = []
        for element in elements:
            try:
                text = ((await element.text_content()) or "").strip()
            except Exception:  # noqa: BLE001
                continue
            if text:
                texts.append(text)
        return texts

    async def find_label_for_input(self, element: ElementHandle) -> str:
        """Label text for a control.

        Order: ``label[for=id]``, enclosing ``<label>``, ``aria-label``,
        ``placeholder``, then the ``name`` attribute.
        """
        try:
            element_id = await element.get_attribute("id")
            if element_id:
                label = await self.page.query_selector(f'label[for="{element_id}"]')
                if label is not None:
                    text = clean_label(await label.text_content())
                    if text:
                        return text

            parent_label = await element.evaluate(
                "el => { const l = el.closest('label'); return l ? l.textContent : ''; }"
            )
            if clean_label(parent_label):
                return clean_label(parent_label)

            for attribute in ("aria-label", "placeholder", "name"):
                value = await element.get_attribute(attribute)
                if value and value.strip():
                    return clean_label(value)
        except Exception:  # noqa: BLE001
            pass
        return ""

    async def extract_form_fields(self) -> list[FormField]:
        """Every visible-kind input, textarea and select with a name or label.

        Radio buttons collapse into one field per group.
        """
        try:
            elements = await self.page.query_selector_all("input, textarea, select")
        except Exception:  # noqa: BLE001
            return []

        fields: list[FormField] = []
        radio_groups: dict[str, FormField] = {}
        for element in elements:
            try:
                tag = str(await element.evaluate("el => el.tagName")).lower()
                input_type = ((await element.get_attribute("type")) or "text").lower()
                if tag == "input" and input_type in _SKIPPED_INPUT_TYPES:
                    continue

                name = (await element.get_attribute("name")) or ""
                field_type = FieldType.from_html(tag, input_type)

                if field_type == FieldType.RADIO and name:
                    option = clean_label(
                        await element.evaluate(
                            "el => { const l = el.closest('label') ||"
                            " (el.id && document.querySelector(`label[for=\"${el.id}\"]`));"
                            " return l ? l.textContent : (el.value || ''); }"
                        )
                    )
                    if name in radio_groups:
                        if option:
                            radio_groups[name].options.append(option)
                        continue

                label = await self.find_label_for_input(element)
                if field_type == FieldType.RADIO:
                    label = clean_label(await element.evaluate(_CONTAINER_LABEL_JS)) or label
                required = (
                    (await element.get_attribute("required")) is not None
                    or (await element.get_attribute("aria-required")) == "true"
                )

                options: list[str] = []
                if field_type == FieldType.SELECT:
                    options = [
                        t.strip()
                        for t in await element.eval_on_selector_all(
                            "option", "opts => opts.map(o => o.textContent || '')"
                        )
                        if t and t.strip()
                    ]
                elif field_type == FieldType.RADIO and option:
                    options = [option]

                value: Optional[str] = None
                if field_type in (FieldType.TEXT, FieldType.EMAIL, FieldType.TEL, FieldType.TEXTAREA):
                    value = (await element.input_value()).strip() or None

                if not (name or label):
                    continue
                form_field = FormField(
                    name=name,
                    type=field_type,
                    label=label,
                    required=required,
                    options=options,
                    value=value,
                )
                if field_type == FieldType.RADIO and name:
                    radio_groups[name] = form_field
                fields.append(form_field)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Skipping unreadable control: %s", exc)
        return fields

    async def _question_kind(self, container: ElementHandle) -> tuple[FieldType, list[str]]:
        if await container.query_selector("textarea") is not None:
            return FieldType.TEXTAREA, []
        if await container.query_selector("select") is not None:
            options = await container.eval_on_selector_all(
                "select option", "opts => opts.map(o => (o.textContent || '').trim())"
            )
            return FieldType.SELECT, [o for o in options if o]
        for kind, field_type in (("radio", FieldType.RADIO), ("checkbox", FieldType.CHECKBOX)):
            inputs = await container.query_selector_all(f"input[type='{kind}']")
            if inputs:
                options = []
                for element in inputs:
                    text = clean_label(
                        await element.evaluate(
                            "el => { const l = el.closest('label') ||"
                            " (el.id && document.querySelector(`label[for=\"${el.id}\"]`));"
                            " return l ? l.textContent : (el.value || ''); }"
                        )
                    )
                    if text:
                        options.append(text)
                return field_type, options
        return FieldType.TEXT, []

    async def extract_custom_questions(self) -> list[CustomQuestion]:
        """Questions found in ``QUESTION_CONTAINER_SELECTOR`` blocks.

        Containers holding a file input (resume / cover letter uploads)
        and repeated question texts are skipped.
        """
        try:
            containers = await self.page.query_selector_all(self.QUESTION_CONTAINER_SELECTOR)
        except Exception:  # noqa: BLE001
            return []

        questions: list[CustomQuestion] = []
        seen: set[str] = set()
        for index, container in enumerate(containers):
            try:
                label = await container.query_selector(self.QUESTION_LABEL_SELECTOR)
                text = clean_label(await label.text_content()) if label is not None else ""
                if not text or text.lower() in seen:
                    continue
                if await container.query_selector("input[type='file']") is not None:
                    continue
                seen.add(text.lower())
                field_type, options = await self._question_kind(container)
                required = (
                    await container.query_selector("[required], [aria-required='true'], .required")
                ) is not None
                questions.append(
                    CustomQuestion(
                        id=f"{self.QUESTION_ID_PREFIX}_{index}",
                        question=text,
                        type=field_type,
                        required=required,
                        options=options,
                    )
                )
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Skipping question container %d: %s", index, exc)
        return questions

    # ------------------------------------------------------------------
    # Element helpers
    # ------------------------------------------------------------------

    async def _visible(self, selector: str) -> Optional[ElementHandle]:
        """First element for ``selector`` if it is visible."""
        try:
            element = await self.page.query_selector(selector)
            if element is not None and await element.is_visible():
                return element
        except Exception:  # noqa: BLE001
            pass
        return None

    async def _click_first(
        self,
        selectors: tuple[str, ...],
        wait_for_load: bool = False,
    ) -> bool:
        """Click the first visible, enabled element among ``selectors``."""
        for selector in selectors:
            element = await self._visible(selector)
            if element is None:
                continue
            try:
                if not await element.is_enabled():
                    continue
                await self.human_delay(short=True)
                await element.click()
                if wait_for_load:
                    try:
                        await self.page.wait_for_load_state("networkidle", timeout=8000)
                    except PlaywrightTimeoutError:
                        pass
                return True
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Click failed for %s: %s", selector, exc)
                continue
        return False

    async def _fill_selector(self, selector: str, value: Optional[str]) -> bool:
        """Fill the first element for ``selector`` unless it already holds a value."""
        if not value:
            return False
        try:
            element = await self.page.query_selector(selector)
            if element is None:
                return False
            if (await element.input_value()).strip():
                return True
            await element.click()
            await element.fill(value)
            await self.human_delay(short=True)
            return True
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("fill failed for %s: %s", selector, exc)
            return False

    async def _detect_captcha(self) -> bool:
        """Detect common CAPTCHA widgets on the current page."""
        for selector in CAPTCHA_SELECTORS:
            try:
                if await self.page.query_selector(selector) is not None:
                    self.logger.warning("CAPTCHA detected: %s", selector)
                    return True
            except Exception:  # noqa: BLE001
                continue
        return False

    async def _label_of(self, element: ElementHandle) -> str:
        try:
            return clean_label(await element.evaluate(_CONTAINER_LABEL_JS))
        except Exception:  # noqa: BLE001
            return ""

    # ------------------------------------------------------------------
    # Submission hooks
    # ------------------------------------------------------------------

    async def open_application_form(self) -> None:
        """Click a visible Apply control, or assume the form is on the page."""
        if not await self._click_first(self.APPLY_BUTTON_SELECTORS, wait_for_load=True):
            self.logger.debug("No apply button found; assuming the form is on the page")
        await self.human_delay(short=True)

    async def wait_for_application_form(self) -> None:
        for selector in self.FORM_SELECTORS:
            try:
                await self.page.wait_for_selector(selector, timeout=5000)
                return
            except PlaywrightTimeoutError:
                continue

    async def fill_platform_fields(self, options: SubmitOptions) -> None:
        """Platform-specific fills by exact selector. Default: nothing."""

    def create_form_filler(self, options: SubmitOptions) -> FormFiller:
        return FormFiller(
            self.page,
            options.profile,
            options.job_data,
            cache=self.cache,
            prompter=self.prompter,
            interactive=self.app_config.interactive_prompts,
            resume_path=options.resume_path,
            cover_letter_path=options.cover_letter_path,
            answered_questions=options.answered_questions,
        )

    async def fill_application(self, options: SubmitOptions) -> list[str]:
        """Fill the open form. Returns collected error strings."""
        errors: list[str] = []
        await self.fill_platform_fields(options)

        filler = self.create_form_filler(options)
        fields = [f for f in options.job_data.form_fields if f.type != FieldType.FILE]
        result: FillResult = await filler.fill_form(fields)

        errors.extend(await self.upload_documents(options))

        if options.answered_questions:
            result = result.merge(await filler.fill_custom_questions(options.answered_questions))
        errors.extend(result.errors)

        await self.fill_remaining_required_fields(options.profile)
        return errors

    async def upload_file(
        self,
        file_path: str,
        kind: str,
        fallback_to_first: bool = False,
    ) -> bool:
        """Upload ``file_path`` to the file input whose context matches ``kind``.

        Falls back to the first file input (resume only), then to a
        dropzone through the file chooser.
        """
        try:
            inputs = await self.page.query_selector_all("input[type='file']")
        except Exception:  # noqa: BLE001
            inputs = []

        for element in inputs:
            try:
                context_text = await element.evaluate(_FILE_INPUT_CONTEXT_JS)
                if classify_upload_label(context_text) == kind:
                    await element.set_input_files(file_path)
                    await self.human_delay(short=True)
                    self.logger.info("Uploaded %s via labelled input", kind)
                    return True
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Labelled upload failed: %s", exc)

        if fallback_to_first and inputs:
            try:
                await inputs[0].set_input_files(file_path)
                await self.human_delay(short=True)
                self.logger.info("Uploaded %s via first file input", kind)
                return True
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("First-input upload failed: %s", exc)

        if not fallback_to_first:
            return False
        for selector in self.UPLOAD_TRIGGER_SELECTORS:
            trigger = await self._visible(selector)
            if trigger is None:
                continue
            try:
                async with self.page.expect_file_chooser(timeout=5000) as chooser_info:
                    await trigger.click()
                chooser = await chooser_info.value
                await chooser.set_files(file_path)
                await self.human_delay(short=True)
                self.logger.info("Uploaded %s via file chooser", kind)
                return True
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("File chooser upload via %s failed: %s", selector, exc)
        return False

    async def upload_documents(self, options: SubmitOptions) -> list[str]:
        errors: list[str] = []
        if options.resume_path:
            if not await self.upload_file(options.resume_path, "resume", fallback_to_first=True):
                errors.append("Failed to upload resume")
        if options.cover_letter_path:
            if not await self.upload_file(options.cover_letter_path, "cover_letter"):
                self.logger.debug("No cover letter input found")
        return errors

    async def fill_remaining_required_fields(self, profile: Profile) -> None:
        """Answer common screening questions the main pass left empty.

        Covers native selects (falling back to the first real option when
        required), radio groups and empty required text inputs.
        """
        await self._fill_remaining_selects(profile)
        await self._fill_remaining_radios(profile)
        await self._fill_remaining_inputs(profile)

    def _default_answer(self, label: str, name: str, field_type: FieldType, profile: Profile) -> Optional[str]:
        return screening_answer_for(label) or resolve_profile_value(
            FormField(name=name, type=field_type, label=label), profile
        )

    async def _fill_remaining_selects(self, profile: Profile) -> None:
        try:
            selects = await self.page.query_selector_all("select")
        except Exception:  # noqa: BLE001
            return
        for select in selects:
            try:
                if await select.input_value():
                    continue
                label = await self._label_of(select)
                options: list[tuple[str, str]] = [
                    (o["value"], (o["text"] or "").strip())
                    for o in await select.eval_on_selector_all(
                        "option", "opts => opts.map(o => ({value: o.value, text: o.textContent}))"
                    )
                ]
                real = [(v, t) for v, t in options if v and t and not _PLACEHOLDER_OPTION_RE.match(t)]
                answer = self._default_answer(label, await select.get_attribute("name") or "", FieldType.SELECT, profile)
                chosen: Optional[str] = None
                if answer:
                    matched = find_best_matching_option(answer, [t for _, t in real])
                    chosen = next((v for v, t in real if t == matched), None)
                required = (await select.get_attribute("required")) is not None
                if chosen is None and required:
                    chosen = first_real_option(options)
                if chosen is not None:
                    await select.select_option(value=chosen)
                    await self.human_delay(short=True)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Remaining select skipped: %s", exc)

    async def _fill_remaining_radios(self, profile: Profile) -> None:
        try:
            radios = await self.page.query_selector_all("input[type='radio']")
        except Exception:  # noqa: BLE001
            return
        groups: dict[str, list[ElementHandle]] = {}
        for radio in radios:
            try:
                name = await radio.get_attribute("name")
            except Exception:  # noqa: BLE001
                continue
            if name:
                groups.setdefault(name, []).append(radio)

        for name, members in groups.items():
            try:
                if await self.page.query_selector(f'input[type="radio"][name="{name}"]:checked'):
                    continue
                question = await self._label_of(members[0])
                answer = self._default_answer(question, name, FieldType.RADIO, profile)
                if not answer:
                    continue
                labelled: list[tuple[ElementHandle, str]] = []
                for radio in members:
                    text = clean_label(
                        await radio.evaluate(
                            "el => { const l = el.closest('label') ||"
                            " (el.id && document.querySelector(`label[for=\"${el.id}\"]`));"
                            " return l ? l.textContent : (el.value || ''); }"
                        )
                    )
                    labelled.append((radio, text))
                matched = find_best_matching_option(answer, [t for _, t in labelled])
                for radio, text in labelled:
                    if matched is not None and text == matched:
                        await radio.check()
                        await self.human_delay(short=True)
                        break
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Radio group %s skipped: %s", name, exc)

    async def _fill_remaining_inputs(self, profile: Profile) -> None:
        try:
            inputs = await self.page.query_selector_all(
                "input[required]:not([type='hidden']):not([type='file']):not([type='submit'])"
                ":not([type='checkbox']):not([type='radio']), textarea[required]"
            )
        except Exception:  # noqa: BLE001
            return
        for element in inputs:
            try:
                if not await element.is_visible() or (await element.input_value()).strip():
                    continue
                label = await self._label_of(element)
                answer = self._default_answer(
                    label, await element.get_attribute("name") or "", FieldType.TEXT, profile
                )
                if answer:
                    await element.fill(answer)
                    await self.human_delay(short=True)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Required input skipped: %s", exc)

    async def repair_invalid_fields(self, profile: Profile) -> int:
        """Fill empty fields flagged invalid after a submit attempt.

        Returns:
            Number of fields repaired.
        """
        try:
            elements = await self.page.query_selector_all(INVALID_FIELD_SELECTOR)
        except Exception:  # noqa: BLE001
            return 0

        today = date.today()
        repaired = 0
        for element in elements:
            try:
                input_type = ((await element.get_attribute("type")) or "text").lower()
                if input_type not in _TEXT_INPUT_TYPES:
                    continue
                if not await element.is_visible() or (await element.input_value()).strip():
                    continue
                label = await self._label_of(element)
                value = repair_default_for(label, profile, today)
                if input_type == "date":
                    value = today.isoformat()
                await element.scroll_into_view_if_needed()
                await element.fill(value)
                await self.human_delay(short=True)
                repaired += 1
                self.logger.debug("Repaired %r with %r", label, value)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("Repair skipped a field: %s", exc)
        return repaired

    async def click_submit(self) -> bool:
        return await self._click_first(self.SUBMIT_SELECTORS)

    async def resubmit_after_repair(
        self,
        profile: Profile,
        submit_selectors: Optional[tuple[str, ...]] = None,
    ) -> int:
        """Validation-repair pass run once after the first submit click.

        Fills empty invalid fields, then clicks submit again if anything
        was repaired.

        Returns:
            Number of fields repaired.
        """
        repaired = await self.repair_invalid_fields(profile)
        if repaired:
            self.logger.info("Repaired %d invalid fields; submitting again", repaired)
            await self._click_first(submit_selectors or self.SUBMIT_SELECTORS, wait_for_load=True)
        return repaired

    async def wait_for_confirmation(self) -> tuple[bool, str]:
        """Detect the outcome after submit.

        Success selectors, then the URL, then visible error messages.
        No signal at all counts as tentative success.
        """
        try:
            await self.page.wait_for_load_state("networkidle", timeout=10000)
        except PlaywrightTimeoutError:
            pass
        await self.human_delay()

        for selector in CONFIRMATION_SELECTORS:
            element = await self._visible(selector)
            if element is not None:
                text = clean_label(await element.text_content())
                return True, text[:200] or f"Application submitted to {self.platform_name}"

        if is_success_url(self.page.url):
            return True, "Application submitted successfully"

        for selector in ERROR_SELECTORS:
            element = await self._visible(selector)
            if element is None:
                continue
            text = clean_label(await element.text_content())
            if "required field" in text.lower():
                continue
            return False, text[:200] or "Form validation failed"

        return True, NO_ERRORS_MESSAGE

    async def _capture_screenshot(self) -> Optional[str]:
        if not self.app_config.save_screenshots:
            return None
        path = screenshot_path_for(self.screenshots_dir, self.PLATFORM)
        try:
            os.makedirs(self.screenshots_dir, exist_ok=True)
            await self.take_screenshot(path)
            return path
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Screenshot failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def _prepare_submission(self, url: str) -> None:
        await self.initialize()
        await self.human_delay()
        await self.navigate(url)
        await self.human_delay(short=True)
        await self.human_scroll()

    def _failure(self, message: str, errors: list[str]) -> SubmissionResult:
        return SubmissionResult(success=False, message=message, errors=tuple(errors))

    @operation
    async def submit_application(self, url: str, options: SubmitOptions) -> SubmissionResult:
        """Open, fill and submit the application form for ``url``.

        Never raises: every failure is folded into the returned
        :class:`SubmissionResult`.
        """
        errors: list[str] = []
        try:
            await self._prepare_submission(url)
            await self.open_application_form()
            await self.wait_for_application_form()

            if await self._detect_captcha():
                errors.append("CAPTCHA detected")
                return self._failure("CAPTCHA requires manual completion", errors)

            errors.extend(await self.fill_application(options))

            if not await self.click_submit():
                return self._failure("Could not find or click submit button", errors)

            await self.human_delay()
            await self.resubmit_after_repair(options.profile)

            success, message = await self.wait_for_confirmation()
            screenshot_path = await self._capture_screenshot()
            return SubmissionResult(
                success=success,
                message=message,
                screenshot_path=screenshot_path,
                errors=tuple(errors),
            )
        except Exception as exc:  # noqa: BLE001
            errors.append(str(exc))
            self.logger.error("Submission to %s failed for %s: %s", self.platform_name, url, exc)
            return self._failure(f"{self.platform_name.title()} submission failed", errors)
        finally:
            await self.cleanup()
