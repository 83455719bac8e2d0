"""
Platform-agnostic Playwright form filler for the apply engine.

Decides what value goes into each discovered form control and writes it
into the page.  Value resolution is an explicit, ordered chain of
resolver methods, each returning an optional string; the first non-empty
result wins:

  1. **Profile mapping**: the field's ``label + name`` is tested against
     ``PROFILE_RULES`` in fixed priority order (relocation before
     location, first/last name before full name, ...).
  2. **Prefilled value** captured during extraction.
  3. **Cached answer** keyed by the normalised label.
  4. **AI answer** from the job's already-answered custom questions.
  5. **Interactive prompt** (required fields only, when enabled); the
     operator's answer is written back to the cache.

A field that still resolves to nothing is reported as skipped; it never
aborts the submission.

Writing into the DOM follows a three-strategy fallback per text control
(``fill`` → JS value + ``input``/``change`` events → click + keyboard).
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Union

from agentops.sdk.decorators import operation
from playwright.async_api import ElementHandle, Page
from rich.prompt import Prompt

from auto_apply.answer_cache import AnswerCache, InMemoryAnswerCache, get_cache_key
from auto_apply.models import (
    CustomQuestion,
    Experience,
    FieldType,
    FormField,
    JobData,
    Profile,
)

# ---------------------------------------------------------------------------
# Module-level logger
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)

__all__ = [
    "FIELD_PATTERNS",
    "PROFILE_RULES",
    "SCREENING_ANSWERS",
    "FillResult",
    "FormFiller",
    "Prompter",
    "RichPrompter",
    "calculate_years_experience",
    "find_best_matching_option",
    "resolve_profile_value",
    "screening_answer_for",
    "repair_default_for",
    "split_name",
]


# ═══════════════════════════════════════════════════════════════════════════
# Field patterns
# ═══════════════════════════════════════════════════════════════════════════

FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    # Personal information
    "first_name": re.compile(r"first[\s_-]?name|given[\s_-]?name|\bfname\b", re.I),
    "last_name": re.compile(r"last[\s_-]?name|surname|family[\s_-]?name|\blname\b", re.I),
    "full_name": re.compile(
        r"full[\s_-]?name|^\s*(?:your[\s_-]?)?name\b|candidate[\s_-]?name", re.I
    ),
    "email": re.compile(r"e?[\s_-]?mail|email[\s_-]?address", re.I),
    "phone": re.compile(r"phone|\btel\b|telephone|mobile|\bcell|contact[\s_-]?number", re.I),
    "relocation": re.compile(
        r"relocation|relocate|willing[\s_-]?to[\s_-]?relocate|open[\s_-]?to[\s_-]?relocate", re.I
    ),
    "location": re.compile(r"location|city|address|where.*based|current[\s_-]?location", re.I),
    # URLs
    "linkedin": re.compile(r"linkedin|li[\s_-]?url|li[\s_-]?profile", re.I),
    "github": re.compile(r"github|gh[\s_-]?url|gh[\s_-]?profile", re.I),
    "portfolio": re.compile(r"portfolio|website|personal[\s_-]?site|\burl\b|homepage", re.I),
    # Documents
    "resume": re.compile(r"resume|\bcv\b|curriculum[\s_-]?vitae", re.I),
    "cover_letter": re.compile(
        r"cover[\s_-]?letter|covering[\s_-]?letter|motivation", re.I
    ),
    # Work authorisation
    "work_authorization": re.compile(
        r"work[\s_-]?auth|authori[sz]ed[\s_-]?to[\s_-]?work|legally[\s_-]?authori[sz]ed"
        r"|eligib|visa[\s_-]?status|right[\s_-]?to[\s_-]?work",
        re.I,
    ),
    "sponsorship": re.compile(r"sponsor", re.I),
    # Experience
    "years_experience": re.compile(
        r"years?[\s_-]?(?:of[\s_-]?)?experience|experience[\s_-]?years|how[\s_-]?many[\s_-]?years",
        re.I,
    ),
    "current_company": re.compile(r"current[\s_-]?company|employer|where.*work", re.I),
    "current_title": re.compile(r"current[\s_-]?title|current[\s_-]?role|job[\s_-]?title", re.I),
    # Compensation / availability
    "salary": re.compile(
        r"salary|compensation|\bpay\b|expected[\s_-]?salary|desired[\s_-]?salary", re.I
    ),
    "start_date": re.compile(
        r"start[\s_-]?date|when.*start|available.*start|availability|earliest[\s_-]?start", re.I
    ),
    "notice_period": re.compile(r"notice[\s_-]?period|notice|how[\s_-]?soon", re.I),
    "referral": re.compile(r"referral|how.*hear|\bsource\b|where.*find|referred[\s_-]?by", re.I),
    # Voluntary self-identification
    "gender": re.compile(r"gender|\bsex\b", re.I),
    "ethnicity": re.compile(r"ethnicity|\brace\b|ethnic[\s_-]?background", re.I),
    "veteran": re.compile(r"veteran|military[\s_-]?service", re.I),
    "disability": re.compile(r"disability|disabled", re.I),
}

DECLINE_TO_IDENTIFY: str = "Decline to self identify"


def _latest_experience(profile: Profile) -> Optional[Experience]:
    return profile.experience[0] if profile.experience else None


def _min_salary(profile: Profile) -> Optional[str]:
    salary = profile.preferences.min_salary
    return str(salary) if salary else None


# Priority order is significant: specific patterns precede the general ones
# that would otherwise swallow them (relocation before location).
PROFILE_RULES: list[tuple[str, Callable[[Profile], Optional[str]]]] = [
    ("first_name", lambda p: p.first_name or None),
    ("last_name", lambda p: p.last_name or None),
    ("full_name", lambda p: p.name or None),
    ("email", lambda p: p.email or None),
    ("phone", lambda p: p.phone or None),
    ("relocation", lambda p: "No" if p.preferences.remote_only else "Yes"),
    ("location", lambda p: p.location or None),
    ("linkedin", lambda p: p.linkedin_url or None),
    ("github", lambda p: p.github_url or None),
    ("portfolio", lambda p: p.portfolio_url or None),
    ("work_authorization", lambda p: "Yes"),
    ("sponsorship", lambda p: "No"),
    ("years_experience", lambda p: calculate_years_experience(p.experience)),
    ("current_company", lambda p: getattr(_latest_experience(p), "company", None) or None),
    ("current_title", lambda p: getattr(_latest_experience(p), "title", None) or None),
    ("salary", _min_salary),
    ("start_date", lambda p: "2 weeks"),
    ("notice_period", lambda p: "2 weeks"),
    ("referral", lambda p: "Online Job Board"),
    ("gender", lambda p: DECLINE_TO_IDENTIFY),
    ("ethnicity", lambda p: DECLINE_TO_IDENTIFY),
    ("veteran", lambda p: "I am not a protected veteran"),
    ("disability", lambda p: "I don't wish to answer"),
]

# Screening questions common to most ATS forms, keyed by label pattern.
SCREENING_ANSWERS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"relocat", re.I), "Yes"),
    (re.compile(r"sponsor", re.I), "No"),
    (re.compile(r"authori[sz]ed|eligible to work|right to work", re.I), "Yes"),
    (re.compile(r"18 years|over 18|at least 18", re.I), "Yes"),
    (re.compile(r"background check", re.I), "Yes"),
    (re.compile(r"how did you hear|how did you find|where did you hear", re.I), "Job Board"),
    (re.compile(r"gender", re.I), DECLINE_TO_IDENTIFY),
    (re.compile(r"veteran", re.I), "I am not a protected veteran"),
    (re.compile(r"disabilit", re.I), "I don't wish to answer"),
    (re.compile(r"\brace\b|ethnic|hispanic|latino", re.I), DECLINE_TO_IDENTIFY),
    (re.compile(r"acknowledge|privacy|consent", re.I), "I acknowledge"),
    (re.compile(r"previously applied|applied before|worked here before", re.I), "No"),
]

_YES_SYNONYMS = re.compile(r"^(yes|true|y|affirmative|correct)$", re.I)
_NO_SYNONYMS = re.compile(r"^(no|false|n|negative)$", re.I)


# ═══════════════════════════════════════════════════════════════════════════
# Pure resolution helpers
# ═══════════════════════════════════════════════════════════════════════════


def _parse_date(value: str) -> Optional[date]:
    value = (value or "").strip()
    for fmt in ("%Y-%m-%d", "%Y-%m", "%Y/%m/%d", "%Y/%m", "%m/%Y", "%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def calculate_years_experience(
    experience: list[Experience], today: Optional[date] = None
) -> str:
    """Total professional experience in whole years, as a string.

    Sums ``max(0, months between start and end-or-today)`` over every
    entry and rounds the total to the nearest year (half up, so 18 months
    is 2 years).  Entries with an unparseable start date are ignored.

    Args:
        experience: Profile experience entries.
        today: Reference date for open-ended entries.

    Returns:
        ``"0"`` for an empty list, otherwise the rounded year count.
    """
    if not experience:
        return "0"

    today = today or date.today()
    total_months = 0
    for entry in experience:
        start = _parse_date(entry.start_date)
        if start is None:
            continue
        end = _parse_date(entry.end_date) if entry.end_date else today
        end = end or today
        months = (end.year - start.year) * 12 + (end.month - start.month)
        total_months += max(0, months)

    return str(int(total_months / 12 + 0.5))


def find_best_matching_option(value: str, options: list[str]) -> Optional[str]:
    """Match ``value`` against a control's option labels.

    Exact case-insensitive match, then substring containment in either
    direction, then the yes/no synonym table.

    Returns:
        The matching option text as it appears in ``options``, or ``None``.
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return None
    candidates = [opt for opt in options if opt and opt.strip()]

    for opt in candidates:
        if opt.strip().lower() == normalized:
            return opt

    for opt in candidates:
        opt_lower = opt.strip().lower()
        if normalized in opt_lower or opt_lower in normalized:
            return opt

    for synonyms in (_YES_SYNONYMS, _NO_SYNONYMS):
        if synonyms.match(normalized):
            for opt in candidates:
                if synonyms.match(opt.strip()):
                    return opt

    return None


def resolve_profile_value(form_field: FormField, profile: Profile) -> Optional[str]:
    """Map a field to a profile-derived value through ``PROFILE_RULES``.

    Only the first matching rule is consulted, even when it yields
    nothing (a matched "phone" field with no phone on file stays empty
    rather than falling through to a less specific rule).
    """
    combined = f"{form_field.label or ''} {form_field.name or ''}".lower()
    for pattern_key, value_for in PROFILE_RULES:
        if FIELD_PATTERNS[pattern_key].search(combined):
            return value_for(profile)
    return None


def _label_key(text: str) -> str:
    return " ".join((text or "").lower().split())


def screening_answer_for(label: str) -> Optional[str]:
    """Default answer for a common screening question, by label."""
    for pattern, answer in SCREENING_ANSWERS:
        if pattern.search(label or ""):
            return answer
    return None


def repair_default_for(label: str, profile: Profile, today: Optional[date] = None) -> str:
    """Sensible default for a field flagged invalid after a submit attempt."""
    lower = (label or "").lower()
    if "date" in lower and "update" not in lower:
        return (today or date.today()).isoformat()
    if "graduat" in lower or re.search(r"\byear\b", lower):
        return "2023"
    if "gpa" in lower:
        return "3.5"
    if "salary" in lower or "compensation" in lower:
        return _min_salary(profile) or "Negotiable"
    if any(k in lower for k in ("college", "university", "school")):
        if profile.education:
            return profile.education[0].institution
    return "N/A"


# ═══════════════════════════════════════════════════════════════════════════
# Operator prompt capability
# ═══════════════════════════════════════════════════════════════════════════


class Prompter(ABC):
    """Asks the operator for a value the resolvers could not find."""

    @abstractmethod
    def ask(self, label: str, options: Optional[list[str]] = None) -> Optional[str]:
        """Return the operator's answer or ``None``."""


class RichPrompter(Prompter):
    """Terminal prompt built on ``rich.prompt.Prompt``."""

    def ask(self, label: str, options: Optional[list[str]] = None) -> Optional[str]:
        try:
            if options:
                answer = Prompt.ask(f"  {label}", choices=options)
            else:
                answer = Prompt.ask(f"  {label}", default="", show_default=False)
        except EOFError:
            logger.debug("No terminal available to prompt for %r", label)
            return None
        answer = (answer or "").strip()
        return answer or None


# ═══════════════════════════════════════════════════════════════════════════
# FillResult
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class FillResult:
    """Aggregate outcome of a form-fill pass.

    Attributes:
        success: ``False`` only when a fill raised unexpectedly.
        filled_fields: Labels (or names) of fields that received a value.
        skipped_fields: Labels of fields that resolved to nothing or could
            not be located.
        errors: Human-readable error strings.
    """

    success: bool = True
    filled_fields: list[str] = field(default_factory=list)
    skipped_fields: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "FillResult") -> "FillResult":
        return FillResult(
            success=self.success and other.success,
            filled_fields=self.filled_fields + other.filled_fields,
            skipped_fields=self.skipped_fields + other.skipped_fields,
            errors=self.errors + other.errors,
        )


Resolver = Callable[[FormField], Optional[str]]


# ═══════════════════════════════════════════════════════════════════════════
# FormFiller
# ═══════════════════════════════════════════════════════════════════════════


class FormFiller:
    """Resolves and writes values for one application form.

    Instantiated once per submission by a platform scraper.  The page may
    be ``None`` when only :meth:`resolve_value` is needed.
    """

    def __init__(
        self,
        page: Optional[Page],
        profile: Profile,
        job_data: Optional[JobData] = None,
        *,
        cache: Optional[AnswerCache] = None,
        prompter: Optional[Prompter] = None,
        interactive: bool = False,
        resume_path: Optional[str] = None,
        cover_letter_path: Optional[str] = None,
        answered_questions: Optional[list[CustomQuestion]] = None,
    ) -> None:
        self.page = page
        self.profile = profile
        self.job_data = job_data
        self.cache: AnswerCache = cache if cache is not None else InMemoryAnswerCache()
        self.prompter = prompter
        self.interactive = interactive and prompter is not None
        self.resume_path = resume_path
        self.cover_letter_path = cover_letter_path
        self.answered_questions: list[CustomQuestion] = list(answered_questions or [])
        self.filled_labels: set[str] = set()
        self.logger = logging.getLogger(f"{__name__}.FormFiller")

        self.resolvers: list[Resolver] = [
            self._resolve_from_profile,
            self._resolve_prefilled,
            self._resolve_cached,
            self._resolve_answered_question,
            self._resolve_interactively,
        ]

    # ------------------------------------------------------------------
    # Resolver chain
    # ------------------------------------------------------------------

    def resolve_value(self, form_field: FormField) -> Optional[str]:
        """Run the resolver chain; the first non-empty value wins."""
        for resolver in self.resolvers:
            value = resolver(form_field)
            if value:
                return value
        return None

    def _resolve_from_profile(self, form_field: FormField) -> Optional[str]:
        return resolve_profile_value(form_field, self.profile)

    def _resolve_prefilled(self, form_field: FormField) -> Optional[str]:
        return form_field.value or None

    def _resolve_cached(self, form_field: FormField) -> Optional[str]:
        label = form_field.label or form_field.name
        if not label:
            return None
        return self.cache.get(get_cache_key(label))

    def _resolve_answered_question(self, form_field: FormField) -> Optional[str]:
        label = (form_field.label or "").strip().lower()
        if not label:
            return None
        for question in self.answered_questions:
            text = question.question.strip().lower()
            if question.answer and (text == label or text.startswith(label) or label.startswith(text)):
                return question.answer
        return None

    def _resolve_interactively(self, form_field: FormField) -> Optional[str]:
        if not (self.interactive and form_field.required):
            return None
        label = form_field.label or form_field.name
        if not label:
            return None
        answer = self.prompter.ask(label, form_field.options or None)
        if answer:
            self.cache.set(get_cache_key(label), answer)
        return answer

    def _prompt_for_question(self, question: CustomQuestion) -> Optional[str]:
        key = get_cache_key(question.question)
        cached = self.cache.get(key)
        if cached:
            return cached
        if not (self.interactive and question.required):
            return None
        answer = self.prompter.ask(question.question, question.options or None)
        if answer:
            self.cache.set(key, answer)
        return answer

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    async def _human_delay(self, min_ms: int = 80, max_ms: int = 300) -> None:
        """Sleep a random interval between UI actions."""
        await asyncio.sleep(random.randint(min_ms, max_ms) / 1000.0)

    # ------------------------------------------------------------------
    # Element location
    # ------------------------------------------------------------------

    async def _query(self, selector: str) -> Optional[ElementHandle]:
        try:
            return await self.page.query_selector(selector)
        except Exception:  # noqa: BLE001
            # invalid selector for this field name (brackets, dots, ...)
            return None

    async def _locate(self, form_field: FormField) -> Optional[ElementHandle]:
        selectors: list[str] = []
        if form_field.name:
            selectors.append(f'[name="{form_field.name}"]')
            selectors.append(f'[id="{form_field.name}"]')
        if form_field.label:
            safe_label = form_field.label.replace('"', "")
            selectors.append(f'[aria-label="{safe_label}"]')
            selectors.append(f'[placeholder="{safe_label}"]')

        for selector in selectors:
            element = await self._query(selector)
            if element is not None:
                return element

        if form_field.label:
            return await self._find_input_by_label(form_field.label)
        return None

    async def _find_input_by_label(self, label_text: str) -> Optional[ElementHandle]:
        wanted = label_text.strip().lower()
        try:
            labels = await self.page.query_selector_all("label")
        except Exception:  # noqa: BLE001
            return None

        for label in labels:
            try:
                text = ((await label.text_content()) or "").strip().lower()
                if not text or wanted not in text:
                    continue
                for_attr = await label.get_attribute("for")
                if for_attr:
                    element = await self._query(f'[id="{for_attr}"]')
                    if element is not None:
                        return element
                nested = await label.query_selector("input, textarea, select")
                if nested is not None:
                    return nested
                sibling = await label.evaluate_handle(
                    "el => { const n = el.nextElementSibling;"
                    " return n && n.matches('input, textarea, select') ? n : null; }"
                )
                element = sibling.as_element()
                if element is not None:
                    return element
            except Exception:  # noqa: BLE001
                continue
        return None

    async def _find_question_container(self, question_text: str) -> Optional[ElementHandle]:
        needle = question_text.strip().lower()[:50]
        for selector in (
            "[class*='question']",
            "[class*='field']",
            ".form-group",
            "[class*='form-element']",
            "fieldset",
        ):
            try:
                containers = await self.page.query_selector_all(selector)
            except Exception:  # noqa: BLE001
                continue
            for container in containers:
                text = ((await container.text_content()) or "").lower()
                if needle and needle in text:
                    return container
        return None

    # ------------------------------------------------------------------
    # DOM writes
    # ------------------------------------------------------------------

    async def _fill_text(self, element: ElementHandle, value: str) -> bool:
        """Fill a text-like control using three escalating strategies."""
        try:
            await element.fill(value)
            await self._human_delay()
            return True
        except Exception:  # noqa: BLE001
            pass

        try:
            await element.evaluate(
                "(el, v) => { el.value = v;"
                " el.dispatchEvent(new Event('input', {bubbles: true}));"
                " el.dispatchEvent(new Event('change', {bubbles: true})); }",
                value,
            )
            await self._human_delay()
            return True
        except Exception:  # noqa: BLE001
            pass

        try:
            await element.click()
            await self.page.keyboard.type(value, delay=50)
            await self._human_delay()
            return True
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("_fill_text: all strategies failed: %s", exc)
            return False

    async def _select(self, element: ElementHandle, value: str, options: list[str]) -> bool:
        if not options:
            try:
                options = [
                    (t or "").strip()
                    for t in await element.eval_on_selector_all(
                        "option", "opts => opts.map(o => o.textContent)"
                    )
                ]
            except Exception:  # noqa: BLE001
                options = []
        matched = find_best_matching_option(value, options)
        if matched is None:
            self.logger.debug("No option matches %r; leaving select unset", value)
            return False
        try:
            await element.select_option(label=matched)
            await self._human_delay()
            return True
        except Exception:  # noqa: BLE001
            return False

    async def _radio_label(self, radio: ElementHandle) -> str:
        try:
            return await radio.evaluate(
                "el => { const l = el.closest('label') ||"
                " (el.id && document.querySelector(`label[for=\"${el.id}\"]`));"
                " return l ? l.textContent.trim() : ''; }"
            )
        except Exception:  # noqa: BLE001
            return ""

    async def _check_radio(self, radios: list[ElementHandle], value: str, options: list[str]) -> bool:
        labels: list[tuple[ElementHandle, str]] = []
        for radio in radios:
            text = await self._radio_label(radio) or (await radio.get_attribute("value") or "")
            labels.append((radio, text))

        matched = find_best_matching_option(value, options or [text for _, text in labels])
        if matched is None:
            return False
        for radio, text in labels:
            if text.strip().lower() == matched.strip().lower() or matched.lower() in text.lower():
                try:
                    await radio.check()
                    await self._human_delay()
                    return True
                except Exception:  # noqa: BLE001
                    return False
        return False

    async def _set_checkbox(self, element: ElementHandle, value: str) -> bool:
        should_check = value.strip().lower() in ("yes", "true", "1", "checked", "i acknowledge")
        try:
            if should_check:
                await element.check()
            else:
                await element.uncheck()
            await self._human_delay()
            return True
        except Exception:  # noqa: BLE001
            return False

    async def _upload(self, element: Optional[ElementHandle], form_field: FormField) -> bool:
        combined = f"{form_field.label} {form_field.name}"
        if FIELD_PATTERNS["cover_letter"].search(combined):
            file_path = self.cover_letter_path
        elif FIELD_PATTERNS["resume"].search(combined):
            file_path = self.resume_path
        else:
            file_path = None
        if not file_path:
            return False

        try:
            if element is not None:
                await element.set_input_files(file_path)
                await self._human_delay()
                return True
            upload_button = await self._query(
                "[class*='upload'], [class*='attach'], button:has-text('Upload')"
            )
            if upload_button is None:
                return False
            async with self.page.expect_file_chooser() as chooser_info:
                await upload_button.click()
            chooser = await chooser_info.value
            await chooser.set_files(file_path)
            await self._human_delay()
            return True
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Upload failed for %s: %s", form_field.name, exc)
            return False

    async def _has_value(self, element: ElementHandle) -> bool:
        try:
            return bool((await element.input_value()).strip())
        except Exception:  # noqa: BLE001
            return False

    async def fill_field(self, form_field: FormField) -> bool:
        """Resolve one field and write it into the page.

        A text control that already holds a non-empty value is left
        untouched and counted as filled.

        Returns:
            ``True`` if the field ends up holding a value.
        """
        element = await self._locate(form_field)

        if form_field.type == FieldType.FILE:
            return await self._upload(element, form_field)

        if form_field.type in (FieldType.TEXT, FieldType.EMAIL, FieldType.TEL, FieldType.TEXTAREA):
            if element is not None and await self._has_value(element):
                return True

        value = self.resolve_value(form_field)
        if not value:
            return False

        if form_field.type == FieldType.RADIO:
            try:
                radios = await self.page.query_selector_all(
                    f'input[type="radio"][name="{form_field.name}"]'
                )
            except Exception:  # noqa: BLE001
                radios = []
            return await self._check_radio(radios, value, form_field.options)

        if element is None:
            return False
        if form_field.type == FieldType.SELECT:
            return await self._select(element, value, form_field.options)
        if form_field.type == FieldType.CHECKBOX:
            return await self._set_checkbox(element, value)
        return await self._fill_text(element, value)

    # ------------------------------------------------------------------
    # Public fill passes
    # ------------------------------------------------------------------

    @operation
    async def fill_form(self, form_fields: list[FormField]) -> FillResult:
        """Fill every field once through the resolver chain.

        Args:
            form_fields: Fields discovered during extraction.

        Returns:
            ``FillResult`` listing filled and skipped labels.
        """
        result = FillResult()
        for form_field in form_fields:
            name = form_field.label or form_field.name
            try:
                if await self.fill_field(form_field):
                    result.filled_fields.append(name)
                    self.filled_labels.add(_label_key(name))
                else:
                    result.skipped_fields.append(name)
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f"Failed to fill {name}: {exc}")
                result.success = False

        self.logger.info(
            "fill_form: %d filled, %d skipped, %d errors",
            len(result.filled_fields),
            len(result.skipped_fields),
            len(result.errors),
        )
        return result

    async def _write_answer(self, container: ElementHandle, question: CustomQuestion, answer: str) -> bool:
        """Write ``answer`` into the container's control.

        Text and select controls that already hold a value are kept.
        """
        if question.type == FieldType.TEXTAREA:
            target = await container.query_selector("textarea")
            if target is None:
                return False
            return await self._has_value(target) or await self._fill_text(target, answer)
        if question.type == FieldType.SELECT:
            target = await container.query_selector("select")
            if target is None:
                return False
            return await self._has_value(target) or await self._select(target, answer, question.options)
        if question.type == FieldType.RADIO:
            radios = await container.query_selector_all("input[type='radio']")
            return await self._check_radio(radios, answer, question.options)
        if question.type == FieldType.CHECKBOX:
            wanted = [a.strip().lower() for a in answer.split(",") if a.strip()]
            checked = False
            for box in await container.query_selector_all("input[type='checkbox']"):
                text = (await self._radio_label(box)).lower()
                value = (await box.get_attribute("value") or "").lower()
                if any(w in text or (value and w in value) for w in wanted):
                    await box.check()
                    checked = True
            if checked:
                await self._human_delay()
            return checked
        target = await container.query_selector(
            "input[type='text'], input:not([type]), textarea"
        )
        if target is None:
            return False
        return await self._has_value(target) or await self._fill_text(target, answer)

    @operation
    async def fill_custom_questions(self, questions: list[CustomQuestion]) -> FillResult:
        """Write resolved answers into each question's container.

        Unanswered required questions fall back to the cache and, when
        interactive, to the operator.  Questions whose control was already
        filled by :meth:`fill_form` are left alone.
        """
        result = FillResult()
        for question in questions:
            name = question.question[:50]
            if _label_key(question.question) in self.filled_labels:
                self.logger.debug("Question %r already filled from the form pass", name)
                continue
            try:
                if not question.answer:
                    prompted = self._prompt_for_question(question)
                    if prompted:
                        question.answer = prompted
                if not question.answer:
                    result.skipped_fields.append(name)
                    continue
                container = await self._find_question_container(question.question)
                if container is not None and await self._write_answer(container, question, question.answer):
                    result.filled_fields.append(name)
                else:
                    result.skipped_fields.append(name)
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f'Failed to answer "{question.question[:30]}...": {exc}')
                if question.required:
                    result.success = False
        return result


def split_name(profile: Union[Profile, str]) -> tuple[str, str]:
    """Return ``(first, last)`` where last joins every remaining token."""
    name = profile.name if isinstance(profile, Profile) else profile
    parts = (name or "").split()
    return (parts[0] if parts else "", " ".join(parts[1:]))
