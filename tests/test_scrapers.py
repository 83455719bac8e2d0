# tests/test_scrapers.py
# Scraper registry, pure helpers, and the scrape/submit flows against a
# fake page (no browser is launched).

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from auto_apply.errors import NavigationError, ScrapeError
from auto_apply.models import UNKNOWN_TITLE, JobData, Platform
from auto_apply.platforms import SCRAPER_REGISTRY, SubmitOptions, create_scraper
from auto_apply.platforms.base_platform import (
    INVALID_FIELD_SELECTOR,
    NO_ERRORS_MESSAGE,
    classify_upload_label,
    clean_label,
    first_real_option,
    is_success_url,
    job_data_from_ai_reply,
    screenshot_path_for,
)
from auto_apply.platforms.generic import GenericScraper
from auto_apply.platforms.lever import LeverScraper
from auto_apply.platforms.linkedin import _APPLIED_SELECTOR, LinkedInScraper
from auto_apply.platforms.workday import _SUBMIT_SELECTOR as WORKDAY_SUBMIT_SELECTOR
from auto_apply.platforms.workday import WorkdayScraper
from conftest import FakeLLM

AI_REPLY = (
    '```json\n{"title": "Site Reliability Engineer", "company": "Example Inc",'
    ' "description": "Requirements:\\n- Linux\\n- Terraform",'
    ' "requirements": [], "location": "Remote"}\n```'
)


class FakeElement:
    def __init__(self, text=""):
        self.text = text

    async def text_content(self):
        return self.text

    async def is_visible(self):
        return True

    async def is_enabled(self):
        return True


class FakePage:
    def __init__(self, elements=None, body_text="", title="", url="https://careers.example.com/jobs/1"):
        self.elements = elements or {}
        self.body_text = body_text
        self._title = title
        self.url = url

    async def query_selector(self, selector):
        return self.elements.get(selector)

    async def query_selector_all(self, selector):
        element = self.elements.get(selector)
        return [element] if element is not None else []

    async def evaluate(self, script, *args):
        return self.body_text

    async def title(self):
        return self._title

    async def wait_for_load_state(self, *args, **kwargs):
        return None

    async def wait_for_selector(self, *args, **kwargs):
        return None


class OfflineGenericScraper(GenericScraper):
    """Generic scraper whose session is a pre-built fake page."""

    fake_page = None
    navigation_error = None

    async def initialize(self):
        self.page = self.fake_page

    async def navigate(self, url):
        if self.navigation_error is not None:
            raise self.navigation_error

    async def human_delay(self, short=False):
        return None

    async def human_scroll(self):
        return None


def _offline(settings, page, llm=None):
    scraper = OfflineGenericScraper(settings, llm)
    scraper.fake_page = page
    return scraper


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_every_platform_has_a_scraper():
    assert set(SCRAPER_REGISTRY) == set(Platform)
    for platform, scraper_cls in SCRAPER_REGISTRY.items():
        assert scraper_cls.PLATFORM == platform


def test_create_scraper(settings):
    scraper = create_scraper(Platform.LEVER, settings)
    assert isinstance(scraper, LeverScraper)
    assert scraper.page is None


def test_create_scraper_rejects_unknown_platform(settings):
    with pytest.raises(ValueError, match="No scraper registered"):
        create_scraper("myspace", settings)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def test_clean_label():
    assert clean_label("  First \n  Name *") == "First Name"
    assert clean_label(None) == ""


def test_classify_upload_label():
    assert classify_upload_label("Cover Letter (optional) resume.pdf") == "cover_letter"
    assert classify_upload_label("Resume/CV") == "resume"
    assert classify_upload_label("Portfolio") is None


def test_first_real_option_skips_placeholders():
    options = [("", "Select..."), ("x", "Please select"), ("us", "United States")]
    assert first_real_option(options) == "us"
    assert first_real_option([("", "--")]) is None


def test_success_url():
    assert is_success_url("https://jobs.lever.co/acme/1/thanks")
    assert is_success_url("https://acme.com/apply/confirmation?id=1")
    assert not is_success_url("https://acme.com/apply")


def test_screenshot_path_uses_platform_and_millis(tmp_path):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    path = screenshot_path_for(tmp_path, Platform.LEVER, now)
    assert path == str(tmp_path / "lever_1704067200000.png")


def test_job_data_from_ai_reply():
    job = job_data_from_ai_reply(AI_REPLY, "https://careers.example.com/jobs/1", Platform.GENERIC)
    assert job.title == "Site Reliability Engineer"
    assert job.company == "Example Inc"
    assert job.requirements == ["Linux", "Terraform"]
    assert job.location == "Remote"


def test_job_data_from_ai_reply_infers_company():
    job = job_data_from_ai_reply(
        '{"title": "Engineer"}', "https://boards.greenhouse.io/acme/jobs/1", Platform.GREENHOUSE
    )
    assert job.company == "Acme"


def test_job_data_from_ai_reply_requires_title():
    assert job_data_from_ai_reply('{"company": "Acme"}', "https://x.com", Platform.GENERIC) is None
    assert job_data_from_ai_reply("no json here", "https://x.com", Platform.GENERIC) is None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


async def test_generic_extraction_uses_ai(settings):
    llm = FakeLLM([AI_REPLY])
    scraper = _offline(settings, FakePage(body_text="Site Reliability Engineer\nRequirements..."), llm)
    scraper.page = scraper.fake_page

    job = await scraper.extract_job_data("https://careers.example.com/jobs/1")

    assert job.title == "Site Reliability Engineer"
    assert job.platform == Platform.GENERIC
    prompt, _ = llm.calls[0]
    assert "Site Reliability Engineer" in prompt


async def test_generic_extraction_falls_back_to_heuristics(settings):
    page = FakePage(
        elements={"h1": FakeElement("Data Analyst *")},
        body_text="Data Analyst\n\nRequirements:\n- SQL\n",
        title="Careers",
    )
    llm = FakeLLM(["I could not find a job posting."])
    scraper = _offline(settings, page, llm)
    scraper.page = page

    job = await scraper.extract_job_data("https://careers.example.com/jobs/1")

    assert job.title == "Data Analyst"
    assert job.company == "Example"
    assert job.requirements == ["SQL"]


async def test_heuristics_use_page_title_without_h1(settings):
    scraper = _offline(settings, FakePage(body_text="", title="Backend Engineer | Example"))
    scraper.page = scraper.fake_page
    job = await scraper.heuristic_extract("https://careers.example.com/jobs/1", "", "Backend Engineer | Example")
    assert job.title == "Backend Engineer | Example"


async def test_scrape_never_returns_nothing(settings):
    scraper = _offline(settings, FakePage())
    job = await scraper.scrape("https://careers.example.com/jobs/1")
    assert isinstance(job, JobData)
    assert job.title == UNKNOWN_TITLE
    assert scraper.page is None


async def test_scrape_wraps_unexpected_errors(settings):
    class Exploding(OfflineGenericScraper):
        async def extract_job_data(self, url):
            raise RuntimeError("boom")

    scraper = Exploding(settings)
    scraper.fake_page = FakePage()
    with pytest.raises(ScrapeError) as exc_info:
        await scraper.scrape("https://careers.example.com/jobs/1")
    assert "[generic] boom" in str(exc_info.value)
    assert exc_info.value.url == "https://careers.example.com/jobs/1"


async def test_scrape_propagates_navigation_error(settings):
    scraper = _offline(settings, FakePage())
    scraper.navigation_error = NavigationError("Timed out loading page", "generic", "https://x.com")
    with pytest.raises(NavigationError):
        await scraper.scrape("https://x.com")


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class OfflineSubmitScraper(OfflineGenericScraper):
    async def _prepare_submission(self, url):
        await self.initialize()


def _submit_options(profile, **kwargs):
    job = JobData(url="https://careers.example.com/jobs/1", platform=Platform.GENERIC, title="Engineer")
    return SubmitOptions(profile=profile, job_data=job, **kwargs)


async def test_submit_without_submit_button_fails_with_upload_error(settings, profile, tmp_path):
    scraper = OfflineSubmitScraper(settings)
    scraper.fake_page = FakePage()
    resume = tmp_path / "resume.md"
    resume.write_text("resume", encoding="utf-8")

    result = await scraper.submit_application(
        "https://careers.example.com/jobs/1",
        _submit_options(profile, resume_path=str(resume)),
    )

    assert not result.success
    assert result.message == "Could not find or click submit button"
    assert result.errors == ("Failed to upload resume",)


async def test_submit_stops_on_captcha(settings, profile):
    scraper = OfflineSubmitScraper(settings)
    scraper.fake_page = FakePage(elements={"div.g-recaptcha": FakeElement()})

    result = await scraper.submit_application(
        "https://careers.example.com/jobs/1", _submit_options(profile)
    )

    assert not result.success
    assert result.message == "CAPTCHA requires manual completion"
    assert result.errors == ("CAPTCHA detected",)


async def test_confirmation_without_signals_is_tentative_success(settings):
    scraper = _offline(settings, FakePage(url="https://careers.example.com/apply"))
    scraper.page = scraper.fake_page
    assert await scraper.wait_for_confirmation() == (True, NO_ERRORS_MESSAGE)


async def test_confirmation_reports_visible_error(settings):
    page = FakePage(elements={".error-message": FakeElement("Email is invalid")})
    scraper = _offline(settings, page)
    scraper.page = page
    assert await scraper.wait_for_confirmation() == (False, "Email is invalid")


async def test_linkedin_requires_login_state(settings, profile):
    scraper = LinkedInScraper(settings)
    result = await scraper.submit_application(
        "https://www.linkedin.com/jobs/view/1", _submit_options(profile)
    )
    assert not result.success
    assert result.message == "LinkedIn Easy Apply requires a logged-in session"
    assert result.errors == ("Authentication required",)


# ---------------------------------------------------------------------------
# Submit, repair, resubmit
# ---------------------------------------------------------------------------


class FakeButton(FakeElement):
    def __init__(self, name, events):
        super().__init__(name)
        self.name = name
        self.events = events

    async def click(self):
        self.events.append(self.name)


class FakeInvalidInput:
    """An empty text input the page flags invalid after the first submit."""

    def __init__(self, label, events, value=""):
        self.label = label
        self.events = events
        self.value = value

    async def get_attribute(self, name):
        return "text" if name == "type" else None

    async def is_visible(self):
        return True

    async def input_value(self):
        return self.value

    async def evaluate(self, script, *args):
        return self.label

    async def scroll_into_view_if_needed(self):
        return None

    async def fill(self, value):
        self.value = value
        self.events.append(f"repair:{value}")


class OfflineSession:
    """Mixin: the submission session is a pre-built fake page."""

    fake_page = None

    async def _prepare_submission(self, url):
        self.page = self.fake_page

    async def human_delay(self, short=False):
        return None


class OfflineWorkdayScraper(OfflineSession, WorkdayScraper):
    pass


class OfflineLinkedInScraper(OfflineSession, LinkedInScraper):
    pass


async def test_submit_repairs_invalid_fields_and_submits_again(settings, profile):
    events = []
    gpa = FakeInvalidInput("GPA", events)
    scraper = OfflineSubmitScraper(settings)
    scraper.fake_page = FakePage(
        elements={
            "button[type='submit']": FakeButton("submit", events),
            INVALID_FIELD_SELECTOR: gpa,
            ".confirmation": FakeElement("Thanks for applying!"),
        },
        url="https://careers.example.com/apply",
    )

    result = await scraper.submit_application(
        "https://careers.example.com/jobs/1", _submit_options(profile)
    )

    assert result.success
    assert result.message == "Thanks for applying!"
    assert result.errors == ()
    assert events == ["submit", "repair:3.5", "submit"]
    assert scraper.page is None


async def test_submit_without_invalid_fields_clicks_once(settings, profile):
    events = []
    scraper = OfflineSubmitScraper(settings)
    scraper.fake_page = FakePage(
        elements={
            "button[type='submit']": FakeButton("submit", events),
            INVALID_FIELD_SELECTOR: FakeInvalidInput("Email", events, value="jane@example.com"),
        },
        url="https://careers.example.com/apply/thank-you",
    )

    result = await scraper.submit_application(
        "https://careers.example.com/jobs/1", _submit_options(profile)
    )

    assert result.success
    assert result.message == "Application submitted successfully"
    assert events == ["submit"]


async def test_repair_invalid_fields_uses_label_defaults(settings, profile):
    events = []
    scraper = _offline(settings, FakePage(elements={INVALID_FIELD_SELECTOR: FakeInvalidInput("University", events)}))
    scraper.page = scraper.fake_page

    assert await scraper.repair_invalid_fields(profile) == 1
    assert events == ["repair:TU Berlin"]


async def test_workday_runs_repair_pass_after_submit(settings, profile):
    events = []
    scraper = OfflineWorkdayScraper(settings)
    scraper.fake_page = FakePage(
        elements={
            WORKDAY_SUBMIT_SELECTOR: FakeButton("submit", events),
            INVALID_FIELD_SELECTOR: FakeInvalidInput("Graduation year", events),
        }
    )

    result = await scraper.submit_application(
        "https://acme.wd5.myworkdayjobs.com/en-US/careers/job/Berlin/Engineer_R1",
        _submit_options(profile),
    )

    assert result.success
    assert result.message == "Application submitted to Workday"
    assert events == ["submit", "repair:2023", "submit"]


async def test_linkedin_runs_repair_pass_after_submit(settings, profile, tmp_path):
    state = tmp_path / "linkedin_state.json"
    state.write_text("{}", encoding="utf-8")
    logged_in = replace(settings, browser=replace(settings.browser, storage_state=str(state)))

    events = []
    scraper = OfflineLinkedInScraper(logged_in)
    scraper.fake_page = FakePage(
        elements={
            'button[aria-label*="Easy Apply"]': FakeButton("easy_apply", events),
            'button[aria-label*="Submit application"]': FakeButton("submit", events),
            INVALID_FIELD_SELECTOR: FakeInvalidInput("GPA", events),
            _APPLIED_SELECTOR: FakeElement("Your application was sent"),
        }
    )

    result = await scraper.submit_application(
        "https://www.linkedin.com/jobs/view/1", _submit_options(profile)
    )

    assert result.success
    assert result.message == "Application sent via LinkedIn Easy Apply"
    assert events == ["easy_apply", "submit", "repair:3.5", "submit"]
