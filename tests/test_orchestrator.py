# tests/test_orchestrator.py
# Per-job workflow and batch loop with a fake scraper and a real SQLite store.

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

import pytest
import pytest_asyncio

from auto_apply.application_queue import ApplicationQueue
from auto_apply.application_store import ApplicationStore
from auto_apply.errors import ScrapeError, ValidationGateError
from auto_apply.form_filler import FormFiller
from auto_apply.models import (
    UNKNOWN_TITLE,
    ApplicationStatus,
    CustomQuestion,
    JobData,
    QueueStatus,
    SubmissionResult,
)
from auto_apply.orchestrator import ApplicationOrchestrator, ApplyOptions
from conftest import FakeLLM

GREENHOUSE_URL = "https://boards.greenhouse.io/acme/jobs/1"
LEVER_URL = "https://jobs.lever.co/globex/2"


def fit_responder(score=75):
    def respond(prompt, system_prompt):
        if system_prompt and "evaluate how well" in system_prompt:
            return f'{{"score": {score}, "reasoning": "Decent overlap."}}'
        if system_prompt and "JSON array" in system_prompt:
            return "[]"
        return "Generated text"

    return respond


class FakeScraper:
    def __init__(self, platform, title="Backend Engineer", submission=None, scrape_error=None):
        self.platform = platform
        self.title = title
        self.submission = submission or SubmissionResult(success=True, message="Thanks for applying")
        self.scrape_error = scrape_error
        self.submitted_with = None

    async def scrape(self, url):
        if self.scrape_error is not None:
            raise self.scrape_error
        return JobData(
            url=url,
            platform=self.platform,
            title=self.title,
            company="Acme",
            description="Requirements:\n- Python",
            requirements=["Python"],
            custom_questions=[CustomQuestion(id="q1", question="Why Acme?")],
        )

    async def submit_application(self, url, options):
        self.submitted_with = options
        return self.submission


class ScraperFactory:
    """Records every scraper it hands out."""

    def __init__(self, **scraper_kwargs):
        self.scraper_kwargs = scraper_kwargs
        self.created = []

    def __call__(self, platform, settings, llm=None, *, cache=None, prompter=None):
        scraper = FakeScraper(platform, **self.scraper_kwargs)
        self.created.append(scraper)
        return scraper


@pytest_asyncio.fixture
async def store(settings):
    store = ApplicationStore(settings.paths.database_url)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def queue(settings):
    return ApplicationQueue(settings.paths.queue_file)


def make_orchestrator(settings, store, queue, factory=None, llm=None):
    return ApplicationOrchestrator(
        settings,
        llm or FakeLLM(responder=fit_responder()),
        store,
        queue,
        scraper_factory=factory or ScraperFactory(),
    )


def with_application(settings, **changes):
    return replace(settings, application=replace(settings.application, **changes))


# ---------------------------------------------------------------------------
# Single job
# ---------------------------------------------------------------------------


async def test_dry_run_records_pending_without_submitting(settings, store, queue, profile):
    factory = ScraperFactory()
    orchestrator = make_orchestrator(settings, store, queue, factory)

    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(dry_run=True, profile=profile))

    assert result.success
    assert result.application.status == ApplicationStatus.PENDING
    assert result.application.platform.value == "greenhouse"
    assert result.application.form_data["fit_score"] == 75
    assert result.fit.score == 75
    assert factory.created[0].submitted_with is None
    assert Path(result.application.form_data["resume_path"]).exists()


async def test_dry_run_tolerates_unknown_title(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue, ScraperFactory(title=UNKNOWN_TITLE))
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(dry_run=True, profile=profile))
    assert result.success


async def test_unknown_title_blocks_real_submission(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue, ScraperFactory(title=UNKNOWN_TITLE))
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(profile=profile))
    assert not result.success
    assert "Could not determine the job title" in result.error
    assert result.application is None
    assert await store.count() == 0


async def test_invalid_url(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue)
    result = await orchestrator.apply_to_job("not a url", ApplyOptions(profile=profile))
    assert not result.success
    assert result.error.startswith("Invalid URL format")


async def test_missing_profile(settings, store, queue):
    orchestrator = make_orchestrator(settings, store, queue)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL)
    assert not result.success
    assert "No profile found" in result.error


async def test_stored_profile_is_used(settings, store, queue, profile):
    saved = await store.save_profile(profile)
    orchestrator = make_orchestrator(settings, store, queue)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(dry_run=True))
    assert result.application.profile_id == saved.id


async def test_low_fit_is_skipped_without_record(settings, store, queue, profile):
    orchestrator = make_orchestrator(with_application(settings, min_fit_score=80), store, queue)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(profile=profile))
    assert not result.success
    assert result.error == "Fit score 75 is below the minimum of 80"
    assert await store.count() == 0


async def test_ai_unavailable(settings, store, queue, profile):
    llm = FakeLLM(available=False, responder=fit_responder())
    orchestrator = make_orchestrator(settings, store, queue, llm=llm)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(profile=profile))
    assert not result.success
    assert result.error == "AI provider is not available; cannot generate documents"


async def test_auto_submit_off_leaves_record_pending(settings, store, queue, profile):
    factory = ScraperFactory()
    orchestrator = make_orchestrator(settings, store, queue, factory)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(profile=profile))
    assert result.success
    assert result.application.status == ApplicationStatus.PENDING
    assert factory.created[0].submitted_with is None


async def test_auto_submit_success(settings, store, queue, profile):
    factory = ScraperFactory()
    orchestrator = make_orchestrator(with_application(settings, auto_submit=True), store, queue, factory)

    result = await orchestrator.apply_to_job(LEVER_URL, ApplyOptions(profile=profile))

    assert result.success
    assert result.application.status == ApplicationStatus.SUBMITTED
    assert result.application.applied_at
    options = factory.created[0].submitted_with
    assert options.resume_path and options.cover_letter_path
    assert options.profile is profile


async def test_auto_submit_failure_marks_record_failed(settings, store, queue, profile):
    factory = ScraperFactory(
        submission=SubmissionResult(
            success=False,
            message="Could not find or click submit button",
            errors=("Failed to upload resume",),
        )
    )
    orchestrator = make_orchestrator(with_application(settings, auto_submit=True), store, queue, factory)

    result = await orchestrator.apply_to_job(LEVER_URL, ApplyOptions(profile=profile))

    assert not result.success
    assert result.error == "Could not find or click submit button: Failed to upload resume"
    stored = await store.get_application(result.application.id)
    assert stored.status == ApplicationStatus.FAILED
    assert stored.error_message == result.error


async def test_generate_only_records_submitted(settings, store, queue, profile):
    factory = ScraperFactory()
    orchestrator = make_orchestrator(with_application(settings, auto_submit=True), store, queue, factory)

    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(generate_only=True, profile=profile))

    assert result.success
    assert result.application.status == ApplicationStatus.SUBMITTED
    assert result.application.applied_at
    assert factory.created[0].submitted_with is None


async def test_scrape_failure_is_folded_into_result(settings, store, queue, profile):
    factory = ScraperFactory(scrape_error=ScrapeError("boom", "greenhouse", GREENHOUSE_URL))
    orchestrator = make_orchestrator(settings, store, queue, factory)
    result = await orchestrator.apply_to_job(GREENHOUSE_URL, ApplyOptions(profile=profile))
    assert not result.success
    assert "boom" in result.error


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


async def test_batch_keeps_interrupted_queue(settings, store, profile):
    earlier = ["https://jobs.lever.co/initech/7", "https://jobs.lever.co/initech/8"]
    interrupted = ApplicationQueue(settings.paths.queue_file)
    done, stalled = interrupted.add_many(earlier)
    interrupted.update_status(done.id, QueueStatus.COMPLETED)
    interrupted.update_status(stalled.id, QueueStatus.PROCESSING)

    orchestrator = make_orchestrator(settings, store, ApplicationQueue(settings.paths.queue_file))
    results = await orchestrator.apply_to_multiple_jobs(
        [GREENHOUSE_URL, LEVER_URL], ApplyOptions(dry_run=True, profile=profile)
    )

    assert len(results) == 3
    reloaded = ApplicationQueue(settings.paths.queue_file)
    assert reloaded.load()
    assert [item.url for item in reloaded.get_all()] == earlier + [GREENHOUSE_URL, LEVER_URL]
    assert {item.status for item in reloaded.get_all()} == {QueueStatus.COMPLETED}


async def test_batch_waits_between_jobs_not_before_first(settings, store, queue, profile, monkeypatch):
    events = []
    real_sleep = asyncio.sleep

    async def recording_sleep(seconds):
        if seconds == 2.5:
            events.append("sleep")
        await real_sleep(0)

    class RecordingFactory(ScraperFactory):
        def __call__(self, platform, settings, llm=None, *, cache=None, prompter=None):
            events.append(platform.value)
            return super().__call__(platform, settings, llm, cache=cache, prompter=prompter)

    monkeypatch.setattr(asyncio, "sleep", recording_sleep)
    orchestrator = make_orchestrator(
        with_application(settings, inter_job_delay_seconds=2.5), store, queue, RecordingFactory()
    )
    await orchestrator.apply_to_multiple_jobs(
        [GREENHOUSE_URL, LEVER_URL, "https://jobs.ashbyhq.com/acme/3"],
        ApplyOptions(dry_run=True, profile=profile),
    )

    assert events == ["greenhouse", "sleep", "lever", "sleep", "ashby"]



async def test_batch_dedupes_and_skips_invalid(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue)
    results = await orchestrator.apply_to_multiple_jobs(
        [GREENHOUSE_URL + "?utm_source=feed", GREENHOUSE_URL + "/", "nope", LEVER_URL],
        ApplyOptions(dry_run=True, profile=profile),
    )

    assert [r.success for r in results] == [True, True]
    assert queue.get_stats()["completed"] == 2
    assert [item.url for item in queue.get_all()] == [GREENHOUSE_URL, LEVER_URL]
    assert queue.get_all()[0].result["success"] is True
    assert not queue.is_processing()


async def test_batch_continues_after_failure(settings, store, queue, profile):
    class FailFirst(ScraperFactory):
        def __call__(self, platform, settings, llm=None, *, cache=None, prompter=None):
            scraper = super().__call__(platform, settings, llm, cache=cache, prompter=prompter)
            if len(self.created) == 1:
                scraper.scrape_error = ScrapeError("Timed out", platform.value, "")
            return scraper

    orchestrator = make_orchestrator(settings, store, queue, FailFirst())
    results = await orchestrator.apply_to_multiple_jobs(
        [GREENHOUSE_URL, LEVER_URL], ApplyOptions(dry_run=True, profile=profile)
    )

    assert [r.success for r in results] == [False, True]
    failed = queue.get_failed()
    assert len(failed) == 1
    assert "Timed out" in failed[0].error


async def test_resume_queue_without_saved_state(settings, store, queue):
    orchestrator = make_orchestrator(settings, store, queue)
    assert await orchestrator.resume_queue() == []


async def test_resume_queue_processes_pending(settings, store, profile):
    interrupted = ApplicationQueue(settings.paths.queue_file)
    done, stalled = interrupted.add_many([GREENHOUSE_URL, LEVER_URL])
    interrupted.update_status(done.id, QueueStatus.COMPLETED)
    interrupted.update_status(stalled.id, QueueStatus.PROCESSING)

    queue = ApplicationQueue(settings.paths.queue_file)
    orchestrator = make_orchestrator(settings, store, queue)
    results = await orchestrator.resume_queue(ApplyOptions(dry_run=True, profile=profile))

    assert len(results) == 1
    assert queue.get(stalled.id).status == QueueStatus.COMPLETED


async def test_failure_logs_carry_job_context(settings, store, queue, profile, caplog):
    failing = ScraperFactory(
        submission=SubmissionResult(success=False, message="Form validation failed")
    )
    orchestrator = make_orchestrator(with_application(settings, auto_submit=True), store, queue, failing)

    with caplog.at_level(logging.INFO, logger="auto_apply.orchestrator"):
        await orchestrator.apply_to_job(LEVER_URL, ApplyOptions(profile=profile))
        await orchestrator.apply_to_job("not a url", ApplyOptions(profile=profile))
        await orchestrator.apply_to_multiple_jobs([GREENHOUSE_URL], ApplyOptions(dry_run=True, profile=profile))

    assert "(platform=lever, company=Acme): Form validation failed" in caplog.text
    assert "not a url (platform=generic, company=unknown)" in caplog.text
    assert "Batch finished: 1 total, 1 succeeded, 0 failed" in caplog.text


# ---------------------------------------------------------------------------
# Documents only
# ---------------------------------------------------------------------------


async def test_generate_documents_single_kind(settings, store, queue, profile, tmp_path):
    orchestrator = make_orchestrator(settings, store, queue)
    written = await orchestrator.generate_documents(
        GREENHOUSE_URL, tmp_path / "out", kind="resume", profile=profile
    )
    assert list(written) == ["resume"]
    assert Path(written["resume"]).parent == tmp_path / "out"


async def test_generate_documents_rejects_unknown_kind(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue)
    with pytest.raises(ValueError):
        await orchestrator.generate_documents(GREENHOUSE_URL, kind="portfolio", profile=profile)


async def test_generate_documents_rejects_invalid_url(settings, store, queue, profile):
    orchestrator = make_orchestrator(settings, store, queue)
    with pytest.raises(ValidationGateError):
        await orchestrator.generate_documents("ftp://x.example/job", profile=profile)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


async def test_builds_without_tracing_client(settings, store, queue, profile):
    filler = FormFiller(None, profile)
    orchestrator = ApplicationOrchestrator(settings, FakeLLM(), store, queue)
    assert filler.resolvers
    assert orchestrator.queue is queue
