"""
Application orchestrator: the per-job workflow and the batch loop.

Per job::

    validate -> resolve profile -> scrape -> title gate -> fit score
        -> min-fit gate -> generate documents -> answer questions
        -> record application -> submit (auto_submit only) -> update record

Batch runs go through the injected :class:`ApplicationQueue` strictly one
job at a time, with ``application.inter_job_delay_seconds`` between jobs.
One job failing never aborts the batch: every outcome is folded into an
:class:`ApplicationResult` and written back to the queue.

Every collaborator (settings, LLM, store, queue, answer cache, prompter,
scraper factory) is passed in; nothing here reads the environment.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

from agentops.sdk.decorators import operation

from auto_apply.answer_cache import AnswerCache
from auto_apply.application_queue import ApplicationQueue
from auto_apply.application_store import ApplicationStore
from auto_apply.documents import DocumentGenerator, save_documents
from auto_apply.errors import (
    AIProviderUnavailableError,
    AutoApplyError,
    SubmissionError,
    ValidationGateError,
)
from auto_apply.form_filler import Prompter
from auto_apply.job_fit import evaluate_job_fit
from auto_apply.models import (
    Application,
    ApplicationStatus,
    GeneratedDocuments,
    JobData,
    JobFitResult,
    Profile,
    QueueStatus,
    SubmissionResult,
    utc_now_iso,
)
from auto_apply.platform_detector import (
    detect_platform,
    normalize_url,
    parse_job_url,
    validate_urls,
)
from auto_apply.platforms import SubmitOptions, create_scraper
from auto_apply.platforms.base_platform import BaseScraper
from auto_apply.question_answerer import QuestionAnswerer, TextGenerator
from config.settings import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "ApplicationOrchestrator",
    "ApplicationResult",
    "ApplyOptions",
    "DOCUMENT_KINDS",
]

DOCUMENT_KINDS: tuple[str, ...] = ("resume", "cover-letter", "both")

ScraperFactory = Callable[..., BaseScraper]


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class ApplyOptions:
    """Per-run switches.

    Attributes:
        dry_run: Scrape, generate and record as ``pending``; never submit.
        generate_only: Generate documents and record as ``submitted``
            without opening the application form.
        profile: Candidate to apply as.  ``None`` uses the first stored
            profile.
    """

    dry_run: bool = False
    generate_only: bool = False
    profile: Optional[Profile] = None


@dataclass
class ApplicationResult:
    success: bool
    application: Optional[Application] = None
    error: Optional[str] = None
    documents: Optional[GeneratedDocuments] = None
    fit: Optional[JobFitResult] = None
    job: Optional[JobData] = field(default=None, repr=False)

    def summary(self) -> dict[str, Any]:
        """Compact JSON-safe view stored as the queue item's result."""
        return {
            "success": self.success,
            "application_id": self.application.id if self.application else None,
            "status": self.application.status.value if self.application else None,
            "company": self.application.company if self.application else None,
            "job_title": self.application.job_title if self.application else None,
            "fit_score": self.fit.score if self.fit else None,
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ApplicationOrchestrator:
    """Sequences scrape, evaluate, generate, fill and submit for job URLs."""

    def __init__(
        self,
        settings: Settings,
        llm: TextGenerator,
        store: ApplicationStore,
        queue: ApplicationQueue,
        *,
        cache: Optional[AnswerCache] = None,
        prompter: Optional[Prompter] = None,
        scraper_factory: ScraperFactory = create_scraper,
    ) -> None:
        self.settings = settings
        self.llm = llm
        self.store = store
        self.queue = queue
        self.cache = cache
        self.prompter = prompter
        self.scraper_factory = scraper_factory
        self.documents = DocumentGenerator(llm)
        self.answerer = QuestionAnswerer(llm)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _resolve_profile(self, options: ApplyOptions) -> Profile:
        if options.profile is not None:
            return options.profile
        profile = await self.store.first_profile()
        if profile is None:
            raise ValidationGateError(
                "No profile found. Create one first or pass --profile."
            )
        return profile

    def _scraper_for(self, platform: Any) -> BaseScraper:
        return self.scraper_factory(
            platform,
            self.settings,
            self.llm,
            cache=self.cache,
            prompter=self.prompter,
        )

    async def _evaluate_fit(self, profile: Profile, job: JobData) -> Optional[JobFitResult]:
        try:
            return await evaluate_job_fit(self.llm, profile, job)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Fit evaluation failed for %s: %s", job.url, exc)
            return None

    async def _answer_questions(self, profile: Profile, job: JobData) -> int:
        if not job.custom_questions:
            return 0
        try:
            previous = await self.store.previous_answers()
        except AutoApplyError as exc:
            self.logger.warning("Could not load previous answers: %s", exc)
            previous = []
        try:
            answered = await self.answerer.answer_job_questions(profile, job, previous)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Answering questions failed for %s: %s", job.url, exc)
            return 0
        self.logger.info("Answered %d/%d custom questions", answered, len(job.custom_questions))
        return answered

    @staticmethod
    def _job_context(url: str, job: Optional[JobData]) -> tuple[str, str]:
        """``(platform, company)`` for log lines, known or not."""
        if job is not None:
            return job.platform.value, job.company or "unknown"
        return detect_platform(url).value, "unknown"

    @staticmethod
    def _document_prefix(job: JobData) -> str:
        return f"{job.company}_{job.title}_{int(time.time())}"

    @staticmethod
    def _form_data(
        job: JobData,
        fit: Optional[JobFitResult],
        resume_path: Optional[str],
        cover_letter_path: Optional[str],
    ) -> dict[str, Any]:
        return {
            "questions": [
                {"id": q.id, "question": q.question, "answer": q.answer}
                for q in job.custom_questions
                if q.answer
            ],
            "resume_path": resume_path,
            "cover_letter_path": cover_letter_path,
            "fit_score": fit.score if fit else None,
            "location": job.location,
        }

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    @operation
    async def apply_to_job(
        self, url: str, options: Optional[ApplyOptions] = None
    ) -> ApplicationResult:
        """Run the full workflow for one URL.

        Never raises: failures come back as ``success=False`` with
        ``error`` set (and, past the record step, a ``failed`` record).
        """
        options = options or ApplyOptions()
        dry_run = options.dry_run or self.settings.run.dry_run
        fit: Optional[JobFitResult] = None
        documents: Optional[GeneratedDocuments] = None
        application: Optional[Application] = None
        job: Optional[JobData] = None

        try:
            parsed = parse_job_url(url)
            if not parsed.is_valid:
                raise ValidationGateError(f"{parsed.error}: {url}")

            profile = await self._resolve_profile(options)
            scraper = self._scraper_for(parsed.platform)

            self.logger.info("Scraping %s (%s)", parsed.url, parsed.platform.value)
            job = await scraper.scrape(parsed.url)

            if not job.has_title and not dry_run:
                raise ValidationGateError(
                    f"Could not determine the job title for {parsed.url}; refusing to submit"
                )

            fit = await self._evaluate_fit(profile, job)
            min_score = self.settings.application.min_fit_score
            if fit is not None and min_score is not None and fit.score < min_score:
                self.logger.info(
                    "Skipping %s at %s: fit %d below minimum %d",
                    job.title,
                    job.company,
                    fit.score,
                    min_score,
                )
                return ApplicationResult(
                    success=False,
                    error=f"Fit score {fit.score} is below the minimum of {min_score}",
                    fit=fit,
                    job=job,
                )

            if not await self.llm.is_available():
                raise AIProviderUnavailableError(
                    "AI provider is not available; cannot generate documents"
                )
            documents = await self.documents.generate(profile, job)
            resume_path, cover_letter_path = save_documents(
                self._document_prefix(job), documents, self.settings.paths.documents_dir
            )

            await self._answer_questions(profile, job)

            status = ApplicationStatus.SUBMITTED if options.generate_only else ApplicationStatus.PENDING
            application = await self.store.create_application(
                Application(
                    profile_id=profile.id,
                    url=parsed.url,
                    platform=parsed.platform,
                    company=job.company,
                    job_title=job.title,
                    status=status,
                    generated_resume=documents.resume,
                    generated_cover_letter=documents.cover_letter,
                    form_data=self._form_data(job, fit, resume_path, cover_letter_path),
                    applied_at=utc_now_iso() if options.generate_only else None,
                )
            )

            if dry_run or options.generate_only:
                self.logger.info(
                    "%s: recorded %s at %s as %s",
                    "Dry run" if dry_run else "Generate only",
                    job.title,
                    job.company,
                    status.value,
                )
                return ApplicationResult(True, application, documents=documents, fit=fit, job=job)

            if not self.settings.application.auto_submit:
                self.logger.info(
                    "Auto-submit disabled; %s at %s left pending for manual submission",
                    job.title,
                    job.company,
                )
                return ApplicationResult(True, application, documents=documents, fit=fit, job=job)

            submit_options = SubmitOptions(
                profile=profile,
                job_data=job,
                documents=documents,
                resume_path=resume_path,
                cover_letter_path=cover_letter_path,
                answered_questions=[q for q in job.custom_questions if q.answer],
            )
            try:
                result = await self.submit_application(scraper, parsed.url, submit_options)
            except SubmissionError as exc:
                application = await self.store.update_application(
                    application.id,
                    status=ApplicationStatus.FAILED,
                    error_message=str(exc),
                ) or application
                self.logger.error(
                    "Submission failed for %s (platform=%s, company=%s): %s",
                    parsed.url,
                    parsed.platform.value,
                    job.company,
                    exc,
                )
                return ApplicationResult(
                    False, application, error=str(exc), documents=documents, fit=fit, job=job
                )

            application = await self.store.update_application(
                application.id,
                status=ApplicationStatus.SUBMITTED,
                applied_at=utc_now_iso(),
            ) or application
            self.logger.info("Submitted %s at %s: %s", job.title, job.company, result.message)
            return ApplicationResult(True, application, documents=documents, fit=fit, job=job)

        except AutoApplyError as exc:
            self.logger.error(
                "Application failed for %s (platform=%s, company=%s): %s",
                url,
                *self._job_context(url, job),
                exc,
            )
            return ApplicationResult(
                False, application, error=str(exc), documents=documents, fit=fit, job=job
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.exception(
                "Unexpected error applying to %s (platform=%s, company=%s)",
                url,
                *self._job_context(url, job),
            )
            return ApplicationResult(
                False, application, error=str(exc), documents=documents, fit=fit, job=job
            )

    async def submit_application(
        self,
        scraper: BaseScraper,
        url: str,
        options: SubmitOptions,
    ) -> SubmissionResult:
        """Submit through ``scraper``.

        Raises:
            SubmissionError: The scraper reported an unsuccessful
                submission; the message is ``"message: err1, err2"``.
        """
        result = await scraper.submit_application(url, options)
        if not result.success:
            raise SubmissionError(result.message, result.errors)
        return result

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def _drain_queue(self, options: ApplyOptions) -> list[ApplicationResult]:
        results: list[ApplicationResult] = []
        delay = self.settings.application.inter_job_delay_seconds
        self.queue.set_processing(True)
        try:
            while self.queue.has_next():
                item = self.queue.get_next()
                if results and delay > 0:
                    self.logger.debug("Waiting %.1fs before the next job", delay)
                    await asyncio.sleep(delay)

                self.queue.update_status(item.id, QueueStatus.PROCESSING)
                stats = self.queue.get_stats()
                self.logger.info(
                    "[%d/%d] %s",
                    stats[QueueStatus.COMPLETED.value] + stats[QueueStatus.FAILED.value] + 1,
                    stats["total"],
                    item.url,
                )

                result = await self.apply_to_job(item.url, options)
                results.append(result)
                self.queue.set_result(item.id, result.summary())
                self.queue.update_status(
                    item.id,
                    QueueStatus.COMPLETED if result.success else QueueStatus.FAILED,
                    result.error,
                )
        finally:
            self.queue.set_processing(False)
            self.queue.persist()

        succeeded = sum(1 for r in results if r.success)
        self.logger.info(
            "Batch finished: %d total, %d succeeded, %d failed",
            len(results),
            succeeded,
            len(results) - succeeded,
        )
        return results

    @operation
    async def apply_to_multiple_jobs(
        self, urls: list[str], options: Optional[ApplyOptions] = None
    ) -> list[ApplicationResult]:
        """Queue ``urls`` (normalised, de-duplicated) and process them in order.

        A persisted queue from an earlier run is loaded first, so its
        unfinished items run ahead of the new URLs and its history is kept.
        """
        options = options or ApplyOptions()
        valid, invalid = validate_urls(urls)
        for bad in invalid:
            self.logger.warning("Skipping invalid URL %s: %s", bad.url, bad.error)

        if self.queue.is_empty() and self.queue.has_persisted() and self.queue.load():
            carried = len(self.queue.get_pending())
            if carried:
                self.logger.info("Carrying over %d unfinished jobs from the saved queue", carried)

        queued = {item.url for item in self.queue.get_pending()}
        fresh: list[str] = []
        for parsed in valid:
            normalized = normalize_url(parsed.url)
            if normalized in queued:
                continue
            queued.add(normalized)
            fresh.append(normalized)

        self.queue.add_many(fresh)
        self.queue.persist()
        self.logger.info("Queued %d jobs (%d invalid skipped)", len(fresh), len(invalid))
        return await self._drain_queue(options)

    async def resume_queue(self, options: Optional[ApplyOptions] = None) -> list[ApplicationResult]:
        """Reload the persisted queue and process what is still pending."""
        if not self.queue.load():
            self.logger.info("No saved queue at %s", self.queue.persist_path)
            return []
        pending = len(self.queue.get_pending())
        if not pending:
            self.logger.info("Saved queue has nothing pending")
            return []
        self.logger.info("Resuming %d pending jobs", pending)
        return await self._drain_queue(options or ApplyOptions())

    # ------------------------------------------------------------------
    # Documents only
    # ------------------------------------------------------------------

    async def generate_documents(
        self,
        url: str,
        output_dir: Optional[Union[str, Path]] = None,
        kind: str = "both",
        profile: Optional[Profile] = None,
    ) -> dict[str, str]:
        """Scrape ``url`` and write a tailored resume and/or cover letter.

        Args:
            url: Job posting URL.
            output_dir: Target directory; defaults to ``paths.documents_dir``.
            kind: ``"resume"``, ``"cover-letter"`` or ``"both"``.
            profile: Candidate; defaults to the first stored profile.

        Returns:
            Mapping of ``"resume"`` / ``"cover_letter"`` to written paths.

        Raises:
            ValueError: Unknown ``kind``.
            ValidationGateError: Invalid URL or no profile.
            AIProviderUnavailableError: The AI provider is down.
        """
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"kind must be one of {DOCUMENT_KINDS}, got {kind!r}")

        parsed = parse_job_url(url)
        if not parsed.is_valid:
            raise ValidationGateError(f"{parsed.error}: {url}")
        profile = await self._resolve_profile(ApplyOptions(profile=profile))
        job = await self._scraper_for(parsed.platform).scrape(parsed.url)

        if not await self.llm.is_available():
            raise AIProviderUnavailableError(
                "AI provider is not available; cannot generate documents"
            )

        resume = ""
        cover_letter = ""
        if kind in ("resume", "both"):
            resume = await self.documents.tailor_resume(profile, job)
        if kind in ("cover-letter", "both"):
            cover_letter = await self.documents.generate_cover_letter(profile, job)

        resume_path, cover_letter_path = save_documents(
            self._document_prefix(job),
            GeneratedDocuments(resume=resume, cover_letter=cover_letter),
            output_dir or self.settings.paths.documents_dir,
        )
        written = {
            name: path
            for name, path in (("resume", resume_path), ("cover_letter", cover_letter_path))
            if path
        }
        self.logger.info("Wrote %s for %s at %s", ", ".join(written), job.title, job.company)
        return written
