"""Autoply: single CLI entry point for the job application engine.

Boots logging, builds the settings bundle and every collaborator
(LLM, store, queue, answer cache, prompter), hands them to
:class:`~auto_apply.orchestrator.ApplicationOrchestrator`, prints a
summary table and exits with a POSIX code.

No workflow logic lives here.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import agentops
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from auto_apply.answer_cache import JsonAnswerCache
from auto_apply.application_queue import ApplicationQueue
from auto_apply.application_store import ApplicationStore
from auto_apply.errors import AutoApplyError
from auto_apply.form_filler import RichPrompter
from auto_apply.models import Profile
from auto_apply.orchestrator import (
    DOCUMENT_KINDS,
    ApplicationOrchestrator,
    ApplicationResult,
    ApplyOptions,
)
from auto_apply.platform_detector import get_supported_platforms, read_urls_from_file
from config.settings import Settings, configure_logging, get_settings
from integrations.llm_interface import LLMInterface

logger: logging.Logger = logging.getLogger("main")
console = Console()

__all__ = ["main"]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Autoply: apply to job postings from their URLs"
    )
    parser.add_argument("urls", nargs="*", help="Job posting URLs")
    parser.add_argument("--file", "-f", help="File with one URL per line")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scrape and generate documents, record as pending, never submit",
    )
    parser.add_argument(
        "--generate-only",
        action="store_true",
        help="Generate documents and record the application without submitting",
    )
    parser.add_argument(
        "--resume", action="store_true", help="Resume the persisted queue"
    )
    parser.add_argument(
        "--profile", help="Profile JSON file (saved to the store before use)"
    )
    parser.add_argument(
        "--documents",
        choices=DOCUMENT_KINDS,
        help="Only write tailored documents for the first URL",
    )
    parser.add_argument("--output-dir", help="Directory for --documents output")
    parser.add_argument(
        "--queue-status", action="store_true", help="Show the persisted queue and exit"
    )
    parser.add_argument(
        "--platforms", action="store_true", help="List supported platforms and exit"
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _start_agentops() -> bool:
    """Initialise AgentOps when ``AGENTOPS_API_KEY`` is set. Non-critical."""
    api_key = os.getenv("AGENTOPS_API_KEY", "")
    if not api_key:
        logger.debug("AGENTOPS_API_KEY not set; tracing disabled")
        return False
    try:
        agentops.init(api_key=api_key, auto_start_session=False)
        return True
    except Exception as exc:  # noqa: BLE001
        logger.warning("AgentOps init failed (non-critical): %s", exc)
        return False


def _load_profile(path: str) -> Profile:
    return Profile.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _print_results(results: list[ApplicationResult]) -> None:
    table = Table(title="Applications")
    table.add_column("Company")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Fit", justify="right")
    table.add_column("Error", overflow="fold")
    for result in results:
        app = result.application
        job = result.job
        table.add_row(
            app.company if app else (job.company if job else "-"),
            app.job_title if app else (job.title if job else "-"),
            app.status.value if app else ("ok" if result.success else "failed"),
            str(result.fit.score) if result.fit else "-",
            result.error or "",
        )
    console.print(table)


def _print_queue_status(queue: ApplicationQueue) -> None:
    info = queue.get_persisted_info()
    if info is None:
        console.print("No saved queue.")
        return
    console.print(json.dumps(info, indent=2))


# ---------------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------------


async def run(args: argparse.Namespace, settings: Settings) -> int:
    settings.paths.ensure_dirs()
    queue = ApplicationQueue(settings.paths.queue_file)

    if args.queue_status:
        _print_queue_status(queue)
        return 0

    store = ApplicationStore(settings.paths.database_url)
    await store.init()
    try:
        profile: Optional[Profile] = None
        if args.profile:
            profile = await store.save_profile(_load_profile(args.profile))

        orchestrator = ApplicationOrchestrator(
            settings,
            LLMInterface(settings.ai, max_retries=settings.application.retry_attempts),
            store,
            queue,
            cache=JsonAnswerCache(settings.paths.answer_cache_file),
            prompter=RichPrompter(),
        )
        options = ApplyOptions(
            dry_run=args.dry_run,
            generate_only=args.generate_only,
            profile=profile,
        )

        urls = list(args.urls)
        if args.file:
            urls.extend(read_urls_from_file(args.file))

        if args.documents:
            if not urls:
                logger.error("--documents needs a URL")
                return 2
            written = await orchestrator.generate_documents(
                urls[0], args.output_dir, args.documents, profile
            )
            for name, path in written.items():
                console.print(f"{name}: {path}")
            return 0

        if args.resume:
            results = await orchestrator.resume_queue(options)
        elif len(urls) == 1:
            results = [await orchestrator.apply_to_job(urls[0], options)]
        elif urls:
            results = await orchestrator.apply_to_multiple_jobs(urls, options)
        else:
            logger.error("No URLs given. Pass URLs, --file or --resume.")
            return 2

        if results:
            _print_results(results)
        return 0 if all(r.success for r in results) else 1
    finally:
        await store.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, run, and return the exit code.

    Returns:
        ``0`` when every job succeeded, ``1`` on any failure, ``2`` on
        usage errors and ``130`` on :exc:`KeyboardInterrupt`.
    """
    args = parse_args(argv)

    if args.platforms:
        console.print(", ".join(get_supported_platforms()))
        return 0

    settings = get_settings()
    configure_logging(settings.run.log_level)
    _start_agentops()

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted; the queue keeps its last saved state")
        return 130
    except (AutoApplyError, ValidationError, OSError) as exc:
        logger.error("%s", exc)
        return 1


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
