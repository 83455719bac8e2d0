"""Platform scrapers and the registry that maps a ``Platform`` to one.

Usage::

    from auto_apply.platforms import create_scraper

    scraper = create_scraper(Platform.GREENHOUSE, settings, llm)
    job = await scraper.scrape(url)
"""

from __future__ import annotations

import logging
from typing import Optional

from auto_apply.answer_cache import AnswerCache
from auto_apply.form_filler import Prompter
from auto_apply.models import JobData, Platform
from auto_apply.platforms.ashby import AshbyScraper
from auto_apply.platforms.bamboohr import BambooHRScraper
from auto_apply.platforms.base_platform import BaseScraper, SubmitOptions
from auto_apply.platforms.generic import GenericScraper
from auto_apply.platforms.greenhouse import GreenhouseScraper
from auto_apply.platforms.jobvite import JobviteScraper
from auto_apply.platforms.lever import LeverScraper
from auto_apply.platforms.linkedin import LinkedInScraper
from auto_apply.platforms.pinpoint import PinpointScraper
from auto_apply.platforms.smartrecruiters import SmartRecruitersScraper
from auto_apply.platforms.teamtailor import TeamtailorScraper
from auto_apply.platforms.workday import WorkdayScraper
from auto_apply.question_answerer import TextGenerator
from config.settings import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "BaseScraper",
    "SubmitOptions",
    "SCRAPER_REGISTRY",
    "create_scraper",
    "scrape_job",
]

SCRAPER_REGISTRY: dict[Platform, type[BaseScraper]] = {
    Platform.GREENHOUSE: GreenhouseScraper,
    Platform.LINKEDIN: LinkedInScraper,
    Platform.LEVER: LeverScraper,
    Platform.JOBVITE: JobviteScraper,
    Platform.SMARTRECRUITERS: SmartRecruitersScraper,
    Platform.PINPOINT: PinpointScraper,
    Platform.TEAMTAILOR: TeamtailorScraper,
    Platform.WORKDAY: WorkdayScraper,
    Platform.ASHBY: AshbyScraper,
    Platform.BAMBOOHR: BambooHRScraper,
    Platform.GENERIC: GenericScraper,
}


def create_scraper(
    platform: Platform,
    settings: Settings,
    llm: Optional[TextGenerator] = None,
    *,
    cache: Optional[AnswerCache] = None,
    prompter: Optional[Prompter] = None,
) -> BaseScraper:
    """Instantiate the scraper registered for ``platform``.

    Raises:
        ValueError: ``platform`` has no registered scraper.
    """
    try:
        scraper_cls = SCRAPER_REGISTRY[Platform(platform)]
    except (KeyError, ValueError):
        raise ValueError(f"No scraper registered for platform: {platform}") from None
    return scraper_cls(settings, llm, cache=cache, prompter=prompter)


async def scrape_job(
    url: str,
    platform: Platform,
    settings: Settings,
    llm: Optional[TextGenerator] = None,
) -> JobData:
    """One-shot scrape with a fresh scraper (and browser session)."""
    return await create_scraper(platform, settings, llm).scrape(url)
