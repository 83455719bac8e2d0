"""Exception taxonomy for the apply engine.

Every job-level failure carries enough context (platform, url) for the
batch report.  None of these ever escape a batch run: the orchestrator
converts them into failed :class:`~auto_apply.orchestrator.ApplicationResult`
objects.
"""

from __future__ import annotations

from typing import Iterable, Optional

__all__ = [
    "AutoApplyError",
    "NavigationError",
    "ScrapeError",
    "ValidationGateError",
    "AIProviderUnavailableError",
    "SubmissionError",
    "PersistenceError",
]


class AutoApplyError(Exception):
    """Base class for all apply-engine errors."""


class ScrapeError(AutoApplyError):
    """Scraping a posting failed; tied to ``{platform, url}``."""

    def __init__(self, message: str, platform: str = "", url: str = "") -> None:
        self.platform = platform
        self.url = url
        prefix = f"[{platform}] " if platform else ""
        suffix = f" ({url})" if url else ""
        super().__init__(f"{prefix}{message}{suffix}")


class NavigationError(ScrapeError):
    """The page failed to load. Fatal for that job only."""


class ValidationGateError(AutoApplyError):
    """Real submission refused because the job title is unresolved."""


class AIProviderUnavailableError(AutoApplyError):
    """The text-generation provider is not reachable or not configured."""


class SubmissionError(AutoApplyError):
    """A submission attempt failed; ``errors`` holds the collected details."""

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None) -> None:
        self.errors = list(errors or [])
        detail = f"{message}: {', '.join(self.errors)}" if self.errors else message
        super().__init__(detail)


class PersistenceError(AutoApplyError):
    """Queue or cache persistence failed. Always handled best-effort."""
