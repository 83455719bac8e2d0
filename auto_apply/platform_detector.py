"""
Platform detection and job-URL utilities.

Detection is a pure function over an ordered ``(platform, pattern)``
table: the first pattern matching the URL wins and anything unmatched is
``generic``, so detection never fails.  The specific patterns are
mutually exclusive on real-world career-site URLs (see
``tests/test_platform_detector.py``).

Also provides URL validation and normalisation used by the orchestrator
before a URL is queued or scraped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from auto_apply.models import Platform

# ---------------------------------------------------------------------------
# Module-level logger
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)

__all__ = [
    "PLATFORM_PATTERNS",
    "TRACKING_PARAMS",
    "ParsedUrl",
    "detect_platform",
    "parse_job_url",
    "normalize_url",
    "validate_urls",
    "read_urls_from_file",
    "get_platform_examples",
    "get_supported_platforms",
]


# ═══════════════════════════════════════════════════════════════════════════
# URL pattern table (order matters: generic is the catch-all)
# ═══════════════════════════════════════════════════════════════════════════

PLATFORM_PATTERNS: list[tuple[Platform, re.Pattern[str]]] = [
    (Platform.GREENHOUSE, re.compile(r"boards\.greenhouse\.io", re.I)),
    (Platform.LINKEDIN, re.compile(r"linkedin\.com/jobs", re.I)),
    (Platform.LEVER, re.compile(r"jobs\.lever\.co", re.I)),
    (Platform.JOBVITE, re.compile(r"jobs\.jobvite\.com", re.I)),
    (Platform.SMARTRECRUITERS, re.compile(r"jobs\.smartrecruiters\.com", re.I)),
    (Platform.PINPOINT, re.compile(r"\.pinpointhq\.com", re.I)),
    (Platform.TEAMTAILOR, re.compile(r"\.teamtailor\.com", re.I)),
    (
        Platform.WORKDAY,
        re.compile(r"\.myworkdayjobs\.com|workday\.com/.*/job", re.I),
    ),
    (Platform.ASHBY, re.compile(r"jobs\.ashbyhq\.com", re.I)),
    (Platform.BAMBOOHR, re.compile(r"\.bamboohr\.com", re.I)),
    (Platform.GENERIC, re.compile(r".*")),
]

TRACKING_PARAMS: frozenset[str] = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "ref",
    "fbclid",
    "gclid",
    "source",
})

_PLATFORM_EXAMPLES: dict[Platform, str] = {
    Platform.GREENHOUSE: "https://boards.greenhouse.io/company/jobs/12345",
    Platform.LINKEDIN: "https://linkedin.com/jobs/view/12345",
    Platform.LEVER: "https://jobs.lever.co/company/job-id",
    Platform.JOBVITE: "https://jobs.jobvite.com/company/job/12345",
    Platform.SMARTRECRUITERS: "https://jobs.smartrecruiters.com/Company/12345",
    Platform.PINPOINT: "https://company.pinpointhq.com/jobs/12345",
    Platform.TEAMTAILOR: "https://company.teamtailor.com/jobs/12345",
    Platform.WORKDAY: "https://company.myworkdayjobs.com/en-US/External/job/12345",
    Platform.ASHBY: "https://jobs.ashbyhq.com/company/job-id",
    Platform.BAMBOOHR: "https://company.bamboohr.com/careers/123",
    Platform.GENERIC: "https://company.com/careers/job/12345",
}


@dataclass(frozen=True)
class ParsedUrl:
    """Validation outcome for one candidate job URL."""

    url: str
    platform: Platform
    is_valid: bool
    error: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════
# Detection
# ═══════════════════════════════════════════════════════════════════════════


def detect_platform(url: str) -> Platform:
    """Return the platform hosting ``url``.

    Total: unmatched URLs (including garbage strings) map to
    ``Platform.GENERIC``.
    """
    for platform, pattern in PLATFORM_PATTERNS:
        if pattern.search(url or ""):
            return platform
    return Platform.GENERIC


def parse_job_url(url: str) -> ParsedUrl:
    """Validate ``url`` and detect its platform.

    Args:
        url: Raw URL string as supplied by the operator.

    Returns:
        ``ParsedUrl`` with ``is_valid=False`` and an ``error`` message when
        the URL cannot be parsed or is not http/https.
    """
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        return ParsedUrl(url, Platform.GENERIC, False, "Invalid URL format")

    if not parts.scheme:
        return ParsedUrl(url, Platform.GENERIC, False, "Invalid URL format")
    if parts.scheme.lower() not in ("http", "https"):
        return ParsedUrl(
            url, Platform.GENERIC, False, "URL must use HTTP or HTTPS protocol"
        )
    if not parts.netloc:
        return ParsedUrl(url, Platform.GENERIC, False, "Invalid URL format")

    return ParsedUrl(url, detect_platform(url), True)


def normalize_url(url: str) -> str:
    """Canonicalise a job URL for de-duplication.

    Drops the fragment, trailing path slashes and tracking parameters,
    lower-cases scheme and host, and sorts the remaining query
    parameters.  Idempotent.  Unparseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    path = parts.path.rstrip("/") or "/"
    query_pairs = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    query_pairs.sort(key=lambda pair: pair[0])
    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            path,
            urlencode(query_pairs),
            "",
        )
    )


def validate_urls(urls: list[str]) -> tuple[list[ParsedUrl], list[ParsedUrl]]:
    """Split ``urls`` into ``(valid, invalid)`` parse results."""
    results = [parse_job_url(u) for u in urls]
    return (
        [r for r in results if r.is_valid],
        [r for r in results if not r.is_valid],
    )


def read_urls_from_file(path: Union[str, Path]) -> list[str]:
    """Read one URL per line; blank lines and ``#`` comments are skipped."""
    text = Path(path).read_text(encoding="utf-8")
    urls = [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    logger.debug("Read %d URLs from %s", len(urls), path)
    return urls


def get_platform_examples() -> dict[Platform, str]:
    return dict(_PLATFORM_EXAMPLES)


def get_supported_platforms() -> list[str]:
    return [platform.value for platform, _ in PLATFORM_PATTERNS]
