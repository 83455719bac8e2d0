"""
Pure text helpers used by every scraper.

* Requirement / qualification partitioning of a free-text job description
  by header keywords and bullet prefixes.
* Cleanup of LLM JSON replies (markdown fences, leading chatter).
* Company-name inference from a posting URL.

Known heuristic limitation, kept on purpose: header detection runs on
every line, bullets included, so a bullet whose own text contains a
header keyword (``"- You must have 3+ years ..."``) is taken as a new
section header and dropped.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from auto_apply.models import UNKNOWN_COMPANY, Platform

logger = logging.getLogger(__name__)

__all__ = [
    "REQUIREMENT_HEADERS",
    "REQUIREMENT_BOUNDARIES",
    "QUALIFICATION_HEADERS",
    "QUALIFICATION_BOUNDARIES",
    "extract_section_bullets",
    "extract_requirements",
    "extract_qualifications",
    "strip_code_fences",
    "parse_json_reply",
    "company_from_url",
    "clean_text",
]

REQUIREMENT_HEADERS: tuple[str, ...] = ("requirement", "must have", "you will need")
REQUIREMENT_BOUNDARIES: tuple[str, ...] = (
    "nice to have",
    "preferred",
    "bonus",
    "responsibilit",
    "benefit",
    "what we offer",
)
QUALIFICATION_HEADERS: tuple[str, ...] = ("qualification", "nice to have", "preferred")
QUALIFICATION_BOUNDARIES: tuple[str, ...] = ("responsibilit", "what we offer", "benefit")

_BULLET_PREFIXES: tuple[str, ...] = ("-", "•", "*")
_BULLET_RE = re.compile(r"^[-•*]\s*")

# Path-based boards keep the company slug as the first path segment.
_PATH_SLUG_PLATFORMS = frozenset({
    Platform.GREENHOUSE,
    Platform.LEVER,
    Platform.ASHBY,
    Platform.JOBVITE,
    Platform.SMARTRECRUITERS,
})
_SUBDOMAIN_PLATFORMS = frozenset({
    Platform.BAMBOOHR,
    Platform.PINPOINT,
    Platform.TEAMTAILOR,
    Platform.WORKDAY,
})
_GENERIC_SUBDOMAINS = frozenset({"www", "jobs", "careers", "apply", "boards"})


# ---------------------------------------------------------------------------
# Section partitioning
# ---------------------------------------------------------------------------


def extract_section_bullets(
    description: str,
    headers: tuple[str, ...],
    boundaries: tuple[str, ...],
) -> list[str]:
    """Collect bullet lines inside the sections opened by ``headers``.

    A line containing any header keyword opens a section and is itself
    skipped.  A line containing a boundary keyword closes it.  Only lines
    starting with ``-``, ``•`` or ``*`` inside an open section are kept,
    with the bullet prefix stripped.

    Args:
        description: Free-text job description.
        headers: Lower-case keywords that open a section.
        boundaries: Lower-case keywords that close it.

    Returns:
        Bullet texts in document order.
    """
    collected: list[str] = []
    in_section = False

    for line in (description or "").splitlines():
        trimmed = line.strip()
        lower = trimmed.lower()

        if any(h in lower for h in headers):
            in_section = True
            continue

        if in_section and any(b in lower for b in boundaries):
            in_section = False

        if in_section and trimmed.startswith(_BULLET_PREFIXES):
            item = _BULLET_RE.sub("", trimmed)
            if item:
                collected.append(item)

    return collected


def extract_requirements(description: str) -> list[str]:
    return extract_section_bullets(
        description, REQUIREMENT_HEADERS, REQUIREMENT_BOUNDARIES
    )


def extract_qualifications(description: str) -> list[str]:
    return extract_section_bullets(
        description, QUALIFICATION_HEADERS, QUALIFICATION_BOUNDARIES
    )


# ---------------------------------------------------------------------------
# LLM reply cleanup
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove markdown ```json fences an LLM may wrap around JSON."""
    cleaned = re.sub(r"```(?:json)?\s*", "", text or "", flags=re.I)
    return cleaned.replace("```", "").strip()


def parse_json_reply(text: str, expect: type = dict) -> Optional[Any]:
    """Parse a JSON object or array out of an LLM reply.

    Tries the fence-stripped reply as-is, then the first ``{...}`` (or
    ``[...]``) block inside it.

    Args:
        text: Raw completion text.
        expect: ``dict`` or ``list``; results of another type are rejected.

    Returns:
        The parsed value, or ``None`` when nothing parseable of the
        expected type was found.
    """
    cleaned = strip_code_fences(text)
    candidates = [cleaned]
    pattern = r"\{[\s\S]*\}" if expect is dict else r"\[[\s\S]*\]"
    match = re.search(pattern, cleaned)
    if match and match.group(0) != cleaned:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, expect):
            return parsed

    logger.debug("parse_json_reply: no %s found in reply", expect.__name__)
    return None


# ---------------------------------------------------------------------------
# Misc text helpers
# ---------------------------------------------------------------------------


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of blank lines and strip surrounding whitespace."""
    if not text:
        return ""
    lines = [line.rstrip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def _humanise_slug(slug: str) -> str:
    words = re.split(r"[-_]+", slug)
    return " ".join(w.capitalize() for w in words if w)


def company_from_url(url: str, platform: Platform) -> str:
    """Infer a company name from a posting URL.

    ``boards.greenhouse.io/acme-corp/jobs/1`` → ``"Acme Corp"``;
    ``acme.bamboohr.com/careers/3`` → ``"Acme"``.

    Returns:
        The humanised slug, or ``UNKNOWN_COMPANY`` when none is present.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return UNKNOWN_COMPANY

    host = (parts.hostname or "").lower()
    segments = [s for s in parts.path.split("/") if s]

    slug = ""
    if platform in _PATH_SLUG_PLATFORMS and segments:
        slug = segments[0]
    elif platform in _SUBDOMAIN_PLATFORMS and host.count(".") >= 2:
        slug = host.split(".")[0]
    elif host:
        labels = [
            label for label in host.split(".")[:-1]
            if label not in _GENERIC_SUBDOMAINS
        ]
        slug = labels[-1] if labels else ""

    return _humanise_slug(slug) or UNKNOWN_COMPANY
