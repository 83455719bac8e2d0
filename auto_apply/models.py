"""Record types shared by the scrapers, the form filler and the orchestrator.

Scrape and queue records are plain dataclasses; the candidate
:class:`Profile` is a pydantic model because it is loaded from JSON files
and database rows supplied by the caller and needs validation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "UNKNOWN_TITLE",
    "UNKNOWN_COMPANY",
    "Platform",
    "FieldType",
    "QueueStatus",
    "ApplicationStatus",
    "FormField",
    "CustomQuestion",
    "JobData",
    "SubmissionResult",
    "QueueItem",
    "Experience",
    "Education",
    "Preferences",
    "Profile",
    "Application",
    "GeneratedDocuments",
    "JobFitResult",
    "utc_now_iso",
]

# Sentinel title: submission is refused while a job still carries it.
UNKNOWN_TITLE: str = "Unknown Position"
UNKNOWN_COMPANY: str = "Unknown Company"


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════


class Platform(str, Enum):
    """Job-posting / application hosting providers."""

    GREENHOUSE = "greenhouse"
    LINKEDIN = "linkedin"
    LEVER = "lever"
    JOBVITE = "jobvite"
    SMARTRECRUITERS = "smartrecruiters"
    PINPOINT = "pinpoint"
    TEAMTAILOR = "teamtailor"
    WORKDAY = "workday"
    ASHBY = "ashby"
    BAMBOOHR = "bamboohr"
    GENERIC = "generic"


class FieldType(str, Enum):
    """Kinds of form controls discovered on an application page."""

    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    SELECT = "select"
    TEXTAREA = "textarea"
    FILE = "file"
    CHECKBOX = "checkbox"
    RADIO = "radio"

    @classmethod
    def from_html(cls, tag: str, input_type: str = "") -> "FieldType":
        """Map a tag name / ``type`` attribute pair to a :class:`FieldType`."""
        tag = (tag or "").lower()
        if tag == "select":
            return cls.SELECT
        if tag == "textarea":
            return cls.TEXTAREA
        try:
            return cls((input_type or "text").lower())
        except ValueError:
            return cls.TEXT


class QueueStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    FAILED = "failed"


# ═══════════════════════════════════════════════════════════════════════════
# Scrape records
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class FormField:
    """One form control discovered during extraction."""

    name: str
    type: FieldType = FieldType.TEXT
    label: str = ""
    required: bool = False
    options: list[str] = field(default_factory=list)
    value: Optional[str] = None


@dataclass
class CustomQuestion:
    """A platform-specific free-form question.

    ``answer`` stays ``None`` until resolved and is written once per job.
    """

    id: str
    question: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: list[str] = field(default_factory=list)
    answer: Optional[str] = None


@dataclass
class JobData:
    """Structured representation of a scraped job posting."""

    url: str
    platform: Platform
    title: str = UNKNOWN_TITLE
    company: str = UNKNOWN_COMPANY
    description: str = ""
    requirements: list[str] = field(default_factory=list)
    qualifications: list[str] = field(default_factory=list)
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    remote: Optional[bool] = None
    form_fields: list[FormField] = field(default_factory=list)
    custom_questions: list[CustomQuestion] = field(default_factory=list)

    @property
    def has_title(self) -> bool:
        return bool(self.title) and self.title != UNKNOWN_TITLE

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dict."""
        data = asdict(self)
        data["platform"] = self.platform.value
        for item in data["form_fields"] + data["custom_questions"]:
            item["type"] = FieldType(item["type"]).value
        return data


@dataclass(frozen=True)
class SubmissionResult:
    """Terminal record of one submission attempt."""

    success: bool
    message: str
    screenshot_path: Optional[str] = None
    errors: tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════
# Queue records
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class QueueItem:
    """One unit of durable batch work (one job URL)."""

    id: str
    url: str
    status: QueueStatus = QueueStatus.PENDING
    error: Optional[str] = None
    result: Optional[dict[str, Any]] = None
    added_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueItem":
        return cls(
            id=str(data["id"]),
            url=str(data["url"]),
            status=QueueStatus(data.get("status", QueueStatus.PENDING.value)),
            error=data.get("error"),
            result=data.get("result"),
            added_at=data.get("added_at") or utc_now_iso(),
        )


# ═══════════════════════════════════════════════════════════════════════════
# Candidate profile (owned by the caller, read-only here)
# ═══════════════════════════════════════════════════════════════════════════


class Experience(BaseModel):
    company: str
    title: str
    location: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    description: Optional[str] = None
    highlights: list[str] = Field(default_factory=list)


class Education(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    institution: str
    degree: str
    field_of_study: Optional[str] = Field(default=None, alias="field")
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    gpa: Optional[str] = None


class Preferences(BaseModel):
    remote_only: bool = False
    min_salary: Optional[int] = None
    preferred_locations: list[str] = Field(default_factory=list)
    excluded_companies: list[str] = Field(default_factory=list)
    job_types: list[str] = Field(default_factory=list)


class Profile(BaseModel):
    """Candidate identity, history and preferences."""

    id: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    base_resume: Optional[str] = None
    base_cover_letter: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    skills: list[str] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""

    @property
    def last_name(self) -> str:
        parts = self.name.split()
        return " ".join(parts[1:])


# ═══════════════════════════════════════════════════════════════════════════
# Application / generation records
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class Application:
    """Persisted record of one application attempt."""

    profile_id: Optional[int]
    url: str
    platform: Platform
    company: str
    job_title: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    generated_resume: Optional[str] = None
    generated_cover_letter: Optional[str] = None
    form_data: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    applied_at: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class GeneratedDocuments:
    resume: str
    cover_letter: str


@dataclass(frozen=True)
class JobFitResult:
    """AI-derived candidate/job match estimate."""

    score: int
    reasoning: str = ""
    strong_matches: tuple[str, ...] = ()
    missing_skills: tuple[str, ...] = ()
    recommendation: str = "good"
