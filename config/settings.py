"""Centralised configuration settings for the job application engine.

All environment variable reads are consolidated here into typed, frozen
dataclass instances.  Nothing in ``auto_apply`` calls ``os.getenv()``
directly: the entry point builds one :class:`Settings` bundle through
:func:`get_settings` and passes it down to the orchestrator, the queue and
the scrapers.

Secrets (LLM API keys) are read by ``litellm`` from the environment;
``load_dotenv()`` runs first so a local ``.env`` file is honoured.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.logging import RichHandler

__all__ = [
    "AIConfig",
    "BrowserConfig",
    "ApplicationConfig",
    "PathsConfig",
    "RunConfig",
    "Settings",
    "configure_logging",
    "get_settings",
]

load_dotenv(override=False)

DEFAULT_DATA_DIR: str = os.path.join("~", ".autoply")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class AIConfig:
    """Text-generation provider configuration.

    Attributes:
        provider: Provider prefix understood by ``litellm`` (``openai``,
            ``anthropic``, ``ollama``, ...).
        model: Model name without the provider prefix.
        base_url: Optional API base (local LM Studio / Ollama endpoints).
        temperature: Sampling temperature for every call.
        max_tokens: Completion cap per call.
        fallback_models: Fully-qualified ``provider/model`` strings tried in
            order when the primary model errors.
    """

    provider: str = field(
        default_factory=lambda: os.getenv("AI_PROVIDER", "openai")
    )
    model: str = field(
        default_factory=lambda: os.getenv("AI_MODEL", "gpt-4o-mini")
    )
    base_url: str = field(
        default_factory=lambda: os.getenv("AI_BASE_URL", "")
    )
    temperature: float = field(
        default_factory=lambda: float(os.getenv("AI_TEMPERATURE", "0.7"))
    )
    max_tokens: int = field(
        default_factory=lambda: int(os.getenv("AI_MAX_TOKENS", "4096"))
    )
    fallback_models: tuple[str, ...] = field(
        default_factory=lambda: tuple(
            m.strip()
            for m in os.getenv("AI_FALLBACK_MODELS", "").split(",")
            if m.strip()
        )
    )

    @property
    def qualified_model(self) -> str:
        """Return the ``provider/model`` string passed to ``litellm``."""
        if "/" in self.model:
            return self.model
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class BrowserConfig:
    """Playwright session configuration.

    Attributes:
        headless: Launch Chromium without a visible window.
        timeout: Default navigation / selector timeout in milliseconds.
        storage_state: Path to a saved Playwright storage state (cookies,
            local storage) reused for logged-in platforms such as LinkedIn.
        user_agent: Desktop user agent presented to career sites.
    """

    headless: bool = field(
        default_factory=lambda: _env_bool("BROWSER_HEADLESS", "true")
    )
    timeout: int = field(
        default_factory=lambda: int(os.getenv("BROWSER_TIMEOUT", "30000"))
    )
    storage_state: str = field(
        default_factory=lambda: os.getenv("BROWSER_STORAGE_STATE", "")
    )
    user_agent: str = field(
        default_factory=lambda: os.getenv(
            "BROWSER_USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        )
    )


@dataclass(frozen=True)
class ApplicationConfig:
    """Submission behaviour configuration.

    Attributes:
        auto_submit: When ``False`` applications are prepared and recorded
            but never submitted through the browser.
        save_screenshots: Capture a full-page screenshot after submit.
        retry_attempts: Attempts per LLM call before giving up.
        interactive_prompts: Ask the operator for required fields that no
            resolver could answer.
        min_fit_score: Skip jobs scoring below this (0-100).  ``None``
            disables fit gating.
        inter_job_delay_seconds: Pause between jobs in batch mode.
    """

    auto_submit: bool = field(
        default_factory=lambda: _env_bool("AUTO_SUBMIT", "false")
    )
    save_screenshots: bool = field(
        default_factory=lambda: _env_bool("SAVE_SCREENSHOTS", "true")
    )
    retry_attempts: int = field(
        default_factory=lambda: int(os.getenv("RETRY_ATTEMPTS", "3"))
    )
    interactive_prompts: bool = field(
        default_factory=lambda: _env_bool("INTERACTIVE_PROMPTS", "false")
    )
    min_fit_score: Optional[int] = field(
        default_factory=lambda: _env_optional_int("MIN_FIT_SCORE")
    )
    inter_job_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("INTER_JOB_DELAY", "5"))
    )


@dataclass(frozen=True)
class PathsConfig:
    """Filesystem locations for durable state.

    Attributes:
        data_dir: Root directory for every file below.
        queue_file: Persisted :class:`~auto_apply.application_queue.ApplicationQueue`.
        answer_cache_file: JSON map of normalised label to cached answer.
        database_url: SQLAlchemy async URL for the application store.
        documents_dir: Generated resume / cover letter files.
        screenshots_dir: Post-submit screenshots.
    """

    data_dir: str = field(
        default_factory=lambda: os.path.expanduser(
            os.getenv("AUTOPLY_DATA_DIR", DEFAULT_DATA_DIR)
        )
    )
    queue_file: str = field(default="")
    answer_cache_file: str = field(default="")
    database_url: str = field(default="")
    documents_dir: str = field(default="")
    screenshots_dir: str = field(default="")

    def __post_init__(self) -> None:
        base = Path(self.data_dir)
        defaults = {
            "queue_file": os.getenv("QUEUE_FILE", str(base / "queue.json")),
            "answer_cache_file": os.getenv(
                "ANSWER_CACHE_FILE", str(base / "cached_answers.json")
            ),
            "database_url": os.getenv(
                "DATABASE_URL", f"sqlite+aiosqlite:///{base / 'autoply.db'}"
            ),
            "documents_dir": os.getenv(
                "DOCUMENTS_DIR", str(base / "documents")
            ),
            "screenshots_dir": os.getenv(
                "SCREENSHOTS_DIR", str(base / "screenshots")
            ),
        }
        # frozen: fill unset paths through object.__setattr__
        for name, value in defaults.items():
            if not getattr(self, name):
                object.__setattr__(self, name, value)

    def ensure_dirs(self) -> None:
        """Create the data, documents and screenshots directories."""
        for directory in (self.data_dir, self.documents_dir, self.screenshots_dir):
            os.makedirs(directory, exist_ok=True)


@dataclass(frozen=True)
class RunConfig:
    """Per-run behaviour.

    Attributes:
        dry_run: Generate documents and record applications without any
            browser submission.
        log_level: Python ``logging`` level string (e.g. ``"INFO"``).
    """

    dry_run: bool = field(
        default_factory=lambda: _env_bool("DRY_RUN", "false")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )


@dataclass(frozen=True)
class Settings:
    """Bundle of every configuration section, passed explicitly."""

    ai: AIConfig = field(default_factory=AIConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    application: ApplicationConfig = field(default_factory=ApplicationConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    run: RunConfig = field(default_factory=RunConfig)


def configure_logging(level: str = "INFO") -> None:
    """Install a ``RichHandler`` on the root logger.

    Only entry points call this; library modules just use
    ``logging.getLogger(__name__)``.

    Args:
        level: Logging level name.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def get_settings() -> Settings:
    """Build a fresh :class:`Settings` bundle from the environment.

    Returns:
        Frozen settings populated exclusively from environment variables
        (and ``.env`` via ``python-dotenv``).
    """
    return Settings()
