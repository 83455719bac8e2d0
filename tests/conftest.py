# tests/conftest.py
# Shared fixtures: a candidate profile, a scripted LLM and tmp-path settings.

import os
from typing import Callable, Optional

import pytest

# Keep litellm from fetching its remote model cost map in a background
# thread at import time (it deadlocks the import when offline).
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from auto_apply.models import Education, Experience, Preferences, Profile
from config.settings import (
    AIConfig,
    ApplicationConfig,
    BrowserConfig,
    PathsConfig,
    RunConfig,
    Settings,
)


class FakeLLM:
    """Scripted text generator.

    Replies are consumed in order; an ``Exception`` instance in the list is
    raised instead of returned.  Once the list is empty ``responder`` (or
    ``default``) answers.
    """

    def __init__(
        self,
        replies: Optional[list] = None,
        default: str = "Generated text",
        available: bool = True,
        responder: Optional[Callable[[str, Optional[str]], str]] = None,
    ) -> None:
        self.replies = list(replies or [])
        self.default = default
        self.available = available
        self.responder = responder
        self.calls: list[tuple[str, Optional[str]]] = []

    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.calls.append((prompt, system_prompt))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        if self.responder is not None:
            return self.responder(prompt, system_prompt)
        return self.default

    async def is_available(self) -> bool:
        return self.available


class FakePrompter:
    def __init__(self, answer: Optional[str] = None) -> None:
        self.answer = answer
        self.asked: list[tuple[str, Optional[list[str]]]] = []

    def ask(self, label, options=None):
        self.asked.append((label, options))
        return self.answer


@pytest.fixture
def profile():
    return Profile(
        name="Jane Q Doe",
        email="jane@example.com",
        phone="+1 555 0100",
        location="Berlin, Germany",
        linkedin_url="https://linkedin.com/in/janedoe",
        github_url="https://github.com/janedoe",
        skills=["Python", "PostgreSQL", "AWS"],
        experience=[
            Experience(company="Acme", title="Backend Engineer", start_date="2021-01", end_date="2023-01"),
            Experience(company="Globex", title="Developer", start_date="2019-01", end_date="2020-12-31"),
        ],
        education=[Education(institution="TU Berlin", degree="BSc", field="Computer Science")],
        preferences=Preferences(min_salary=90000),
    )


@pytest.fixture
def remote_profile(profile):
    return profile.model_copy(update={"preferences": Preferences(remote_only=True)})


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ai=AIConfig(),
        browser=BrowserConfig(headless=True, timeout=5000, storage_state=""),
        application=ApplicationConfig(
            auto_submit=False,
            save_screenshots=False,
            retry_attempts=1,
            interactive_prompts=False,
            min_fit_score=None,
            inter_job_delay_seconds=0,
        ),
        paths=PathsConfig(
            data_dir=str(tmp_path),
            queue_file=str(tmp_path / "queue.json"),
            answer_cache_file=str(tmp_path / "cached_answers.json"),
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'autoply.db'}",
            documents_dir=str(tmp_path / "documents"),
            screenshots_dir=str(tmp_path / "screenshots"),
        ),
        run=RunConfig(dry_run=False, log_level="DEBUG"),
    )
