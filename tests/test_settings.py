# tests/test_settings.py

import os

import pytest

from config.settings import AIConfig, ApplicationConfig, PathsConfig, get_settings

PATH_VARS = ("QUEUE_FILE", "ANSWER_CACHE_FILE", "DATABASE_URL", "DOCUMENTS_DIR", "SCREENSHOTS_DIR")


@pytest.fixture
def clean_env(monkeypatch):
    for name in PATH_VARS + ("MIN_FIT_SCORE", "AUTO_SUBMIT", "AI_PROVIDER", "AI_MODEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_qualified_model(clean_env):
    clean_env.setenv("AI_PROVIDER", "anthropic")
    clean_env.setenv("AI_MODEL", "claude-3-5-haiku-latest")
    assert AIConfig().qualified_model == "anthropic/claude-3-5-haiku-latest"

    clean_env.setenv("AI_MODEL", "ollama/llama3")
    assert AIConfig().qualified_model == "ollama/llama3"


def test_application_flags(clean_env):
    config = ApplicationConfig()
    assert config.auto_submit is False
    assert config.min_fit_score is None

    clean_env.setenv("AUTO_SUBMIT", "yes")
    clean_env.setenv("MIN_FIT_SCORE", "60")
    config = ApplicationConfig()
    assert config.auto_submit is True
    assert config.min_fit_score == 60


def test_paths_default_under_data_dir(clean_env, tmp_path):
    clean_env.setenv("AUTOPLY_DATA_DIR", str(tmp_path))
    paths = PathsConfig()
    assert paths.queue_file == str(tmp_path / "queue.json")
    assert paths.answer_cache_file == str(tmp_path / "cached_answers.json")
    assert paths.database_url == f"sqlite+aiosqlite:///{tmp_path / 'autoply.db'}"

    paths.ensure_dirs()
    assert os.path.isdir(paths.documents_dir)
    assert os.path.isdir(paths.screenshots_dir)


def test_explicit_path_wins(clean_env, tmp_path):
    paths = PathsConfig(data_dir=str(tmp_path), queue_file=str(tmp_path / "elsewhere.json"))
    assert paths.queue_file == str(tmp_path / "elsewhere.json")


def test_get_settings_returns_fresh_bundle(clean_env):
    assert get_settings() is not get_settings()
