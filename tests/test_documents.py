# tests/test_documents.py

from pathlib import Path

import pytest

from auto_apply.documents import DocumentGenerator, save_documents
from auto_apply.models import GeneratedDocuments, JobData, Platform
from conftest import FakeLLM


@pytest.fixture
def job():
    return JobData(
        url="https://jobs.ashbyhq.com/acme/1",
        platform=Platform.ASHBY,
        title="Platform Engineer",
        company="Acme",
        description="Run our Kubernetes fleet.",
        requirements=["Kubernetes"],
    )


async def test_generate_makes_two_calls(profile, job):
    llm = FakeLLM(["# Jane Q Doe resume", "Dear Acme team"])
    documents = await DocumentGenerator(llm).generate(profile, job)

    assert documents == GeneratedDocuments(resume="# Jane Q Doe resume", cover_letter="Dear Acme team")
    resume_prompt, _ = llm.calls[0]
    assert "Platform Engineer" in resume_prompt
    assert "- Kubernetes" in resume_prompt
    assert "TU Berlin" in resume_prompt


async def test_cover_letter_reuses_candidate_letter(profile, job):
    llm = FakeLLM(["letter"])
    custom = profile.model_copy(update={"base_cover_letter": "I love infrastructure."})
    await DocumentGenerator(llm).generate_cover_letter(custom, job)
    prompt, _ = llm.calls[0]
    assert "I love infrastructure." in prompt


def test_save_documents_writes_markdown(tmp_path):
    resume_path, cover_path = save_documents(
        "Acme / Platform Engineer",
        GeneratedDocuments(resume="resume body", cover_letter="letter body"),
        tmp_path / "docs",
    )
    assert Path(resume_path).name == "Acme_Platform_Engineer_resume.md"
    assert Path(resume_path).read_text(encoding="utf-8") == "resume body"
    assert Path(cover_path).read_text(encoding="utf-8") == "letter body"


def test_save_documents_skips_empty(tmp_path):
    resume_path, cover_path = save_documents(
        7, GeneratedDocuments(resume="resume body", cover_letter=""), tmp_path
    )
    assert Path(resume_path).name == "7_resume.md"
    assert cover_path is None


def test_save_documents_falls_back_for_unusable_prefix(tmp_path):
    resume_path, _ = save_documents("///", GeneratedDocuments("r", "c"), tmp_path)
    assert Path(resume_path).name == "application_resume.md"
