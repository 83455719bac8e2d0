# tests/test_job_fit.py

import pytest

from auto_apply.job_fit import evaluate_job_fit, parse_fit_reply, recommendation_for
from auto_apply.models import JobData, Platform
from conftest import FakeLLM


@pytest.mark.parametrize(
    "score,expected",
    [(100, "strong"), (80, "strong"), (79, "good"), (60, "good"), (59, "stretch"), (40, "stretch"), (39, "skip"), (0, "skip")],
)
def test_recommendation_boundaries(score, expected):
    assert recommendation_for(score) == expected


def test_parse_full_reply():
    result = parse_fit_reply(
        '{"score": 85, "reasoning": "Solid match.", "strongMatches": ["Python"],'
        ' "missingSkills": ["Go"], "recommendation": "strong"}'
    )
    assert result.score == 85
    assert result.reasoning == "Solid match."
    assert result.strong_matches == ("Python",)
    assert result.missing_skills == ("Go",)
    assert result.recommendation == "strong"


def test_score_is_clamped():
    assert parse_fit_reply('{"score": 140}').score == 100
    assert parse_fit_reply('{"score": -20}').score == 0


def test_missing_or_zero_score_defaults_to_fifty():
    assert parse_fit_reply('{"reasoning": "?"}').score == 50
    assert parse_fit_reply('{"score": 0}').score == 50
    assert parse_fit_reply('{"score": "high"}').score == 50


def test_unknown_recommendation_is_derived():
    assert parse_fit_reply('{"score": 45, "recommendation": "maybe"}').recommendation == "stretch"


def test_garbage_reply():
    result = parse_fit_reply("I am unable to evaluate this.")
    assert result.score == 50
    assert result.recommendation == "good"


async def test_evaluate_job_fit_sends_job_context(profile):
    job = JobData(
        url="https://jobs.lever.co/acme/1",
        platform=Platform.LEVER,
        title="Data Engineer",
        company="Acme",
        requirements=["Spark"],
    )
    llm = FakeLLM(['{"score": 72}'])
    result = await evaluate_job_fit(llm, profile, job)
    assert result.score == 72
    assert result.recommendation == "good"
    prompt, system_prompt = llm.calls[0]
    assert "Data Engineer" in prompt
    assert "Spark" in prompt
    assert "score" in system_prompt
