# tests/test_description_parser.py

from auto_apply.description_parser import (
    clean_text,
    company_from_url,
    extract_qualifications,
    extract_requirements,
    parse_json_reply,
    strip_code_fences,
)
from auto_apply.models import UNKNOWN_COMPANY, Platform

DESCRIPTION = """About us
We build payment infrastructure.

Requirements:
- 3+ years Python
• Experience with AWS
- You must have Docker experience
* Docker
Nice to have:
- Kubernetes
Benefits:
- Free lunch
"""


def test_requirements_are_bullets_under_requirement_headers():
    assert extract_requirements(DESCRIPTION) == [
        "3+ years Python",
        "Experience with AWS",
        "Docker",
    ]


def test_bullet_containing_header_keyword_is_dropped():
    # "- You must have ..." reopens the section instead of being collected.
    assert "You must have Docker experience" not in extract_requirements(DESCRIPTION)


def test_qualifications_stop_at_benefits():
    assert extract_qualifications(DESCRIPTION) == ["Kubernetes"]


def test_no_sections_means_no_bullets():
    assert extract_requirements("- Python\n- SQL") == []
    assert extract_qualifications("") == []


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_parse_json_reply_handles_fences_and_chatter():
    assert parse_json_reply('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_reply('Sure! Here it is: {"a": 1} Hope that helps.') == {"a": 1}


def test_parse_json_reply_respects_expected_type():
    assert parse_json_reply('Answers: [{"q": 1}]', expect=list) == [{"q": 1}]
    assert parse_json_reply('{"a": 1}', expect=list) is None


def test_parse_json_reply_returns_none_for_garbage():
    assert parse_json_reply("I could not find any job here.") is None
    assert parse_json_reply("") is None


def test_company_from_path_slug():
    url = "https://boards.greenhouse.io/acme-corp/jobs/1"
    assert company_from_url(url, Platform.GREENHOUSE) == "Acme Corp"


def test_company_from_subdomain():
    url = "https://acme.bamboohr.com/careers/3"
    assert company_from_url(url, Platform.BAMBOOHR) == "Acme"


def test_company_from_generic_host_skips_career_subdomains():
    url = "https://careers.example.com/openings/9"
    assert company_from_url(url, Platform.GENERIC) == "Example"


def test_company_unknown_without_host():
    assert company_from_url("not a url", Platform.GENERIC) == UNKNOWN_COMPANY


def test_clean_text_collapses_blank_runs():
    assert clean_text("  Senior Engineer  \n\n\n\nRemote\n") == "Senior Engineer\n\nRemote"
    assert clean_text(None) == ""
