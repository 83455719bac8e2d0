# tests/test_application_store.py

import pytest
import pytest_asyncio

from auto_apply.application_store import ApplicationStore
from auto_apply.models import Application, ApplicationStatus, Platform


@pytest_asyncio.fixture
async def store(tmp_path):
    store = ApplicationStore(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await store.init()
    yield store
    await store.close()


def _application(url="https://jobs.lever.co/acme/1", company="Acme", **kwargs):
    return Application(
        profile_id=1,
        url=url,
        platform=Platform.LEVER,
        company=company,
        job_title="Engineer",
        **kwargs,
    )


async def test_profile_round_trip(store, profile):
    saved = await store.save_profile(profile)
    assert saved.id is not None

    loaded = await store.get_profile(saved.id)
    assert loaded.name == "Jane Q Doe"
    assert loaded.education[0].institution == "TU Berlin"
    assert loaded.preferences.min_salary == 90000
    assert (await store.first_profile()).id == saved.id


async def test_save_profile_updates_existing(store, profile):
    saved = await store.save_profile(profile)
    updated = await store.save_profile(saved.model_copy(update={"phone": "+49 30 1234"}))
    assert updated.id == saved.id
    assert (await store.get_profile(saved.id)).phone == "+49 30 1234"


async def test_missing_profile(store):
    assert await store.get_profile(99) is None
    assert await store.first_profile() is None


async def test_create_and_update_application(store):
    created = await store.create_application(_application(form_data={"fit_score": 70}))
    assert created.id is not None
    assert created.status == ApplicationStatus.PENDING
    assert created.created_at

    updated = await store.update_application(
        created.id,
        status=ApplicationStatus.SUBMITTED,
        applied_at="2024-01-01T00:00:00+00:00",
    )
    assert updated.status == ApplicationStatus.SUBMITTED
    assert updated.form_data == {"fit_score": 70}
    assert (await store.find_by_url(created.url)).id == created.id


async def test_update_rejects_unknown_fields(store):
    created = await store.create_application(_application())
    with pytest.raises(ValueError):
        await store.update_application(created.id, url="https://elsewhere.example")


async def test_update_missing_application(store):
    assert await store.update_application(42, status=ApplicationStatus.FAILED) is None


async def test_find_all_filters(store):
    await store.create_application(_application(company="Acme"))
    failed = await store.create_application(
        _application(url="https://jobs.lever.co/globex/2", company="Globex", status=ApplicationStatus.FAILED)
    )

    assert [a.id for a in await store.find_all(status=ApplicationStatus.FAILED)] == [failed.id]
    assert [a.company for a in await store.find_all(company="glob")] == ["Globex"]
    assert len(await store.find_all()) == 2
    assert await store.count() == 2
    assert await store.count(ApplicationStatus.PENDING) == 1


async def test_delete_application(store):
    created = await store.create_application(_application())
    assert await store.delete_application(created.id)
    assert not await store.delete_application(created.id)
    assert await store.get_application(created.id) is None


async def test_previous_answers_from_form_data(store):
    await store.create_application(
        _application(
            form_data={
                "questions": [
                    {"question": "Why Acme?", "answer": "Mission"},
                    {"question": "Unanswered", "answer": None},
                ]
            }
        )
    )
    assert await store.previous_answers() == [{"question": "Why Acme?", "answer": "Mission"}]
