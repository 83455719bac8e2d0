# tests/test_application_queue.py

import json

import pytest

from auto_apply.application_queue import ApplicationQueue
from auto_apply.models import QueueStatus


@pytest.fixture
def queue(tmp_path):
    return ApplicationQueue(tmp_path / "queue.json")


def test_fifo_order(queue):
    first, second = queue.add_many(["https://a.example/1", "https://b.example/2"])
    assert queue.get_next().id == first.id
    queue.update_status(first.id, QueueStatus.PROCESSING)
    assert queue.get_next().id == second.id
    assert queue.get_processing().id == first.id


def test_status_mutation_persists(queue):
    item = queue.add("https://a.example/1")
    queue.update_status(item.id, QueueStatus.FAILED, "Timeout")

    data = json.loads(queue.persist_path.read_text(encoding="utf-8"))
    assert data["items"][0][0] == item.id
    assert data["items"][0][1]["status"] == "failed"
    assert data["items"][0][1]["error"] == "Timeout"
    assert "savedAt" in data


def test_backward_transition_refused(queue):
    item = queue.add("https://a.example/1")
    queue.update_status(item.id, QueueStatus.COMPLETED)
    assert not queue.update_status(item.id, QueueStatus.PENDING)
    assert queue.get(item.id).status == QueueStatus.COMPLETED


def test_unknown_item(queue):
    assert not queue.update_status("missing", QueueStatus.COMPLETED)
    assert not queue.set_result("missing", {})
    assert not queue.remove("missing")


def test_load_resets_processing_to_pending(tmp_path):
    path = tmp_path / "queue.json"
    queue = ApplicationQueue(path)
    done, interrupted, waiting = queue.add_many(
        ["https://a.example/1", "https://b.example/2", "https://c.example/3"]
    )
    queue.update_status(done.id, QueueStatus.COMPLETED)
    queue.set_result(done.id, {"success": True})
    queue.update_status(interrupted.id, QueueStatus.PROCESSING)

    restored = ApplicationQueue(path)
    assert restored.load()
    assert [i.url for i in restored.get_all()] == [
        "https://a.example/1",
        "https://b.example/2",
        "https://c.example/3",
    ]
    assert restored.get(interrupted.id).status == QueueStatus.PENDING
    assert restored.get(done.id).result == {"success": True}
    assert restored.get_next().id == interrupted.id
    assert restored.get_stats() == {
        "total": 3,
        "pending": 2,
        "processing": 0,
        "completed": 1,
        "failed": 0,
    }


def test_load_without_file(queue):
    assert not queue.load()
    assert queue.get_persisted_info() is None


def test_load_rejects_corrupt_file(queue):
    queue.persist_path.write_text("{not json", encoding="utf-8")
    assert not queue.load()
    assert queue.is_empty()


def test_persisted_info_counts_unfinished(queue):
    first, second = queue.add_many(["https://a.example/1", "https://b.example/2"])
    queue.update_status(first.id, QueueStatus.PROCESSING)
    queue.update_status(second.id, QueueStatus.COMPLETED)

    info = queue.get_persisted_info()
    assert info["pending"] == 1
    assert info["saved_at"]


def test_clear_deletes_file(queue):
    item = queue.add("https://a.example/1")
    queue.update_status(item.id, QueueStatus.PROCESSING)
    assert queue.has_persisted()
    queue.clear()
    assert queue.is_empty()
    assert not queue.has_persisted()


def test_persist_failure_is_swallowed(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    queue = ApplicationQueue(blocker / "queue.json")
    item = queue.add("https://a.example/1")
    assert queue.update_status(item.id, QueueStatus.COMPLETED)
