"""
Durable, resumable FIFO of job URLs.

Items move ``pending → processing → completed | failed``.  Every status or
result mutation is persisted synchronously to a JSON file::

    {"items": [[id, item], ...], "processing": bool, "savedAt": iso}

Persistence is best-effort: write failures are logged and swallowed.
:meth:`ApplicationQueue.load` resets items left ``processing`` by an
interrupted run back to ``pending`` (the only backward transition), so
the next run restarts them from scratch.

The queue is single-writer: only the orchestrator loop mutates it.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from auto_apply.models import QueueItem, QueueStatus

logger = logging.getLogger(__name__)

__all__ = ["ApplicationQueue"]

_STATUS_RANK: dict[QueueStatus, int] = {
    QueueStatus.PENDING: 0,
    QueueStatus.PROCESSING: 1,
    QueueStatus.COMPLETED: 2,
    QueueStatus.FAILED: 2,
}


class ApplicationQueue:
    """Insertion-ordered queue of :class:`QueueItem` persisted to ``persist_path``."""

    def __init__(self, persist_path: Union[str, Path]) -> None:
        self.persist_path = Path(persist_path)
        self._items: dict[str, QueueItem] = {}
        self._processing = False

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, url: str) -> QueueItem:
        item = QueueItem(id=str(uuid.uuid4()), url=url)
        self._items[item.id] = item
        return item

    def add_many(self, urls: list[str]) -> list[QueueItem]:
        return [self.add(url) for url in urls]

    def update_status(
        self, item_id: str, status: QueueStatus, error: Optional[str] = None
    ) -> bool:
        """Move an item forward and persist.

        Backward moves (``completed → pending``, ``processing → pending``)
        are refused; only :meth:`load` may reset ``processing``.

        Returns:
            ``True`` if the item exists and the transition was applied.
        """
        item = self._items.get(item_id)
        if item is None:
            return False
        status = QueueStatus(status)
        if _STATUS_RANK[status] < _STATUS_RANK[item.status]:
            logger.warning(
                "Refusing backward queue transition %s -> %s for %s",
                item.status.value,
                status.value,
                item.url,
            )
            return False
        item.status = status
        if error:
            item.error = error
        self.persist()
        return True

    def set_result(self, item_id: str, result: dict[str, Any]) -> bool:
        item = self._items.get(item_id)
        if item is None:
            return False
        item.result = result
        self.persist()
        return True

    def remove(self, item_id: str) -> bool:
        if self._items.pop(item_id, None) is None:
            return False
        self.persist()
        return True

    def clear(self) -> None:
        """Empty the queue and delete the persisted file."""
        self._items.clear()
        self.delete_persisted()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> Optional[QueueItem]:
        return self._items.get(item_id)

    def get_all(self) -> list[QueueItem]:
        return list(self._items.values())

    def _with_status(self, status: QueueStatus) -> list[QueueItem]:
        return [item for item in self._items.values() if item.status == status]

    def get_pending(self) -> list[QueueItem]:
        return self._with_status(QueueStatus.PENDING)

    def get_processing(self) -> Optional[QueueItem]:
        processing = self._with_status(QueueStatus.PROCESSING)
        return processing[0] if processing else None

    def get_completed(self) -> list[QueueItem]:
        return self._with_status(QueueStatus.COMPLETED)

    def get_failed(self) -> list[QueueItem]:
        return self._with_status(QueueStatus.FAILED)

    def size(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def has_next(self) -> bool:
        return any(item.status == QueueStatus.PENDING for item in self._items.values())

    def get_next(self) -> Optional[QueueItem]:
        """Return the earliest-added pending item."""
        for item in self._items.values():
            if item.status == QueueStatus.PENDING:
                return item
        return None

    def is_processing(self) -> bool:
        return self._processing

    def set_processing(self, value: bool) -> None:
        self._processing = value

    def get_stats(self) -> dict[str, int]:
        stats = {"total": len(self._items)}
        for status in QueueStatus:
            stats[status.value] = len(self._with_status(status))
        return stats

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> None:
        """Write the queue to disk. Never raises."""
        data = {
            "items": [[item_id, item.to_dict()] for item_id, item in self._items.items()],
            "processing": self._processing,
            "savedAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            os.makedirs(self.persist_path.parent, exist_ok=True)
            tmp_path = self.persist_path.with_suffix(self.persist_path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.persist_path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Queue persist to %s failed: %s", self.persist_path, exc)

    def _read_persisted(self) -> Optional[dict[str, Any]]:
        if not self.persist_path.exists():
            return None
        try:
            data = json.loads(self.persist_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable queue file %s: %s", self.persist_path, exc)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            return None
        return data

    def load(self) -> bool:
        """Replace in-memory state with the persisted snapshot.

        Returns:
            ``True`` if a valid snapshot was loaded.
        """
        data = self._read_persisted()
        if data is None:
            return False

        items: dict[str, QueueItem] = {}
        try:
            for item_id, raw in data["items"]:
                item = QueueItem.from_dict(raw)
                if item.status == QueueStatus.PROCESSING:
                    item.status = QueueStatus.PENDING
                items[str(item_id)] = item
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed queue file %s: %s", self.persist_path, exc)
            return False

        self._items = items
        self._processing = bool(data.get("processing", False))
        logger.info("Loaded %d queued jobs from %s", len(items), self.persist_path)
        return True

    def delete_persisted(self) -> None:
        try:
            self.persist_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete queue file %s: %s", self.persist_path, exc)

    def has_persisted(self) -> bool:
        return self.persist_path.exists()

    def get_persisted_info(self) -> Optional[dict[str, Any]]:
        """Summarise the persisted snapshot without loading it."""
        data = self._read_persisted()
        if data is None:
            return None
        pending = 0
        for entry in data["items"]:
            try:
                status = entry[1].get("status")
            except (IndexError, AttributeError, TypeError):
                continue
            if status in (QueueStatus.PENDING.value, QueueStatus.PROCESSING.value):
                pending += 1
        return {"pending": pending, "saved_at": data.get("savedAt")}
