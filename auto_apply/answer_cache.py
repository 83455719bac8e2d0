"""Cached operator answers, keyed by normalised field label.

The form filler never touches storage directly: it is handed an
:class:`AnswerCache` and calls ``get`` / ``set`` with keys produced by
:func:`get_cache_key`.  Writes are best-effort; a failed write is logged
and dropped.
"""

from __future__ import annotations

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

__all__ = ["get_cache_key", "AnswerCache", "InMemoryAnswerCache", "JsonAnswerCache"]


def get_cache_key(label: str) -> str:
    """Normalise a field label: ``"Are you 18+?"`` → ``"are_you_18"``."""
    return re.sub(r"[^a-z0-9]+", "_", (label or "").lower()).strip("_")


class AnswerCache(ABC):
    """Get/set capability for previously supplied answers."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the cached answer for ``key`` or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``. Must not raise."""


class InMemoryAnswerCache(AnswerCache):
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._answers: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._answers.get(key)

    def set(self, key: str, value: str) -> None:
        self._answers[key] = value

    def as_dict(self) -> dict[str, str]:
        return dict(self._answers)


class JsonAnswerCache(AnswerCache):
    """Answer cache persisted as a flat JSON object on disk.

    The file is read lazily on first access and rewritten on every ``set``.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._answers: Optional[dict[str, str]] = None

    def _load(self) -> dict[str, str]:
        if self._answers is None:
            self._answers = {}
            if self.path.exists():
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                    if isinstance(raw, dict):
                        self._answers = {str(k): str(v) for k, v in raw.items()}
                except (OSError, ValueError) as exc:
                    logger.warning("Ignoring unreadable answer cache %s: %s", self.path, exc)
        return self._answers

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        answers = self._load()
        answers[key] = value
        try:
            os.makedirs(self.path.parent, exist_ok=True)
            self.path.write_text(json.dumps(answers, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not persist answer cache %s: %s", self.path, exc)
