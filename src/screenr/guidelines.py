"""Per-sender routing guideline storage."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from email.utils import parseaddr
from pathlib import Path
from typing import Any

from .store import atomic_write, quarantine_corrupt_file
from .types import Guideline

LOGGER = logging.getLogger(__name__)


class GuidelineStore:
    """JSON-file backed mapping of sender to guideline.

    Unknown senders resolve to manual screening. Writes are flushed to disk
    before ``set`` returns.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._guidelines = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, sender: str) -> Guideline:
        normalized = normalize_sender(sender)
        if not normalized:
            return Guideline.manual_screening()
        with self._lock:
            return self._guidelines.get(normalized, Guideline.manual_screening())

    def set(self, sender: str, guideline: Guideline) -> bool:
        """Store a guideline. Returns False when nothing changed."""

        normalized = normalize_sender(sender)
        if not normalized:
            LOGGER.warning("Refusing to store guideline for empty sender")
            return False
        with self._lock:
            if self._guidelines.get(normalized) == guideline:
                return False
            updated = dict(self._guidelines)
            updated[normalized] = guideline
            self._persist(updated)
            self._guidelines = updated
        return True

    def snapshot(self) -> Mapping[str, Guideline]:
        with self._lock:
            return dict(self._guidelines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._guidelines)

    def _persist(self, guidelines: Mapping[str, Guideline]) -> None:
        payload = {sender: rule.to_dict() for sender, rule in sorted(guidelines.items())}

        def _write(tmp_path: Path) -> None:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)

        atomic_write(self._path, _write)

    def _load(self) -> dict[str, Guideline]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw: Any = json.load(handle)
            if not isinstance(raw, dict):
                raise ValueError("guideline file root must be an object")
            return {
                normalize_sender(sender): Guideline.from_dict(entry)
                for sender, entry in raw.items()
                if normalize_sender(sender)
            }
        except (ValueError, KeyError, TypeError):
            LOGGER.warning("Failed to load guidelines from %s", self._path, exc_info=True)
            quarantine_corrupt_file(self._path)
            return {}


def normalize_sender(address: str | None) -> str:
    if not address:
        return ""
    _display, email_address = parseaddr(address)
    candidate = email_address or address
    return candidate.strip().lower()


__all__ = ["GuidelineStore", "normalize_sender"]
