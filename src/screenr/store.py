"""Persistence helpers for Screenr state files."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from pathlib import Path

from .types import SpamTraining, TrainingDataset

LOGGER = logging.getLogger(__name__)


class SpamTrainingStore:
    """Stores the ham and spam corpora together in one JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SpamTraining:
        """Return stored corpora, or empty ones when none were saved yet."""

        if not self._path.exists():
            return SpamTraining.empty()
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            return SpamTraining(
                ham=TrainingDataset.from_dict(payload["ham"]),
                spam=TrainingDataset.from_dict(payload["spam"]),
            )
        except (ValueError, KeyError, TypeError, AttributeError):
            LOGGER.warning("Failed to load spam training from %s", self._path, exc_info=True)
            quarantine_corrupt_file(self._path)
            return SpamTraining.empty()

    def save(self, training: SpamTraining) -> None:
        payload = {"ham": training.ham.to_dict(), "spam": training.spam.to_dict()}

        def _write(tmp_path: Path) -> None:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, separators=(",", ":"))

        atomic_write(self._path, _write)


def atomic_write(target: Path, writer: Callable[[Path], None]) -> None:
    """Write through a temporary sibling file and swap it into place."""

    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
    try:
        writer(tmp_path)
        tmp_path.replace(target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def quarantine_corrupt_file(path: Path) -> Path | None:
    """Rename an unreadable state file out of the way and return its new path."""

    if not path.exists():
        return None
    candidate = path.with_name(f"{path.name}.corrupt")
    counter = 1
    while candidate.exists():
        counter += 1
        candidate = path.with_name(f"{path.name}.corrupt{counter}")
    path.replace(candidate)
    LOGGER.warning("Moved unreadable %s to %s", path, candidate)
    return candidate


__all__ = ["SpamTrainingStore", "atomic_write", "quarantine_corrupt_file"]
