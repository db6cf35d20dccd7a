"""Core immutable data structures used throughout Screenr."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ConfigError

INBOX_ALIAS = "Inbox"
SCREENING_ALIAS = "ForScreening"
RESERVED_ALIASES = (INBOX_ALIAS, SCREENING_ALIAS)


class GuidelineKind(str, Enum):
    """Routing decision kinds stored per sender."""

    REQUIRES_MANUAL_SCREENING = "requires_manual_screening"
    TARGET_FOLDER = "target_folder"


@dataclass(frozen=True)
class Guideline:
    """Routing guideline for a sender: manual screening or a target alias."""

    kind: GuidelineKind
    alias: str | None = None

    def __post_init__(self) -> None:
        if self.kind is GuidelineKind.TARGET_FOLDER and not self.alias:
            raise ValueError("Target folder guideline requires an alias.")
        if self.kind is GuidelineKind.REQUIRES_MANUAL_SCREENING and self.alias is not None:
            raise ValueError("Manual screening guideline cannot carry an alias.")

    @classmethod
    def manual_screening(cls) -> Guideline:
        return cls(GuidelineKind.REQUIRES_MANUAL_SCREENING)

    @classmethod
    def target(cls, alias: str) -> Guideline:
        return cls(GuidelineKind.TARGET_FOLDER, alias)

    @property
    def requires_manual_screening(self) -> bool:
        return self.kind is GuidelineKind.REQUIRES_MANUAL_SCREENING

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"result": self.kind.value}
        if self.alias is not None:
            payload["alias"] = self.alias
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Guideline:
        kind = GuidelineKind(payload["result"])
        if kind is GuidelineKind.TARGET_FOLDER:
            return cls.target(str(payload["alias"]))
        return cls.manual_screening()

    def __str__(self) -> str:
        if self.requires_manual_screening:
            return "manual screening"
        return f"folder {self.alias}"


@dataclass(frozen=True)
class Mail:
    """Mail listing entry. Ids are scoped to the folder they were listed in."""

    id: str
    sender: str


@dataclass(frozen=True)
class MailContent:
    """Subject and body text of a single mail."""

    id: str
    subject: str
    body: str

    @property
    def text(self) -> str:
        return f"{self.subject} {self.body}"


@dataclass(frozen=True)
class FolderConfig:
    """Per-alias folder configuration."""

    alias: str
    folder: str
    screening_folder: str
    scan_for_spam: bool = False
    use_for_training: bool = False

    @property
    def has_separate_screening(self) -> bool:
        return self.screening_folder != self.folder


class Folders(Mapping[str, FolderConfig]):
    """Validated mapping of alias to folder configuration.

    The intake and manual-screening aliases are guaranteed to be present and
    every alias resolves to non-empty folder paths.
    """

    def __init__(self, configs: Iterable[FolderConfig]) -> None:
        entries: dict[str, FolderConfig] = {}
        for config in configs:
            if not config.alias:
                raise ConfigError("Folder alias cannot be empty.")
            if config.alias in entries:
                raise ConfigError(f"Duplicate folder alias '{config.alias}'.")
            if not config.folder.strip() or not config.screening_folder.strip():
                raise ConfigError(f"Folder alias '{config.alias}' requires non-empty folders.")
            entries[config.alias] = config
        missing = [alias for alias in RESERVED_ALIASES if alias not in entries]
        if missing:
            raise ConfigError(f"Missing reserved folder alias(es): {', '.join(missing)}.")
        self._entries = entries

    def __getitem__(self, alias: str) -> FolderConfig:
        return self._entries[alias]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def aliases(self) -> tuple[str, ...]:
        return tuple(self._entries)

    @property
    def inbox(self) -> FolderConfig:
        return self._entries[INBOX_ALIAS]

    @property
    def screening(self) -> FolderConfig:
        return self._entries[SCREENING_ALIAS]


@dataclass
class TrainingDataset:
    """Weighted chain-frequency corpus."""

    chain_weights: dict[str, float] = field(default_factory=dict)
    dataset_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"chain_weights": self.chain_weights, "dataset_size": self.dataset_size}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> TrainingDataset:
        weights = {str(key): float(value) for key, value in payload["chain_weights"].items()}
        return cls(chain_weights=weights, dataset_size=int(payload["dataset_size"]))


@dataclass
class SpamTraining:
    """Ham and spam corpora, persisted as a pair."""

    ham: TrainingDataset
    spam: TrainingDataset

    @classmethod
    def empty(cls) -> SpamTraining:
        return cls(ham=TrainingDataset(), spam=TrainingDataset())


@dataclass(frozen=True)
class GuidelineChange:
    """Pending guideline write computed during the learn phase."""

    sender: str
    guideline: Guideline


__all__ = [
    "INBOX_ALIAS",
    "SCREENING_ALIAS",
    "RESERVED_ALIASES",
    "GuidelineKind",
    "Guideline",
    "Mail",
    "MailContent",
    "FolderConfig",
    "Folders",
    "TrainingDataset",
    "SpamTraining",
    "GuidelineChange",
]
