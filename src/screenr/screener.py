"""Reconciliation of mailbox folders against learned sender guidelines."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import MailboxError, MoveError
from .guidelines import GuidelineStore
from .mailbox import Mailbox
from .types import SCREENING_ALIAS, Folders, Guideline, GuidelineChange, Mail, MailContent

LOGGER = logging.getLogger(__name__)
DEFAULT_MAX_WORKERS = 8

Snapshot = dict[str, list[Mail]]


class SpamDetector(Protocol):
    def classify(self, content: MailContent) -> bool: ...


@dataclass
class ScreeningMetrics:
    """Counters accumulated across screening runs."""

    runs: int = 0
    failed_runs: int = 0
    guidelines_learned: int = 0
    moves: int = 0
    failed_moves: int = 0
    spam_verdicts: int = 0

    def snapshot(self) -> dict[str, Any]:
        return {
            "runs": self.runs,
            "failed_runs": self.failed_runs,
            "guidelines_learned": self.guidelines_learned,
            "moves": self.moves,
            "failed_moves": self.failed_moves,
            "spam_verdicts": self.spam_verdicts,
        }


class Screener:
    """Learn sender guidelines from manual placements and apply them.

    One run connects, lists every configured folder, learns guidelines from
    mail found in screening folders, persists them, and only then moves mail
    to the folder its sender's guideline points at. Senders without a
    guideline are checked for spam when a detector and spam folder are given,
    and otherwise land in the manual-screening folder. Mail already filed in
    a primary folder only moves when its sender's guideline points elsewhere.
    """

    def __init__(
        self,
        mailbox: Mailbox,
        guidelines: GuidelineStore,
        folders: Folders,
        *,
        classifier: SpamDetector | None = None,
        spam_folder: str | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._mailbox = mailbox
        self._guidelines = guidelines
        self._folders = folders
        if classifier is not None and not spam_folder:
            LOGGER.warning("Spam classifier given without a spam folder; spam checks disabled")
        elif spam_folder and classifier is None:
            LOGGER.warning(
                "Spam folder %s given without a classifier; spam checks disabled", spam_folder
            )
        self._classifier = classifier if spam_folder else None
        self._spam_folder = spam_folder if classifier is not None else None
        self._max_workers = max(1, max_workers)
        self.metrics = ScreeningMetrics()

    @property
    def intake_folder(self) -> str:
        return self._folders.inbox.folder

    def screen_mail(self) -> bool:
        """Run one full reconciliation. Returns False when the run failed."""

        self.metrics.runs += 1
        try:
            self._mailbox.connect()
            snapshot = self._fetch()
            changes = self._learn(snapshot)
            self._persist(changes)
            self._move(snapshot)
        except Exception:
            self.metrics.failed_runs += 1
            LOGGER.exception("Screening run failed")
            return False
        finally:
            self._disconnect()
        return True

    def _fetch(self) -> Snapshot:
        snapshot: Snapshot = {}
        for folder in self._fetch_order():
            snapshot[folder] = self._mailbox.list_mail(folder)
            LOGGER.debug("Found %s mail(s) in %s", len(snapshot[folder]), folder)
        return snapshot

    def _fetch_order(self) -> Iterator[str]:
        seen: set[str] = set()
        for alias in self._folders.aliases:
            config = self._folders[alias]
            for folder in (config.folder, config.screening_folder):
                if folder not in seen:
                    seen.add(folder)
                    yield folder
        if self.intake_folder not in seen:
            yield self.intake_folder

    def _learn(self, snapshot: Snapshot) -> list[GuidelineChange]:
        candidates: list[tuple[str, Mail]] = []
        for alias in self._folders.aliases:
            if alias == SCREENING_ALIAS:
                continue
            folder = self._folders[alias].screening_folder
            if folder == self.intake_folder:
                continue
            candidates.extend((alias, mail) for mail in snapshot.get(folder, ()) if mail.sender)

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = [executor.submit(self._compare, alias, mail) for alias, mail in candidates]
        found = [change for change in (future.result() for future in futures) if change]
        return self._resolve_conflicts(found)

    def _compare(self, alias: str, mail: Mail) -> GuidelineChange | None:
        taught = Guideline.target(alias)
        if self._guidelines.get(mail.sender) == taught:
            return None
        return GuidelineChange(sender=mail.sender, guideline=taught)

    @staticmethod
    def _resolve_conflicts(changes: list[GuidelineChange]) -> list[GuidelineChange]:
        latest: dict[str, GuidelineChange] = {}
        for change in changes:
            previous = latest.get(change.sender)
            if previous is not None and previous.guideline != change.guideline:
                LOGGER.warning(
                    "Sender %s found in several screening folders (%s, %s); keeping %s",
                    change.sender,
                    previous.guideline,
                    change.guideline,
                    change.guideline,
                )
            latest[change.sender] = change
        return list(latest.values())

    def _persist(self, changes: list[GuidelineChange]) -> None:
        for change in changes:
            previous = self._guidelines.get(change.sender)
            self._guidelines.set(change.sender, change.guideline)
            self.metrics.guidelines_learned += 1
            LOGGER.info(
                "Learned guideline for %s: %s (was %s)", change.sender, change.guideline, previous
            )

    def _move(self, snapshot: Snapshot) -> None:
        for folder, filed in self._move_order():
            for mail in snapshot.get(folder, ()):
                # Filed mail only follows a known guideline; it is never re-screened.
                destination = self._target(mail) if filed else self._destination(folder, mail)
                if destination is None or destination == folder:
                    continue
                try:
                    self._mailbox.move_mail(mail.id, folder, destination)
                except MoveError as exc:
                    self.metrics.failed_moves += 1
                    LOGGER.error(
                        "Failed to move mail %s (sender %s) from %s to %s: %s",
                        mail.id,
                        mail.sender or "<unknown>",
                        folder,
                        destination,
                        exc,
                    )
                    continue
                self.metrics.moves += 1
                LOGGER.info(
                    "Moved mail %s from %s: %s -> %s", mail.id, mail.sender, folder, destination
                )

    def _move_order(self) -> Iterator[tuple[str, bool]]:
        """Yield ``(folder, filed)`` pairs, intake last.

        A folder is filed when it is some alias's primary folder and no
        alias's screening folder.
        """

        screening = {config.screening_folder for config in self._folders.values()}
        seen: set[str] = set()
        for alias in self._folders.aliases:
            config = self._folders[alias]
            for folder in (config.screening_folder, config.folder):
                if folder not in seen and folder != self.intake_folder:
                    seen.add(folder)
                    yield folder, folder not in screening
        yield self.intake_folder, False

    def _target(self, mail: Mail) -> str | None:
        """Primary folder named by the sender's guideline, if it resolves."""

        guideline = self._guidelines.get(mail.sender)
        if guideline.requires_manual_screening:
            return None
        config = self._folders.get(guideline.alias or "")
        if config is None:
            LOGGER.warning(
                "Guideline for %s names unknown folder alias '%s'; screening manually",
                mail.sender,
                guideline.alias,
            )
            return None
        return config.folder

    def _destination(self, folder: str, mail: Mail) -> str:
        target = self._target(mail)
        if target is not None:
            return target
        classifier = self._classifier
        if classifier is not None and self._spam_folder:
            if self._is_spam(classifier, folder, mail):
                return self._spam_folder
        return self._folders.screening.folder

    def _is_spam(self, classifier: SpamDetector, folder: str, mail: Mail) -> bool:
        contents = self._mailbox.fetch_content(folder, [mail.id])
        content = next((item for item in contents if item.id == mail.id), None)
        if content is None:
            raise MailboxError(f"Cannot fetch content of mail {mail.id} in {folder}")
        is_spam = classifier.classify(content)
        if is_spam:
            self.metrics.spam_verdicts += 1
            LOGGER.info("Mail %s from %s in %s classified as spam", mail.id, mail.sender, folder)
        return is_spam

    def _disconnect(self) -> None:
        try:
            self._mailbox.disconnect()
        except Exception:
            LOGGER.exception("Failed to disconnect from mailbox")


__all__ = ["Screener", "ScreeningMetrics", "SpamDetector"]
