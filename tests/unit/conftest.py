from __future__ import annotations

from collections.abc import Sequence

import pytest

from screenr.errors import MailboxError, MoveError
from screenr.types import FolderConfig, Folders, Mail, MailContent


class FakeMailbox:
    """In-memory mailbox keyed by folder name."""

    def __init__(self) -> None:
        self.folders: dict[str, list[Mail]] = {}
        self.contents: dict[str, MailContent] = {}
        self.moves: list[tuple[str, str, str]] = []
        self.connects = 0
        self.disconnects = 0
        self.failing_moves: set[str] = set()
        self.failing_fetches: set[str] = set()
        self.failing_lists: set[str] = set()

    def add(
        self, folder: str, mail_id: str, sender: str, *, subject: str = "", body: str = ""
    ) -> Mail:
        mail = Mail(id=mail_id, sender=sender)
        self.folders.setdefault(folder, []).append(mail)
        self.contents[mail_id] = MailContent(id=mail_id, subject=subject, body=body)
        return mail

    def ids(self, folder: str) -> list[str]:
        return [mail.id for mail in self.folders.get(folder, [])]

    def connect(self) -> None:
        self.connects += 1

    def disconnect(self) -> None:
        self.disconnects += 1

    def list_mail(self, folder: str) -> list[Mail]:
        if folder in self.failing_lists:
            raise MailboxError(f"cannot list {folder}")
        return list(self.folders.get(folder, []))

    def fetch_content(self, folder: str, mail_ids: Sequence[str]) -> list[MailContent]:
        if self.failing_fetches.intersection(mail_ids):
            raise MailboxError(f"cannot fetch from {folder}")
        present = set(self.ids(folder))
        return [self.contents[mail_id] for mail_id in mail_ids if mail_id in present]

    def move_mail(self, mail_id: str, from_folder: str, to_folder: str) -> None:
        if mail_id in self.failing_moves:
            raise MoveError(f"cannot move {mail_id}")
        source = self.folders.get(from_folder, [])
        mail = next((item for item in source if item.id == mail_id), None)
        if mail is None:
            raise MoveError(f"{mail_id} not in {from_folder}")
        source.remove(mail)
        self.folders.setdefault(to_folder, []).append(mail)
        self.moves.append((mail_id, from_folder, to_folder))


class WhitespaceTokenizer:
    def tokenize(self, text: str) -> list[str]:
        return text.lower().split()


class FixedDetector:
    def __init__(self, language: str = "english") -> None:
        self.language = language

    def detect(self, _text: str) -> str:
        return self.language


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def folders() -> Folders:
    return Folders(
        [
            FolderConfig("Inbox", "INBOX", "INBOX"),
            FolderConfig("ForScreening", "Screening", "Screening"),
            FolderConfig("Newsletter", "Newsletter", "Newsletter/Screen"),
            FolderConfig("Receipts", "Receipts", "Receipts"),
        ]
    )


@pytest.fixture
def whitespace_tokenizer() -> WhitespaceTokenizer:
    return WhitespaceTokenizer()


@pytest.fixture
def english_detector() -> FixedDetector:
    return FixedDetector()
