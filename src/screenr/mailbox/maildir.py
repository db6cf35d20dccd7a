"""Maildir-backed mailbox used for local delivery setups and tests."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from email import policy
from email.parser import BytesParser
from pathlib import Path

from ..errors import MailboxError, MoveError
from ..extractor import extract_content, parse_sender
from ..types import Mail, MailContent

LOGGER = logging.getLogger(__name__)

INBOX_NAME = "inbox"
MAIL_SUBDIRS = ("cur", "new")
_MAIL_ID_PATTERN = re.compile(r"^(\d+)\.")


class MaildirMailbox:
    """Expose a maildir tree through the mailbox interface.

    The ``INBOX`` folder maps to the maildir root, every other folder name is a
    sub-directory of it (``.Newsletter``, ``Archive/2024``...). Mail ids are
    file names, which only accepts files carrying a numeric timestamp prefix.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root).expanduser()
        if not self._root.is_dir():
            raise MailboxError(f"Maildir root does not exist: {self._root}")

    def connect(self) -> None:
        LOGGER.debug("Using maildir at %s", self._root)

    def disconnect(self) -> None:
        return None

    def list_mail(self, folder: str) -> list[Mail]:
        entries: list[tuple[int, str, Path]] = []
        for subdir in MAIL_SUBDIRS:
            directory = self._folder_dir(folder) / subdir
            if not directory.is_dir():
                continue
            for candidate in directory.iterdir():
                match = _MAIL_ID_PATTERN.match(candidate.name)
                if match is None or not candidate.is_file():
                    continue
                entries.append((int(match.group(1)), candidate.name, candidate))

        mails: list[Mail] = []
        for _stamp, name, path in sorted(entries):
            mails.append(Mail(id=name, sender=self._read_sender(path)))
        return mails

    def fetch_content(self, folder: str, mail_ids: Sequence[str]) -> list[MailContent]:
        contents: list[MailContent] = []
        for mail_id in mail_ids:
            path = self._locate(folder, mail_id)
            if path is None:
                raise MailboxError(f"Cannot find mail {mail_id} in {folder}")
            contents.append(extract_content(path.read_bytes(), mail_id))
        return contents

    def move_mail(self, mail_id: str, from_folder: str, to_folder: str) -> None:
        source = self._locate(from_folder, mail_id)
        if source is None:
            raise MoveError(f"Cannot find mail {mail_id} in {from_folder}")
        destination_dir = self._folder_dir(to_folder) / "cur"
        if self._locate(to_folder, mail_id) is not None:
            raise MoveError(f"Mail {mail_id} already exists in {to_folder}")
        destination_dir.mkdir(parents=True, exist_ok=True)
        try:
            source.replace(destination_dir / mail_id)
        except FileNotFoundError as exc:
            raise MoveError(f"Mail {mail_id} disappeared during move from {from_folder}") from exc
        except OSError as exc:
            raise MoveError(f"Failed to move mail {mail_id}: {exc}") from exc

    def _folder_dir(self, folder: str) -> Path:
        if folder.strip().lower() == INBOX_NAME:
            return self._root
        return self._root / folder

    def _locate(self, folder: str, mail_id: str) -> Path | None:
        if "/" in mail_id or mail_id in ("", ".", ".."):
            return None
        for subdir in MAIL_SUBDIRS:
            candidate = self._folder_dir(folder) / subdir / mail_id
            if candidate.is_file():
                return candidate
        return None

    @staticmethod
    def _read_sender(path: Path) -> str:
        parser = BytesParser(policy=policy.default)
        try:
            with path.open("rb") as handle:
                headers = parser.parse(handle, headersonly=True)
            sender = parse_sender(str(headers.get("From", "")))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Cannot parse sender of %s: %s", path, exc)
            return ""
        if not sender:
            LOGGER.warning("Cannot parse sender of %s", path)
        return sender


__all__ = ["MaildirMailbox"]
