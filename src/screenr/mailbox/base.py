"""Mailbox capability consumed by the screener and spam classifier."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ..types import Mail, MailContent


@runtime_checkable
class Mailbox(Protocol):
    """Stateful single-connection mailbox session.

    Implementations keep an implicit current folder, so callers must issue
    commands one at a time.
    """

    def connect(self) -> None:
        """Open the session."""

    def disconnect(self) -> None:
        """Close the session. Safe to call when not connected."""

    def list_mail(self, folder: str) -> list[Mail]:
        """Return mail in ``folder``, oldest first."""

    def fetch_content(self, folder: str, mail_ids: Sequence[str]) -> list[MailContent]:
        """Return subject and body for the given ids in ``folder``."""

    def move_mail(self, mail_id: str, from_folder: str, to_folder: str) -> None:
        """Move a mail, raising ``MoveError`` when it cannot be moved."""


__all__ = ["Mailbox"]
