"""IMAP mailbox adapter built on imap-tools."""

from __future__ import annotations

import imaplib
import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from imap_tools import AND, MailBox
from imap_tools.errors import ImapToolsError

from ..errors import MailboxError, MoveError
from ..extractor import html_to_text, parse_sender
from ..types import Mail, MailContent

LOGGER = logging.getLogger(__name__)
TRANSPORT_ERRORS = (imaplib.IMAP4.abort, OSError)

T = TypeVar("T")


class ImapMailbox:
    """UID-based IMAP session.

    Dropped connections are re-established once per command, so callers see
    a transport failure only when the reconnect fails too.
    """

    def __init__(self, host: str, port: int, user: str, password: str) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._client: MailBox | None = None

    def connect(self) -> None:
        try:
            self._client = MailBox(self._host, port=self._port).login(self._user, self._password)
        except (ImapToolsError, *TRANSPORT_ERRORS) as exc:
            self._client = None
            raise MailboxError(f"Cannot connect to {self._host}:{self._port}: {exc}") from exc
        LOGGER.info("Opened connection to %s", self._host)

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.logout()
        except (ImapToolsError, *TRANSPORT_ERRORS) as exc:
            LOGGER.debug("Ignoring logout failure on %s: %s", self._host, exc)

    def list_mail(self, folder: str) -> list[Mail]:
        def _list(client: MailBox) -> list[Mail]:
            client.folder.set(folder)
            mails = []
            for message in client.fetch(mark_seen=False, headers_only=True, bulk=True):
                sender = parse_sender(message.from_)
                if not sender:
                    LOGGER.error("Cannot parse sender of mail %s in %s", message.uid, folder)
                mails.append(Mail(id=str(message.uid), sender=sender))
            return mails

        LOGGER.debug("Getting mails in %s", folder)
        return self._run(f"list {folder}", _list)

    def fetch_content(self, folder: str, mail_ids: Sequence[str]) -> list[MailContent]:
        if not mail_ids:
            return []

        def _fetch(client: MailBox) -> list[MailContent]:
            client.folder.set(folder)
            contents = []
            criteria = AND(uid=list(mail_ids))
            for message in client.fetch(criteria, mark_seen=False, bulk=True):
                body = message.text or html_to_text(message.html or "")
                contents.append(MailContent(id=str(message.uid), subject=message.subject, body=body))
            return contents

        return self._run(f"fetch {len(mail_ids)} mail(s) from {folder}", _fetch)

    def move_mail(self, mail_id: str, from_folder: str, to_folder: str) -> None:
        def _move(client: MailBox) -> None:
            client.folder.set(from_folder)
            if not client.uids(AND(uid=mail_id)):
                raise MoveError(f"Cannot find mail {mail_id} in {from_folder}")
            client.move(mail_id, to_folder)

        LOGGER.debug("Moving mail %s from %s to %s", mail_id, from_folder, to_folder)
        try:
            self._run(f"move {mail_id} from {from_folder} to {to_folder}", _move)
        except MoveError:
            raise
        except MailboxError as exc:
            raise MoveError(str(exc)) from exc

    def _run(self, action: str, command: Callable[[MailBox], T]) -> T:
        try:
            return command(self._require_client())
        except TRANSPORT_ERRORS as exc:
            LOGGER.warning(
                "Connection to %s lost during %s (%s); reconnecting", self._host, action, exc
            )
            self.disconnect()
            self.connect()
        except ImapToolsError as exc:
            raise MailboxError(f"IMAP {action} failed: {exc}") from exc
        try:
            return command(self._require_client())
        except (ImapToolsError, *TRANSPORT_ERRORS) as exc:
            raise MailboxError(f"IMAP {action} failed after reconnect: {exc}") from exc

    def _require_client(self) -> MailBox:
        if self._client is None:
            raise MailboxError(f"Not connected to {self._host}")
        return self._client


__all__ = ["ImapMailbox"]
