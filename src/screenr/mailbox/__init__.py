"""Mailbox adapters."""

from __future__ import annotations

from ..config import MailboxConfig
from ..errors import ConfigError
from .base import Mailbox
from .imap import ImapMailbox
from .maildir import MaildirMailbox


def build_mailbox(config: MailboxConfig) -> Mailbox:
    """Instantiate the mailbox adapter described by ``config``."""

    if config.type == "maildir" and config.path is not None:
        return MaildirMailbox(config.path)
    if config.type == "imap" and config.host and config.user and config.password is not None:
        return ImapMailbox(config.host, config.port, config.user, config.password)
    raise ConfigError(f"Incomplete mailbox configuration for type '{config.type}'.")


__all__ = ["Mailbox", "ImapMailbox", "MaildirMailbox", "build_mailbox"]
