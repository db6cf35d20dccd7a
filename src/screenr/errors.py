"""Exception hierarchy shared across Screenr."""

from __future__ import annotations


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


class MailboxError(RuntimeError):
    """Raised when a mailbox operation fails."""


class MoveError(MailboxError):
    """Raised when a mail cannot be moved between folders."""


__all__ = ["ConfigError", "MailboxError", "MoveError"]
