"""Subject, body and sender extraction from RFC822 messages."""

from __future__ import annotations

from collections.abc import Iterable
from email import policy
from email.header import decode_header, make_header
from email.message import Message
from email.parser import BytesParser
from email.utils import parseaddr

from ..types import MailContent
from .html import html_to_text


def parse_sender(raw_from: str | None) -> str:
    """Return the normalised address of a From header, or an empty string."""

    if not raw_from:
        return ""
    _display, address = parseaddr(_decode_header_value(raw_from))
    if not address:
        # e.g. "=?utf-8?q?Name?= <x@y>" that parseaddr could not split
        start, end = raw_from.rfind("<"), raw_from.rfind(">")
        if 0 <= start < end:
            address = raw_from[start + 1 : end]
    return address.strip().lower()


def extract_content(raw_message: bytes | str | Message, mail_id: str) -> MailContent:
    """Parse raw message data into subject and body text."""

    message = _parse_message(raw_message)
    if message is None:
        return MailContent(id=mail_id, subject="", body="")

    subject = _decode_header_value(message.get("Subject", ""))
    text_bodies: list[str] = []
    html_bodies: list[str] = []
    for part in _iter_body_parts(message):
        payload = part.get_payload(decode=True)
        if not isinstance(payload, (bytes, bytearray)):
            continue
        decoded = decode_bytes(bytes(payload), part.get_content_charset())
        content_type = part.get_content_type().lower()
        if content_type == "text/plain":
            text_bodies.append(decoded)
        elif content_type == "text/html":
            html_bodies.append(html_to_text(decoded))

    return MailContent(id=mail_id, subject=subject, body=_select_body(text_bodies, html_bodies))


def decode_bytes(data: bytes, charset: str | None) -> str:
    candidates = [charset] if charset else []
    for encoding in [*candidates, "utf-8", "latin-1"]:
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            continue
    return data.decode("utf-8", errors="ignore")


def _parse_message(raw_message: bytes | str | Message) -> Message | None:
    if isinstance(raw_message, Message):
        return raw_message if tuple(raw_message.keys()) else None
    if isinstance(raw_message, str):
        raw_message = raw_message.encode("utf-8", errors="ignore")
    try:
        message = BytesParser(policy=policy.default).parsebytes(raw_message)
    except Exception:
        return None
    if not tuple(message.keys()):
        return None
    return message


def _iter_body_parts(message: Message) -> Iterable[Message]:
    for part in message.walk():
        if part.is_multipart():
            continue
        if (part.get_content_disposition() or "").lower() == "attachment":
            continue
        yield part


def _select_body(plain_bodies: list[str], html_bodies: list[str]) -> str:
    source = plain_bodies if plain_bodies else html_bodies
    return "\n".join(text.strip() for text in source if text.strip())


def _decode_header_value(value: str) -> str:
    try:
        decoded = str(make_header(decode_header(value)))
    except Exception:
        decoded = value
    return decoded.strip()


__all__ = ["decode_bytes", "extract_content", "parse_sender"]
