from __future__ import annotations

from email.message import EmailMessage

from screenr.extractor import extract_content, html_to_text, parse_sender


def _multipart(plain: str | None, html: str | None) -> bytes:
    message = EmailMessage()
    message["From"] = "sender@example.com"
    message["Subject"] = "Quarterly report"
    if plain is not None:
        message.set_content(plain)
        if html is not None:
            message.add_alternative(html, subtype="html")
    elif html is not None:
        message.set_content(html, subtype="html")
    return message.as_bytes()


def test_plain_text_is_preferred_over_html():
    raw = _multipart("Plain body", "<p>Html body</p>")

    content = extract_content(raw, "42")

    assert content.id == "42"
    assert content.subject == "Quarterly report"
    assert content.body == "Plain body"


def test_html_is_used_when_no_plain_part():
    raw = _multipart(None, "<html><body><p>Hello</p><script>track()</script></body></html>")

    content = extract_content(raw, "7")

    assert content.body == "Hello"


def test_attachments_are_ignored():
    message = EmailMessage()
    message["Subject"] = "Invoice"
    message.set_content("See attachment")
    message.add_attachment(b"%PDF-1.4", maintype="application", subtype="pdf", filename="a.pdf")

    content = extract_content(message.as_bytes(), "1")

    assert content.body == "See attachment"


def test_encoded_subject_is_decoded():
    raw = (
        b"From: a@example.com\r\n"
        b"Subject: =?utf-8?q?Gr=C3=BC=C3=9Fe?=\r\n"
        b"\r\n"
        b"body\r\n"
    )

    assert extract_content(raw, "1").subject == "Grüße"


def test_unparseable_input_gives_empty_content():
    content = extract_content(b"", "9")

    assert (content.subject, content.body) == ("", "")


def test_parse_sender_variants():
    assert parse_sender('"Jane Doe" <JANE@Example.com>') == "jane@example.com"
    assert parse_sender("=?utf-8?q?J=C3=B6rg?= <jorg@example.com>") == "jorg@example.com"
    assert parse_sender("bare@example.com") == "bare@example.com"
    assert parse_sender("") == ""
    assert parse_sender(None) == ""


def test_html_to_text_drops_invisible_markup():
    html = (
        "<html><head><title>Title</title><style>p {color: red}</style></head>"
        "<body><p>Hello</p><script>x()</script><p>World</p></body></html>"
    )

    assert html_to_text(html) == "Hello World"
    assert html_to_text("   ") == ""
