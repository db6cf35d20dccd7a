"""Helpers for reading HTML mail parts."""

from __future__ import annotations

from bs4 import BeautifulSoup

INVISIBLE_TAGS = ("script", "style", "head", "title", "meta")


def html_to_text(html: str) -> str:
    """Return the visible text of an HTML fragment, whitespace-joined."""

    if not html.strip():
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(INVISIBLE_TAGS):
        tag.decompose()
    return soup.get_text(" ", strip=True)


__all__ = ["html_to_text"]
