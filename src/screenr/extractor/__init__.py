"""Mail content extraction utilities."""

from .content import extract_content, parse_sender
from .html import html_to_text

__all__ = ["extract_content", "html_to_text", "parse_sender"]
