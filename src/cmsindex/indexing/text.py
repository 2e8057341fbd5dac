"""Text normalization utilities for indexed content."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

TRUNCATION_MARKER = "\n\n[Content truncated due to size limit]"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE = re.compile(r"\s+")
_HTML_HINT = re.compile(r"<[a-zA-Z!/][^>]*>")
_DROPPED_TAGS = ("script", "style", "noscript", "template")


def strip_control_characters(text: str) -> str:
    """Remove control characters other than tab, newline and carriage return."""
    return _CONTROL_CHARS.sub("", text)


def normalize_search_text(text: str, *, limit: int = 0) -> str:
    """Return sanitized text suitable for keyword strings.

    Args:
        text: Source text taken from field values or extracted pages.
        limit: Maximum number of characters kept when positive.

    Returns:
        str: Text with control characters removed, whitespace collapsed and,
        when ``limit`` is positive, length capped to ``limit`` characters.
    """
    sanitized = _WHITESPACE.sub(" ", strip_control_characters(text)).strip()
    if limit > 0:
        return sanitized[:limit]
    return sanitized


def looks_like_html(text: str) -> bool:
    """Return True when ``text`` appears to contain markup."""
    return bool(_HTML_HINT.search(text))


def html_to_text(html: str) -> str:
    """Extract visible text from ``html``, dropping scripts and styles."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(list(_DROPPED_TAGS)):
        tag.decompose()
    return normalize_search_text(soup.get_text(" "))


def truncate_bytes(data: bytes, limit: int) -> tuple[bytes, bool]:
    """Cap ``data`` to ``limit`` bytes, reporting whether it was cut."""
    if len(data) <= limit:
        return data, False
    return data[:limit], True


def cap_content(text: str, limit: int) -> str:
    """Bound ``text`` to ``limit`` UTF-8 bytes plus the truncation marker.

    Text already carrying the marker is accepted when its body fits, so a
    page truncated at fetch time is not cut twice.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    if text.endswith(TRUNCATION_MARKER):
        body = text[: -len(TRUNCATION_MARKER)]
        if len(body.encode("utf-8")) <= limit:
            return text
    return encoded[:limit].decode("utf-8", errors="ignore") + TRUNCATION_MARKER


__all__ = [
    "TRUNCATION_MARKER",
    "strip_control_characters",
    "normalize_search_text",
    "looks_like_html",
    "html_to_text",
    "truncate_bytes",
    "cap_content",
]
