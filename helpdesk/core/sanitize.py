"""Input sanitization for ticket, comment and directory payloads."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

_SPACES_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def _drop_control_chars(value: str) -> str:
    # whitespace controls (tab, newline) survive and are collapsed later
    return "".join(ch for ch in value if ch.isspace() or unicodedata.category(ch) != "Cc")


def clean_text(value: object, *, allow_newlines: bool = False) -> str:
    """Normalize line endings, strip control characters and collapse whitespace.

    Multiline text keeps at most one blank line between paragraphs.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _drop_control_chars(text).strip()
    if not allow_newlines:
        return _SPACES_RE.sub(" ", text)
    lines = [_SPACES_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines))


def clean_single_line(value: object) -> str:
    return clean_text(value, allow_newlines=False)


def clean_multiline(value: object) -> str:
    return clean_text(value, allow_newlines=True)


def clean_list(
    values: Iterable[object] | str | None,
    *,
    max_items: int | None = None,
    item_max_length: int | None = None,
) -> list[str]:
    """Clean each item, drop blanks and case-insensitive duplicates."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    result: list[str] = []
    seen: set[str] = set()
    for item in values:
        cleaned = clean_single_line(item)
        if not cleaned or cleaned.casefold() in seen:
            continue
        if item_max_length and len(cleaned) > item_max_length:
            raise ValueError("item_too_long")
        seen.add(cleaned.casefold())
        result.append(cleaned)
    if max_items is not None and len(result) > max_items:
        raise ValueError("too_many_items")
    return result
