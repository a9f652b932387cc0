"""Anchor-based excerpts of Markdown documents for prompt context."""

from __future__ import annotations

import re
from typing import Optional

SECTION_CHAR_LIMIT = 2400

_HEADING_MARKERS = re.compile(r"^#+\s*")


def _clean_heading(text: str) -> str:
    return _HEADING_MARKERS.sub("", text).strip().lower()


def extract_section(content: str, anchor: Optional[str] = None, limit: int = SECTION_CHAR_LIMIT) -> str:
    """Return the excerpt of ``content`` starting at the heading named by ``anchor``.

    The slice runs from the first matching heading to the end of the document,
    or covers the whole document when there is no anchor or no heading
    matches. It is cut at ``limit`` characters.
    """
    lines = content.replace("\r\n", "\n").split("\n")
    wanted = _clean_heading(anchor) if anchor else None
    start = 0
    if wanted is not None:
        for index, line in enumerate(lines):
            if line.startswith("#") and _clean_heading(line) == wanted:
                start = index
                break
    snippet = "\n".join(lines[start:])
    return snippet[:limit] if len(snippet) > limit else snippet


__all__ = ["SECTION_CHAR_LIMIT", "extract_section"]
