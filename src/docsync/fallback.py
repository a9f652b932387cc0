"""Deterministic "sync notes" update used when generation yields nothing usable."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

SYNC_NOTES_HEADING = "## Automated Sync Notes"
MAX_LINES_PER_KIND = 8


def _collect(combined_diff: str, marker: str, header_prefix: str) -> List[str]:
    collected: List[str] = []
    for line in combined_diff.replace("\r\n", "\n").split("\n"):
        if not line.startswith(marker) or line.startswith(header_prefix):
            continue
        text = line[1:].strip()
        if not text:
            continue
        collected.append(text)
        if len(collected) == MAX_LINES_PER_KIND:
            break
    return collected


def added_lines(combined_diff: str) -> List[str]:
    return _collect(combined_diff, "+", "+++")


def removed_lines(combined_diff: str) -> List[str]:
    return _collect(combined_diff, "-", "---")


def _timestamp(now: Optional[datetime]) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def render_sync_notes(combined_diff: str, *, sources: Iterable[str], now: Optional[datetime] = None) -> str:
    """Render the sync-notes section without a trailing newline."""
    source_list = ", ".join(f"`{source}`" for source in sources) or "the code change"
    lines = [SYNC_NOTES_HEADING, "", f"Last synced from {source_list} at {_timestamp(now)}."]
    added = added_lines(combined_diff)
    if added:
        lines.extend(["", "### Added lines"])
        lines.extend(f"- `{entry}`" for entry in added)
    removed = removed_lines(combined_diff)
    if removed:
        lines.extend(["", "### Removed lines"])
        lines.extend(f"- `{entry}`" for entry in removed)
    return "\n".join(lines)


def build_sync_notes_update(
    doc: str,
    combined_diff: str,
    *,
    sources: Iterable[str],
    now: Optional[datetime] = None,
) -> str:
    """Return ``doc`` with its sync-notes section replaced or appended.

    An existing section is replaced from its heading to the end of the
    document; otherwise the section is appended after a blank line.
    """
    block = render_sync_notes(combined_diff, sources=sources, now=now)
    content = doc.replace("\r\n", "\n")
    lines = content.split("\n")
    for index, line in enumerate(lines):
        if line.rstrip() == SYNC_NOTES_HEADING:
            head = "\n".join(lines[:index])
            return f"{head}\n{block}\n" if index else f"{block}\n"
    body = content.rstrip()
    if not body:
        return f"{block}\n"
    return f"{body}\n\n{block}\n"


__all__ = [
    "MAX_LINES_PER_KIND",
    "SYNC_NOTES_HEADING",
    "added_lines",
    "build_sync_notes_update",
    "removed_lines",
    "render_sync_notes",
]
