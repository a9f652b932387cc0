"""Split multi-file unified diffs into per-file blocks."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

LOGGER = logging.getLogger(__name__)

_DIFF_HEADER_PREFIX = "diff --git"
_DELETED_MODE = re.compile(r"^deleted file mode\s+", re.MULTILINE)
_OLD_SIDE = re.compile(r"^---\s+a/.+$", re.MULTILINE)
_NEW_SIDE_NULL = re.compile(r"^\+\+\+\s+/dev/null$", re.MULTILINE)


def _destination_path(header: str) -> str | None:
    """Return the ``b/`` side of a ``diff --git`` header, without the prefix."""
    operands = header.split(" ")
    if len(operands) < 4:
        return None
    destination = operands[3].strip()
    if destination.startswith("b/"):
        destination = destination[2:]
    return destination or None


def parse_diff_files(diff: str) -> dict[str, str]:
    """Index a raw diff by destination path.

    Each value is the verbatim block for one file, header included, joined
    with ``\\n``. Text before the first header is ignored and a header with
    no destination operand is dropped together with its body.
    """
    index: dict[str, str] = {}
    current: str | None = None
    buffer: list[str] = []

    def flush() -> None:
        if current is not None:
            index[current] = "\n".join(buffer)

    for line in diff.replace("\r\n", "\n").split("\n"):
        if line.startswith(_DIFF_HEADER_PREFIX):
            flush()
            buffer = []
            current = _destination_path(line)
            if current is None:
                LOGGER.warning("Dropping diff section with malformed header: %r", line)
                continue
            buffer.append(line)
            continue
        if current is None:
            continue
        buffer.append(line)
    flush()
    return index


def is_deleted_file_diff(block: str) -> bool:
    """Return ``True`` when a per-file block removes its file entirely."""
    if not block:
        return False
    if _DELETED_MODE.search(block):
        return True
    return bool(_OLD_SIDE.search(block) and _NEW_SIDE_NULL.search(block))


def combine_file_diffs(index: Mapping[str, str], files: Iterable[str]) -> str:
    """Join the blocks for ``files`` in order; unknown files contribute nothing."""
    return "\n".join(index.get(path, "") for path in files)


__all__ = ["combine_file_diffs", "is_deleted_file_diff", "parse_diff_files"]
