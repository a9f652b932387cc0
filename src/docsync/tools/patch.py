"""Unified diff synthesis for documentation targets.

Every builder returns patch text in the dialect ``git apply`` understands:
a ``diff --git`` header, ``---``/``+++`` path markers and hunks whose range
counts match their bodies exactly.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .oracle import ApplicabilityOracle

LOGGER = logging.getLogger(__name__)

CONTEXT_LINES = 3
NO_NEWLINE_MARKER = "\\ No newline at end of file"


class PatchError(RuntimeError):
    """Raised when a patch cannot be built or staged for a target."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class PatchShape(str, Enum):
    """Shape of a synthesized documentation patch."""

    MODIFY = "modify"
    CREATE = "create"
    DELETE = "delete"
    REPLACE_ALL = "replace_all"


@dataclass(frozen=True, slots=True)
class CandidatePatch:
    """Patch produced by the synthesizer; not yet known to apply."""

    target_path: str
    shape: PatchShape
    text: str


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    """Outcome of :func:`synthesize_patch`.

    ``candidate`` is ``None`` when old and new content are identical.
    """

    candidate: CandidatePatch | None
    replace_all_used: bool = False

    @property
    def no_change(self) -> bool:
        return self.candidate is None


def normalise_line_endings(text: str) -> str:
    """Convert CRLF/CR sequences to LF for deterministic diffs."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def ensure_trailing_newline(text: str) -> str:
    """Return ``text`` terminated by exactly one newline."""
    stripped = text.rstrip("\n")
    return f"{stripped}\n"


def split_document_lines(text: str) -> list[str]:
    """Split ``text`` into lines that keep their ``\\n`` terminator.

    The final element lacks a terminator when the text does not end with a
    newline.
    """
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
        return [f"{part}\n" for part in parts]
    return [f"{part}\n" for part in parts[:-1]] + [parts[-1]]


def _clean_path(path: str) -> str:
    clean = (path or "").strip()
    if not clean:
        raise PatchError("Patch target path is empty.")
    return clean


def _render_header(shape: PatchShape, path: str) -> list[str]:
    """Render diff headers for the given patch shape."""
    lines = [f"diff --git a/{path} b/{path}"]
    if shape is PatchShape.CREATE:
        lines.append("new file mode 100644")
        lines.append("--- /dev/null")
        lines.append(f"+++ b/{path}")
    elif shape is PatchShape.DELETE:
        lines.append("deleted file mode 100644")
        lines.append(f"--- a/{path}")
        lines.append("+++ /dev/null")
    else:
        lines.append(f"--- a/{path}")
        lines.append(f"+++ b/{path}")
    return lines


def _render_body_line(prefix: str, line: str) -> list[str]:
    if line.endswith("\n"):
        return [f"{prefix}{line[:-1]}"]
    return [f"{prefix}{line}", NO_NEWLINE_MARKER]


def _range_start(first_index: int, count: int) -> int:
    """Return the 1-based start for a range, or the insertion point when empty."""
    return first_index + 1 if count else first_index


def format_hunk_header(old_start: int, old_count: int, new_start: int, new_count: int) -> str:
    """Render an ``@@`` header with explicit counts on both sides."""
    return f"@@ -{old_start},{old_count} +{new_start},{new_count} @@"


def _join_patch(lines: Sequence[str]) -> str:
    return "\n".join(lines).rstrip("\n") + "\n"


def build_modify_patch(path: str, old_content: str, new_content: str) -> CandidatePatch | None:
    """Compute minimal hunks between ``old_content`` and ``new_content``."""
    clean_path = _clean_path(path)
    old = normalise_line_endings(old_content)
    new = normalise_line_endings(new_content)
    if old == new:
        return None

    old_lines = split_document_lines(old)
    new_lines = split_document_lines(new)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    output = _render_header(PatchShape.MODIFY, clean_path)
    for group in matcher.get_grouped_opcodes(CONTEXT_LINES):
        i1, i2 = group[0][1], group[-1][2]
        j1, j2 = group[0][3], group[-1][4]
        old_count = i2 - i1
        new_count = j2 - j1
        output.append(
            format_hunk_header(
                _range_start(i1, old_count),
                old_count,
                _range_start(j1, new_count),
                new_count,
            )
        )
        for tag, a1, a2, b1, b2 in group:
            if tag == "equal":
                for line in old_lines[a1:a2]:
                    output.extend(_render_body_line(" ", line))
                continue
            if tag in {"replace", "delete"}:
                for line in old_lines[a1:a2]:
                    output.extend(_render_body_line("-", line))
            if tag in {"replace", "insert"}:
                for line in new_lines[b1:b2]:
                    output.extend(_render_body_line("+", line))

    return CandidatePatch(target_path=clean_path, shape=PatchShape.MODIFY, text=_join_patch(output))


def build_create_patch(path: str, content: str) -> CandidatePatch | None:
    """Build a new-file patch adding every line of ``content``."""
    clean_path = _clean_path(path)
    lines = split_document_lines(normalise_line_endings(content))
    if not lines:
        return None
    output = _render_header(PatchShape.CREATE, clean_path)
    output.append(format_hunk_header(0, 0, 1, len(lines)))
    for line in lines:
        output.extend(_render_body_line("+", line))
    return CandidatePatch(target_path=clean_path, shape=PatchShape.CREATE, text=_join_patch(output))


def build_delete_patch(path: str, old_content: str) -> CandidatePatch:
    """Build a deleted-file patch removing every line of ``old_content``."""
    clean_path = _clean_path(path)
    lines = split_document_lines(normalise_line_endings(old_content))
    if not lines:
        raise PatchError(f"failed to build delete patch hunk for {clean_path}", details={"path": clean_path})
    output = _render_header(PatchShape.DELETE, clean_path)
    output.append(format_hunk_header(1, len(lines), 0, 0))
    for line in lines:
        output.extend(_render_body_line("-", line))
    return CandidatePatch(target_path=clean_path, shape=PatchShape.DELETE, text=_join_patch(output))


def build_replace_all_patch(path: str, old_content: str, new_content: str) -> CandidatePatch:
    """Build a single hunk that removes all old lines and adds all new lines."""
    clean_path = _clean_path(path)
    old_lines = split_document_lines(normalise_line_endings(old_content))
    new_lines = split_document_lines(normalise_line_endings(new_content))
    output = _render_header(PatchShape.REPLACE_ALL, clean_path)
    output.append(format_hunk_header(1, len(old_lines), 1, len(new_lines)))
    for line in old_lines:
        output.extend(_render_body_line("-", line))
    for line in new_lines:
        output.extend(_render_body_line("+", line))
    return CandidatePatch(target_path=clean_path, shape=PatchShape.REPLACE_ALL, text=_join_patch(output))


def synthesize_patch(
    path: str,
    old_content: str,
    new_content: str,
    *,
    exists: bool,
    delete_only: bool = False,
    oracle: "ApplicabilityOracle | None" = None,
    allow_replace_all: bool = True,
) -> SynthesisResult:
    """Select the patch shape for a target and build the candidate.

    Missing documents become Create patches and delete-only targets become
    Delete patches. Otherwise a minimal Modify patch is computed; when the
    oracle rejects it against ``old_content`` the synthesizer escalates to a
    ReplaceAll hunk.
    """
    if not exists:
        return SynthesisResult(candidate=build_create_patch(path, new_content))
    if delete_only:
        return SynthesisResult(candidate=build_delete_patch(path, old_content))

    candidate = build_modify_patch(path, old_content, new_content)
    if candidate is None or oracle is None:
        return SynthesisResult(candidate=candidate)

    old = normalise_line_endings(old_content)
    verdict = oracle.check(candidate.target_path, old, candidate.text)
    if verdict.ok or not allow_replace_all:
        return SynthesisResult(candidate=candidate)

    LOGGER.info(
        "Modify patch for %s rejected (%s); escalating to replace-all hunk.",
        candidate.target_path,
        verdict.message or "check failed",
    )
    replace_all = build_replace_all_patch(path, old_content, new_content)
    return SynthesisResult(candidate=replace_all, replace_all_used=True)


__all__ = [
    "CandidatePatch",
    "PatchError",
    "PatchShape",
    "SynthesisResult",
    "build_create_patch",
    "build_delete_patch",
    "build_modify_patch",
    "build_replace_all_patch",
    "ensure_trailing_newline",
    "format_hunk_header",
    "normalise_line_endings",
    "split_document_lines",
    "synthesize_patch",
]
