"""Normalisation and applicability validation for candidate patches."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .oracle import ApplicabilityOracle, OracleVerdict
from .patch import NO_NEWLINE_MARKER, CandidatePatch, PatchShape, format_hunk_header, normalise_line_endings

LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("docsync.telemetry")

_DIFF_HEADER = re.compile(r"^diff --git a/(?P<old>.+?) b/(?P<new>.+)$")
_HUNK_HEADER = re.compile(r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@")


class InvalidPatch(RuntimeError):
    """Raised when a candidate patch cannot be made to apply."""

    def __init__(self, message: str, *, diagnostic: str = "", details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic
        self.details: dict[str, Any] = dict(details or {})


@dataclass(frozen=True, slots=True)
class ValidatedPatch:
    """Patch text that passed the applicability oracle."""

    target_path: str
    text: str
    header_repaired: bool = False


def _serialise_event_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def emit_patch_event(event: str, **fields: Any) -> None:
    """Log a structured JSON telemetry event for patch checks."""
    payload: dict[str, Any] = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _ensure_single_trailing_newline(text: str) -> str:
    return text.rstrip("\n") + "\n"


def _is_bare_hunk_header(line: str) -> bool:
    return line.strip() == "@@"


def has_bare_hunk_headers(text: str) -> bool:
    return any(_is_bare_hunk_header(line) for line in text.split("\n"))


def repair_bare_hunk_headers(text: str) -> str:
    """Rebuild ``@@`` lines that lack ranges from the hunk bodies that follow them.

    Old counts cover every body line not starting with ``+`` and new counts
    every line not starting with ``-``; no-newline markers count for neither.
    """
    lines = normalise_line_endings(text).splitlines()
    output: list[str] = []
    index = 0
    while index < len(lines):
        line = lines[index]
        if not _is_bare_hunk_header(line):
            output.append(line)
            index += 1
            continue
        body: list[str] = []
        cursor = index + 1
        while cursor < len(lines) and not lines[cursor].startswith("@@") and not lines[cursor].startswith("diff --git"):
            body.append(lines[cursor])
            cursor += 1
        counted = [entry for entry in body if entry != NO_NEWLINE_MARKER]
        old_count = sum(1 for entry in counted if not entry.startswith("+"))
        new_count = sum(1 for entry in counted if not entry.startswith("-"))
        old_start = 0 if old_count == 0 else 1
        output.append(format_hunk_header(old_start, old_count, 1, new_count))
        output.extend(body)
        index = cursor
    return "\n".join(output) + "\n"


def check_patch_structure(text: str) -> list[str]:
    """Return structural problems in ``text``; an empty list means well formed."""
    problems: list[str] = []
    lines = text.split("\n")
    if not lines or not _DIFF_HEADER.match(lines[0]):
        problems.append("patch does not start with a 'diff --git' header")
    has_old_marker = any(line.startswith("--- ") for line in lines)
    has_new_marker = any(line.startswith("+++ ") for line in lines)
    if not (has_old_marker and has_new_marker):
        problems.append("patch is missing '---'/'+++' path markers")
    if not any(_HUNK_HEADER.match(line) for line in lines):
        problems.append("patch contains no hunks")
    return problems


def _check(
    oracle: ApplicabilityOracle,
    doc_path: str,
    old_content: Optional[str],
    text: str,
    *,
    stage: str,
) -> OracleVerdict:
    verdict = oracle.check(doc_path, old_content, text)
    if verdict.ok:
        problems = check_patch_structure(text)
        if problems:
            verdict = OracleVerdict(ok=False, message="; ".join(problems))
    if verdict.ok:
        emit_patch_event("patch_check_passed", path=doc_path, stage=stage)
    else:
        emit_patch_event("patch_check_failed", path=doc_path, stage=stage, message=verdict.message)
    return verdict


def normalize_patch(
    doc_path: str,
    old_content: str,
    candidate: str,
    *,
    target_exists: bool = True,
    oracle: ApplicabilityOracle,
) -> ValidatedPatch:
    """Return ``candidate`` in a form the oracle accepts, or raise :class:`InvalidPatch`.

    The candidate is checked as-is after line-ending normalisation. When that
    fails and the text contains bare ``@@`` headers they are rebuilt from their
    bodies and the result is checked once more.
    """
    staged = normalise_line_endings(old_content) if target_exists else None
    text = _ensure_single_trailing_newline(normalise_line_endings(candidate))

    verdict = _check(oracle, doc_path, staged, text, stage="initial")
    if verdict.ok:
        return ValidatedPatch(target_path=doc_path, text=text)

    if has_bare_hunk_headers(text):
        repaired = repair_bare_hunk_headers(text)
        LOGGER.info("Rebuilt bare hunk headers for %s", doc_path)
        emit_patch_event("patch_header_repaired", path=doc_path)
        second = _check(oracle, doc_path, staged, repaired, stage="repaired")
        if second.ok:
            return ValidatedPatch(target_path=doc_path, text=repaired, header_repaired=True)
        verdict = second

    diagnostic = verdict.message or "check failed"
    raise InvalidPatch(
        f"Generated patch for {doc_path} is invalid/corrupt ({diagnostic})",
        diagnostic=diagnostic,
        details={"path": doc_path},
    )


def validate_candidate(
    candidate: CandidatePatch,
    old_content: str,
    oracle: ApplicabilityOracle,
) -> ValidatedPatch:
    """Validate a synthesized candidate against the state its shape implies."""
    shape = candidate.shape
    if shape is PatchShape.CREATE:
        target_exists = False
    elif shape in (PatchShape.MODIFY, PatchShape.DELETE, PatchShape.REPLACE_ALL):
        target_exists = True
    else:  # pragma: no cover - exhaustive over PatchShape
        raise InvalidPatch(f"Unsupported patch shape: {shape!r}")
    return normalize_patch(
        candidate.target_path,
        old_content,
        candidate.text,
        target_exists=target_exists,
        oracle=oracle,
    )


__all__ = [
    "InvalidPatch",
    "TELEMETRY_LOGGER",
    "ValidatedPatch",
    "check_patch_structure",
    "emit_patch_event",
    "has_bare_hunk_headers",
    "normalize_patch",
    "repair_bare_hunk_headers",
    "validate_candidate",
]
