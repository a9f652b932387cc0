"""Run and debug reports plus the on-disk artifacts of a docsync run."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .pipeline import RunResult

LOGGER = logging.getLogger(__name__)

PREVIEW_LIMIT = 12000
DIFF_PREVIEW_LIMIT = 1600

RUN_REPORT_NAME = "run-report.json"
DEBUG_REPORT_NAME = "llm-input-debug.json"
SUMMARY_NAME = "suggestions.md"

NO_TARGETS_MESSAGE = "No matching docs for changed files."
NO_TARGETS_NOTE = "No docs-map targets matched changed files."
NO_PATCHES_MESSAGE = "No valid doc patches generated."
COMMENT_HEADING = "📝 AI doc suggestions"
APPLY_HINT = "Reply with `/apply-doc-patch` and keep this patch block to apply."

_PATH_SEPARATORS = re.compile(r"[\\/]")


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def preview(text: Optional[str], limit: int = PREVIEW_LIMIT) -> str:
    return (text or "")[:limit]


class ReportModel(BaseModel):
    """Base Pydantic model for report payloads."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class TargetRunReport(ReportModel):
    doc_path: str
    matched_files: List[str] = Field(default_factory=list)
    status: str
    reason: Optional[str] = None
    strategy: Optional[str] = None
    strict_retry: bool = False
    content_fallback: bool = False
    replace_all_used: bool = False
    deterministic_fallback_used: bool = False


class RunReport(ReportModel):
    generated_at: datetime = Field(default_factory=utc_now)
    changed_files: List[str] = Field(default_factory=list)
    target_count: int = 0
    generated_patch_count: int = 0
    note: Optional[str] = None
    targets: List[TargetRunReport] = Field(default_factory=list)


class TargetDebugReport(ReportModel):
    """Prompt and response previews for one target, filled in as synthesis runs."""

    doc_path: str
    matched_files: List[str] = Field(default_factory=list)
    combined_diff_chars: int = 0
    combined_diff_preview: str = ""
    snippet_chars: Optional[int] = None
    prompt_chars: Optional[int] = None
    prompt_preview: Optional[str] = None
    strict_prompt_chars: Optional[int] = None
    strict_prompt_preview: Optional[str] = None
    full_doc_prompt_chars: Optional[int] = None
    full_doc_prompt_preview: Optional[str] = None
    patch_response_preview: Optional[str] = None
    strict_patch_response_preview: Optional[str] = None
    full_doc_response_preview: Optional[str] = None
    content_patch_preview: Optional[str] = None
    replace_all_patch_used: Optional[bool] = None
    deterministic_fallback_used: Optional[bool] = None


class DebugReport(ReportModel):
    generated_at: datetime = Field(default_factory=utc_now)
    model: str = ""
    changed_files: List[str] = Field(default_factory=list)
    target_count: int = 0
    targets: List[TargetDebugReport] = Field(default_factory=list)


@dataclass(slots=True)
class RunArtifacts:
    """Paths written by :func:`write_run_artifacts`."""

    out_dir: Path
    run_report: Path
    debug_report: Path
    summary: Path
    patch_files: List[Path] = field(default_factory=list)


def suggestion_file_name(doc_path: str) -> str:
    """``docs/api/auth.md`` -> ``docs__api__auth.md.patch``."""
    return f"{_PATH_SEPARATORS.sub('__', doc_path)}.patch"


def build_comment_body(items: Iterable[Tuple[str, str, Sequence[str]]]) -> str:
    """Render the Markdown summary for ``(doc_path, patch_text, matched_files)`` items."""
    lines: List[str] = [COMMENT_HEADING]
    for doc_path, patch_text, matched_files in items:
        lines.append(f"\n**{doc_path}** (from {', '.join(matched_files)})")
        lines.append("```patch")
        lines.append(patch_text.rstrip("\n"))
        lines.append("```")
        lines.append(APPLY_HINT)
    return "\n".join(lines)


def build_run_report(result: "RunResult") -> RunReport:
    return RunReport(
        generated_at=result.generated_at,
        changed_files=list(result.changed_files),
        target_count=len(result.targets),
        generated_patch_count=len(result.generated),
        note=result.note,
        targets=[outcome.to_report() for outcome in result.outcomes],
    )


def build_debug_report(result: "RunResult") -> DebugReport:
    return DebugReport(
        generated_at=result.generated_at,
        model=result.model,
        changed_files=list(result.changed_files),
        target_count=len(result.targets),
        targets=[outcome.debug for outcome in result.outcomes],
    )


def render_summary(result: "RunResult") -> str:
    """Return the text of ``suggestions.md`` for ``result``."""
    if not result.targets:
        return f"{NO_TARGETS_MESSAGE}\n"
    generated = result.generated
    if not generated:
        return f"{NO_PATCHES_MESSAGE}\n"
    body = build_comment_body(
        (outcome.target.doc_path, outcome.patch.text, outcome.target.matched_files)
        for outcome in generated
        if outcome.patch is not None
    )
    return f"{body}\n"


def write_run_artifacts(out_dir: Path | str, result: "RunResult") -> RunArtifacts:
    """Write patch files, JSON reports and the Markdown summary under ``out_dir``."""
    directory = Path(out_dir)
    directory.mkdir(parents=True, exist_ok=True)

    patch_files: List[Path] = []
    for outcome in result.generated:
        if outcome.patch is None:
            continue
        patch_path = directory / suggestion_file_name(outcome.target.doc_path)
        text = outcome.patch.text if outcome.patch.text.endswith("\n") else f"{outcome.patch.text}\n"
        patch_path.write_text(text, encoding="utf-8")
        patch_files.append(patch_path)

    run_report_path = directory / RUN_REPORT_NAME
    run_report_path.write_text(build_run_report(result).model_dump_json(indent=2), encoding="utf-8")
    debug_report_path = directory / DEBUG_REPORT_NAME
    debug_report_path.write_text(build_debug_report(result).model_dump_json(indent=2), encoding="utf-8")
    summary_path = directory / SUMMARY_NAME
    summary_path.write_text(render_summary(result), encoding="utf-8")

    LOGGER.info("Wrote %d patch file(s) and reports to %s", len(patch_files), directory)
    return RunArtifacts(
        out_dir=directory,
        run_report=run_report_path,
        debug_report=debug_report_path,
        summary=summary_path,
        patch_files=patch_files,
    )


__all__ = [
    "DebugReport",
    "NO_PATCHES_MESSAGE",
    "NO_TARGETS_MESSAGE",
    "RunArtifacts",
    "RunReport",
    "TargetDebugReport",
    "TargetRunReport",
    "build_comment_body",
    "build_debug_report",
    "build_run_report",
    "preview",
    "render_summary",
    "suggestion_file_name",
    "write_run_artifacts",
]
