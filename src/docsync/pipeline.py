"""End-to-end run: diff in, validated documentation patches out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Mapping, Optional, Sequence

from .config import RunConfig
from .diff_index import combine_file_diffs, is_deleted_file_diff, parse_diff_files
from .mapping import DocsMap, ResolvedTarget, resolve_targets
from .models.llm_client import TextGenerator
from .report import (
    DIFF_PREVIEW_LIMIT,
    NO_PATCHES_MESSAGE,
    NO_TARGETS_MESSAGE,
    NO_TARGETS_NOTE,
    TargetDebugReport,
    TargetRunReport,
    preview,
    utc_now,
)
from .sections import extract_section
from .seeds import is_aggregate_document, seed_document
from .sources import DocumentNotFound, DocumentSource, FetchFailed
from .strategies import (
    DeterministicStrategy,
    FullDocumentStrategy,
    PatchResponseStrategy,
    StrategyResult,
    StrategyStatus,
    SynthesisStrategy,
    TargetContext,
    build_strategy_chain,
    run_chain,
)
from .tools.oracle import ApplicabilityOracle
from .tools.patch import PatchError, build_delete_patch, normalise_line_endings
from .tools.validate import InvalidPatch, ValidatedPatch, validate_candidate

LOGGER = logging.getLogger(__name__)

ALREADY_ABSENT_REASON = "Target doc already absent for delete-only code changes."


class TargetStatus(str, Enum):
    GENERATED = "generated"
    SKIPPED_INVALID_PATCH = "skipped_invalid_patch"
    FETCH_FAILED = "fetch_failed"
    SKIPPED_NO_CHANGE = "skipped_no_change"


@dataclass(slots=True)
class TargetOutcome:
    """What happened to one resolved target."""

    target: ResolvedTarget
    status: TargetStatus
    debug: TargetDebugReport
    reason: Optional[str] = None
    patch: Optional[ValidatedPatch] = None
    strategy: Optional[str] = None
    strict_retry: bool = False
    content_fallback: bool = False
    replace_all_used: bool = False
    deterministic_fallback_used: bool = False

    def to_report(self) -> TargetRunReport:
        return TargetRunReport(
            doc_path=self.target.doc_path,
            matched_files=list(self.target.matched_files),
            status=self.status.value,
            reason=self.reason,
            strategy=self.strategy,
            strict_retry=self.strict_retry,
            content_fallback=self.content_fallback,
            replace_all_used=self.replace_all_used,
            deterministic_fallback_used=self.deterministic_fallback_used,
        )


@dataclass(slots=True)
class RunResult:
    changed_files: List[str]
    targets: List[ResolvedTarget]
    model: str = ""
    generated_at: datetime = field(default_factory=utc_now)
    outcomes: List[TargetOutcome] = field(default_factory=list)
    note: Optional[str] = None

    @property
    def generated(self) -> List[TargetOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is TargetStatus.GENERATED]

    def summary(self) -> str:
        """One-line, human readable run summary."""
        if not self.targets:
            return NO_TARGETS_MESSAGE
        if not self.generated:
            return NO_PATCHES_MESSAGE
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            counts[outcome.status.value] = counts.get(outcome.status.value, 0) + 1
        details = ", ".join(f"{status}={count}" for status, count in sorted(counts.items()))
        return f"Generated {len(self.generated)} patch(es) for {len(self.targets)} target(s) ({details})."


class DocSyncPipeline:
    """Processes every resolved target sequentially; per-target failures become outcomes."""

    def __init__(
        self,
        config: RunConfig,
        source: DocumentSource,
        generator: Optional[TextGenerator],
        oracle: ApplicabilityOracle,
        *,
        strategies: Optional[Sequence[SynthesisStrategy]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._generator = generator
        self._oracle = oracle
        self._strategies: List[SynthesisStrategy] = (
            list(strategies) if strategies is not None else build_strategy_chain(config.synthesis_mode)
        )
        self._clock = clock or utc_now

    def run(self, diff: str, docs_map: DocsMap) -> RunResult:
        index = parse_diff_files(diff)
        changed_files = list(index)
        targets = resolve_targets(changed_files, docs_map)
        result = RunResult(
            changed_files=changed_files,
            targets=targets,
            model=self._generator.model if self._generator is not None else self._config.model,
            generated_at=self._clock(),
        )
        if not targets:
            LOGGER.info("No docs-map targets matched %d changed file(s).", len(changed_files))
            result.note = NO_TARGETS_NOTE
            return result
        if self._generator is None:
            raise ValueError("A text generator is required when targets exist.")

        style_guide = self._load_style_guide(docs_map)
        for target in targets:
            outcome = self._process_target(target, index, style_guide)
            result.outcomes.append(outcome)
            if outcome.status is TargetStatus.GENERATED:
                LOGGER.info("Generated patch for %s via %s.", target.doc_path, outcome.strategy)
            else:
                LOGGER.warning("Skipping %s: %s (%s)", target.doc_path, outcome.status.value, outcome.reason)

        if not result.generated:
            result.note = NO_PATCHES_MESSAGE
        return result

    def _load_style_guide(self, docs_map: DocsMap) -> Optional[str]:
        path = self._config.style_guide_path or docs_map.style_guide
        if not path:
            return None
        try:
            return self._source.fetch(path, self._config.docs_branch)
        except (DocumentNotFound, FetchFailed) as error:
            LOGGER.warning("Style guide %s unavailable; continuing without it: %s", path, error)
            return None

    def _is_delete_only(self, target: ResolvedTarget, index: Mapping[str, str]) -> bool:
        if not target.matched_files or is_aggregate_document(target.doc_path):
            return False
        return all(is_deleted_file_diff(index.get(path, "")) for path in target.matched_files)

    def _deterministic_eligible(self, doc_path: str) -> bool:
        configured = self._config.deterministic_doc
        return bool(configured) and not self._config.llm_only and doc_path == configured

    def _process_target(
        self,
        target: ResolvedTarget,
        index: Mapping[str, str],
        style_guide: Optional[str],
    ) -> TargetOutcome:
        debug = TargetDebugReport(doc_path=target.doc_path, matched_files=list(target.matched_files))
        delete_only = self._is_delete_only(target, index)

        try:
            old_content = normalise_line_endings(self._source.fetch(target.doc_path, self._config.docs_branch))
            exists = True
        except DocumentNotFound:
            if delete_only:
                return TargetOutcome(
                    target=target,
                    status=TargetStatus.SKIPPED_NO_CHANGE,
                    debug=debug,
                    reason=ALREADY_ABSENT_REASON,
                )
            old_content = seed_document(target.doc_path, today=self._clock())
            exists = False
        except FetchFailed as error:
            return TargetOutcome(target=target, status=TargetStatus.FETCH_FAILED, debug=debug, reason=str(error))

        combined_diff = combine_file_diffs(index, target.matched_files)
        section = extract_section(old_content, target.anchor)
        debug.combined_diff_chars = len(combined_diff)
        debug.combined_diff_preview = preview(combined_diff, DIFF_PREVIEW_LIMIT)
        debug.snippet_chars = len(section)

        if delete_only:
            return self._delete_document(target, old_content, debug)

        context = TargetContext(
            doc_path=target.doc_path,
            old_content=old_content,
            exists=exists,
            combined_diff=combined_diff,
            matched_files=target.matched_files,
            anchor=target.anchor,
            section=section,
            style_guide=style_guide,
            user=self._config.user,
            llm_only=self._config.llm_only,
            debug=debug,
        )
        results = run_chain(self._strategies, context, self._generator, self._oracle)
        executed = self._strategies[: len(results)]
        strict_retry = any(isinstance(strategy, PatchResponseStrategy) and strategy.strict for strategy in executed)
        content_fallback = any(isinstance(strategy, FullDocumentStrategy) for strategy in executed)
        final = results[-1] if results else StrategyResult.error("none", "No synthesis strategies configured.")

        deterministic_used = False
        if final.status is not StrategyStatus.PATCH and self._deterministic_eligible(target.doc_path):
            fallback = DeterministicStrategy(now=self._clock()).run(context, self._generator, self._oracle)
            deterministic_used = True
            if fallback.status is StrategyStatus.PATCH:
                final = fallback
            elif fallback.status is StrategyStatus.ERROR:
                LOGGER.warning("Deterministic fallback failed for %s: %s", target.doc_path, fallback.reason)

        outcome = TargetOutcome(
            target=target,
            status=TargetStatus.GENERATED,
            debug=debug,
            strategy=final.strategy,
            strict_retry=strict_retry,
            content_fallback=content_fallback,
            replace_all_used=final.replace_all_used,
            deterministic_fallback_used=deterministic_used,
        )
        if final.status is StrategyStatus.PATCH:
            outcome.patch = final.patch
        elif final.status is StrategyStatus.NO_CHANGE:
            outcome.status = TargetStatus.SKIPPED_NO_CHANGE
            outcome.reason = final.reason
        else:
            outcome.status = TargetStatus.SKIPPED_INVALID_PATCH
            outcome.reason = final.reason
        return outcome

    def _delete_document(self, target: ResolvedTarget, old_content: str, debug: TargetDebugReport) -> TargetOutcome:
        try:
            candidate = build_delete_patch(target.doc_path, old_content)
            debug.content_patch_preview = preview(candidate.text)
            validated = validate_candidate(candidate, old_content, self._oracle)
        except (InvalidPatch, PatchError) as error:
            return TargetOutcome(
                target=target,
                status=TargetStatus.SKIPPED_INVALID_PATCH,
                debug=debug,
                reason=str(error),
                strategy="delete",
            )
        return TargetOutcome(
            target=target,
            status=TargetStatus.GENERATED,
            debug=debug,
            patch=validated,
            strategy="delete",
        )


__all__ = [
    "ALREADY_ABSENT_REASON",
    "DocSyncPipeline",
    "RunResult",
    "TargetOutcome",
    "TargetStatus",
]
