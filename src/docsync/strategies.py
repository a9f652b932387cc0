"""Ordered synthesis strategies that turn generator output into validated patches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .fallback import build_sync_notes_update
from .models.llm_client import GenerationRequest, GeneratorError, TextGenerator, extract_fenced
from .prompts import (
    DOCUMENT_SYSTEM_PROMPT,
    PATCH_SYSTEM_PROMPT,
    build_full_document_prompt,
    build_patch_prompt,
    build_strict_patch_prompt,
)
from .report import TargetDebugReport, preview
from .tools.oracle import ApplicabilityOracle
from .tools.patch import PatchError, ensure_trailing_newline, synthesize_patch
from .tools.validate import InvalidPatch, ValidatedPatch, normalize_patch, validate_candidate

LOGGER = logging.getLogger(__name__)

DOCUMENT_FENCE_TAGS = ("markdown", "md")
PATCH_FENCE_TAGS = ("patch", "diff")


class StrategyStatus(str, Enum):
    PATCH = "patch"
    NO_CHANGE = "no_change"
    ERROR = "error"


@dataclass(slots=True)
class TargetContext:
    """Everything a strategy needs to know about one target document."""

    doc_path: str
    old_content: str
    exists: bool
    combined_diff: str
    matched_files: Tuple[str, ...]
    anchor: Optional[str] = None
    section: str = ""
    style_guide: Optional[str] = None
    user: Optional[str] = None
    llm_only: bool = False
    debug: Optional[TargetDebugReport] = None

    def __post_init__(self) -> None:
        if self.debug is None:
            self.debug = TargetDebugReport(doc_path=self.doc_path, matched_files=list(self.matched_files))


@dataclass(slots=True)
class StrategyResult:
    strategy: str
    status: StrategyStatus
    patch: Optional[ValidatedPatch] = None
    reason: str = ""
    replace_all_used: bool = False

    @classmethod
    def error(cls, strategy: str, reason: str) -> "StrategyResult":
        return cls(strategy=strategy, status=StrategyStatus.ERROR, reason=reason)

    @classmethod
    def no_change(cls, strategy: str, reason: str) -> "StrategyResult":
        return cls(strategy=strategy, status=StrategyStatus.NO_CHANGE, reason=reason)


def _match_trailing_newline(updated: str, old: str, exists: bool) -> str:
    """Follow the existing document's end-of-file convention."""
    text = ensure_trailing_newline(updated)
    if exists and old and not old.endswith("\n"):
        return text.rstrip("\n")
    return text


class SynthesisStrategy:
    """Base class; subclasses produce a :class:`StrategyResult` for one target."""

    name = "strategy"

    def run(
        self,
        context: TargetContext,
        generator: TextGenerator,
        oracle: ApplicabilityOracle,
    ) -> StrategyResult:
        raise NotImplementedError

    def _validate_document(
        self,
        context: TargetContext,
        updated: str,
        oracle: ApplicabilityOracle,
        *,
        allow_replace_all: bool,
        no_change_reason: str,
    ) -> StrategyResult:
        """Synthesize and validate the patch taking ``old_content`` to ``updated``."""
        try:
            synthesis = synthesize_patch(
                context.doc_path,
                context.old_content,
                updated,
                exists=context.exists,
                oracle=oracle,
                allow_replace_all=allow_replace_all,
            )
        except PatchError as error:
            return StrategyResult.error(self.name, str(error))
        candidate = synthesis.candidate
        if candidate is None:
            return StrategyResult.no_change(self.name, no_change_reason)
        context.debug.content_patch_preview = preview(candidate.text)
        if synthesis.replace_all_used:
            context.debug.replace_all_patch_used = True
        try:
            validated = validate_candidate(candidate, context.old_content, oracle)
        except InvalidPatch as error:
            return StrategyResult.error(self.name, str(error))
        return StrategyResult(
            strategy=self.name,
            status=StrategyStatus.PATCH,
            patch=validated,
            replace_all_used=synthesis.replace_all_used,
        )


class FullDocumentStrategy(SynthesisStrategy):
    """Ask for the complete updated document and derive the patch locally."""

    name = "full_document"

    def run(self, context: TargetContext, generator: TextGenerator, oracle: ApplicabilityOracle) -> StrategyResult:
        prompt = build_full_document_prompt(
            diff=context.combined_diff,
            doc_path=context.doc_path,
            doc_content=context.old_content,
            style_guide=context.style_guide,
            section=context.section,
            anchor=context.anchor,
        )
        context.debug.full_doc_prompt_chars = len(prompt)
        context.debug.full_doc_prompt_preview = preview(prompt)
        request = GenerationRequest(
            prompt=prompt,
            system_prompt=DOCUMENT_SYSTEM_PROMPT,
            kind="document",
            doc_path=context.doc_path,
            document=context.old_content,
            user=context.user,
            metadata={"exists": context.exists},
        )
        try:
            response = generator.generate(request)
        except GeneratorError as error:
            return StrategyResult.error(self.name, f"Full-document generation failed: {error}")
        context.debug.full_doc_response_preview = preview(response.text)

        updated = extract_fenced(response.text, DOCUMENT_FENCE_TAGS).strip()
        if not updated:
            return StrategyResult.error(self.name, "Model returned an empty document.")
        updated = _match_trailing_newline(updated, context.old_content, context.exists)
        return self._validate_document(
            context,
            updated,
            oracle,
            allow_replace_all=not context.llm_only,
            no_change_reason="Full-document generation produced no content changes.",
        )


class PatchResponseStrategy(SynthesisStrategy):
    """Ask the model for a unified diff and repair it where possible."""

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict
        self.name = "strict_patch_response" if strict else "patch_response"

    def run(self, context: TargetContext, generator: TextGenerator, oracle: ApplicabilityOracle) -> StrategyResult:
        builder = build_strict_patch_prompt if self.strict else build_patch_prompt
        prompt = builder(
            diff=context.combined_diff,
            doc_path=context.doc_path,
            doc_content=context.old_content,
            style_guide=context.style_guide,
            section=context.section,
            anchor=context.anchor,
        )
        if self.strict:
            context.debug.strict_prompt_chars = len(prompt)
            context.debug.strict_prompt_preview = preview(prompt)
        else:
            context.debug.prompt_chars = len(prompt)
            context.debug.prompt_preview = preview(prompt)

        request = GenerationRequest(
            prompt=prompt,
            system_prompt=PATCH_SYSTEM_PROMPT,
            kind="patch",
            doc_path=context.doc_path,
            document=context.old_content,
            user=context.user,
            metadata={"exists": context.exists},
        )
        try:
            response = generator.generate(request)
        except GeneratorError as error:
            return StrategyResult.error(self.name, f"Patch generation failed: {error}")
        if self.strict:
            context.debug.strict_patch_response_preview = preview(response.text)
        else:
            context.debug.patch_response_preview = preview(response.text)

        patch_text = extract_fenced(response.text, PATCH_FENCE_TAGS)
        if not patch_text.strip():
            return StrategyResult.error(self.name, "Model returned an empty patch.")
        try:
            validated = normalize_patch(
                context.doc_path,
                context.old_content,
                patch_text,
                target_exists=context.exists,
                oracle=oracle,
            )
        except InvalidPatch as error:
            return StrategyResult.error(self.name, str(error))
        return StrategyResult(strategy=self.name, status=StrategyStatus.PATCH, patch=validated)


class DeterministicStrategy(SynthesisStrategy):
    """Appends or refreshes the sync-notes section without calling a model."""

    name = "deterministic"

    def __init__(self, *, now: Optional[datetime] = None) -> None:
        self.now = now

    def run(self, context: TargetContext, generator: TextGenerator, oracle: ApplicabilityOracle) -> StrategyResult:
        context.debug.deterministic_fallback_used = True
        updated = build_sync_notes_update(
            context.old_content,
            context.combined_diff,
            sources=context.matched_files,
            now=self.now,
        )
        return self._validate_document(
            context,
            updated,
            oracle,
            allow_replace_all=False,
            no_change_reason="Sync notes already up to date.",
        )


def build_strategy_chain(mode: str) -> List[SynthesisStrategy]:
    """Return the generative strategies for a synthesis mode, in order."""
    if mode == "content":
        return [FullDocumentStrategy()]
    if mode == "patch":
        return [
            PatchResponseStrategy(strict=False),
            PatchResponseStrategy(strict=True),
            FullDocumentStrategy(),
        ]
    raise ValueError(f"Unknown synthesis mode: {mode!r}")


def run_chain(
    strategies: Sequence[SynthesisStrategy],
    context: TargetContext,
    generator: TextGenerator,
    oracle: ApplicabilityOracle,
) -> List[StrategyResult]:
    """Run ``strategies`` in order, advancing only past errors.

    Returns every result produced; the last one decides the outcome.
    """
    results: List[StrategyResult] = []
    for strategy in strategies:
        result = strategy.run(context, generator, oracle)
        results.append(result)
        if result.status is StrategyStatus.ERROR:
            LOGGER.info("%s failed for %s: %s", strategy.name, context.doc_path, result.reason)
            continue
        break
    return results


__all__ = [
    "DeterministicStrategy",
    "FullDocumentStrategy",
    "PatchResponseStrategy",
    "StrategyResult",
    "StrategyStatus",
    "SynthesisStrategy",
    "TargetContext",
    "build_strategy_chain",
    "run_chain",
]
