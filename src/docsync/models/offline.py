"""Credential-free generator used by ``--mock`` runs."""

from __future__ import annotations

from typing import Any, Dict

from ..tools.patch import build_create_patch, build_modify_patch, ensure_trailing_newline
from .llm_client import GenerationRequest, GenerationResult, TextGenerator

__all__ = ["MOCK_MARKER", "OfflineGenerator"]

MOCK_MARKER = "<!-- mock patch: generated locally without a model -->"


class OfflineGenerator(TextGenerator):
    """Returns the current document with a mock marker line prepended."""

    def __init__(self) -> None:
        super().__init__(model="offline", max_attempts=1, retry_delay=0.0)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        updated = self._mock_document(request.document)
        if request.kind != "patch":
            return GenerationResult(text=f"```markdown\n{updated}```\n", model=self.model)
        if request.metadata.get("exists", True):
            candidate = build_modify_patch(request.doc_path, request.document, updated)
        else:
            candidate = build_create_patch(request.doc_path, updated)
        text = candidate.text if candidate else ""
        return GenerationResult(text=f"```patch\n{text}```\n", model=self.model)

    @staticmethod
    def _mock_document(document: str) -> str:
        if document.startswith(MOCK_MARKER):
            return ensure_trailing_newline(document)
        return ensure_trailing_newline(f"{MOCK_MARKER}\n{document}")

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:  # pragma: no cover - generate() is overridden
        raise NotImplementedError("OfflineGenerator does not call a transport.")
