"""Base class shared by every text generator used for documentation updates."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "GeneratorError",
    "GeneratorResponseError",
    "GeneratorRetryError",
    "GeneratorTransportError",
    "TextGenerator",
    "extract_fenced",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.2

_FENCE = re.compile(r"```([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_WHOLE_FENCE = re.compile(r"\A```([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*)```\Z", re.DOTALL)


class GeneratorError(RuntimeError):
    """Base error raised for text generation failures."""


class GeneratorTransportError(GeneratorError):
    """Raised when the underlying transport fails to return a response."""


class GeneratorResponseError(GeneratorError):
    """Raised when the model response lacks the expected content."""


class GeneratorRetryError(GeneratorError):
    """Raised after exhausting retries on transport failures."""


@dataclass(slots=True)
class GenerationRequest:
    """Prompt plus the document context it was built from.

    ``doc_path`` and ``document`` are not sent to the model; local generators
    use them to produce deterministic output.
    """

    prompt: str
    system_prompt: Optional[str] = None
    kind: str = "document"
    doc_path: str = ""
    document: str = ""
    model: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE
    user: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self, default_model: str) -> Dict[str, Any]:
        """Render a chat-completions payload."""
        messages: list[Dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.prompt})
        payload: Dict[str, Any] = {
            "model": self.model or default_model,
            "temperature": self.temperature,
            "messages": messages,
        }
        if self.user:
            payload["user"] = self.user
        return payload


@dataclass(slots=True)
class GenerationResult:
    text: str
    model: str
    attempts: int = 1


def extract_fenced(text: str, tags: Sequence[str]) -> str:
    """Return the body of the fenced block tagged with one of ``tags``.

    A response that is a single fenced block (tagged with ``tags`` or
    untagged) yields everything up to its last fence, so nested code fences
    survive. Otherwise the first fence carrying a wanted tag is used, and the
    trimmed ``text`` is the fallback. Bodies keep trailing spaces on their last
    line; only surrounding newlines are removed.
    """
    wanted = {tag.lower() for tag in tags}
    stripped = (text or "").strip()
    whole = _WHOLE_FENCE.match(stripped)
    if whole and (not whole.group(1) or whole.group(1).lower() in wanted):
        return whole.group(2).strip("\r\n")
    for match in _FENCE.finditer(stripped):
        tag = match.group(1).lower()
        if tag and tag in wanted:
            return match.group(2).strip("\r\n")
    return stripped


class TextGenerator:
    """Invokes a model with bounded retries on transport failures."""

    def __init__(self, model: str, *, max_attempts: int = 3, retry_delay: float = 0.5) -> None:
        self._model = model
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay

    @property
    def model(self) -> str:
        """Return the default model name configured for this generator."""
        return self._model

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Invoke the underlying model and return its raw text."""
        payload = request.to_payload(self._model)
        last_error: Optional[Exception] = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                raw = self._raw_invoke(payload)
            except GeneratorTransportError as error:
                last_error = error
                LOGGER.warning("Generation attempt %d/%d failed: %s", attempt, self._max_attempts, error)
                if attempt >= self._max_attempts:
                    break
                time.sleep(self._retry_delay)
                continue
            return GenerationResult(text=raw, model=payload["model"], attempts=attempt)

        raise GeneratorRetryError(
            f"Model {payload['model']} did not respond after {self._max_attempts} attempt(s)"
        ) from last_error

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_invoke().")
