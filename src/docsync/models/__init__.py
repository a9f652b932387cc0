"""Convenience exports for docsync text generators."""

from .chat import ChatCompletionsClient
from .llm_client import (
    GenerationRequest,
    GenerationResult,
    GeneratorError,
    GeneratorResponseError,
    GeneratorRetryError,
    GeneratorTransportError,
    TextGenerator,
    extract_fenced,
)
from .offline import MOCK_MARKER, OfflineGenerator

__all__ = [
    "ChatCompletionsClient",
    "GenerationRequest",
    "GenerationResult",
    "GeneratorError",
    "GeneratorResponseError",
    "GeneratorRetryError",
    "GeneratorTransportError",
    "MOCK_MARKER",
    "OfflineGenerator",
    "TextGenerator",
    "extract_fenced",
]
