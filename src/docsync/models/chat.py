"""Client for OpenAI-compatible chat-completions endpoints (OpenAI, gateways, Azure)."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from .llm_client import GeneratorResponseError, GeneratorTransportError, TextGenerator

__all__ = ["ChatCompletionsClient", "DEFAULT_BASE_URL", "DEFAULT_MODEL"]

LOGGER = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], str]

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class ChatCompletionsClient(TextGenerator):
    """Thin adapter around the ``/chat/completions`` API."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        endpoint_url: Optional[str] = None,
        transport: Optional[Transport] = None,
        timeout: float = 60.0,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        super().__init__(model=model, max_attempts=max_attempts, retry_delay=retry_delay)
        self._api_key = api_key
        base = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._url = endpoint_url or f"{base}/chat/completions"
        self._timeout = timeout
        self._transport = transport or self._http_transport

        if transport is None and not self._api_key:
            raise ValueError("An API key is required when using the default transport.")

    @classmethod
    def for_azure(
        cls,
        *,
        endpoint: str,
        deployment: str,
        api_version: str,
        api_key: Optional[str] = None,
        transport: Optional[Transport] = None,
        **kwargs: Any,
    ) -> "ChatCompletionsClient":
        """Build a client that targets an Azure OpenAI deployment."""
        if not endpoint:
            raise ValueError("An Azure endpoint is required for Azure usage.")
        if not deployment:
            raise ValueError("An Azure deployment (or model) is required for Azure usage.")
        url = (
            f"{endpoint.rstrip('/')}/openai/deployments/{quote(deployment, safe='')}"
            f"/chat/completions?api-version={quote(api_version, safe='')}"
        )
        return cls(api_key=api_key, model=deployment, endpoint_url=url, transport=transport, **kwargs)

    @property
    def url(self) -> str:
        return self._url

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:
        """Send the request over the configured transport and return message content."""
        try:
            raw_response = self._transport(payload)
        except GeneratorTransportError:
            raise
        except OSError as error:
            raise GeneratorTransportError(f"Transport rejected the request: {error}") from error
        return self._extract_message(raw_response)

    def _http_transport(self, payload: Dict[str, Any]) -> str:
        """Default HTTP transport built on ``urllib``."""
        import urllib.error
        import urllib.request

        LOGGER.debug("POST %s (model=%s)", self._url, payload.get("model"))
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            self._url,
            data=data,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
                "api-key": str(self._api_key),
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise GeneratorTransportError("Chat completion request timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise GeneratorTransportError(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise GeneratorTransportError(f"Failed to reach chat endpoint: {error.reason}") from error

        if status >= 400:
            raise GeneratorTransportError(f"Unexpected HTTP status {status}")

        return raw.decode("utf-8")

    @staticmethod
    def _extract_message(raw_response: str) -> str:
        """Return ``choices[0].message.content`` from a chat-completions body."""
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            raise GeneratorResponseError(f"Model returned invalid JSON: {raw_response[:200]}") from error

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise GeneratorResponseError(f"LLM response missing choices: {raw_response[:200]}")

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") if isinstance(first.get("message"), dict) else {}
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = [
                item.get("text", "")
                for item in content
                if isinstance(item, dict) and isinstance(item.get("text"), str)
            ]
            return "".join(parts)
        return ""
