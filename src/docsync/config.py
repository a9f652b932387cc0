"""Run configuration assembled from CLI options and the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_DOCS_MAP = "docs-map.yaml"
DEFAULT_DOCS_BRANCH = "main"
DEFAULT_OUT_DIR = "suggestions"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_AZURE_API_VERSION = "2024-10-01-preview"
DEFAULT_DETERMINISTIC_DOC = "docs/ui/home1.md"
SYNTHESIS_MODES = ("content", "patch")

_TRUTHY = {"1", "true", "yes", "on"}


def load_env_file(path: Path | str = ".env") -> bool:
    """Load ``path`` into the process environment without overriding set variables."""
    env_path = Path(path)
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)


def gateway_user(env: Mapping[str, str]) -> Optional[str]:
    """Return the ``user`` field expected by chat gateways, when configured."""
    if env.get("OPENAI_USER"):
        return env["OPENAI_USER"]
    for key in ("BRIDGE_API_APP_KEY", "OPENAI_USER_APPKEY"):
        if env.get(key):
            return json.dumps({"appkey": env[key]}, separators=(",", ":"))
    return None


@dataclass(slots=True)
class RunConfig:
    """Every knob a docsync run reads; built once and passed to each component."""

    diff_path: Optional[Path] = None
    docs_map_path: Path = field(default_factory=lambda: Path(DEFAULT_DOCS_MAP))
    docs_repo: Optional[str] = None
    docs_dir: Optional[Path] = None
    docs_branch: str = DEFAULT_DOCS_BRANCH
    out_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUT_DIR))
    style_guide_path: Optional[str] = None
    comment_pr: Optional[int] = None
    code_repo: Optional[str] = None
    model: str = DEFAULT_MODEL
    openai_base_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    azure: bool = False
    azure_endpoint: Optional[str] = None
    azure_deployment: Optional[str] = None
    azure_api_version: str = DEFAULT_AZURE_API_VERSION
    azure_api_key: Optional[str] = None
    user: Optional[str] = None
    github_token: Optional[str] = None
    synthesis_mode: str = "content"
    llm_only: bool = False
    mock: bool = False
    verbose: bool = False
    deterministic_doc: Optional[str] = DEFAULT_DETERMINISTIC_DOC

    def __post_init__(self) -> None:
        if self.synthesis_mode not in SYNTHESIS_MODES:
            raise ValueError(
                f"Unknown synthesis mode {self.synthesis_mode!r}; expected one of {', '.join(SYNTHESIS_MODES)}"
            )

    @property
    def api_key(self) -> Optional[str]:
        """Key used for chat requests; the Azure key wins when both are set."""
        return self.azure_api_key or self.openai_api_key

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides: Any) -> "RunConfig":
        """Build a configuration from ``env`` with explicit ``overrides`` taking precedence.

        Overrides whose value is ``None`` are ignored so unset CLI options fall
        through to the environment.
        """
        source = dict(os.environ if env is None else env)
        values: dict[str, Any] = {
            "docs_repo": source.get("DOCS_REPO") or None,
            "docs_branch": source.get("DOCS_BRANCH") or DEFAULT_DOCS_BRANCH,
            "model": source.get("OPENAI_MODEL") or DEFAULT_MODEL,
            "openai_base_url": source.get("OPENAI_BASE_URL") or None,
            "openai_api_key": source.get("OPENAI_API_KEY") or None,
            "azure": bool(source.get("AZURE_OPENAI_ENDPOINT")),
            "azure_endpoint": source.get("AZURE_OPENAI_ENDPOINT") or None,
            "azure_deployment": source.get("AZURE_OPENAI_DEPLOYMENT") or None,
            "azure_api_version": source.get("AZURE_OPENAI_API_VERSION") or DEFAULT_AZURE_API_VERSION,
            "azure_api_key": source.get("AZURE_OPENAI_API_KEY") or None,
            "user": gateway_user(source),
            "github_token": source.get("GITHUB_TOKEN") or None,
            "llm_only": source.get("LLM_ONLY", "").strip().lower() in _TRUTHY,
        }
        if "DOCSYNC_DETERMINISTIC_DOC" in source:
            values["deterministic_doc"] = source["DOCSYNC_DETERMINISTIC_DOC"].strip() or None
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "llm_only":
                values[key] = values.get(key, False) or value
                continue
            values[key] = value
        return cls(**values)


__all__ = [
    "DEFAULT_AZURE_API_VERSION",
    "DEFAULT_DETERMINISTIC_DOC",
    "DEFAULT_DOCS_MAP",
    "DEFAULT_MODEL",
    "RunConfig",
    "SYNTHESIS_MODES",
    "gateway_user",
    "load_env_file",
]
