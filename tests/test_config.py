from __future__ import annotations

import os
from pathlib import Path

import pytest

from docsync.config import (
    DEFAULT_AZURE_API_VERSION,
    DEFAULT_DETERMINISTIC_DOC,
    DEFAULT_MODEL,
    RunConfig,
    gateway_user,
    load_env_file,
)


def test_from_env_defaults() -> None:
    config = RunConfig.from_env({})

    assert config.docs_branch == "main"
    assert config.model == DEFAULT_MODEL
    assert config.azure is False
    assert config.azure_api_version == DEFAULT_AZURE_API_VERSION
    assert config.synthesis_mode == "content"
    assert config.deterministic_doc == DEFAULT_DETERMINISTIC_DOC
    assert config.api_key is None


def test_from_env_reads_environment_and_overrides_win() -> None:
    env = {
        "DOCS_REPO": "acme/docs",
        "DOCS_BRANCH": "develop",
        "OPENAI_MODEL": "gpt-env",
        "OPENAI_API_KEY": "sk-openai",
        "GITHUB_TOKEN": "ghp-token",
        "LLM_ONLY": "true",
    }

    config = RunConfig.from_env(env, docs_repo="acme/other-docs", model=None, llm_only=False)

    assert config.docs_repo == "acme/other-docs"
    assert config.docs_branch == "develop"
    assert config.model == "gpt-env"
    assert config.api_key == "sk-openai"
    assert config.github_token == "ghp-token"
    assert config.llm_only is True


def test_azure_settings_and_key_precedence() -> None:
    env = {
        "OPENAI_API_KEY": "sk-openai",
        "AZURE_OPENAI_API_KEY": "azure-key",
        "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
        "AZURE_OPENAI_DEPLOYMENT": "docs-gpt",
    }

    config = RunConfig.from_env(env)

    assert config.azure is True
    assert config.azure_deployment == "docs-gpt"
    assert config.api_key == "azure-key"


def test_explicit_azure_option_overrides_endpoint_in_environment() -> None:
    env = {"AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com", "OPENAI_API_KEY": "sk-openai"}

    assert RunConfig.from_env(env).azure is True
    assert RunConfig.from_env(env, azure=None).azure is True
    assert RunConfig.from_env(env, azure=False).azure is False
    assert RunConfig.from_env({}, azure=True).azure is True


def test_deterministic_doc_can_be_disabled() -> None:
    assert RunConfig.from_env({"DOCSYNC_DETERMINISTIC_DOC": "docs/home.md"}).deterministic_doc == "docs/home.md"
    assert RunConfig.from_env({"DOCSYNC_DETERMINISTIC_DOC": ""}).deterministic_doc is None


def test_unknown_synthesis_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="synthesis mode"):
        RunConfig.from_env({}, synthesis_mode="freeform")


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ({}, None),
        ({"OPENAI_USER": "docs-bot"}, "docs-bot"),
        ({"BRIDGE_API_APP_KEY": "abc"}, '{"appkey":"abc"}'),
        ({"OPENAI_USER_APPKEY": "xyz"}, '{"appkey":"xyz"}'),
        ({"OPENAI_USER": "docs-bot", "BRIDGE_API_APP_KEY": "abc"}, "docs-bot"),
    ],
)
def test_gateway_user(env: dict, expected: str | None) -> None:
    assert gateway_user(env) == expected


def test_load_env_file_does_not_override(tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("DOCSYNC_TEST_FROM_FILE=loaded\nOPENAI_MODEL=gpt-file\n", encoding="utf-8")
    clean_env.setenv("OPENAI_MODEL", "gpt-shell")

    try:
        assert load_env_file(env_file) is True
        assert os.environ["DOCSYNC_TEST_FROM_FILE"] == "loaded"
        assert os.environ["OPENAI_MODEL"] == "gpt-shell"
    finally:
        os.environ.pop("DOCSYNC_TEST_FROM_FILE", None)


def test_load_env_file_missing(tmp_path: Path) -> None:
    assert load_env_file(tmp_path / "absent.env") is False
