from __future__ import annotations

import shutil
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


AUTH_DOC = textwrap.dedent(
    """
    # Auth

    ## Overview
    Tokens are issued by the auth service.

    ## Configuration
    Set AUTH_SECRET before starting the service.
    """
).lstrip()

CODE_DIFF = textwrap.dedent(
    """
    diff --git a/src/auth/login.py b/src/auth/login.py
    index 1111111..2222222 100644
    --- a/src/auth/login.py
    +++ b/src/auth/login.py
    @@ -1,2 +1,3 @@
     def login(user):
    -    return issue_token(user)
    +    check_mfa(user)
    +    return issue_token(user, ttl=3600)
    diff --git a/src/billing/invoice.py b/src/billing/invoice.py
    index 3333333..4444444 100644
    --- a/src/billing/invoice.py
    +++ b/src/billing/invoice.py
    @@ -1 +1 @@
    -TOTAL = 1
    +TOTAL = 2
    """
).lstrip()

DOCS_MAP_YAML = textwrap.dedent(
    """
    mappings:
      - code: "src/auth/**"
        docs:
          - docs/api/auth.md
      - code: "src/billing/**"
        docs:
          - path: docs/billing.md
            anchor: Invoices
    """
).lstrip()


@dataclass(slots=True)
class DocsWorkspace:
    """Fixture payload: a local docs tree plus the inputs of a run."""

    root: Path
    docs_dir: Path
    diff_path: Path
    docs_map_path: Path
    out_dir: Path

    def write_doc(self, relative: str, content: str) -> Path:
        path = self.docs_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


@pytest.fixture()
def docs_workspace(tmp_path: Path) -> DocsWorkspace:
    """Create a docs tree with one existing document, a code diff and a docs-map."""

    root = tmp_path / "workspace"
    docs_dir = root / "docs-repo"
    docs_dir.mkdir(parents=True)
    workspace = DocsWorkspace(
        root=root,
        docs_dir=docs_dir,
        diff_path=root / "change.diff",
        docs_map_path=root / "docs-map.yaml",
        out_dir=root / "suggestions",
    )
    workspace.write_doc("docs/api/auth.md", AUTH_DOC)
    workspace.diff_path.write_text(CODE_DIFF, encoding="utf-8")
    workspace.docs_map_path.write_text(DOCS_MAP_YAML, encoding="utf-8")
    return workspace


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every environment variable docsync reads."""

    for key in (
        "DOCS_REPO",
        "DOCS_BRANCH",
        "OPENAI_BASE_URL",
        "OPENAI_MODEL",
        "OPENAI_API_KEY",
        "AZURE_OPENAI_API_KEY",
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_DEPLOYMENT",
        "AZURE_OPENAI_API_VERSION",
        "OPENAI_USER",
        "BRIDGE_API_APP_KEY",
        "OPENAI_USER_APPKEY",
        "GITHUB_TOKEN",
        "LLM_ONLY",
        "DOCSYNC_DETERMINISTIC_DOC",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is required on PATH")
