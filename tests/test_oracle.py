from __future__ import annotations

import pytest

from docsync.tools.oracle import FunctionOracle, GitApplyOracle, OracleVerdict, validate_doc_path
from docsync.tools.patch import PatchError, build_create_patch, build_delete_patch, build_modify_patch

from conftest import AUTH_DOC, requires_git


@pytest.mark.parametrize("path", ["", "   ", "/etc/passwd", "docs/../../secret.md", ".git/config"])
def test_validate_doc_path_rejects_unsafe_paths(path: str) -> None:
    with pytest.raises(PatchError):
        validate_doc_path(path)


def test_validate_doc_path_accepts_relative_paths() -> None:
    assert str(validate_doc_path("docs/api/auth.md")) == "docs/api/auth.md"
    assert str(validate_doc_path("docs\\api\\auth.md")) == "docs/api/auth.md"


def test_function_oracle_records_calls_and_coerces_bools() -> None:
    oracle = FunctionOracle(lambda path, staged, text: path.endswith(".md"))

    assert oracle.check("docs/a.md", "x\n", "patch") == OracleVerdict(ok=True)
    assert oracle.check("docs/a.txt", None, "patch") == OracleVerdict(ok=False, message="rejected")
    assert [call[0] for call in oracle.calls] == ["docs/a.md", "docs/a.txt"]


@requires_git
def test_git_apply_oracle_accepts_applicable_modify() -> None:
    candidate = build_modify_patch("docs/api/auth.md", AUTH_DOC, AUTH_DOC.replace("Tokens", "Short-lived tokens"))
    assert candidate is not None

    assert GitApplyOracle().check("docs/api/auth.md", AUTH_DOC, candidate.text).ok


@requires_git
def test_git_apply_oracle_rejects_context_mismatch() -> None:
    candidate = build_modify_patch("docs/api/auth.md", "other\ncontent\n", "other\nchanged\n")
    assert candidate is not None

    verdict = GitApplyOracle().check("docs/api/auth.md", AUTH_DOC, candidate.text)

    assert not verdict.ok
    assert verdict.message


@requires_git
def test_git_apply_oracle_checks_creation_against_absent_file() -> None:
    candidate = build_create_patch("docs/new.md", "# New\n")
    assert candidate is not None
    oracle = GitApplyOracle()

    assert oracle.check("docs/new.md", None, candidate.text).ok
    assert not oracle.check("docs/new.md", "# Existing\n", candidate.text).ok


@requires_git
def test_git_apply_oracle_checks_deletion() -> None:
    candidate = build_delete_patch("docs/api/auth.md", AUTH_DOC)

    assert GitApplyOracle().check("docs/api/auth.md", AUTH_DOC, candidate.text).ok


@requires_git
def test_git_apply_oracle_rejects_miscounted_hunk() -> None:
    text = "diff --git a/docs/a.md b/docs/a.md\n--- a/docs/a.md\n+++ b/docs/a.md\n@@ -1,5 +1,5 @@\n+broken\n"

    verdict = GitApplyOracle().check("docs/a.md", "a\n", text)

    assert not verdict.ok


def test_git_apply_oracle_refuses_unsafe_paths_without_running_git() -> None:
    verdict = GitApplyOracle().check("../outside.md", "a\n", "irrelevant")

    assert not verdict.ok
    assert "escaping" in verdict.message
