from __future__ import annotations

import os
from pathlib import Path

import pytest

from docsync.tools.oracle import FunctionOracle, GitApplyOracle, OracleVerdict, run_git
from docsync.tools.patch import (
    NO_NEWLINE_MARKER,
    PatchError,
    PatchShape,
    build_create_patch,
    build_delete_patch,
    build_modify_patch,
    build_replace_all_patch,
    split_document_lines,
    synthesize_patch,
)

from conftest import AUTH_DOC, requires_git


def _apply(tmp_path: Path, doc_path: str, old: str | None, patch_text: str) -> Path:
    """Apply ``patch_text`` with ``git apply`` and return the target path."""
    root = tmp_path / "apply-root"
    root.mkdir()
    target = root / doc_path
    if old is not None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(old, encoding="utf-8")
    patch_file = tmp_path / "change.patch"
    patch_file.write_text(patch_text, encoding="utf-8")
    env = dict(os.environ, GIT_CEILING_DIRECTORIES=str(tmp_path))
    result = run_git(["apply", str(patch_file)], cwd=root, env=env)
    assert result.returncode == 0, result.stderr
    return target


def test_split_document_lines_keeps_terminators() -> None:
    assert split_document_lines("") == []
    assert split_document_lines("a\nb\n") == ["a\n", "b\n"]
    assert split_document_lines("a\nb") == ["a\n", "b"]


def test_build_modify_patch_returns_none_for_identical_content() -> None:
    assert build_modify_patch("docs/a.md", "same\n", "same\n") is None
    assert build_modify_patch("docs/a.md", "same\r\n", "same\n") is None


def test_build_modify_patch_renders_headers_and_counts() -> None:
    old = "".join(f"line {number}\n" for number in range(1, 11))
    new = old.replace("line 5\n", "line five\n")

    candidate = build_modify_patch("docs/a.md", old, new)

    assert candidate is not None
    assert candidate.shape is PatchShape.MODIFY
    lines = candidate.text.splitlines()
    assert lines[:3] == ["diff --git a/docs/a.md b/docs/a.md", "--- a/docs/a.md", "+++ b/docs/a.md"]
    assert lines[3] == "@@ -2,7 +2,7 @@"
    assert "-line 5" in lines and "+line five" in lines
    assert candidate.text.endswith("\n") and not candidate.text.endswith("\n\n")


def test_build_modify_patch_separates_distant_hunks() -> None:
    old = "".join(f"line {number}\n" for number in range(1, 31))
    new = old.replace("line 2\n", "line two\n").replace("line 28\n", "line twenty-eight\n")

    candidate = build_modify_patch("docs/a.md", old, new)

    assert candidate is not None
    assert [line for line in candidate.text.splitlines() if line.startswith("@@")] == [
        "@@ -1,5 +1,5 @@",
        "@@ -25,6 +25,6 @@",
    ]


@requires_git
def test_build_modify_patch_marks_missing_final_newline(tmp_path: Path) -> None:
    old = "# Title\nbody"
    new = "# Title\nbody\nmore"

    candidate = build_modify_patch("docs/a.md", old, new)

    assert candidate is not None
    assert NO_NEWLINE_MARKER in candidate.text
    target = _apply(tmp_path, "docs/a.md", old, candidate.text)
    assert target.read_text(encoding="utf-8") == new


@requires_git
def test_build_modify_patch_applies_with_git(tmp_path: Path) -> None:
    new = AUTH_DOC.replace("Set AUTH_SECRET", "Set AUTH_SECRET and MFA_ISSUER") + "\n## Troubleshooting\nRetry.\n"

    candidate = build_modify_patch("docs/api/auth.md", AUTH_DOC, new)

    assert candidate is not None
    target = _apply(tmp_path, "docs/api/auth.md", AUTH_DOC, candidate.text)
    assert target.read_text(encoding="utf-8") == new


@requires_git
def test_build_create_patch_applies_to_missing_file(tmp_path: Path) -> None:
    candidate = build_create_patch("docs/new/feature.md", "# Feature\n\nHello.\n")

    assert candidate is not None
    assert candidate.shape is PatchShape.CREATE
    assert "new file mode 100644\n--- /dev/null\n+++ b/docs/new/feature.md\n@@ -0,0 +1,3 @@" in candidate.text
    target = _apply(tmp_path, "docs/new/feature.md", None, candidate.text)
    assert target.read_text(encoding="utf-8") == "# Feature\n\nHello.\n"


def test_build_create_patch_skips_empty_content() -> None:
    assert build_create_patch("docs/new.md", "") is None


@requires_git
def test_build_delete_patch_removes_file(tmp_path: Path) -> None:
    candidate = build_delete_patch("docs/api/auth.md", AUTH_DOC)

    assert candidate.shape is PatchShape.DELETE
    assert "deleted file mode 100644\n--- a/docs/api/auth.md\n+++ /dev/null\n@@ -1,7 +0,0 @@" in candidate.text
    target = _apply(tmp_path, "docs/api/auth.md", AUTH_DOC, candidate.text)
    assert not target.exists()


def test_build_delete_patch_requires_a_hunk() -> None:
    with pytest.raises(PatchError, match="failed to build delete patch hunk") as excinfo:
        build_delete_patch("docs/empty.md", "")

    assert excinfo.value.details == {"path": "docs/empty.md"}


@requires_git
def test_build_replace_all_patch_applies(tmp_path: Path) -> None:
    candidate = build_replace_all_patch("docs/a.md", "one\ntwo\n", "three\n")

    assert candidate.shape is PatchShape.REPLACE_ALL
    assert "@@ -1,2 +1,1 @@\n-one\n-two\n+three\n" in candidate.text
    target = _apply(tmp_path, "docs/a.md", "one\ntwo\n", candidate.text)
    assert target.read_text(encoding="utf-8") == "three\n"


def test_builders_reject_empty_paths() -> None:
    with pytest.raises(PatchError):
        build_modify_patch("  ", "a\n", "b\n")


def test_synthesize_patch_selects_shape() -> None:
    created = synthesize_patch("docs/x.md", "", "# X\n", exists=False)
    deleted = synthesize_patch("docs/x.md", "# X\n", "", exists=True, delete_only=True)
    unchanged = synthesize_patch("docs/x.md", "# X\n", "# X\n", exists=True)

    assert created.candidate is not None and created.candidate.shape is PatchShape.CREATE
    assert deleted.candidate is not None and deleted.candidate.shape is PatchShape.DELETE
    assert unchanged.no_change


def test_synthesize_patch_escalates_to_replace_all_when_rejected() -> None:
    oracle = FunctionOracle(lambda path, staged, text: OracleVerdict(ok=False, message="corrupt patch"))

    result = synthesize_patch("docs/x.md", "a\nb\n", "a\nc\n", exists=True, oracle=oracle)

    assert result.replace_all_used
    assert result.candidate is not None and result.candidate.shape is PatchShape.REPLACE_ALL
    assert oracle.calls[0][1] == "a\nb\n"


def test_synthesize_patch_keeps_modify_when_replace_all_disallowed() -> None:
    oracle = FunctionOracle(lambda path, staged, text: False)

    result = synthesize_patch("docs/x.md", "a\n", "b\n", exists=True, oracle=oracle, allow_replace_all=False)

    assert not result.replace_all_used
    assert result.candidate is not None and result.candidate.shape is PatchShape.MODIFY


@requires_git
def test_synthesize_patch_accepts_minimal_modify_with_git_oracle() -> None:
    result = synthesize_patch(
        "docs/api/auth.md",
        AUTH_DOC,
        AUTH_DOC.replace("auth service", "identity service"),
        exists=True,
        oracle=GitApplyOracle(),
    )

    assert not result.replace_all_used
    assert result.candidate is not None and result.candidate.shape is PatchShape.MODIFY
