"""Applicability checks that decide whether a patch may be emitted."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Protocol, Sequence

from .patch import PatchError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OracleVerdict:
    """Result of an applicability check."""

    ok: bool
    message: str = ""


class ApplicabilityOracle(Protocol):
    """Decides whether ``patch_text`` applies to ``staged_content`` at ``doc_path``.

    ``staged_content`` of ``None`` means the document does not exist yet.
    """

    def check(self, doc_path: str, staged_content: Optional[str], patch_text: str) -> OracleVerdict:
        ...


def validate_doc_path(doc_path: str) -> PurePosixPath:
    """Enforce path safety rules for staged documents."""
    path = PurePosixPath(doc_path.replace("\\", "/"))
    if not doc_path.strip():
        raise PatchError("Document path is empty.")
    if path.is_absolute():
        raise PatchError(f"Absolute paths are not permitted in patches: {doc_path}")
    parts = list(path.parts)
    if any(part == ".." for part in parts):
        raise PatchError(f"Path escaping detected in patch: {doc_path}")
    if parts and parts[0] == ".git":
        raise PatchError("Patches may not target the .git directory.")
    return path


def run_git(args: Sequence[str], *, cwd: Path, env: Optional[dict[str, str]] = None) -> subprocess.CompletedProcess[str]:
    """Run a git command and return decoded output without raising."""
    process = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=False,
        check=False,
    )
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)


class GitApplyOracle:
    """Runs ``git apply --check`` against a disposable staging directory."""

    def check(self, doc_path: str, staged_content: Optional[str], patch_text: str) -> OracleVerdict:
        try:
            relative = validate_doc_path(doc_path)
        except PatchError as error:
            return OracleVerdict(ok=False, message=str(error))

        with tempfile.TemporaryDirectory(prefix="docsync-check-") as base_dir:
            base = Path(base_dir)
            staging_root = base / "stage"
            staging_root.mkdir()
            if staged_content is not None:
                target = staging_root.joinpath(*relative.parts)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(staged_content.encode("utf-8"))

            patch_file = base / "candidate.patch"
            patch_file.write_bytes(patch_text.encode("utf-8"))

            env = dict(os.environ)
            env["GIT_CEILING_DIRECTORIES"] = str(base)
            try:
                result = run_git(["apply", "--check", str(patch_file)], cwd=staging_root, env=env)
            except OSError as error:
                return OracleVerdict(ok=False, message=f"Unable to run git: {error}")

        if result.returncode == 0:
            return OracleVerdict(ok=True)
        message = result.stderr.strip() or result.stdout.strip() or "git apply --check failed"
        LOGGER.debug("git apply --check rejected patch for %s: %s", doc_path, message)
        return OracleVerdict(ok=False, message=message)


class FunctionOracle:
    """Adapts a plain callable to the :class:`ApplicabilityOracle` protocol."""

    def __init__(self, func: Callable[[str, Optional[str], str], "OracleVerdict | bool"]) -> None:
        self._func = func
        self.calls: list[tuple[str, Optional[str], str]] = []

    def check(self, doc_path: str, staged_content: Optional[str], patch_text: str) -> OracleVerdict:
        self.calls.append((doc_path, staged_content, patch_text))
        verdict = self._func(doc_path, staged_content, patch_text)
        if isinstance(verdict, OracleVerdict):
            return verdict
        return OracleVerdict(ok=bool(verdict), message="" if verdict else "rejected")


__all__ = [
    "ApplicabilityOracle",
    "FunctionOracle",
    "GitApplyOracle",
    "OracleVerdict",
    "run_git",
    "validate_doc_path",
]
