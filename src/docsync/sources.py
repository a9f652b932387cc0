"""Where current documentation content is read from."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from github import Auth, Github, GithubException, UnknownObjectException

from .tools.oracle import validate_doc_path
from .tools.patch import PatchError

LOGGER = logging.getLogger(__name__)


class DocumentNotFound(LookupError):
    """Raised when the requested document does not exist at the given ref."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not Found: {path}")
        self.path = path


class FetchFailed(RuntimeError):
    """Raised for every other failure to read a document."""


class DocumentSource(Protocol):
    def fetch(self, path: str, ref: str) -> str:
        ...


def _github_client(token: Optional[str]) -> Github:
    if token:
        return Github(auth=Auth.Token(token))
    return Github()


class GitHubDocumentSource:
    """Reads documents from a GitHub repository through PyGithub."""

    def __init__(self, repository: str, *, token: Optional[str] = None, client: Optional[Github] = None) -> None:
        if not repository or "/" not in repository:
            raise ValueError(f"Docs repository must look like 'owner/name', got {repository!r}")
        self._repository_name = repository
        self._client = client or _github_client(token)
        self._repository = None

    def _repo(self):
        if self._repository is None:
            self._repository = self._client.get_repo(self._repository_name)
        return self._repository

    def fetch(self, path: str, ref: str) -> str:
        try:
            contents = self._repo().get_contents(path, ref=ref)
        except UnknownObjectException as error:
            raise DocumentNotFound(path) from error
        except GithubException as error:
            if error.status == 404:
                raise DocumentNotFound(path) from error
            raise FetchFailed(f"GitHub returned {error.status} for {path}@{ref}: {error.data}") from error
        except OSError as error:
            raise FetchFailed(f"Failed to reach GitHub for {path}@{ref}: {error}") from error

        if isinstance(contents, list):
            raise FetchFailed(f"File {path} has no content field (is it a directory?)")
        raw = contents.decoded_content
        if raw is None:
            raise FetchFailed(f"File {path} has no content field")
        LOGGER.debug("Fetched %s@%s from %s (%d bytes).", path, ref, self._repository_name, len(raw))
        return raw.decode("utf-8", errors="replace")


class LocalDocumentSource:
    """Reads documents from a checked-out docs tree; ``ref`` is ignored."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def fetch(self, path: str, ref: str) -> str:
        try:
            relative = validate_doc_path(path)
        except PatchError as error:
            raise FetchFailed(str(error)) from error
        target = self._root.joinpath(*relative.parts)
        if not target.is_file():
            raise DocumentNotFound(path)
        try:
            return target.read_bytes().decode("utf-8", errors="replace")
        except OSError as error:
            raise FetchFailed(f"Failed to read {target}: {error}") from error


__all__ = [
    "DocumentNotFound",
    "DocumentSource",
    "FetchFailed",
    "GitHubDocumentSource",
    "LocalDocumentSource",
]
