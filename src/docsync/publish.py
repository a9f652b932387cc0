"""Posting suggestion summaries back to the code pull request."""

from __future__ import annotations

import logging
from typing import Optional

from github import Auth, Github, GithubException

LOGGER = logging.getLogger(__name__)


class PublishError(RuntimeError):
    """Raised when the pull request comment cannot be created."""


def post_pull_request_comment(
    repository: str,
    number: int,
    body: str,
    *,
    token: Optional[str] = None,
    client: Optional[Github] = None,
) -> str:
    """Create an issue comment on pull request ``number`` and return its URL."""
    if not token and client is None:
        raise PublishError("GITHUB_TOKEN is required to comment on pull requests.")
    github = client or Github(auth=Auth.Token(token or ""))
    try:
        issue = github.get_repo(repository).get_issue(number=int(number))
        comment = issue.create_comment(body)
    except GithubException as error:
        raise PublishError(f"Failed to comment on {repository}#{number}: {error.status} {error.data}") from error
    url = getattr(comment, "html_url", "") or ""
    LOGGER.info("Comment posted to PR #%s in %s", number, repository)
    return url


__all__ = ["PublishError", "post_pull_request_comment"]
