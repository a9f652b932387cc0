"""Baseline content for documents that do not exist yet."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

_AGGREGATE_SUFFIX = re.compile(r"release-notes\.md$", re.IGNORECASE)
_TITLE_SPLIT = re.compile(r"[-_]+")
_MD_SUFFIX = re.compile(r"\.md$", re.IGNORECASE)


def is_aggregate_document(doc_path: str) -> bool:
    """Return ``True`` for the release-notes document that collects every change."""
    return bool(_AGGREGATE_SUFFIX.search(doc_path))


def title_from_path(doc_path: str) -> str:
    """Derive a page title from a document filename: ``my-feature.md`` -> ``My Feature``."""
    stem = _MD_SUFFIX.sub("", PurePosixPath(doc_path.replace("\\", "/")).name)
    words = [part for part in _TITLE_SPLIT.split(stem) if part]
    return " ".join(word[:1].upper() + word[1:] for word in words) or "Feature"


def release_notes_seed(today: Optional[datetime] = None) -> str:
    moment = today or datetime.now(timezone.utc)
    date_label = f"{moment.strftime('%B')} {moment.day}, {moment.year}"
    return "\n".join(
        [
            "# Release Notes",
            "",
            date_label,
            "",
            "## New Features",
            "Feature | Description | More Information",
            "--- | --- | ---",
        ]
    )


def feature_doc_seed(doc_path: str) -> str:
    return "\n".join(
        [
            f"# {title_from_path(doc_path)}",
            "",
            "## Overview",
            "Describe the feature, its use case, and its value proposition.",
            "",
            "## Configuration & Installation",
            "Document setup, prerequisites, environment variables, and dependencies.",
            "",
            "## API Documentation",
            "Document endpoints, request parameters, response schema, and examples.",
            "",
            "## Troubleshooting",
            "List common issues, error messages/codes, and resolution steps.",
        ]
    )


def seed_document(doc_path: str, *, today: Optional[datetime] = None) -> str:
    """Return the stand-in baseline used when ``doc_path`` is missing."""
    if is_aggregate_document(doc_path):
        return release_notes_seed(today)
    return feature_doc_seed(doc_path)


__all__ = [
    "feature_doc_seed",
    "is_aggregate_document",
    "release_notes_seed",
    "seed_document",
    "title_from_path",
]
