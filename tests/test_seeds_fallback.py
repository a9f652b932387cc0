from __future__ import annotations

from datetime import datetime, timezone

from docsync.fallback import (
    MAX_LINES_PER_KIND,
    SYNC_NOTES_HEADING,
    added_lines,
    build_sync_notes_update,
    removed_lines,
)
from docsync.seeds import is_aggregate_document, seed_document, title_from_path

from conftest import CODE_DIFF

NOW = datetime(2026, 10, 16, 9, 30, 5, tzinfo=timezone.utc)


def test_is_aggregate_document() -> None:
    assert is_aggregate_document("docs/release-notes.md")
    assert is_aggregate_document("Release-Notes.MD")
    assert not is_aggregate_document("docs/release-notes-archive.md")
    assert not is_aggregate_document("docs/notes.md")


def test_title_from_path() -> None:
    assert title_from_path("docs/features/single-sign_on.md") == "Single Sign On"
    assert title_from_path("docs/.md") == "Feature"


def test_release_notes_seed_has_table_header() -> None:
    seed = seed_document("docs/release-notes.md", today=NOW)

    assert seed.splitlines() == [
        "# Release Notes",
        "",
        "October 16, 2026",
        "",
        "## New Features",
        "Feature | Description | More Information",
        "--- | --- | ---",
    ]


def test_feature_seed_lists_standard_sections() -> None:
    seed = seed_document("docs/features/smart-search.md")

    assert seed.startswith("# Smart Search\n")
    for heading in ("## Overview", "## Configuration & Installation", "## API Documentation", "## Troubleshooting"):
        assert heading in seed


def test_added_and_removed_lines_skip_headers_and_blanks() -> None:
    assert added_lines(CODE_DIFF) == ["check_mfa(user)", "return issue_token(user, ttl=3600)", "TOTAL = 2"]
    assert removed_lines(CODE_DIFF) == ["return issue_token(user)", "TOTAL = 1"]


def test_added_lines_are_capped() -> None:
    diff = "\n".join(f"+line {number}" for number in range(20))

    assert len(added_lines(diff)) == MAX_LINES_PER_KIND


def test_build_sync_notes_update_appends_section() -> None:
    updated = build_sync_notes_update("# Home\n\nWelcome.\n", CODE_DIFF, sources=["src/auth/login.py"], now=NOW)

    assert updated.startswith("# Home\n\nWelcome.\n\n## Automated Sync Notes\n")
    assert "Last synced from `src/auth/login.py` at 2026-10-16T09:30:05Z." in updated
    assert "### Added lines\n- `check_mfa(user)`" in updated
    assert "### Removed lines\n- `return issue_token(user)`" in updated
    assert updated.endswith("\n")


def test_build_sync_notes_update_replaces_existing_section() -> None:
    doc = f"# Home\n\nIntro.\n\n{SYNC_NOTES_HEADING}\n\nLast synced from `old.py` at 2020-01-01T00:00:00Z.\n"

    updated = build_sync_notes_update(doc, "+new line\n", sources=[], now=NOW)

    assert updated.count(SYNC_NOTES_HEADING) == 1
    assert "old.py" not in updated
    assert "Last synced from the code change at 2026-10-16T09:30:05Z." in updated
    assert "### Removed lines" not in updated
    assert updated.startswith("# Home\n\nIntro.\n\n## Automated Sync Notes")


def test_build_sync_notes_update_is_stable_for_same_input() -> None:
    first = build_sync_notes_update("# Home\n", CODE_DIFF, sources=["a.py"], now=NOW)
    second = build_sync_notes_update(first, CODE_DIFF, sources=["a.py"], now=NOW)

    assert first == second
