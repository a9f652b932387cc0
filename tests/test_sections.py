from __future__ import annotations

from docsync.sections import SECTION_CHAR_LIMIT, extract_section

from conftest import AUTH_DOC


def test_extract_section_starts_at_matching_heading() -> None:
    section = extract_section(AUTH_DOC, "Configuration")

    assert section.startswith("## Configuration\n")
    assert "Tokens are issued" not in section


def test_extract_section_matching_ignores_case_and_markers() -> None:
    assert extract_section(AUTH_DOC, "## overview").startswith("## Overview")
    assert extract_section(AUTH_DOC, "  CONFIGURATION ").startswith("## Configuration")


def test_extract_section_without_anchor_or_match_returns_document() -> None:
    assert extract_section(AUTH_DOC) == AUTH_DOC
    assert extract_section(AUTH_DOC, "Nonexistent") == AUTH_DOC


def test_extract_section_truncates_to_limit() -> None:
    long_doc = "# Title\n" + ("x" * (SECTION_CHAR_LIMIT * 2))

    assert len(extract_section(long_doc)) == SECTION_CHAR_LIMIT
    assert len(extract_section(long_doc, "Title")) == SECTION_CHAR_LIMIT
    assert extract_section("short", limit=3) == "sho"
