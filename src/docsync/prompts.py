"""Prompt templates for documentation generation."""

from __future__ import annotations

from typing import Optional, Sequence

PATCH_SYSTEM_PROMPT = "You generate minimal documentation patches from code diffs."
DOCUMENT_SYSTEM_PROMPT = "You rewrite full Markdown documents based on code diffs."

_WRITER_INTRO = (
    "You are an expert technical writer. Update the Markdown documentation based on the provided code diff."
)

DOCUMENTATION_STANDARDS = "\n".join(
    [
        "Documentation standards:",
        "- For feature docs, keep documentation for a feature in a single Markdown file and include these sections when applicable:",
        "  - Overview",
        "  - Configuration & Installation",
        "  - API Documentation",
        "  - Troubleshooting",
        "- For release notes (`release-notes.md`):",
        "  - Keep it as a standalone aggregate file.",
        "  - Organize entries by date or version.",
        '  - For new features, add/update a row under "New Features" with columns: Feature | Description | More Information.',
        "  - Link each release-note feature entry to its primary feature documentation file when possible.",
    ]
)

EDITING_RULES = "\n".join(
    [
        "Editing rules (strict):",
        "- Keep unchanged lines verbatim whenever possible.",
        "- Only modify sections directly impacted by the provided code diff.",
        "- Do not reorder existing headings or sections.",
        "- Do not rewrite style/wording of unaffected content.",
        "- Preserve existing Markdown structure unless required by the code change.",
    ]
)

PATCH_FORMAT_RULES = "\n".join(
    [
        "IMPORTANT PATCH FORMAT RULES:",
        "- Include diff header: diff --git a/<path> b/<path>.",
        "- Include --- a/<path> and +++ b/<path> lines.",
        "- Every hunk header must include ranges (example: @@ -10,2 +10,3 @@).",
        "- Do not output bare @@.",
        "- Do not include markdown fences.",
        "- Patch must be directly applicable with git apply.",
    ]
)


def render_style_guide(style_guide: Optional[str]) -> str:
    """Format the optional style guide as a prompt block."""
    if not style_guide or not style_guide.strip():
        return ""
    return f"Style guide (respect tone, voice, formatting):\n{style_guide.strip()}\n"


def render_focus(section: Optional[str], anchor: Optional[str]) -> str:
    """Point the model at the anchored section, when one was configured."""
    if not anchor or not section:
        return ""
    return f"Focus on the section headed '{anchor}'. Relevant excerpt:\n{section}"


def _join(blocks: Sequence[str]) -> str:
    return "\n\n".join(block for block in blocks if block)


def build_patch_prompt(
    *,
    diff: str,
    doc_path: str,
    doc_content: str,
    style_guide: Optional[str] = None,
    section: Optional[str] = None,
    anchor: Optional[str] = None,
) -> str:
    """Ask for a unified diff against the target document."""
    return _join(
        [
            _WRITER_INTRO,
            render_style_guide(style_guide),
            "Constraints: respond with a unified diff patch against the target doc only. "
            "Do not add new files. Keep existing formatting.",
            f"Target doc: {doc_path}",
            render_focus(section, anchor),
            "Code diff:",
            diff,
            "Current doc content (truncate if long):",
            doc_content,
            "Return only the patch between ```patch``` fences.",
        ]
    )


def build_strict_patch_prompt(
    *,
    diff: str,
    doc_path: str,
    doc_content: str,
    style_guide: Optional[str] = None,
    section: Optional[str] = None,
    anchor: Optional[str] = None,
) -> str:
    """Patch prompt with explicit header and hunk-range rules appended."""
    base = build_patch_prompt(
        diff=diff,
        doc_path=doc_path,
        doc_content=doc_content,
        style_guide=style_guide,
        section=section,
        anchor=anchor,
    )
    return "\n".join([base, PATCH_FORMAT_RULES])


def build_full_document_prompt(
    *,
    diff: str,
    doc_path: str,
    doc_content: str,
    style_guide: Optional[str] = None,
    section: Optional[str] = None,
    anchor: Optional[str] = None,
) -> str:
    """Ask for the complete updated Markdown document."""
    return _join(
        [
            _WRITER_INTRO,
            render_style_guide(style_guide),
            DOCUMENTATION_STANDARDS,
            f"Target doc: {doc_path}",
            render_focus(section, anchor),
            EDITING_RULES,
            "Code diff:",
            diff,
            "Current doc content:",
            doc_content,
            "Return the COMPLETE updated Markdown document content only.",
            "Do not include code fences.",
        ]
    )


__all__ = [
    "DOCUMENTATION_STANDARDS",
    "DOCUMENT_SYSTEM_PROMPT",
    "EDITING_RULES",
    "PATCH_FORMAT_RULES",
    "PATCH_SYSTEM_PROMPT",
    "build_full_document_prompt",
    "build_patch_prompt",
    "build_strict_patch_prompt",
    "render_focus",
    "render_style_guide",
]
