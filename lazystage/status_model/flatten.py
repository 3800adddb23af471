"""Render-facing projections of model values into display text."""

from __future__ import annotations

from .types import FileEntry, SectionKind

SECTION_TITLES: dict[SectionKind, str] = {
    SectionKind.UNTRACKED: "untracked files",
    SectionKind.UNSTAGED: "unstaged files",
    SectionKind.STAGED: "staged files",
}
EXPANDED_MARKER = "▼"
COLLAPSED_MARKER = "▶"


def flatten_file_lines(entry: FileEntry) -> list[str]:
    """Return display lines for one file.

    A collapsed file is its path; an expanded file is one
    ``"{line_number}: {content}"`` line per change in stored order.
    """
    if not entry.expanded:
        return [entry.path]
    return [f"{change.line_number}: {change.content}" for change in entry.changes]


def section_title(kind: SectionKind, expanded: bool) -> str:
    """Header text with an expand/collapse marker, e.g. ``"▶ staged files"``."""
    marker = EXPANDED_MARKER if expanded else COLLAPSED_MARKER
    return f"{marker} {SECTION_TITLES[kind]}"
