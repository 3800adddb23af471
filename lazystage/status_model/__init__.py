"""Change-tracking model for the working tree.

Defines the section/file/change value types, classification of raw status
entries, and pure display projections.
"""

from __future__ import annotations

from .build import build_repository_index, target_sections
from .flatten import SECTION_TITLES, flatten_file_lines, section_title
from .types import (
    SECTION_ORDER,
    ChangeKind,
    ChangeRecord,
    FileEntry,
    FileKey,
    RepositoryIndex,
    SectionKind,
    SectionState,
    StatusEntry,
)

__all__ = [
    "SECTION_ORDER",
    "SECTION_TITLES",
    "ChangeKind",
    "ChangeRecord",
    "FileEntry",
    "FileKey",
    "RepositoryIndex",
    "SectionKind",
    "SectionState",
    "StatusEntry",
    "build_repository_index",
    "flatten_file_lines",
    "section_title",
    "target_sections",
]
