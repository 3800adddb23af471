"""Value types for the staged/unstaged/untracked change model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from ..errors import InvariantViolation


class ChangeKind(Enum):
    """Direction of one line-level change."""

    ADDITION = "addition"
    DELETION = "deletion"


class SectionKind(Enum):
    """The three fixed file groups, declared in display order."""

    UNTRACKED = "untracked"
    UNSTAGED = "unstaged"
    STAGED = "staged"


SECTION_ORDER: tuple[SectionKind, ...] = (
    SectionKind.UNTRACKED,
    SectionKind.UNSTAGED,
    SectionKind.STAGED,
)

# Identity of one file row; stable across index rebuilds.
FileKey = tuple[SectionKind, str]


@dataclass(frozen=True)
class ChangeRecord:
    """One added or deleted line.

    Additions carry their line number in the new file, deletions their line
    number in the old file. ``content`` excludes the ``+``/``-`` marker.
    """

    line_number: int
    content: str
    kind: ChangeKind


@dataclass(frozen=True)
class StatusEntry:
    """One raw working-tree entry as reported by a status provider."""

    path: str | None
    staged: bool = False
    unstaged: bool = False
    untracked: bool = False


@dataclass(frozen=True)
class FileEntry:
    """One file row inside a section."""

    path: str
    expanded: bool = False
    changes: tuple[ChangeRecord, ...] = ()


@dataclass(frozen=True)
class SectionState:
    """One section and its files in provider order.

    File paths are unique. Duplicates raise ``InvariantViolation`` unless
    Python runs with assertions disabled, in which case the first
    occurrence of each path is kept.
    """

    kind: SectionKind
    expanded: bool = False
    files: tuple[FileEntry, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        unique: list[FileEntry] = []
        for entry in self.files:
            if entry.path in seen:
                if __debug__:
                    raise InvariantViolation(
                        f"duplicate path in {self.kind.value} section",
                        path=entry.path,
                    )
                continue
            seen.add(entry.path)
            unique.append(entry)
        if len(unique) != len(self.files):
            object.__setattr__(self, "files", tuple(unique))

    def paths(self) -> list[str]:
        return [entry.path for entry in self.files]

    def find(self, path: str) -> FileEntry | None:
        for entry in self.files:
            if entry.path == path:
                return entry
        return None


@dataclass(frozen=True)
class RepositoryIndex:
    """Snapshot of all three sections, rebuilt wholesale on each refresh."""

    sections: tuple[SectionState, ...] = field(
        default_factory=lambda: tuple(SectionState(kind) for kind in SECTION_ORDER)
    )

    def __post_init__(self) -> None:
        kinds = tuple(section.kind for section in self.sections)
        if kinds != SECTION_ORDER:
            raise InvariantViolation(
                "repository index needs exactly one section per kind in display order"
            )

    def section(self, kind: SectionKind) -> SectionState:
        return self.sections[SECTION_ORDER.index(kind)]

    def keys(self) -> set[FileKey]:
        """Return identity keys of every file in every section."""
        return {
            (section.kind, entry.path)
            for section in self.sections
            for entry in section.files
        }

    def with_changes(self, key: FileKey, changes: tuple[ChangeRecord, ...]) -> RepositoryIndex:
        """Return a new index where the file at ``key`` carries ``changes``."""
        kind, path = key
        sections: list[SectionState] = []
        for section in self.sections:
            if section.kind != kind:
                sections.append(section)
                continue
            files = tuple(
                replace(entry, changes=tuple(changes)) if entry.path == path else entry
                for entry in section.files
            )
            sections.append(replace(section, files=files))
        return RepositoryIndex(tuple(sections))
