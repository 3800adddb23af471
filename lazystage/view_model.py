"""Expansion and focus state that survives repository index rebuilds.

Expansion flags are keyed by ``(section kind, path)`` rather than by row
index, so restaging a file or reordering status output never moves a flag
onto a different file. Operations mutate only the view model; they read the
current ``RepositoryIndex`` for section sizes but never change it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .status_model import (
    SECTION_ORDER,
    FileEntry,
    FileKey,
    RepositoryIndex,
    SectionKind,
)


@dataclass
class ViewModel:
    section_expanded: dict[SectionKind, bool] = field(
        default_factory=lambda: {kind: False for kind in SECTION_ORDER}
    )
    file_expanded: dict[FileKey, bool] = field(default_factory=dict)
    focused_section: SectionKind = SectionKind.UNTRACKED
    focused_file_index: int | None = None
    file_errors: dict[FileKey, str] = field(default_factory=dict)

    def is_section_expanded(self, kind: SectionKind) -> bool:
        return self.section_expanded.get(kind, False)

    def is_file_expanded(self, key: FileKey) -> bool:
        return self.file_expanded.get(key, False)

    def _focused_len(self, index: RepositoryIndex) -> int:
        return len(index.section(self.focused_section).files)

    def _first_file_or_none(self, index: RepositoryIndex) -> int | None:
        if self.is_section_expanded(self.focused_section) and self._focused_len(index) > 0:
            return 0
        return None

    def _cycle_section(self, index: RepositoryIndex, step: int) -> None:
        position = SECTION_ORDER.index(self.focused_section)
        self.focused_section = SECTION_ORDER[(position + step) % len(SECTION_ORDER)]
        self.focused_file_index = self._first_file_or_none(index)

    def focus_next_section(self, index: RepositoryIndex) -> None:
        """Focus the next section, wrapping from staged back to untracked."""
        self._cycle_section(index, 1)

    def focus_previous_section(self, index: RepositoryIndex) -> None:
        """Focus the previous section, wrapping from untracked to staged."""
        self._cycle_section(index, -1)

    def _move_focus(self, index: RepositoryIndex, delta: int) -> None:
        if not self.is_section_expanded(self.focused_section):
            return
        count = self._focused_len(index)
        if count == 0:
            return
        if self.focused_file_index is None:
            self.focused_file_index = 0
            return
        self.focused_file_index = max(0, min(count - 1, self.focused_file_index + delta))

    def move_focus_down(self, index: RepositoryIndex) -> None:
        """Move file focus down one row, stopping at the last file."""
        self._move_focus(index, 1)

    def move_focus_up(self, index: RepositoryIndex) -> None:
        """Move file focus up one row, stopping at the first file."""
        self._move_focus(index, -1)

    def toggle_focused_section(self, index: RepositoryIndex) -> None:
        """Flip the focused section; file flags inside it are preserved."""
        kind = self.focused_section
        expanded = not self.is_section_expanded(kind)
        self.section_expanded[kind] = expanded
        self.focused_file_index = self._first_file_or_none(index) if expanded else None

    def focused_key(self, index: RepositoryIndex) -> FileKey | None:
        entry = self.focused_file(index)
        if entry is None:
            return None
        return (self.focused_section, entry.path)

    def focused_file(self, index: RepositoryIndex) -> FileEntry | None:
        """Return the focused file when its section is expanded, else ``None``."""
        if not self.is_section_expanded(self.focused_section):
            return None
        if self.focused_file_index is None:
            return None
        files = index.section(self.focused_section).files
        if not 0 <= self.focused_file_index < len(files):
            return None
        return files[self.focused_file_index]

    def toggle_focused_file(self, index: RepositoryIndex) -> FileKey | None:
        """Flip the focused file's expansion flag.

        Returns the file's key when it just became expanded so the caller can
        load its changes; returns ``None`` when it collapsed or when no file
        is focusable.
        """
        key = self.focused_key(index)
        if key is None:
            return None
        expanded = not self.is_file_expanded(key)
        self.file_expanded[key] = expanded
        return key if expanded else None

    def set_file_expanded(self, key: FileKey, expanded: bool) -> None:
        self.file_expanded[key] = expanded

    def mark_fetch_failed(self, key: FileKey, message: str) -> None:
        """Collapse ``key`` and remember an inline error for it."""
        self.file_expanded[key] = False
        self.file_errors[key] = message

    def clear_fetch_error(self, key: FileKey) -> None:
        self.file_errors.pop(key, None)

    def expanded_keys(self) -> set[FileKey]:
        return {key for key, expanded in self.file_expanded.items() if expanded}

    def sync(self, index: RepositoryIndex) -> None:
        """Re-align with a freshly built index.

        Entries for identities that disappeared are dropped, so a path that
        comes back later starts collapsed. Surviving entries are untouched.
        Focus is clamped to the focused section's new bounds.
        """
        live = index.keys()
        for key in [key for key in self.file_expanded if key not in live]:
            del self.file_expanded[key]
        for key in [key for key in self.file_errors if key not in live]:
            del self.file_errors[key]

        if not self.is_section_expanded(self.focused_section):
            self.focused_file_index = None
            return
        count = self._focused_len(index)
        if count == 0:
            self.focused_file_index = None
        elif self.focused_file_index is None:
            self.focused_file_index = 0
        else:
            self.focused_file_index = min(self.focused_file_index, count - 1)

    def project(self, index: RepositoryIndex) -> RepositoryIndex:
        """Return a copy of ``index`` carrying this view's expansion flags."""
        sections = []
        for section in index.sections:
            files = tuple(
                replace(entry, expanded=self.is_file_expanded((section.kind, entry.path)))
                for entry in section.files
            )
            sections.append(
                replace(
                    section,
                    expanded=self.is_section_expanded(section.kind),
                    files=files,
                )
            )
        return RepositoryIndex(tuple(sections))
