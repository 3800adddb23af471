"""Classification of raw status entries into a ``RepositoryIndex``."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .types import (
    SECTION_ORDER,
    ChangeRecord,
    FileEntry,
    FileKey,
    RepositoryIndex,
    SectionKind,
    SectionState,
    StatusEntry,
)


def target_sections(entry: StatusEntry) -> list[SectionKind]:
    """Return the sections an entry belongs to, in display order.

    Untracked wins over unstaged: an untracked path has no index version to
    diff against, so it is never also listed as an unstaged modification.
    """
    kinds: list[SectionKind] = []
    if entry.untracked:
        kinds.append(SectionKind.UNTRACKED)
    elif entry.unstaged:
        kinds.append(SectionKind.UNSTAGED)
    if entry.staged:
        kinds.append(SectionKind.STAGED)
    return kinds


def _ensure_file(files: dict[str, FileEntry], path: str) -> None:
    """Insert an empty collapsed entry unless ``path`` is already present."""
    if path not in files:
        files[path] = FileEntry(path=path)


def build_repository_index(
    entries: Iterable[StatusEntry],
    changes: Mapping[FileKey, tuple[ChangeRecord, ...]] | None = None,
) -> RepositoryIndex:
    """Classify status entries into untracked/unstaged/staged sections.

    Path-less entries are skipped. Repeated entries for one path collapse to
    one file per section, and a partially staged path gets an independent
    entry in both the staged and unstaged sections. ``changes`` optionally
    pre-populates line changes by identity key.
    """
    by_kind: dict[SectionKind, dict[str, FileEntry]] = {kind: {} for kind in SECTION_ORDER}
    for entry in entries:
        if not entry.path:
            continue
        for kind in target_sections(entry):
            _ensure_file(by_kind[kind], entry.path)

    if changes:
        for (kind, path), records in changes.items():
            existing = by_kind[kind].get(path)
            if existing is not None:
                by_kind[kind][path] = FileEntry(path=path, changes=tuple(records))

    return RepositoryIndex(
        tuple(
            SectionState(kind=kind, files=tuple(by_kind[kind].values()))
            for kind in SECTION_ORDER
        )
    )
