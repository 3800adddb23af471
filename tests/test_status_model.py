"""Tests for status classification, section invariants, and line flattening."""

from __future__ import annotations

import unittest

from lazystage.errors import InvariantViolation
from lazystage.status_model import (
    SECTION_ORDER,
    ChangeKind,
    ChangeRecord,
    FileEntry,
    RepositoryIndex,
    SectionKind,
    SectionState,
    StatusEntry,
    build_repository_index,
    flatten_file_lines,
    section_title,
)


class ClassificationTests(unittest.TestCase):
    def test_staged_and_unstaged_entries_land_in_their_sections(self) -> None:
        index = build_repository_index(
            [
                StatusEntry(path="a.txt", staged=True, unstaged=False),
                StatusEntry(path="b.txt", staged=False, unstaged=True),
            ]
        )

        self.assertEqual(index.section(SectionKind.STAGED).files, (FileEntry("a.txt", False, ()),))
        self.assertEqual(index.section(SectionKind.UNSTAGED).files, (FileEntry("b.txt", False, ()),))
        self.assertEqual(index.section(SectionKind.UNTRACKED).files, ())

    def test_all_three_sections_exist_for_empty_status(self) -> None:
        index = build_repository_index([])

        self.assertEqual(tuple(section.kind for section in index.sections), SECTION_ORDER)
        self.assertTrue(all(not section.files for section in index.sections))

    def test_repeated_entries_do_not_duplicate_paths(self) -> None:
        index = build_repository_index(
            [
                StatusEntry(path="a.txt", staged=True),
                StatusEntry(path="a.txt", staged=True, unstaged=True),
                StatusEntry(path="a.txt", unstaged=True),
                StatusEntry(path="new.txt", untracked=True),
                StatusEntry(path="new.txt", untracked=True),
            ]
        )

        for section in index.sections:
            paths = section.paths()
            self.assertEqual(len(paths), len(set(paths)))
        self.assertEqual(index.section(SectionKind.STAGED).paths(), ["a.txt"])
        self.assertEqual(index.section(SectionKind.UNSTAGED).paths(), ["a.txt"])
        self.assertEqual(index.section(SectionKind.UNTRACKED).paths(), ["new.txt"])

    def test_partially_staged_file_gets_independent_entries(self) -> None:
        index = build_repository_index([StatusEntry(path="mixed.py", staged=True, unstaged=True)])

        staged = index.section(SectionKind.STAGED).find("mixed.py")
        unstaged = index.section(SectionKind.UNSTAGED).find("mixed.py")
        self.assertIsNotNone(staged)
        self.assertIsNotNone(unstaged)
        self.assertIsNot(staged, unstaged)

    def test_entries_without_path_are_skipped(self) -> None:
        index = build_repository_index(
            [
                StatusEntry(path=None, staged=True),
                StatusEntry(path="", unstaged=True),
                StatusEntry(path="kept.txt", unstaged=True),
            ]
        )

        self.assertEqual(index.keys(), {(SectionKind.UNSTAGED, "kept.txt")})

    def test_untracked_entry_is_not_listed_as_unstaged(self) -> None:
        index = build_repository_index([StatusEntry(path="n.txt", unstaged=True, untracked=True)])

        self.assertEqual(index.section(SectionKind.UNTRACKED).paths(), ["n.txt"])
        self.assertEqual(index.section(SectionKind.UNSTAGED).paths(), [])

    def test_provider_order_is_preserved(self) -> None:
        index = build_repository_index(
            [StatusEntry(path=name, unstaged=True) for name in ("z.txt", "a.txt", "m.txt")]
        )

        self.assertEqual(index.section(SectionKind.UNSTAGED).paths(), ["z.txt", "a.txt", "m.txt"])

    def test_prepopulated_changes_attach_by_identity(self) -> None:
        record = ChangeRecord(3, "x", ChangeKind.ADDITION)
        index = build_repository_index(
            [StatusEntry(path="a.txt", staged=True, unstaged=True)],
            changes={
                (SectionKind.STAGED, "a.txt"): (record,),
                (SectionKind.UNTRACKED, "gone.txt"): (record,),
            },
        )

        self.assertEqual(index.section(SectionKind.STAGED).find("a.txt").changes, (record,))
        self.assertEqual(index.section(SectionKind.UNSTAGED).find("a.txt").changes, ())
        self.assertEqual(index.section(SectionKind.UNTRACKED).files, ())


class SectionInvariantTests(unittest.TestCase):
    def test_duplicate_paths_raise_invariant_violation(self) -> None:
        with self.assertRaises(InvariantViolation):
            SectionState(SectionKind.STAGED, files=(FileEntry("a"), FileEntry("a")))

    def test_index_requires_every_section_in_order(self) -> None:
        with self.assertRaises(InvariantViolation):
            RepositoryIndex((SectionState(SectionKind.STAGED),))

    def test_with_changes_returns_new_index_and_leaves_original(self) -> None:
        index = build_repository_index([StatusEntry(path="a.txt", unstaged=True)])
        record = ChangeRecord(1, "hello", ChangeKind.DELETION)

        updated = index.with_changes((SectionKind.UNSTAGED, "a.txt"), (record,))

        self.assertEqual(index.section(SectionKind.UNSTAGED).find("a.txt").changes, ())
        self.assertEqual(updated.section(SectionKind.UNSTAGED).find("a.txt").changes, (record,))


class FlattenTests(unittest.TestCase):
    def test_collapsed_file_flattens_to_its_path(self) -> None:
        entry = FileEntry("src/app.py", expanded=False, changes=(ChangeRecord(1, "x", ChangeKind.ADDITION),))

        self.assertEqual(flatten_file_lines(entry), ["src/app.py"])

    def test_expanded_file_flattens_changes_in_stored_order(self) -> None:
        entry = FileEntry(
            "a.txt",
            expanded=True,
            changes=(
                ChangeRecord(10, "+x", ChangeKind.ADDITION),
                ChangeRecord(4, "old", ChangeKind.DELETION),
            ),
        )

        self.assertEqual(flatten_file_lines(entry), ["10: +x", "4: old"])
        self.assertEqual(flatten_file_lines(entry), flatten_file_lines(entry))

    def test_expanded_file_without_changes_has_no_lines(self) -> None:
        self.assertEqual(flatten_file_lines(FileEntry("a.txt", expanded=True)), [])

    def test_section_title_reflects_expansion(self) -> None:
        self.assertEqual(section_title(SectionKind.STAGED, False), "▶ staged files")
        self.assertEqual(section_title(SectionKind.UNTRACKED, True), "▼ untracked files")


if __name__ == "__main__":
    unittest.main()
