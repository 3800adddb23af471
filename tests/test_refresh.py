from __future__ import annotations

import threading
import time
import unittest

from lazystage.errors import ChangeFetchFailed, RepositoryUnavailable
from lazystage.runtime.refresh import RefreshScheduler, RepositorySnapshot, load_snapshot
from lazystage.status_model import ChangeKind, ChangeRecord, RepositoryIndex, SectionKind, StatusEntry


class _FakeStatus:
    def __init__(self, entries: list[StatusEntry]) -> None:
        self.entries = entries

    def fetch_status(self) -> list[StatusEntry]:
        return list(self.entries)


class _FakeDiffs:
    def __init__(self, changes: dict | None = None, failing: set | None = None) -> None:
        self.changes = changes or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, SectionKind]] = []

    def fetch_changes(self, path: str, kind: SectionKind = SectionKind.UNSTAGED):
        self.calls.append((path, kind))
        if path in self.failing:
            raise ChangeFetchFailed("diff exploded", path=path)
        return self.changes.get((kind, path), ())


def _wait_for_idle(scheduler: RefreshScheduler, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while scheduler.busy and time.monotonic() < deadline:
        time.sleep(0.005)


class LoadSnapshotTests(unittest.TestCase):
    def test_reloads_changes_only_for_live_expanded_keys(self) -> None:
        change = ChangeRecord(10, "+x", ChangeKind.ADDITION)
        diffs = _FakeDiffs(changes={(SectionKind.UNSTAGED, "a.txt"): (change,)})

        snapshot = load_snapshot(
            _FakeStatus([StatusEntry("a.txt", unstaged=True)]),
            diffs,
            [(SectionKind.UNSTAGED, "a.txt"), (SectionKind.STAGED, "gone.txt")],
        )

        self.assertEqual(diffs.calls, [("a.txt", SectionKind.UNSTAGED)])
        self.assertEqual(snapshot.index.section(SectionKind.UNSTAGED).find("a.txt").changes, (change,))
        self.assertEqual(snapshot.fetch_errors, {})

    def test_failed_change_load_is_recorded_per_file(self) -> None:
        snapshot = load_snapshot(
            _FakeStatus([StatusEntry("a.txt", unstaged=True), StatusEntry("b.txt", unstaged=True)]),
            _FakeDiffs(failing={"a.txt"}),
            [(SectionKind.UNSTAGED, "a.txt"), (SectionKind.UNSTAGED, "b.txt")],
        )

        self.assertEqual(snapshot.fetch_errors, {(SectionKind.UNSTAGED, "a.txt"): "diff exploded"})
        self.assertEqual(snapshot.index.section(SectionKind.UNSTAGED).paths(), ["a.txt", "b.txt"])

    def test_status_failure_propagates(self) -> None:
        class _Broken:
            def fetch_status(self):
                raise RepositoryUnavailable("gone")

        with self.assertRaises(RepositoryUnavailable):
            load_snapshot(_Broken(), _FakeDiffs())


class RefreshSchedulerTests(unittest.TestCase):
    def test_requests_made_while_busy_collapse_to_latest(self) -> None:
        release = threading.Event()
        started = threading.Event()
        seen: list[frozenset] = []

        def load(keys: frozenset) -> RepositorySnapshot:
            seen.append(keys)
            started.set()
            release.wait(2.0)
            return RepositorySnapshot(index=RepositoryIndex())

        scheduler = RefreshScheduler(load)
        first = scheduler.schedule()
        self.assertTrue(started.wait(2.0))
        scheduler.schedule([(SectionKind.STAGED, "old")])
        last = scheduler.schedule([(SectionKind.STAGED, "new")])
        release.set()
        _wait_for_idle(scheduler)

        results = scheduler.drain_results()
        self.assertEqual([result.request.request_id for result in results], [first, last])
        self.assertEqual(seen, [frozenset(), frozenset({(SectionKind.STAGED, "new")})])
        self.assertFalse(scheduler.busy)

    def test_unavailable_repository_is_reported_as_result_error(self) -> None:
        def load(_keys: frozenset) -> RepositorySnapshot:
            raise RepositoryUnavailable("not a git repository")

        scheduler = RefreshScheduler(load)
        scheduler.schedule()
        _wait_for_idle(scheduler)

        results = scheduler.drain_results()
        self.assertEqual(len(results), 1)
        self.assertIsNone(results[0].snapshot)
        self.assertIsInstance(results[0].error, RepositoryUnavailable)

    def test_drain_results_is_empty_without_work(self) -> None:
        scheduler = RefreshScheduler(lambda _keys: RepositorySnapshot(index=RepositoryIndex()))

        self.assertEqual(scheduler.drain_results(), [])


if __name__ == "__main__":
    unittest.main()
