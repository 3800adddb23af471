"""Background repository refresh with latest-request-wins coalescing.

At most one refresh runs at a time. A request made while one is running
replaces any pending request instead of queueing behind it. Completed
snapshots are handed to the event loop whole, through a queue.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from queue import Empty, Queue

from ..errors import ChangeFetchFailed, RepositoryUnavailable
from ..status_model import ChangeRecord, FileKey, RepositoryIndex, build_repository_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositorySnapshot:
    """A freshly built index plus change loads that failed while building it."""

    index: RepositoryIndex
    fetch_errors: dict[FileKey, str] = field(default_factory=dict)


def load_snapshot(
    status_provider,
    diff_provider,
    expanded_keys: Iterable[FileKey] = (),
) -> RepositorySnapshot:
    """Fetch status, then reload changes for files that are still expanded.

    Raises ``RepositoryUnavailable`` when status cannot be enumerated. A
    failed change load only records an error for that file.
    """
    entries = status_provider.fetch_status()
    index = build_repository_index(entries)
    live = index.keys()
    changes: dict[FileKey, tuple[ChangeRecord, ...]] = {}
    errors: dict[FileKey, str] = {}
    for key in expanded_keys:
        if key not in live:
            continue
        kind, path = key
        try:
            changes[key] = diff_provider.fetch_changes(path, kind)
        except ChangeFetchFailed as exc:
            logger.warning("reloading changes failed for %s: %s", path, exc)
            errors[key] = exc.message
    if changes:
        index = build_repository_index(entries, changes)
    return RepositorySnapshot(index=index, fetch_errors=errors)


@dataclass(frozen=True)
class RefreshRequest:
    request_id: int
    expanded_keys: frozenset[FileKey]


@dataclass(frozen=True)
class RefreshResult:
    """Completed refresh: exactly one of ``snapshot``/``error`` is set."""

    request: RefreshRequest
    snapshot: RepositorySnapshot | None = None
    error: RepositoryUnavailable | None = None


class RefreshScheduler:
    """Single-worker refresh scheduler; newer requests supersede pending ones."""

    def __init__(self, load: Callable[[frozenset[FileKey]], RepositorySnapshot]) -> None:
        self._load = load
        self._lock = threading.Lock()
        self._pending: RefreshRequest | None = None
        self._running = False
        self._next_request_id = 1
        self._results: Queue[RefreshResult] = Queue()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._running

    def _worker(self) -> None:
        while True:
            with self._lock:
                request = self._pending
                self._pending = None
                if request is None:
                    self._running = False
                    return

            try:
                snapshot = self._load(request.expanded_keys)
            except RepositoryUnavailable as exc:
                logger.error("refresh %d failed: %s", request.request_id, exc)
                self._results.put(RefreshResult(request=request, error=exc))
                continue
            self._results.put(RefreshResult(request=request, snapshot=snapshot))

    def schedule(self, expanded_keys: Iterable[FileKey] = ()) -> int:
        """Queue or replace the pending refresh and return its request id."""
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            self._pending = RefreshRequest(request_id=request_id, expanded_keys=frozenset(expanded_keys))
            if self._running:
                logger.debug("refresh %d supersedes pending request", request_id)
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="lazystage-refresh",
            daemon=True,
        )
        worker.start()
        return request_id

    def drain_results(self) -> list[RefreshResult]:
        """Drain all completed refresh results in completion order."""
        out: list[RefreshResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out
