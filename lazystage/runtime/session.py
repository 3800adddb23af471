"""Interactive session state and action handlers.

Owns the current ``RepositoryIndex`` and the ``ViewModel`` and applies user
actions to them. Everything here runs on the event-loop thread; refreshed
indexes arrive from ``RefreshScheduler`` and replace the current one whole.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..errors import ChangeFetchFailed, StagingFailed
from ..input import Action
from ..status_model import FileKey, RepositoryIndex, SectionKind
from ..view_model import ViewModel
from .refresh import RefreshScheduler, RepositorySnapshot

logger = logging.getLogger(__name__)

STATUS_MESSAGE_SECONDS = 2.5
GIT_WATCH_POLL_SECONDS = 0.5


class ViewerSession:
    """Owns the index and view for one viewer; ``watch`` returns a git metadata signature."""

    def __init__(
        self,
        snapshot: RepositorySnapshot,
        diff_provider,
        scheduler: RefreshScheduler | None = None,
        *,
        view: ViewModel | None = None,
        watch: Callable[[], str] | None = None,
        refresh_interval_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.diff_provider = diff_provider
        self.scheduler = scheduler
        self.view = view if view is not None else ViewModel()
        self.index = RepositoryIndex()
        self._watch = watch
        self.refresh_interval_seconds = refresh_interval_seconds
        self._clock = clock
        self.dirty = True
        self.scroll_start = 0
        self.status_message = ""
        self.status_message_until = 0.0
        self._last_refresh_at = clock()
        self._last_watch_check_at = clock()
        self._watch_signature = watch() if watch is not None else ""
        self.apply_snapshot(snapshot)

    def set_status(self, message: str) -> None:
        self.status_message = message
        self.status_message_until = self._clock() + STATUS_MESSAGE_SECONDS
        self.dirty = True

    def expire_status(self) -> None:
        if self.status_message and self._clock() >= self.status_message_until:
            self.status_message = ""
            self.status_message_until = 0.0
            self.dirty = True

    def projected_index(self) -> RepositoryIndex:
        """The current index with this session's expansion flags applied."""
        return self.view.project(self.index)

    def apply_snapshot(self, snapshot: RepositorySnapshot, requested: frozenset[FileKey] | None = None) -> None:
        """Replace the index and re-sync the view against it.

        Files expanded after ``requested`` was captured keep the changes they
        already loaded, since the refresh did not reload them.
        """
        previous = self.index
        index = snapshot.index
        live = index.keys()
        for key in self.view.expanded_keys():
            if key not in live or (requested is not None and key in requested):
                continue
            old_entry = previous.section(key[0]).find(key[1])
            if old_entry is not None and old_entry.changes:
                index = index.with_changes(key, old_entry.changes)
        self.index = index
        self.view.sync(index)
        for key, message in snapshot.fetch_errors.items():
            self.view.mark_fetch_failed(key, message)
        self.dirty = True

    def request_refresh(self) -> None:
        self._last_refresh_at = self._clock()
        if self.scheduler is None:
            return
        self.scheduler.schedule(self.view.expanded_keys())

    def poll_refresh(self) -> None:
        """Apply the newest finished refresh and schedule a new one when due.

        A failed refresh raises ``RepositoryUnavailable``.
        """
        if self.scheduler is not None:
            results = self.scheduler.drain_results()
            if results:
                newest = results[-1]
                if newest.error is not None:
                    raise newest.error
                if newest.snapshot is not None:
                    self.apply_snapshot(newest.snapshot, newest.request.expanded_keys)

        now = self._clock()
        if self._watch is not None and now - self._last_watch_check_at >= GIT_WATCH_POLL_SECONDS:
            self._last_watch_check_at = now
            signature = self._watch()
            if signature != self._watch_signature:
                self._watch_signature = signature
                self.request_refresh()
                return
        if now - self._last_refresh_at >= self.refresh_interval_seconds:
            self.request_refresh()

    def load_changes(self, key: FileKey) -> None:
        """Fetch changes for a just-expanded file unless already loaded."""
        kind, path = key
        entry = self.index.section(kind).find(path)
        if entry is None or entry.changes:
            self.view.clear_fetch_error(key)
            return
        try:
            changes = self.diff_provider.fetch_changes(path, kind)
        except ChangeFetchFailed as exc:
            logger.warning("loading changes failed for %s: %s", path, exc)
            self.view.mark_fetch_failed(key, exc.message)
            return
        self.view.clear_fetch_error(key)
        self.index = self.index.with_changes(key, changes)

    def toggle_file(self) -> None:
        key = self.view.toggle_focused_file(self.index)
        if key is not None:
            self.load_changes(key)

    def _stage_focused(self, stage: bool) -> None:
        key = self.view.focused_key(self.index)
        if key is None:
            return
        kind, path = key
        if stage and kind is SectionKind.STAGED:
            self.set_status("already staged")
            return
        if not stage and kind is not SectionKind.STAGED:
            self.set_status("not staged")
            return
        try:
            if stage:
                self.diff_provider.stage(path)
            else:
                self.diff_provider.unstage(path)
        except StagingFailed as exc:
            logger.warning("%s failed for %s: %s", "stage" if stage else "unstage", path, exc)
            self.set_status(str(exc))
            return
        self.set_status(f"{'staged' if stage else 'unstaged'} {path}")
        self.request_refresh()

    def handle_action(self, action: Action) -> bool:
        """Apply one action; returns ``True`` when the viewer should quit."""
        if action is Action.QUIT:
            return True
        if action is Action.NEXT_SECTION:
            self.view.focus_next_section(self.index)
        elif action is Action.PREVIOUS_SECTION:
            self.view.focus_previous_section(self.index)
        elif action is Action.MOVE_DOWN:
            self.view.move_focus_down(self.index)
        elif action is Action.MOVE_UP:
            self.view.move_focus_up(self.index)
        elif action is Action.TOGGLE_SECTION:
            self.view.toggle_focused_section(self.index)
        elif action is Action.TOGGLE_FILE:
            self.toggle_file()
        elif action is Action.STAGE:
            self._stage_focused(True)
        elif action is Action.UNSTAGE:
            self._stage_focused(False)
        elif action is Action.REFRESH:
            self.request_refresh()
        self.dirty = True
        return False
