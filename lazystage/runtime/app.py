"""Runtime composition layer for lazystage.

Opens the repository, builds the first index, wires the session, refresh
scheduler, renderer and key bindings, then runs the event loop.
"""

from __future__ import annotations

import logging
import os
import sys
from functools import partial
from pathlib import Path

from ..git_status import GitDiffProvider, GitStatusProvider, open_repository
from ..input import Action, build_action_registry
from ..render import RenderContext, build_frame_rows, render_frame, row_text
from ..status_model import SECTION_ORDER, SectionKind
from ..view_model import ViewModel
from .config import ViewerConfig
from .loop import RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from .refresh import RefreshScheduler, load_snapshot
from .session import ViewerSession
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def initial_view(expanded_sections: tuple[SectionKind, ...]) -> ViewModel:
    """Build a view with ``expanded_sections`` open and the first of them focused."""
    view = ViewModel(section_expanded={kind: kind in expanded_sections for kind in SECTION_ORDER})
    if expanded_sections:
        view.focused_section = expanded_sections[0]
    return view


def render_once(path: Path, config: ViewerConfig, no_color: bool, expand_files: bool = False) -> str:
    """Render every row of the current view as text, for non-interactive use.

    With ``expand_files`` every file in an expanded section shows its changes.
    """
    repo = open_repository(path)
    status_provider = GitStatusProvider(repo)
    diff_provider = GitDiffProvider(repo)
    snapshot = load_snapshot(status_provider, diff_provider)
    session = ViewerSession(
        snapshot,
        diff_provider,
        view=initial_view(config.expanded_sections),
    )
    if expand_files:
        for key in sorted(session.index.keys(), key=lambda item: (SECTION_ORDER.index(item[0]), item[1])):
            if session.view.is_section_expanded(key[0]):
                session.view.set_file_expanded(key, True)
                session.load_changes(key)
    rows = build_frame_rows(session.projected_index(), session.view, no_color)
    lines = (row_text(row, no_color) for row in rows)
    return "".join(f"{text}\033[0m\n" if "\033" in text else f"{text}\n" for text in lines)


def run_viewer(path: Path, config: ViewerConfig, no_color: bool) -> None:
    """Open the repository at ``path`` and run the interactive viewer.

    ``RepositoryUnavailable`` propagates to the caller, both from the initial
    load (before the terminal changes mode) and from later refreshes (after
    the terminal has been restored).
    """
    if not os.isatty(sys.stdin.fileno()) or not os.isatty(sys.stdout.fileno()):
        sys.stdout.write(render_once(path, config, no_color=True))
        return

    repo = open_repository(path)
    status_provider = GitStatusProvider(repo)
    diff_provider = GitDiffProvider(repo)
    snapshot = load_snapshot(status_provider, diff_provider)
    scheduler = RefreshScheduler(partial(load_snapshot, status_provider, diff_provider))
    session = ViewerSession(
        snapshot,
        diff_provider,
        scheduler,
        view=initial_view(config.expanded_sections),
        watch=repo.watch_signature,
        refresh_interval_seconds=config.refresh_interval_seconds,
    )
    logger.info("viewing %s", repo.root)

    registry = build_action_registry(
        {action: partial(session.handle_action, action) for action in Action}
    )

    def render(columns: int, lines: int) -> None:
        session.expire_status()
        session.scroll_start = render_frame(
            RenderContext(
                index=session.projected_index(),
                view=session.view,
                width=columns,
                max_lines=max(1, lines - 1),
                scroll_start=session.scroll_start,
                status_message=session.status_message,
                repo_label=str(repo.root),
                no_color=no_color,
            )
        )
        session.dirty = False

    def handle_key(key: str) -> bool:
        return bool(registry.dispatch(key))

    def on_idle() -> None:
        session.expire_status()
        session.poll_refresh()

    stdin_fd = sys.stdin.fileno()
    terminal = TerminalController(stdin_fd, sys.stdout.fileno())
    run_main_loop(
        terminal,
        stdin_fd,
        RuntimeLoopTiming(),
        RuntimeLoopCallbacks(
            needs_render=lambda: session.dirty,
            render=render,
            handle_key=handle_key,
            on_idle=on_idle,
        ),
    )
