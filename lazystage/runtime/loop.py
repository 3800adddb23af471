"""Main interactive event loop for the terminal UI.

Alternates between a redraw (when state is dirty) and a key poll with a
timeout; idle ticks drive refresh polling. Feature logic lives in callbacks.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..input import read_key
from .terminal import TerminalController


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    key_poll_timeout_ms: int = 120


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected operations used by ``run_main_loop``.

    ``render`` receives the terminal size and returns nothing; ``handle_key``
    returns ``True`` to quit; ``on_idle`` runs when a poll times out.
    """

    needs_render: Callable[[], bool]
    render: Callable[[int, int], None]
    handle_key: Callable[[str], bool]
    on_idle: Callable[[], None]


def run_main_loop(
    terminal: TerminalController,
    stdin_fd: int,
    timing: RuntimeLoopTiming,
    callbacks: RuntimeLoopCallbacks,
) -> None:
    """Run the interactive loop until a quit action occurs.

    Exceptions from callbacks propagate after the terminal is restored.
    """
    ops = callbacks
    last_size: tuple[int, int] | None = None
    with terminal:
        while True:
            size = terminal.size()
            if ops.needs_render() or size != last_size:
                ops.render(*size)
                last_size = size

            try:
                key = read_key(stdin_fd, timeout_ms=timing.key_poll_timeout_ms)
            except KeyboardInterrupt:
                continue
            if key == "":
                ops.on_idle()
                continue
            if ops.handle_key(key):
                break
