"""Raw-mode terminal session for the viewer.

``TerminalController`` is a context manager: entering switches stdin to raw
mode and the screen to the alternate buffer, leaving always puts the saved
tty attributes back, including when the body raises.
"""

from __future__ import annotations

import os
import termios
import tty

ENTER_SCREEN = b"\x1b[?1049h\x1b[?25l"
LEAVE_SCREEN = b"\x1b[?25h\x1b[?1049l"
FALLBACK_SIZE = (80, 24)


class TerminalController:
    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_attrs = termios.tcgetattr(stdin_fd)
        self.active = False

    def size(self) -> tuple[int, int]:
        """Current ``(columns, lines)`` of the output terminal."""
        try:
            size = os.get_terminal_size(self.stdout_fd)
        except OSError:
            return FALLBACK_SIZE
        return (size.columns or FALLBACK_SIZE[0], size.lines or FALLBACK_SIZE[1])

    def enter(self) -> None:
        if self.active:
            return
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        self.active = True
        os.write(self.stdout_fd, ENTER_SCREEN)

    def leave(self) -> None:
        if not self.active:
            return
        self.active = False
        try:
            os.write(self.stdout_fd, LEAVE_SCREEN)
        finally:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_attrs)

    def __enter__(self) -> TerminalController:
        self.enter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.leave()
