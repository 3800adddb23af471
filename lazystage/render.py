"""Frame composition for the section/file view.

Turns a projected ``RepositoryIndex`` plus the ``ViewModel`` into rows and
writes full ANSI frames. Reads state only; never mutates it.

Change rows are laid out as plain text and only syntax-highlighted when
they land inside the visible window, so an expanded file with thousands of
changes costs one Pygments call per visible row, not per change.
"""

from __future__ import annotations

import os
import re
import sys
import unicodedata
from dataclasses import dataclass

from .highlight import highlight_line, sanitize_terminal_text
from .status_model import ChangeKind, ChangeRecord, FileEntry, RepositoryIndex, flatten_file_lines, section_title
from .view_model import ViewModel

HELP_TEXT = "│ tab section  e expand  ⏎ file  s/u stage  q quit"
TAB_WIDTH = 8
_RESET = "\033[0m"
_HEADER_SGR = "\033[1;33m"
_FOCUS_SGR = "\033[7m"
_ERROR_SGR = "\033[31m"
_ADDED_SGR = "\033[48;2;36;74;52m"
_REMOVED_SGR = "\033[48;2;92;43;49m"
_KIND_PREFIX = {ChangeKind.ADDITION: "+", ChangeKind.DELETION: "-"}
_CHANGE_INDENT = "      "
# Capturing split: odd items are escape sequences, even items plain text.
_ESCAPE_SPLIT_RE = re.compile(r"(\x1b\[[0-9;?]*[ -/]*[@-~])")


@dataclass(frozen=True)
class FrameRow:
    """One screen row.

    ``focused`` marks the row carrying the cursor. Change rows also carry
    their ``change`` and file ``path`` so highlighting can be applied late.
    """

    text: str
    focused: bool = False
    change: ChangeRecord | None = None
    path: str = ""


@dataclass
class RenderContext:
    index: RepositoryIndex
    view: ViewModel
    width: int
    max_lines: int
    scroll_start: int = 0
    status_message: str = ""
    repo_label: str = ""
    no_color: bool = False


def _paint(sgr: str, text: str, no_color: bool) -> str:
    if no_color:
        return text
    return f"{sgr}{text}{_RESET}"


def _cell_width(ch: str) -> int:
    if unicodedata.combining(ch):
        return 0
    return 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1


def fit_to_width(text: str, width: int) -> tuple[str, int]:
    """Cut ``text`` to at most ``width`` terminal cells.

    Escape sequences pass through without using cells, wide characters use
    two, and tabs become spaces up to the next tab stop. Returns the cut
    text and the number of cells it fills.
    """
    out: list[str] = []
    used = 0
    for position, part in enumerate(_ESCAPE_SPLIT_RE.split(text)):
        if position % 2:
            out.append(part)
            continue
        for ch in part:
            if ch == "\t":
                ch = " " * (TAB_WIDTH - used % TAB_WIDTH)
                cells = len(ch)
            else:
                cells = _cell_width(ch)
            if used + cells > width:
                return "".join(out), used
            out.append(ch)
            used += cells
    return "".join(out), used


def _change_rows(entry: FileEntry) -> list[FrameRow]:
    return [
        FrameRow(f"{_CHANGE_INDENT}{_KIND_PREFIX[change.kind]} {line}", change=change, path=entry.path)
        for change, line in zip(entry.changes, flatten_file_lines(entry))
    ]


def row_text(row: FrameRow, no_color: bool = False) -> str:
    """Display text of ``row``; change rows get highlighting unless ``no_color``."""
    change = row.change
    if change is None or no_color:
        return row.text
    background = _ADDED_SGR if change.kind is ChangeKind.ADDITION else _REMOVED_SGR
    styled = highlight_line(change.content, row.path)
    # Re-assert the background after every reset emitted by the highlighter.
    styled = styled.replace(_RESET, _RESET + background)
    prefix = _KIND_PREFIX[change.kind]
    return f"{_CHANGE_INDENT}{background}{prefix} {change.line_number}: {styled}\033[K{_RESET}"


def build_frame_rows(
    index: RepositoryIndex,
    view: ViewModel,
    no_color: bool = False,
) -> list[FrameRow]:
    """Lay out section headers, files, and expanded change lines.

    ``index`` must already carry the view's expansion flags (see
    ``ViewModel.project``). Collapsed sections hide their files.
    """
    rows: list[FrameRow] = []
    for section in index.sections:
        focused_section = section.kind is view.focused_section
        header = f"{section_title(section.kind, section.expanded)} ({len(section.files)})"
        rows.append(
            FrameRow(
                _paint(_HEADER_SGR, header, no_color),
                focused=focused_section and view.focused_file_index is None,
            )
        )
        if not section.expanded:
            continue
        for file_idx, entry in enumerate(section.files):
            marker = "▼" if entry.expanded else " "
            text = f"  {marker} {sanitize_terminal_text(entry.path)}"
            error = view.file_errors.get((section.kind, entry.path))
            if error and not entry.expanded:
                text += " " + _paint(_ERROR_SGR, f"[!] {sanitize_terminal_text(error)}", no_color)
            rows.append(
                FrameRow(
                    text,
                    focused=focused_section and view.focused_file_index == file_idx,
                )
            )
            if entry.expanded:
                rows.extend(_change_rows(entry))
    return rows


def focused_row_index(rows: list[FrameRow]) -> int:
    for idx, row in enumerate(rows):
        if row.focused:
            return idx
    return 0


def clamp_scroll_start(scroll_start: int, focus_row: int, total_rows: int, visible_rows: int) -> int:
    """Keep ``focus_row`` inside a ``visible_rows`` tall window."""
    visible_rows = max(1, visible_rows)
    if focus_row < scroll_start:
        scroll_start = focus_row
    elif focus_row >= scroll_start + visible_rows:
        scroll_start = focus_row - visible_rows + 1
    return max(0, min(scroll_start, max(0, total_rows - visible_rows)))


def build_status_line(left_text: str, width: int, right_text: str = HELP_TEXT) -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left_limit = max(0, usable - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (usable - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def _screen_line(row: FrameRow, width: int, no_color: bool) -> str:
    if not row.focused:
        text, _used = fit_to_width(row_text(row, no_color), width)
        return text
    if no_color:
        text, _used = fit_to_width(f"> {row.text}", width)
        return text
    text, used = fit_to_width(row_text(row), width)
    body = text.replace(_RESET, _RESET + _FOCUS_SGR)
    return f"{_FOCUS_SGR}{body}{' ' * (width - used)}"


def render_frame(context: RenderContext) -> int:
    """Write one full frame to stdout and return the scroll start used."""
    rows = build_frame_rows(context.index, context.view, context.no_color)
    content_rows = max(1, context.max_lines)
    scroll_start = clamp_scroll_start(
        context.scroll_start,
        focused_row_index(rows),
        len(rows),
        content_rows,
    )
    line_width = max(1, context.width - 1)

    out: list[str] = ["\033[H\033[J"]
    for row in rows[scroll_start : scroll_start + content_rows]:
        text = _screen_line(row, line_width, context.no_color)
        out.append(text)
        if "\033" in text:
            out.append(_RESET)
        out.append("\r\n")

    left_status = context.status_message or context.repo_label
    out.append("\033[7m")
    out.append(build_status_line(left_status, context.width))
    out.append(_RESET)
    os.write(sys.stdout.fileno(), "".join(out).encode("utf-8", errors="replace"))
    return scroll_start
