"""Terminal-safe text and per-line syntax highlighting for change content.

Neutralizes terminal control bytes before anything reaches the screen and
colorizes single diff lines with Pygments.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from pygments import highlight as pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.util import ClassNotFound

HIGHLIGHT_STYLE = "monokai"
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


_FORMATTER = TerminalFormatter(style=HIGHLIGHT_STYLE)


@lru_cache(maxsize=256)
def _lexer_for_name(filename: str) -> Lexer:
    try:
        return get_lexer_for_filename(filename)
    except ClassNotFound:
        return TextLexer()


def highlight_line(content: str, path: str) -> str:
    """Colorize one line of ``path``'s content; returns a single line."""
    lexer = _lexer_for_name(Path(path).name)
    rendered = pygments_highlight(content, lexer, _FORMATTER)
    return rendered.rstrip("\n").replace("\n", " ")
