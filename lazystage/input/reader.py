"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Handles ESC-sequence timing for arrow keys and back-tab.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
UNKNOWN_KEY = "UNKNOWN"
_MAX_CSI_PARAM_BYTES = 16
_PENDING_BYTES: list[bytes] = []

_CONTROL_KEYS: dict[bytes, str] = {
    b"\t": "TAB",
    b" ": "SPACE",
    b"\r": "ENTER",
    b"\n": "ENTER",
    b"\x03": "CTRL_C",
    b"\x12": "CTRL_R",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
}
_CSI_FINAL_KEYS: dict[bytes, str] = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"Z": "SHIFT_TAB",
}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _read_utf8_tail(fd: int, first: bytes) -> str:
    """Complete a multi-byte UTF-8 character whose lead byte is ``first``."""
    lead = first[0]
    if lead >= 0xF0:
        extra = 3
    elif lead >= 0xE0:
        extra = 2
    elif lead >= 0xC0:
        extra = 1
    else:
        extra = 0
    data = first
    for _ in range(extra):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def _read_escape_sequence(fd: int, intro: bytes) -> str:
    """Consume a CSI or SS3 sequence through its final byte.

    Only bare arrow and back-tab finals map to keys. Sequences with
    parameters (PageUp, Ctrl-arrows, ...) or a truncated tail become
    ``UNKNOWN_KEY`` so none of their bytes leak out as separate keys.
    """
    params = b""
    while True:
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            return UNKNOWN_KEY
        if intro == b"O" or 0x40 <= nxt[0] <= 0x7E:
            break
        params += nxt
        if len(params) > _MAX_CSI_PARAM_BYTES:
            return UNKNOWN_KEY
    if params:
        return UNKNOWN_KEY
    return _CSI_FINAL_KEYS.get(nxt, UNKNOWN_KEY)


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read one key token from ``fd``.

    Returns ``""`` when ``timeout_ms`` elapses with no input, so the caller
    can run idle work between keypresses.
    """
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    control = _CONTROL_KEYS.get(ch)
    if control is not None:
        return control

    if ch != b"\x1b":
        return _read_utf8_tail(fd, ch)

    # Escape / arrow key sequences.
    intro = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if intro is None:
        return "ESC"
    if intro not in {b"[", b"O"}:
        _PENDING_BYTES.append(intro)
        return "ESC"
    return _read_escape_sequence(fd, intro)
