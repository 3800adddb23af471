"""Input-layer public API: raw key decoding and action dispatch."""

from .reader import ESC_SEQUENCE_TIMEOUT_MS, UNKNOWN_KEY, _PENDING_BYTES, read_key
from .registry import (
    DEFAULT_KEY_BINDINGS,
    Action,
    KeyComboBinding,
    KeyComboRegistry,
    build_action_registry,
)

__all__ = [
    "read_key",
    "_PENDING_BYTES",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "UNKNOWN_KEY",
    "Action",
    "DEFAULT_KEY_BINDINGS",
    "KeyComboBinding",
    "KeyComboRegistry",
    "build_action_registry",
]
