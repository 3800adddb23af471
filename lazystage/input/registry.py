"""Key token to user action mapping."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class Action(Enum):
    """Discrete user intents understood by the event loop."""

    QUIT = "quit"
    NEXT_SECTION = "next_section"
    PREVIOUS_SECTION = "previous_section"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    TOGGLE_SECTION = "toggle_section"
    TOGGLE_FILE = "toggle_file"
    STAGE = "stage"
    UNSTAGE = "unstage"
    REFRESH = "refresh"


DEFAULT_KEY_BINDINGS: dict[Action, tuple[str, ...]] = {
    Action.QUIT: ("q", "ESC", "CTRL_C"),
    Action.NEXT_SECTION: ("TAB",),
    Action.PREVIOUS_SECTION: ("SHIFT_TAB",),
    Action.MOVE_UP: ("UP", "k"),
    Action.MOVE_DOWN: ("DOWN", "j"),
    Action.TOGGLE_SECTION: ("e",),
    Action.TOGGLE_FILE: ("ENTER", "SPACE"),
    Action.STAGE: ("s",),
    Action.UNSTAGE: ("u",),
    Action.REFRESH: ("r", "CTRL_R"),
}


@dataclass(frozen=True)
class KeyComboBinding:
    """Mapping from one or more key tokens to a single action callback."""

    combos: tuple[str, ...]
    handler: Callable[[], bool | None]


class KeyComboRegistry:
    """Key-token dispatch table; later bindings overwrite earlier ones."""

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[], bool | None]] = {}

    def register_binding(self, binding: KeyComboBinding) -> KeyComboRegistry:
        for combo in binding.combos:
            self._handlers[combo] = binding.handler
        return self

    def dispatch(self, key: str) -> bool | None:
        """Invoke bound handler for ``key``; ``None`` when the key is unbound."""
        handler = self._handlers.get(key)
        if handler is None:
            return None
        return handler()


def build_action_registry(
    handlers: dict[Action, Callable[[], bool | None]],
    bindings: dict[Action, tuple[str, ...]] | None = None,
) -> KeyComboRegistry:
    """Bind each action's key tokens to its handler.

    Handlers return ``True`` to stop the loop.
    """
    active = DEFAULT_KEY_BINDINGS if bindings is None else bindings
    registry = KeyComboRegistry()
    for action, handler in handlers.items():
        combos = active.get(action, ())
        if combos:
            registry.register_binding(KeyComboBinding(combos=combos, handler=handler))
    return registry
