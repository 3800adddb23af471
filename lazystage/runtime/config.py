"""JSON viewer configuration.

Read from the platform config directory; malformed or missing values fall
back to defaults so a bad config file never blocks startup.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from ..status_model import SECTION_ORDER, SectionKind

logger = logging.getLogger(__name__)

APP_NAME = "lazystage"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_REFRESH_INTERVAL_SECONDS = 2.0


@dataclass(frozen=True)
class ViewerConfig:
    refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    expanded_sections: tuple[SectionKind, ...] = ()


def load_config() -> dict[str, object]:
    """Load the JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _load_refresh_interval(data: dict[str, object]) -> float:
    value = data.get("refresh_interval_seconds")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_REFRESH_INTERVAL_SECONDS
    if value <= 0:
        return DEFAULT_REFRESH_INTERVAL_SECONDS
    return float(value)


def parse_section_names(names: object) -> tuple[SectionKind, ...]:
    """Map section names like ``"staged"`` to kinds, dropping unknown names."""
    if not isinstance(names, (list, tuple)):
        return ()
    by_name = {kind.value: kind for kind in SECTION_ORDER}
    kinds: list[SectionKind] = []
    for name in names:
        if not isinstance(name, str):
            continue
        kind = by_name.get(name.strip().lower())
        if kind is not None and kind not in kinds:
            kinds.append(kind)
    return tuple(kinds)


def load_viewer_config() -> ViewerConfig:
    data = load_config()
    return ViewerConfig(
        refresh_interval_seconds=_load_refresh_interval(data),
        expanded_sections=parse_section_names(data.get("expanded_sections")),
    )
