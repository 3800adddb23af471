"""Logging setup for lazystage.

The interactive viewer owns the terminal, so log records only ever go to a
rotating file. Without ``setup_logging`` the package logger stays silent.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from platformdirs import user_log_dir

LOGGER_NAME = "lazystage"
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 2 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 2
DEFAULT_LOG_FILE = Path(user_log_dir(LOGGER_NAME, appauthor=False)) / "lazystage.log"


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Path | None = None,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> Path:
    """Attach a rotating file handler to the package logger.

    ``level`` accepts a logging constant or a name such as ``"debug"``.
    Returns the log file path in use.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target = log_file if log_file is not None else DEFAULT_LOG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            package_logger.removeHandler(handler)
            handler.close()

    handler = RotatingFileHandler(
        target,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT))
    package_logger.addHandler(handler)
    return target
