"""Command-line front door for lazystage.

Parses CLI options, merges them over the JSON config, and dispatches into
either the interactive viewer or a one-shot ``--render`` dump.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .errors import RepositoryUnavailable
from .logging_config import setup_logging
from .runtime import run_viewer
from .runtime.app import render_once
from .runtime.config import load_viewer_config, parse_section_names
from .status_model import SECTION_ORDER, SectionKind

logger = logging.getLogger(__name__)


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def _section_list(value: str) -> tuple[SectionKind, ...]:
    names = [part for part in value.split(",") if part.strip()]
    kinds = parse_section_names(names)
    if len(kinds) != len(names):
        choices = ", ".join(kind.value for kind in SECTION_ORDER)
        raise argparse.ArgumentTypeError(f"sections must be among: {choices}")
    return kinds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazystage",
        description="Browse staged, unstaged and untracked changes of a git work tree.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Path inside the repository. Defaults to current directory.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument(
        "--refresh-interval",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="Seconds between background status refreshes.",
    )
    parser.add_argument(
        "--expand",
        type=_section_list,
        default=None,
        metavar="SECTIONS",
        help="Comma-separated sections expanded at startup (untracked,unstaged,staged).",
    )
    parser.add_argument("--render", action="store_true", help="Print the view once and exit.")
    parser.add_argument(
        "--expand-files",
        action="store_true",
        help="With --render, show line changes of every file in expanded sections.",
    )
    parser.add_argument("--log-level", default=None, help="Enable file logging at this level (e.g. debug).")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file path (implies --log-level info).")
    return parser


def main(argv: list[str] | None = None, default_path: Path | None = None) -> None:
    """Parse CLI arguments and launch lazystage.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used. A repository that cannot be opened or enumerated
    exits with status 1.
    """
    args = build_parser().parse_args(argv)

    if args.log_level is not None or args.log_file is not None:
        setup_logging(args.log_level or "info", args.log_file)

    config = load_viewer_config()
    if args.refresh_interval is not None:
        config = replace(config, refresh_interval_seconds=args.refresh_interval)
    if args.expand is not None:
        config = replace(config, expanded_sections=args.expand)

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path) if args.path else default_path
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")

    try:
        if args.render:
            sys.stdout.write(render_once(path, config, args.no_color, expand_files=args.expand_files))
            return
        run_viewer(path, config, args.no_color)
    except RepositoryUnavailable as exc:
        logger.error("repository unavailable: %s", exc)
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
