"""Command-line front door for lazygraph.

Parses CLI options, loads settings and logging, then hands the repository
path to the interactive runtime.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .errors import RepositoryNotFoundError, TerminalError
from .runtime import run_app
from .runtime.config import CONFIG_PATH, LOG_LEVELS, load_settings
from .runtime.logs import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazygraph",
        description="Browse history, stage, branch, merge and resolve conflicts in a git repository.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Repository path. Defaults to current directory.")
    parser.add_argument("--style", default=None, help="Pygments style name used for file content.")
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for the session log file.",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colors.")
    parser.add_argument("--config", type=Path, default=None, help=f"Settings file (default: {CONFIG_PATH}).")
    return parser


def main(argv: list[str] | None = None, default_path: Path | None = None) -> None:
    """Parse arguments and run lazygraph on a repository.

    ``default_path`` is mainly for tests; without it the current working
    directory is used when no path is given.
    """
    args = build_parser().parse_args(argv)
    settings = load_settings(
        args.config,
        style=args.style,
        log_level=args.log_level,
        color=False if args.no_color else None,
    )
    log_path = configure_logging(settings.log_level)
    logger.info("logging to %s", log_path)

    path = Path(args.path) if args.path else (default_path or Path.cwd())
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    try:
        run_app(path, settings)
    except RepositoryNotFoundError as exc:
        raise SystemExit(f"lazygraph: {exc}") from exc
    except TerminalError as exc:
        raise SystemExit(f"lazygraph: {exc}") from exc


if __name__ == "__main__":
    main()
