"""Persistent JSON config helpers.

Stores the highlight style, watcher clocks, history window, default remote
and log level. Malformed or missing config falls back to defaults key by
key.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

from ..git.repo import MAX_COMMITS
from ..merge import DEFAULT_REMOTE
from ..watch import DEBOUNCE_SECONDS, POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

APP_NAME = "lazygraph"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_STYLE = "monokai"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    style: str = DEFAULT_STYLE
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    debounce_seconds: float = DEBOUNCE_SECONDS
    max_commits: int = MAX_COMMITS
    default_remote: str = DEFAULT_REMOTE
    log_level: str = DEFAULT_LOG_LEVEL
    color: bool = True


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = path if path is not None else CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", config_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object], path: Path | None = None) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are logged and otherwise ignored so a read-only config
    directory never interrupts a session.
    """
    config_path = path if path is not None else CONFIG_PATH
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.warning("cannot write config %s: %s", config_path, exc)


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def _non_empty_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def settings_from_dict(data: dict[str, object]) -> Settings:
    """Build ``Settings`` from raw config, replacing each invalid key by its default."""
    defaults = Settings()

    style = _non_empty_str(data.get("style")) or defaults.style
    poll = _positive_number(data.get("poll_interval_seconds")) or defaults.poll_interval_seconds
    debounce_raw = data.get("debounce_seconds")
    if isinstance(debounce_raw, (int, float)) and not isinstance(debounce_raw, bool) and debounce_raw >= 0:
        debounce = float(debounce_raw)
    else:
        debounce = defaults.debounce_seconds
    if debounce >= poll:
        debounce = poll / 4

    max_commits_raw = data.get("max_commits")
    if isinstance(max_commits_raw, int) and not isinstance(max_commits_raw, bool) and max_commits_raw > 0:
        max_commits = max_commits_raw
    else:
        max_commits = defaults.max_commits

    remote = _non_empty_str(data.get("default_remote")) or defaults.default_remote
    level = _non_empty_str(data.get("log_level"))
    log_level = level.upper() if level and level.upper() in LOG_LEVELS else defaults.log_level

    return Settings(
        style=style,
        poll_interval_seconds=poll,
        debounce_seconds=debounce,
        max_commits=max_commits,
        default_remote=remote,
        log_level=log_level,
    )


def load_settings(
    path: Path | None = None,
    *,
    style: str | None = None,
    log_level: str | None = None,
    color: bool | None = None,
) -> Settings:
    """Load settings from disk, then apply command-line overrides."""
    settings = settings_from_dict(load_config(path))
    overrides: dict[str, object] = {}
    if style:
        overrides["style"] = style
    if log_level and log_level.upper() in LOG_LEVELS:
        overrides["log_level"] = log_level.upper()
    if color is not None:
        overrides["color"] = color
    return replace(settings, **overrides) if overrides else settings
