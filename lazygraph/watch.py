"""Poll-based detection of repository changes made outside the UI.

Watches the modification times of ``HEAD``, ``index`` and ``refs/heads``.
A poll interval bounds how often those paths are stat-ed; a shorter debounce
delay coalesces bursts of ref updates into one refresh signal.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0
DEBOUNCE_SECONDS = 0.5


def _mtime_ns(path: Path) -> int | None:
    """Modification time of ``path``; ``None`` when it does not exist or cannot be stat-ed."""
    try:
        return path.stat().st_mtime_ns
    except OSError:
        return None


@dataclass(frozen=True)
class WatcherSnapshot:
    head: int | None
    index: int | None
    refs_heads: int | None


def take_snapshot(git_dir: Path, common_dir: Path | None = None) -> WatcherSnapshot:
    """Capture the state of the git files that signal a repository change."""
    refs_root = common_dir if common_dir is not None else git_dir
    return WatcherSnapshot(
        head=_mtime_ns(git_dir / "HEAD"),
        index=_mtime_ns(git_dir / "index"),
        refs_heads=_mtime_ns(refs_root / "refs" / "heads"),
    )


class ChangeWatcher:
    """Debounced "needs refresh" signal over git metadata timestamps."""

    def __init__(
        self,
        git_dir: Path,
        *,
        common_dir: Path | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        debounce: float = DEBOUNCE_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if not 0 <= debounce < poll_interval:
            raise ValueError("debounce must be shorter than the poll interval")
        self.git_dir = git_dir
        self.common_dir = common_dir
        self.poll_interval = poll_interval
        self.debounce = debounce
        self._monotonic = monotonic
        self._snapshot = take_snapshot(git_dir, common_dir)
        self._last_check = monotonic()
        self._pending_since: float | None = None

    @property
    def snapshot(self) -> WatcherSnapshot:
        return self._snapshot

    @property
    def has_pending_change(self) -> bool:
        return self._pending_since is not None

    def check(self) -> bool:
        """Return ``True`` once per debounced burst of observed changes."""
        now = self._monotonic()
        if (now - self._last_check) < self.poll_interval:
            return False
        self._last_check = now

        snapshot = take_snapshot(self.git_dir, self.common_dir)
        if snapshot != self._snapshot:
            self._snapshot = snapshot
            self._pending_since = now
            logger.debug("repository change observed: %s", snapshot)

        if self._pending_since is not None and (now - self._pending_since) >= self.debounce:
            self._pending_since = None
            return True
        return False

    def reset(self) -> None:
        """Adopt current timestamps and drop any pending observation."""
        self._snapshot = take_snapshot(self.git_dir, self.common_dir)
        self._last_check = self._monotonic()
        self._pending_since = None
