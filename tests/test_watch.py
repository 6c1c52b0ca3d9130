"""Tests for the debounced repository change watcher."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from lazygraph.watch import ChangeWatcher, take_snapshot


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class ChangeWatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.git_dir = Path(self._tmp.name)
        (self.git_dir / "refs" / "heads").mkdir(parents=True)
        (self.git_dir / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        (self.git_dir / "index").write_bytes(b"DIRC")
        self.clock = _Clock()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _watcher(self) -> ChangeWatcher:
        return ChangeWatcher(self.git_dir, poll_interval=2.0, debounce=0.5, monotonic=self.clock)

    def _touch(self, name: str, offset_ns: int = 5_000_000_000) -> None:
        path = self.git_dir / name
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + offset_ns))

    def test_no_change_never_fires(self) -> None:
        watcher = self._watcher()
        for _ in range(5):
            self.clock.now += 3.0
            self.assertFalse(watcher.check())

    def test_checks_inside_poll_interval_skip_stat(self) -> None:
        watcher = self._watcher()
        self._touch("HEAD")
        self.clock.now += 1.0
        self.assertFalse(watcher.check())
        self.assertFalse(watcher.has_pending_change)

    def test_change_fires_once_after_debounce(self) -> None:
        watcher = self._watcher()
        self._touch("index")

        self.clock.now += 2.0
        self.assertFalse(watcher.check())
        self.assertTrue(watcher.has_pending_change)

        self.clock.now += 2.0
        self.assertTrue(watcher.check())

        self.clock.now += 2.0
        self.assertFalse(watcher.check())

    def test_burst_of_changes_is_coalesced(self) -> None:
        watcher = self._watcher()
        fired = 0
        for step in range(3):
            self._touch("HEAD", offset_ns=(step + 1) * 1_000_000_000)
            self.clock.now += 2.0
            fired += watcher.check()
        self.clock.now += 2.0
        fired += watcher.check()
        self.assertEqual(fired, 1)

    def test_refs_heads_directory_is_watched(self) -> None:
        watcher = self._watcher()
        self._touch("refs/heads")
        self.clock.now += 2.0
        watcher.check()
        self.clock.now += 2.0
        self.assertTrue(watcher.check())

    def test_reset_drops_pending_change(self) -> None:
        watcher = self._watcher()
        self._touch("HEAD")
        self.clock.now += 2.0
        watcher.check()
        watcher.reset()

        self.clock.now += 2.0
        self.assertFalse(watcher.check())

    def test_debounce_must_be_shorter_than_poll(self) -> None:
        with self.assertRaises(ValueError):
            ChangeWatcher(self.git_dir, poll_interval=1.0, debounce=1.0)

    def test_missing_files_snapshot_as_none(self) -> None:
        snapshot = take_snapshot(self.git_dir / "missing")
        self.assertIsNone(snapshot.head)
        self.assertIsNone(snapshot.refs_heads)

    def test_common_dir_supplies_refs(self) -> None:
        with tempfile.TemporaryDirectory() as other:
            snapshot = take_snapshot(Path(other), self.git_dir)
        self.assertIsNone(snapshot.head)
        self.assertIsNotNone(snapshot.refs_heads)


if __name__ == "__main__":
    unittest.main()
