"""Regression tests for raw-key decoding.

Covers ESC timing, CSI/SS3 navigation sequences, control keys and UTF-8 text.
"""

import os
import time
import unittest

from lazygraph.input import reader as input_mod


class ReadKeyTests(unittest.TestCase):
    def setUp(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def tearDown(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def _read(self, data: bytes, count: int = 1) -> list[str]:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, data)
            return [input_mod.read_key(read_fd, timeout_ms=20) for _ in range(count)]
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"\x1b")
            started = time.monotonic()
            key = input_mod.read_key(read_fd, timeout_ms=20)
            elapsed = time.monotonic() - started
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "ESC")
        self.assertLess(elapsed, 0.2)

    def test_timeout_returns_empty_token(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            key = input_mod.read_key(read_fd, timeout_ms=10)
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "")

    def test_arrow_sequences(self) -> None:
        self.assertEqual(self._read(b"\x1b[A\x1b[B\x1b[C\x1b[D", 4), ["UP", "DOWN", "RIGHT", "LEFT"])

    def test_ss3_arrows_from_application_cursor_mode(self) -> None:
        self.assertEqual(self._read(b"\x1bOA\x1bOB", 2), ["UP", "DOWN"])

    def test_tilde_navigation_keys(self) -> None:
        keys = self._read(b"\x1b[5~\x1b[6~\x1b[3~\x1b[1~\x1b[4~", 5)
        self.assertEqual(keys, ["PAGE_UP", "PAGE_DOWN", "DELETE", "HOME", "END"])

    def test_modified_arrow_decodes_as_plain_arrow(self) -> None:
        self.assertEqual(self._read(b"\x1b[1;5A"), ["UP"])

    def test_backtab(self) -> None:
        self.assertEqual(self._read(b"\x1b[Z"), ["BACKTAB"])

    def test_escape_does_not_swallow_following_printable_key(self) -> None:
        self.assertEqual(self._read(b"\x1ba", 2), ["ESC", "a"])

    def test_control_keys(self) -> None:
        keys = self._read(b"\x03\x0e\x10\x12\x13\t\x7f\r", 8)
        self.assertEqual(
            keys,
            ["CTRL_C", "CTRL_N", "CTRL_P", "CTRL_R", "CTRL_S", "TAB", "BACKSPACE", "ENTER"],
        )

    def test_linefeed_is_enter(self) -> None:
        self.assertEqual(self._read(b"\n"), ["ENTER"])

    def test_multibyte_utf8_is_one_token(self) -> None:
        self.assertEqual(self._read("é€".encode("utf-8"), 2), ["é", "€"])


if __name__ == "__main__":
    unittest.main()
