"""Terminal control for the TUI session.

Owns the raw-mode lifecycle and alternate-screen switching.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import termios
import tty

from ..errors import TerminalError


class TerminalController:
    """Switch a tty into raw alternate-screen mode and back."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        try:
            self._saved_tty_state = termios.tcgetattr(stdin_fd)
        except termios.error as exc:
            raise TerminalError(f"stdin is not a terminal ({exc})") from exc

    def enable_tui_mode(self) -> None:
        try:
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        except termios.error as exc:
            raise TerminalError(f"cannot enter raw mode ({exc})") from exc
        # Alternate screen, hidden cursor.
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")

    def disable_tui_mode(self) -> None:
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def size(self) -> tuple[int, int]:
        """Current ``(columns, rows)``, with a conventional fallback for pipes."""
        size = shutil.get_terminal_size((100, 30))
        return size.columns, size.lines

    @contextlib.contextmanager
    def raw_mode(self):
        """Bracket the session with enter/exit so the tty is restored on any error."""
        try:
            self.enable_tui_mode()
            yield self
        finally:
            self.disable_tui_mode()
