"""Editable text buffers with a clamped cursor.

``TextBuffer`` backs the commit message and branch/stash/worktree prompts.
``MultilineBuffer`` backs hand-editing of a conflict result.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TextBuffer:
    """String plus insertion index; the cursor stays within ``[0, len(text)]``."""

    text: str = ""
    cursor: int = 0

    def __post_init__(self) -> None:
        self._clamp()

    def _clamp(self) -> None:
        self.cursor = max(0, min(self.cursor, len(self.text)))

    def __len__(self) -> int:
        return len(self.text)

    def set_text(self, text: str) -> None:
        """Replace the text and put the cursor at its end."""
        self.text = text
        self.cursor = len(text)

    def clear(self) -> None:
        """Empty the buffer."""
        self.text = ""
        self.cursor = 0

    def insert(self, ch: str) -> None:
        """Insert ``ch`` at the cursor and move past it."""
        self._clamp()
        self.text = self.text[: self.cursor] + ch + self.text[self.cursor:]
        self.cursor += len(ch)

    def newline(self) -> None:
        self.insert("\n")

    def delete_before(self) -> None:
        """Delete the character left of the cursor."""
        self._clamp()
        if self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1

    def delete_after(self) -> None:
        """Delete the character under the cursor."""
        self._clamp()
        if self.cursor >= len(self.text):
            return
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1:]

    def move_left(self) -> None:
        self.cursor = max(0, min(self.cursor, len(self.text)) - 1)

    def move_right(self) -> None:
        self.cursor = min(len(self.text), max(0, self.cursor) + 1)

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)


@dataclass
class MultilineBuffer:
    """List of lines with a ``(row, col)`` cursor, always pointing inside the buffer."""

    lines: list[str] = field(default_factory=lambda: [""])
    row: int = 0
    col: int = 0

    def __post_init__(self) -> None:
        if not self.lines:
            self.lines = [""]
        self._clamp()

    @classmethod
    def from_lines(cls, lines: list[str]) -> MultilineBuffer:
        """Build a buffer over a copy of ``lines`` with the cursor at the top."""
        return cls(list(lines) or [""])

    def _clamp(self) -> None:
        self.row = max(0, min(self.row, len(self.lines) - 1))
        self.col = max(0, min(self.col, len(self.lines[self.row])))

    def text(self) -> str:
        """Return the buffer as text with a trailing newline."""
        return "\n".join(self.lines) + "\n"

    def insert(self, ch: str) -> None:
        self._clamp()
        line = self.lines[self.row]
        self.lines[self.row] = line[: self.col] + ch + line[self.col:]
        self.col += len(ch)

    def newline(self) -> None:
        """Split the current line at the cursor."""
        self._clamp()
        line = self.lines[self.row]
        self.lines[self.row] = line[: self.col]
        self.lines.insert(self.row + 1, line[self.col:])
        self.row += 1
        self.col = 0

    def backspace(self) -> None:
        """Delete left of the cursor, joining with the previous line at column 0."""
        self._clamp()
        if self.col > 0:
            line = self.lines[self.row]
            self.lines[self.row] = line[: self.col - 1] + line[self.col:]
            self.col -= 1
        elif self.row > 0:
            previous = self.lines[self.row - 1]
            self.lines[self.row - 1] = previous + self.lines.pop(self.row)
            self.row -= 1
            self.col = len(previous)

    def delete(self) -> None:
        """Delete under the cursor, joining with the next line at the end of a line."""
        self._clamp()
        line = self.lines[self.row]
        if self.col < len(line):
            self.lines[self.row] = line[: self.col] + line[self.col + 1:]
        elif self.row + 1 < len(self.lines):
            self.lines[self.row] = line + self.lines.pop(self.row + 1)

    def move_up(self) -> None:
        if self.row > 0:
            self.row -= 1
        self._clamp()

    def move_down(self) -> None:
        if self.row + 1 < len(self.lines):
            self.row += 1
        self._clamp()

    def move_left(self) -> None:
        """Move left, wrapping to the end of the previous line."""
        self._clamp()
        if self.col > 0:
            self.col -= 1
        elif self.row > 0:
            self.row -= 1
            self.col = len(self.lines[self.row])

    def move_right(self) -> None:
        """Move right, wrapping to the start of the next line."""
        self._clamp()
        if self.col < len(self.lines[self.row]):
            self.col += 1
        elif self.row + 1 < len(self.lines):
            self.row += 1
            self.col = 0
