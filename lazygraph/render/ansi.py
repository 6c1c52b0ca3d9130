"""ANSI-aware width measurement and line fitting.

Escape sequences pass through untouched and never count toward a line's
display width.
"""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
TAB_STOP = 8
RESET = "\033[0m"

BOLD = "1"
DIM = "2"
REVERSE = "7"
RED = "31"
GREEN = "32"
YELLOW = "33"
BLUE = "34"
MAGENTA = "35"
CYAN = "36"
GRAY = "90"
ACCENT = "38;5;81"
KEY = "38;5;229"


def char_display_width(ch: str, col: int) -> int:
    """Columns ``ch`` occupies when drawn at visual column ``col``."""
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def strip_ansi(text: str) -> str:
    """Return ``text`` without escape sequences."""
    return ANSI_ESCAPE_RE.sub("", text)


def display_width(text: str) -> int:
    col = 0
    for ch in strip_ansi(text):
        col += char_display_width(ch, col)
    return col


def fit_line(text: str, width: int, *, pad: bool = True) -> str:
    """Clip ``text`` to ``width`` columns, optionally padding it with spaces.

    Tabs are expanded so the result lines up with terminal cells, and a reset
    is appended whenever the clipped text carried styling.
    """
    if width <= 0:
        return ""
    out: list[str] = []
    col = 0
    styled = False
    index = 0
    while index < len(text) and col < width:
        if text[index] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, index)
            if match:
                out.append(match.group(0))
                styled = True
                index = match.end()
                continue
        ch = text[index]
        w = char_display_width(ch, col)
        if col + w > width:
            break
        out.append(" " * w if ch == "\t" else ch)
        col += w
        index += 1
    if styled:
        out.append(RESET)
    if pad and col < width:
        out.append(" " * (width - col))
    return "".join(out)


def style(text: str, *codes: str, enabled: bool = True) -> str:
    """Wrap ``text`` in SGR ``codes`` when ``enabled``."""
    codes = tuple(code for code in codes if code)
    if not enabled or not codes or not text:
        return text
    return f"\033[{';'.join(codes)}m{text}{RESET}"


def selected(text: str, enabled: bool = True) -> str:
    """Reverse-video ``text`` while keeping the colors already inside it."""
    if not text:
        return text
    if not enabled:
        return text
    return "\033[7m" + text.replace(RESET, "\033[0;7m") + RESET


def side_by_side(left: list[str], right: list[str], left_width: int, right_width: int, rows: int) -> list[str]:
    """Join two column blocks row by row with a vertical divider."""
    out = []
    for row in range(rows):
        lhs = left[row] if row < len(left) else ""
        rhs = right[row] if row < len(right) else ""
        out.append(f"{fit_line(lhs, left_width)}│{fit_line(rhs, right_width, pad=False)}")
    return out


def status_bar(left_text: str, width: int, right_text: str = "? help") -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left = fit_line(strip_ansi(left_text), max(0, usable - len(right_text) - 1), pad=False)
    gap = " " * (usable - display_width(left) - len(right_text))
    return f"{left}{gap}{right_text}"
