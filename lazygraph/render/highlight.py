"""Syntax highlighting for file content shown in blame and diff panes.

Uses Pygments with the configured style. Control bytes are neutralized first
so repository content can never drive the terminal.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.lexer import Lexer
from pygments.util import ClassNotFound

from ..runtime.config import DEFAULT_STYLE

logger = logging.getLogger(__name__)

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def sanitize_terminal_text(source: str) -> str:
    """Escape C0/C1 control bytes (bell, cursor moves and so on) as ``\\xNN``."""
    if _CONTROL_RE.search(source) is None:
        return source
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


@lru_cache(maxsize=32)
def formatter_for_style(style: str) -> Terminal256Formatter:
    try:
        return Terminal256Formatter(style=style)
    except ClassNotFound:
        logger.warning("unknown pygments style %r, using %s", style, DEFAULT_STYLE)
        return Terminal256Formatter(style=DEFAULT_STYLE)


def lexer_for_path(path: str, source: str) -> Lexer:
    try:
        return get_lexer_for_filename(path.rsplit("/", 1)[-1], source, stripnl=False)
    except ClassNotFound:
        return TextLexer(stripnl=False)


def highlight_lines(source: str, path: str, style: str = DEFAULT_STYLE, *, color: bool = True) -> list[str]:
    """Return ``source`` split into lines, colored for ``path``'s language.

    The whole text is lexed at once so multi-line constructs keep their state.
    The result always has one entry per input line.
    """
    clean = sanitize_terminal_text(source)
    plain = clean.splitlines()
    if not color or not clean:
        return plain
    rendered = highlight(clean, lexer_for_path(path, clean), formatter_for_style(style)).splitlines()
    if len(rendered) < len(plain):
        rendered.extend(plain[len(rendered):])
    return rendered[: len(plain)]
