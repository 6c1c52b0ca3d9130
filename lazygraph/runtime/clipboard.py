"""System clipboard access through the platform's copy command."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys

from ..errors import ClipboardError

logger = logging.getLogger(__name__)


def clipboard_commands() -> list[list[str]]:
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def copy_text_to_clipboard(text: str) -> None:
    """Copy ``text`` using the first available clipboard tool.

    Raises ``ClipboardError`` when there is nothing to copy, no tool is
    installed, or every candidate fails.
    """
    if not text:
        raise ClipboardError("nothing to copy")

    tried: list[str] = []
    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        tried.append(command[0])
        try:
            proc = subprocess.run(
                command,
                input=text,
                text=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            logger.warning("clipboard command %s failed: %s", command[0], exc)
            continue
        if proc.returncode == 0:
            return
    if not tried:
        raise ClipboardError("no clipboard tool found")
    raise ClipboardError(f"clipboard copy failed ({', '.join(tried)})")
