"""Runtime orchestration: configuration, logging, terminal and the event loop.

``run_app`` and ``run_main_loop`` are imported lazily so importing the
configuration helpers never pulls in the whole UI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .loop import RuntimeLoopCallbacks


def run_app(*args, **kwargs):
    """Lazily import the session bootstrap to avoid package-import cycles."""
    from .app import run_app as _run_app

    return _run_app(*args, **kwargs)


def run_main_loop(*args, **kwargs):
    from .loop import run_main_loop as _run_main_loop

    return _run_main_loop(*args, **kwargs)


def __getattr__(name: str):
    if name == "RuntimeLoopCallbacks":
        from . import loop as _loop

        return _loop.RuntimeLoopCallbacks
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["RuntimeLoopCallbacks", "run_app", "run_main_loop"]
