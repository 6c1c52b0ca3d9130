"""Handler interface shared by every action category."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..actions import Action
from ..errors import LazyGraphError
from ..git.repo import GitRepo
from ..runtime.clipboard import copy_text_to_clipboard
from ..state import ApplicationState

logger = logging.getLogger(__name__)

Operation = Callable[["HandlerContext", Action], None]


def _no_progress(message: str) -> None:
    return None


@dataclass(frozen=True)
class HandlerContext:
    """Exclusive access to the session for the duration of one handler call.

    ``show_progress`` renders a flash before a blocking repository call;
    ``refresh`` reloads repository-derived state immediately.
    """

    state: ApplicationState
    repo: GitRepo
    refresh: Callable[[], None]
    show_progress: Callable[[str], None] = _no_progress
    copy_text: Callable[[str], None] = copy_text_to_clipboard


def report_failure(state: ApplicationState, label: str, exc: LazyGraphError) -> None:
    """Flash ``"<label> error: <msg>"`` for a failed repository operation."""
    logger.warning("%s failed: %s", label, exc)
    state.set_flash(f"{label} error: {exc}")


class ActionHandler:
    """Owns the transitions for one action category.

    Subclasses set ``category`` and return a table from every member of that
    enum to a bound operation from ``operations``.
    """

    category: type[Enum]

    def __init__(self) -> None:
        self._operations = self.operations()
        missing = [member for member in self.category if member not in self._operations]
        if missing:
            raise TypeError(f"{type(self).__name__} does not handle {missing}")

    def operations(self) -> dict[Enum, Operation]:
        raise NotImplementedError

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        return True

    def handle(self, context: HandlerContext, action: Action) -> None:
        self._operations[action.op](context, action)
