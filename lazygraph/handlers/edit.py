"""Single-line and commit-message text editing."""

from __future__ import annotations

from enum import Enum

from ..actions import Action, EditAction
from ..state import ApplicationState, ViewMode
from ..text_buffer import TextBuffer
from ..views import BranchesFocus, StagingFocus
from .base import ActionHandler, HandlerContext, Operation


def editing_buffer(state: ApplicationState) -> TextBuffer | None:
    """Buffer currently accepting text, or ``None`` when nothing is being edited."""
    staging = state.staging
    if state.view_mode is ViewMode.STAGING and staging.is_committing and staging.focus is StagingFocus.COMMIT_MESSAGE:
        return staging.commit_message
    if state.view_mode is ViewMode.BRANCHES and state.branches_view.focus is BranchesFocus.INPUT:
        return state.branches_view.input
    return None


class EditHandler(ActionHandler):
    category = EditAction

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        return editing_buffer(state) is not None

    def operations(self) -> dict[Enum, Operation]:
        return {
            EditAction.INSERT_CHAR: self._insert_char,
            EditAction.DELETE_CHAR_BEFORE: lambda ctx, _: self._buffer(ctx).delete_before(),
            EditAction.DELETE_CHAR_AFTER: lambda ctx, _: self._buffer(ctx).delete_after(),
            EditAction.CURSOR_LEFT: lambda ctx, _: self._buffer(ctx).move_left(),
            EditAction.CURSOR_RIGHT: lambda ctx, _: self._buffer(ctx).move_right(),
            EditAction.CURSOR_HOME: lambda ctx, _: self._buffer(ctx).home(),
            EditAction.CURSOR_END: lambda ctx, _: self._buffer(ctx).end(),
            EditAction.INSERT_NEWLINE: lambda ctx, _: self._buffer(ctx).newline(),
        }

    @staticmethod
    def _buffer(context: HandlerContext) -> TextBuffer:
        buffer = editing_buffer(context.state)
        assert buffer is not None
        return buffer

    def _insert_char(self, context: HandlerContext, action: Action) -> None:
        self._buffer(context).insert(action.char or "")
