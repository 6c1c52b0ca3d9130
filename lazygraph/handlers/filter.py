"""Graph history filter popup."""

from __future__ import annotations

from enum import Enum

from ..actions import Action, FilterAction
from ..state import ApplicationState, ViewMode
from .base import ActionHandler, HandlerContext, Operation


class FilterHandler(ActionHandler):
    category = FilterAction

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        return state.view_mode is ViewMode.GRAPH

    def operations(self) -> dict[Enum, Operation]:
        return {
            FilterAction.OPEN: self._open,
            FilterAction.CLOSE: lambda ctx, _: ctx.state.filter_popup.close(),
            FilterAction.NEXT_FIELD: lambda ctx, _: ctx.state.filter_popup.next_field(),
            FilterAction.PREVIOUS_FIELD: lambda ctx, _: ctx.state.filter_popup.previous_field(),
            FilterAction.INSERT_CHAR: self._insert_char,
            FilterAction.DELETE_CHAR: self._delete_char,
            FilterAction.APPLY: self._apply,
            FilterAction.CLEAR: self._clear,
        }

    def _open(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        state.filter_popup.open(state.graph_filter)

    def _insert_char(self, context: HandlerContext, action: Action) -> None:
        popup = context.state.filter_popup
        if popup.is_open:
            popup.insert_char(action.char or "")

    def _delete_char(self, context: HandlerContext, action: Action) -> None:
        popup = context.state.filter_popup
        if popup.is_open:
            popup.delete_char()

    def _apply(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        state.filter_popup.apply_to(state.graph_filter)
        state.filter_popup.close()
        state.selected_index = 0
        state.mark_dirty()
        labels = state.graph_filter.active_labels()
        if labels:
            state.set_flash(f"Active filters: {', '.join(labels)}")
        else:
            state.set_flash("Filters cleared")

    def _clear(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        state.filter_popup.clear()
        state.graph_filter.clear()
        state.selected_index = 0
        state.mark_dirty()
        state.set_flash("Filters cleared")
