"""Cursor movement and panel switching for the graph, staging, branches and blame views."""

from __future__ import annotations

from enum import Enum

from ..actions import Action, NavigationAction
from ..git.types import FileDiff
from ..state import PAGE_SIZE, FocusPanel, ViewMode
from ..views import StagingFocus
from .base import ActionHandler, HandlerContext, Operation
from .refresh import load_commit_file_diff, load_staging_diff, select_commit

JUMP = 10_000

STEPS = {
    NavigationAction.MOVE_UP: -1,
    NavigationAction.MOVE_DOWN: 1,
    NavigationAction.PAGE_UP: -PAGE_SIZE,
    NavigationAction.PAGE_DOWN: PAGE_SIZE,
    NavigationAction.GO_TOP: -JUMP,
    NavigationAction.GO_BOTTOM: JUMP,
}

STAGING_PANELS = [StagingFocus.UNSTAGED, StagingFocus.STAGED, StagingFocus.DIFF, StagingFocus.COMMIT_MESSAGE]


def _scroll(offset: int, delta: int, diff: FileDiff | None) -> int:
    limit = max(0, len(diff.lines) - 1) if diff is not None else 0
    return max(0, min(offset + delta, limit))


class NavigationHandler(ActionHandler):
    category = NavigationAction

    def operations(self) -> dict[Enum, Operation]:
        table: dict[Enum, Operation] = {op: self._move for op in STEPS}
        table.update(
            {
                NavigationAction.SWITCH_PANEL: self._switch_panel,
                NavigationAction.SCROLL_DIFF_UP: lambda ctx, _: self._scroll_diff(ctx, -1),
                NavigationAction.SCROLL_DIFF_DOWN: lambda ctx, _: self._scroll_diff(ctx, 1),
                NavigationAction.FILE_UP: lambda ctx, _: self._move_file(ctx, -1),
                NavigationAction.FILE_DOWN: lambda ctx, _: self._move_file(ctx, 1),
                NavigationAction.BACK_TO_GRAPH: self._back_to_graph,
            }
        )
        return table

    def _move(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        delta = STEPS[action.op]
        mode = state.view_mode
        if mode is ViewMode.GRAPH:
            self._move_graph(context, delta)
        elif mode is ViewMode.STAGING:
            staging = state.staging
            if staging.focus is StagingFocus.DIFF:
                staging.diff_scroll = _scroll(staging.diff_scroll, delta, staging.diff)
            elif staging.focus is not StagingFocus.COMMIT_MESSAGE:
                staging.move(delta)
                load_staging_diff(state, context.repo)
        elif mode is ViewMode.BRANCHES:
            state.branches_view.move(delta)
        elif mode is ViewMode.BLAME and state.blame is not None:
            state.blame.move(delta)

    def _move_graph(self, context: HandlerContext, delta: int) -> None:
        state = context.state
        if state.show_branch_panel:
            if state.branches:
                state.branch_selected = max(0, min(state.branch_selected + delta, len(state.branches) - 1))
            return
        if state.focus is FocusPanel.GRAPH:
            select_commit(state, context.repo, state.selected_index + delta)
        elif state.focus is FocusPanel.FILES:
            self._move_file(context, delta)
        else:
            state.diff_scroll = _scroll(state.diff_scroll, delta, state.selected_diff)

    def _move_file(self, context: HandlerContext, delta: int) -> None:
        state = context.state
        if state.view_mode is not ViewMode.GRAPH or not state.commit_files:
            return
        index = max(0, min(state.file_selected_index + delta, len(state.commit_files) - 1))
        if index != state.file_selected_index or state.selected_diff is None:
            state.file_selected_index = index
            load_commit_file_diff(state, context.repo)

    def _scroll_diff(self, context: HandlerContext, delta: int) -> None:
        state = context.state
        if state.view_mode is ViewMode.STAGING:
            state.staging.diff_scroll = _scroll(state.staging.diff_scroll, delta, state.staging.diff)
        elif state.view_mode is ViewMode.GRAPH:
            state.diff_scroll = _scroll(state.diff_scroll, delta, state.selected_diff)

    def _switch_panel(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        if state.view_mode is ViewMode.GRAPH:
            state.focus = state.focus.next()
            if state.focus is FocusPanel.DETAIL and state.selected_diff is None:
                load_commit_file_diff(state, context.repo)
        elif state.view_mode is ViewMode.STAGING:
            self._switch_staging_panel(context)
        elif state.view_mode is ViewMode.BRANCHES:
            view = state.branches_view
            view.section = view.section.next()

    def _switch_staging_panel(self, context: HandlerContext) -> None:
        state = context.state
        staging = state.staging
        panels = STAGING_PANELS if staging.is_committing else STAGING_PANELS[:-1]
        current = panels.index(staging.focus) if staging.focus in panels else -1
        previous_list = staging.last_list
        staging.focus_on(panels[(current + 1) % len(panels)])
        if staging.last_list is not previous_list:
            load_staging_diff(state, context.repo)

    def _back_to_graph(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        if state.view_mode is ViewMode.GRAPH:
            state.focus = FocusPanel.GRAPH
            state.show_branch_panel = False
            return
        if state.view_mode is ViewMode.BLAME:
            state.blame = None
        state.switch_view(ViewMode.GRAPH)
