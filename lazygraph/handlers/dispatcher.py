"""Routes each ``Action`` to the handler owning its category.

Top-level operations (quit, refresh, view switching, confirmations, the
merge picker) are carried out here directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum

from .. import merge
from ..actions import Action, AppAction
from ..errors import ClipboardError, LazyGraphError
from ..state import ApplicationState, ConfirmKind, FocusPanel, PendingConfirmation, ViewMode
from .base import ActionHandler, HandlerContext, report_failure
from .branch import BranchHandler
from .conflict import ConflictHandler
from .edit import EditHandler
from .filter import FilterHandler
from .git_ops import GitHandler, confirm_merge_picker
from .navigation import NavigationHandler
from .refresh import load_branches_view, load_commit_file_diff, open_conflicts
from .search import SearchHandler
from .staging import StagingHandler

logger = logging.getLogger(__name__)


def default_handlers() -> list[ActionHandler]:
    return [
        EditHandler(),
        FilterHandler(),
        GitHandler(),
        NavigationHandler(),
        SearchHandler(),
        StagingHandler(),
        BranchHandler(),
        ConflictHandler(),
    ]


class Dispatcher:
    """Process one action to completion against the shared context."""

    def __init__(self, context: HandlerContext, handlers: Iterable[ActionHandler] | None = None) -> None:
        self.context = context
        self._handlers: dict[type[Enum], ActionHandler] = {}
        for handler in handlers if handlers is not None else default_handlers():
            self._handlers[handler.category] = handler
        self._app_operations: dict[AppAction, Callable[[Action], None]] = {
            AppAction.QUIT: self._quit,
            AppAction.REFRESH: self._refresh,
            AppAction.TOGGLE_HELP: self._toggle_help,
            AppAction.SWITCH_VIEW: self._switch_view,
            AppAction.SELECT: self._select,
            AppAction.COPY_TO_CLIPBOARD: self._copy,
            AppAction.MERGE_PICKER_UP: lambda _: self._move_picker(-1),
            AppAction.MERGE_PICKER_DOWN: lambda _: self._move_picker(1),
            AppAction.MERGE_PICKER_CONFIRM: lambda _: confirm_merge_picker(self.context),
            AppAction.MERGE_PICKER_CANCEL: self._cancel_picker,
            AppAction.CONFIRM_ACTION: self._confirm,
            AppAction.CANCEL_ACTION: self._cancel,
            AppAction.TOGGLE_DIFF_VIEW_MODE: self._toggle_diff_view_mode,
        }

    @property
    def state(self) -> ApplicationState:
        return self.context.state

    def dispatch(self, action: Action) -> bool:
        """Apply ``action``; return ``False`` when it was a no-op for the current state."""
        logger.debug("dispatch %s in %s", action, self.state.view_mode.value)
        if isinstance(action.op, AppAction):
            self._app_operations[action.op](action)
            return True
        handler = self._handlers.get(action.category)
        if handler is None or not handler.can_handle(self.state, action):
            return False
        try:
            handler.handle(self.context, action)
        except LazyGraphError as exc:
            report_failure(self.state, action.category.__name__.removesuffix("Action"), exc)
        return True

    # --------------------------------------------------------------- views

    def _quit(self, action: Action) -> None:
        self.state.should_quit = True

    def _refresh(self, action: Action) -> None:
        self.context.refresh()
        self.state.set_flash("Refreshed")

    def _toggle_help(self, action: Action) -> None:
        state = self.state
        if state.view_mode is ViewMode.HELP:
            target = state.previous_view_mode or ViewMode.GRAPH
            state.switch_view(target if target is not ViewMode.HELP else ViewMode.GRAPH)
        else:
            state.switch_view(ViewMode.HELP)

    def _switch_view(self, action: Action) -> None:
        state = self.state
        mode = action.view
        assert mode is not None
        if mode is ViewMode.CONFLICTS and state.conflicts is None:
            state.set_flash("No merge in progress")
            return
        if mode is ViewMode.BLAME and state.blame is None:
            return
        state.switch_view(mode)
        if mode is ViewMode.BRANCHES:
            try:
                load_branches_view(state, self.context.repo)
            except LazyGraphError as exc:
                report_failure(state, "Branches", exc)
        elif mode is ViewMode.STAGING:
            state.mark_dirty()

    def _select(self, action: Action) -> None:
        state = self.state
        if state.view_mode is not ViewMode.GRAPH:
            return
        if state.focus is FocusPanel.GRAPH:
            if state.commit_files:
                state.focus = FocusPanel.FILES
                load_commit_file_diff(state, self.context.repo)
            else:
                state.set_flash("No files in this commit")
        elif state.focus is FocusPanel.FILES:
            state.focus = FocusPanel.DETAIL
            if state.selected_diff is None:
                load_commit_file_diff(state, self.context.repo)

    def _copy(self, action: Action) -> None:
        state = self.state
        text = self._copy_target(state)
        if not text:
            return
        try:
            self.context.copy_text(text)
        except ClipboardError as exc:
            report_failure(state, "Clipboard", exc)
            return
        state.set_flash(f"Copied: {text if len(text) <= 40 else text[:37] + '...'}")

    @staticmethod
    def _copy_target(state: ApplicationState) -> str | None:
        if state.view_mode is ViewMode.GRAPH:
            commit = state.selected_commit()
            return commit.oid if commit else None
        if state.view_mode is ViewMode.STAGING:
            entry, _ = state.staging.selected_entry()
            return entry.path if entry else None
        if state.view_mode is ViewMode.BLAME and state.blame is not None:
            line = state.blame.selected()
            return line.content if line else None
        return None

    def _toggle_diff_view_mode(self, action: Action) -> None:
        state = self.state
        state.side_by_side_diff = not state.side_by_side_diff
        state.set_flash("Side-by-side diff" if state.side_by_side_diff else "Unified diff")

    # -------------------------------------------------------- merge picker

    def _move_picker(self, delta: int) -> None:
        if self.state.merge_picker is not None:
            self.state.merge_picker.move(delta)

    def _cancel_picker(self, action: Action) -> None:
        self.state.merge_picker = None

    # ------------------------------------------------------- confirmations

    def _cancel(self, action: Action) -> None:
        if self.state.pending_confirmation is not None:
            self.state.pending_confirmation = None
            self.state.set_flash("Cancelled")

    def _confirm(self, action: Action) -> None:
        state = self.state
        pending = state.pending_confirmation
        if pending is None:
            return
        state.pending_confirmation = None
        try:
            self._run_confirmed(pending)
        except LazyGraphError as exc:
            report_failure(state, pending.kind.value.replace("_", " ").capitalize(), exc)
        state.mark_dirty()

    def _run_confirmed(self, pending: PendingConfirmation) -> None:
        state = self.state
        repo = self.context.repo
        kind = pending.kind
        if kind is ConfirmKind.DISCARD_FILE:
            repo.discard_path(str(pending.target), untracked=pending.untracked)
            state.set_flash(f"Discarded changes to '{pending.target}'")
        elif kind is ConfirmKind.DISCARD_ALL:
            repo.discard_all()
            state.set_flash("Discarded all unstaged changes")
        elif kind is ConfirmKind.BRANCH_DELETE:
            repo.delete_branch(str(pending.target))
            state.set_flash(f"Branch '{pending.target}' deleted")
        elif kind is ConfirmKind.STASH_DROP:
            repo.stash_drop(int(pending.target or 0))
            state.set_flash(f"Dropped stash@{{{pending.target}}}")
        elif kind is ConfirmKind.WORKTREE_REMOVE:
            repo.worktree_remove(str(pending.target))
            state.set_flash(f"Worktree '{pending.target}' removed")
        elif kind is ConfirmKind.CHERRY_PICK:
            self._cherry_pick(str(pending.target))
        elif kind is ConfirmKind.ABORT_MERGE:
            self._abort_merge()
        else:
            commit = merge.finalize_merge(repo)
            state.conflicts = None
            state.switch_view(ViewMode.GRAPH)
            state.set_flash(f"Merge committed as {commit[:7]}")

    def _cherry_pick(self, oid: str) -> None:
        state = self.state
        short = oid[:7]
        self.context.show_progress(f"Cherry-picking {short}…")
        result = merge.cherry_pick(self.context.repo, oid)
        if result.has_conflicts:
            open_conflicts(state, result.conflicts, f"cherry-pick {short}", state.current_branch or "HEAD", short)
        else:
            state.set_flash(f"Cherry-picked {short}")

    def _abort_merge(self) -> None:
        state = self.state
        state.conflicts = None
        state.switch_view(ViewMode.GRAPH)
        merge.abort_merge(self.context.repo)
        state.set_flash("Merge aborted")
