"""Index manipulation and the commit editor in the staging view."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from ..actions import Action, StagingAction
from ..errors import LazyGraphError
from ..state import ApplicationState, ConfirmKind, PendingConfirmation, ViewMode
from ..views import StagingFocus
from .base import ActionHandler, HandlerContext, Operation, report_failure
from .refresh import load_staging_diff, refresh_staging

logger = logging.getLogger(__name__)

FOCUS_CYCLE = {
    StagingFocus.UNSTAGED: StagingFocus.STAGED,
    StagingFocus.STAGED: StagingFocus.DIFF,
    StagingFocus.DIFF: StagingFocus.UNSTAGED,
    StagingFocus.COMMIT_MESSAGE: StagingFocus.UNSTAGED,
}


class StagingHandler(ActionHandler):
    category = StagingAction

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        return state.view_mode is ViewMode.STAGING

    def operations(self) -> dict[Enum, Operation]:
        return {
            StagingAction.STAGE_FILE: self._stage_file,
            StagingAction.UNSTAGE_FILE: self._unstage_file,
            StagingAction.STAGE_ALL: lambda ctx, _: self._index_op(ctx, "Stage", ctx.repo.stage_all),
            StagingAction.UNSTAGE_ALL: lambda ctx, _: self._index_op(ctx, "Unstage", ctx.repo.unstage_all),
            StagingAction.START_COMMIT: self._start_commit,
            StagingAction.START_AMEND: self._start_amend,
            StagingAction.CONFIRM_COMMIT: self._confirm_commit,
            StagingAction.CANCEL_COMMIT: self._cancel_commit,
            StagingAction.DISCARD_FILE: self._discard_file,
            StagingAction.DISCARD_ALL: self._discard_all,
            StagingAction.STASH_FILE: self._stash_file,
            StagingAction.STASH_UNSTAGED: self._stash_unstaged,
            StagingAction.SWITCH_FOCUS: self._switch_focus,
        }

    def _index_op(self, context: HandlerContext, label: str, operation: Callable[[], None]) -> None:
        state = context.state
        try:
            operation()
            refresh_staging(state, context.repo)
        except LazyGraphError as exc:
            report_failure(state, label, exc)
            return
        state.mark_dirty()

    def _stage_file(self, context: HandlerContext, action: Action) -> None:
        entry = context.state.staging.selected_unstaged()
        if entry is None:
            return
        self._index_op(context, "Stage", lambda: context.repo.stage_path(entry.path))

    def _unstage_file(self, context: HandlerContext, action: Action) -> None:
        entry = context.state.staging.selected_staged()
        if entry is None:
            return
        self._index_op(context, "Unstage", lambda: context.repo.unstage_path(entry.path))

    # ---------------------------------------------------------- commit editor

    def _start_commit(self, context: HandlerContext, action: Action) -> None:
        staging = context.state.staging
        if staging.is_committing and not staging.is_amending:
            staging.focus_on(StagingFocus.COMMIT_MESSAGE)
            return
        staging.reset_commit()
        staging.is_committing = True
        staging.focus_on(StagingFocus.COMMIT_MESSAGE)

    def _start_amend(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        staging = state.staging
        if context.repo.head_oid() is None:
            state.set_flash("Nothing to amend")
            return
        try:
            message = context.repo.head_message()
        except LazyGraphError as exc:
            report_failure(state, "Amend", exc)
            return
        staging.reset_commit()
        staging.commit_message.set_text(message)
        staging.is_committing = True
        staging.is_amending = True
        staging.focus_on(StagingFocus.COMMIT_MESSAGE)

    def _confirm_commit(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        staging = state.staging
        if not staging.is_committing:
            return
        message = staging.commit_message.text.strip()
        if not message:
            return
        amend = staging.is_amending
        try:
            oid = context.repo.commit(message, amend=amend)
        except LazyGraphError as exc:
            report_failure(state, "Amend" if amend else "Commit", exc)
            return
        logger.info("%s %s", "amended" if amend else "committed", oid[:7])
        staging.reset_commit()
        staging.focus_on(StagingFocus.UNSTAGED)
        state.set_flash(f"{'Amended' if amend else 'Committed'} {oid[:7]}")
        state.mark_dirty()

    def _cancel_commit(self, context: HandlerContext, action: Action) -> None:
        staging = context.state.staging
        staging.reset_commit()
        staging.focus_on(StagingFocus.UNSTAGED)

    # ------------------------------------------------------- discard / stash

    def _discard_file(self, context: HandlerContext, action: Action) -> None:
        entry = context.state.staging.selected_unstaged()
        if entry is None:
            return
        context.state.pending_confirmation = PendingConfirmation(
            ConfirmKind.DISCARD_FILE, entry.path, untracked=entry.is_untracked
        )

    def _discard_all(self, context: HandlerContext, action: Action) -> None:
        if not context.state.staging.unstaged:
            return
        context.state.pending_confirmation = PendingConfirmation(ConfirmKind.DISCARD_ALL)

    def _stash_file(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        entry = state.staging.selected_unstaged()
        if entry is None:
            return
        try:
            context.repo.stash_push_paths([entry.path], f"lazygraph: {entry.path}")
        except LazyGraphError as exc:
            report_failure(state, "Stash", exc)
            return
        state.set_flash(f"Stashed '{entry.path}'")
        state.mark_dirty()

    def _stash_unstaged(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        if not state.staging.unstaged:
            state.set_flash("No unstaged changes")
            return
        try:
            context.repo.stash_unstaged("lazygraph: unstaged changes")
        except LazyGraphError as exc:
            report_failure(state, "Stash", exc)
            return
        state.set_flash("Stashed unstaged changes")
        state.mark_dirty()

    def _switch_focus(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        staging = state.staging
        previous_list = staging.last_list
        target = FOCUS_CYCLE[staging.focus]
        if staging.focus is StagingFocus.DIFF and staging.is_committing:
            target = StagingFocus.COMMIT_MESSAGE
        staging.focus_on(target)
        if staging.last_list is not previous_list:
            load_staging_diff(state, context.repo)
