"""Remote operations, prompts that leave the graph, and blame."""

from __future__ import annotations

from enum import Enum

from .. import merge
from ..actions import Action, GitAction
from ..errors import LazyGraphError
from ..state import ConfirmKind, FocusPanel, PendingConfirmation, ViewMode
from ..views import BlameState, BranchesSection, InputAction, MergePickerState, StagingFocus
from .base import ActionHandler, HandlerContext, Operation, report_failure
from .refresh import load_branches_view, report_merge_result, select_commit

UNCOMMITTED_OID = "0" * 40


class GitHandler(ActionHandler):
    category = GitAction

    def operations(self) -> dict[Enum, Operation]:
        return {
            GitAction.PUSH: self._push,
            GitAction.PULL: self._pull,
            GitAction.FETCH: self._fetch,
            GitAction.CHERRY_PICK: self._cherry_pick,
            GitAction.COMMIT_PROMPT: lambda ctx, _: self._commit_prompt(ctx, amend=False),
            GitAction.AMEND_PROMPT: lambda ctx, _: self._commit_prompt(ctx, amend=True),
            GitAction.STASH_PROMPT: self._stash_prompt,
            GitAction.MERGE_PROMPT: self._merge_prompt,
            GitAction.OPEN_BLAME: self._open_blame,
            GitAction.CLOSE_BLAME: self._close_blame,
            GitAction.JUMP_TO_BLAME_COMMIT: self._jump_to_blame_commit,
        }

    # ------------------------------------------------------------ remotes

    def _push(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        context.show_progress("Pushing…")
        try:
            remote, branch = merge.push(context.repo, state.settings.default_remote)
        except LazyGraphError as exc:
            report_failure(state, "Push", exc)
            return
        state.set_flash(f"Pushed '{branch}' to {remote}")
        state.mark_dirty()

    def _pull(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        context.show_progress("Pulling…")
        try:
            result = merge.pull(context.repo, state.settings.default_remote)
        except LazyGraphError as exc:
            report_failure(state, "Pull", exc)
            return
        report_merge_result(state, result, "pull")

    def _fetch(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        context.show_progress("Fetching…")
        try:
            remote = merge.fetch(context.repo, state.settings.default_remote)
        except LazyGraphError as exc:
            report_failure(state, "Fetch", exc)
            return
        state.set_flash(f"Fetched from {remote}")
        state.mark_dirty()

    def _cherry_pick(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        commit = state.selected_commit()
        if state.view_mode is not ViewMode.GRAPH or commit is None:
            return
        state.pending_confirmation = PendingConfirmation(ConfirmKind.CHERRY_PICK, commit.oid)

    # ------------------------------------------------------------ prompts

    def _commit_prompt(self, context: HandlerContext, *, amend: bool) -> None:
        state = context.state
        staging = state.staging
        staging.reset_commit()
        if amend:
            if context.repo.head_oid() is None:
                state.set_flash("Nothing to amend")
                return
            try:
                staging.commit_message.set_text(context.repo.head_message())
            except LazyGraphError as exc:
                report_failure(state, "Amend", exc)
                return
            staging.is_amending = True
        staging.is_committing = True
        staging.focus_on(StagingFocus.COMMIT_MESSAGE)
        state.switch_view(ViewMode.STAGING)
        state.mark_dirty()

    def _stash_prompt(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        state.switch_view(ViewMode.BRANCHES)
        state.branches_view.section = BranchesSection.STASHES
        state.branches_view.open_input(InputAction.SAVE_STASH)
        try:
            load_branches_view(state, context.repo)
        except LazyGraphError as exc:
            report_failure(state, "Branches", exc)

    def _merge_prompt(self, context: HandlerContext, action: Action) -> None:
        open_merge_picker(context)

    # -------------------------------------------------------------- blame

    def _open_blame(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        if state.view_mode is not ViewMode.GRAPH or state.focus is not FocusPanel.FILES:
            return
        commit = state.selected_commit()
        selected = state.selected_file()
        if commit is None or selected is None:
            return
        if selected.status == "D":
            state.set_flash(f"'{selected.path}' was deleted in {commit.short_hash}")
            return
        try:
            blame = context.repo.blame(commit.oid, selected.path)
        except LazyGraphError as exc:
            report_failure(state, "Blame", exc)
            return
        state.blame = BlameState(commit.oid, selected.path, blame)
        state.switch_view(ViewMode.BLAME)

    def _close_blame(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        state.blame = None
        state.switch_view(ViewMode.GRAPH)

    def _jump_to_blame_commit(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        if state.blame is None:
            return
        line = state.blame.selected()
        state.blame = None
        state.switch_view(ViewMode.GRAPH)
        if line is None:
            return
        if line.commit_oid == UNCOMMITTED_OID:
            state.set_flash("Line is not committed yet")
            return
        for idx, commit in enumerate(state.commits):
            if commit.oid == line.commit_oid:
                select_commit(state, context.repo, idx)
                state.focus = FocusPanel.GRAPH
                return
        state.set_flash(f"Commit {line.short_hash} is not in the loaded history")


def open_merge_picker(context: HandlerContext) -> None:
    """Offer every local branch other than the current one as a merge source."""
    state = context.state
    try:
        local, _ = context.repo.list_branches()
    except LazyGraphError as exc:
        report_failure(state, "Merge", exc)
        return
    candidates = [branch.name for branch in local if not branch.is_head and branch.name != state.current_branch]
    if not candidates:
        state.set_flash("No branch to merge")
        return
    state.merge_picker = MergePickerState(candidates)


def confirm_merge_picker(context: HandlerContext) -> None:
    """Close the merge picker and merge the highlighted branch."""
    state = context.state
    picker = state.merge_picker
    state.merge_picker = None
    name = picker.current() if picker is not None else None
    if name is None:
        return
    merge_named_branch(context, name)


def merge_named_branch(context: HandlerContext, name: str) -> None:
    """Merge ``name`` into the current branch and report the outcome."""
    state = context.state
    context.show_progress(f"Merging '{name}'…")
    try:
        result = merge.merge_branch(context.repo, name)
    except LazyGraphError as exc:
        report_failure(state, "Merge", exc)
        return
    report_merge_result(state, result, "merge")
