"""Branches, worktrees and stashes, plus the graph's branch side panel."""

from __future__ import annotations

from enum import Enum

from ..actions import Action, BranchAction
from ..errors import LazyGraphError
from ..git.types import BranchInfo
from ..state import ApplicationState, ConfirmKind, PendingConfirmation, ViewMode
from ..views import BranchesSection, InputAction
from .base import ActionHandler, HandlerContext, Operation, report_failure
from .git_ops import merge_named_branch
from .refresh import load_branch_panel, load_branches_view

GRAPH_PANEL_ACTIONS = frozenset({BranchAction.LIST, BranchAction.CHECKOUT, BranchAction.CREATE, BranchAction.DELETE})
WORKTREE_FORMAT = "Format: name path [branch]"


def _local_name(branch: BranchInfo) -> str:
    """Local name a remote-tracking branch checks out as (``origin/x`` becomes ``x``)."""
    return branch.name.split("/", 1)[1] if branch.is_remote and "/" in branch.name else branch.name


class BranchHandler(ActionHandler):
    category = BranchAction

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        """Accept everything in the branches view, and panel actions over the graph."""
        if state.view_mode is ViewMode.BRANCHES:
            return True
        if state.view_mode is not ViewMode.GRAPH or action.op not in GRAPH_PANEL_ACTIONS:
            return False
        return action.op in {BranchAction.LIST, BranchAction.CREATE} or state.show_branch_panel

    def operations(self) -> dict[Enum, Operation]:
        return {
            BranchAction.LIST: self._list,
            BranchAction.CHECKOUT: self._checkout,
            BranchAction.CREATE: self._create,
            BranchAction.DELETE: self._delete,
            BranchAction.RENAME: self._rename,
            BranchAction.TOGGLE_REMOTE: self._toggle_remote,
            BranchAction.MERGE: self._merge,
            BranchAction.STASH_SAVE: lambda ctx, _: ctx.state.branches_view.open_input(InputAction.SAVE_STASH),
            BranchAction.STASH_APPLY: lambda ctx, _: self._stash_op(ctx, "apply"),
            BranchAction.STASH_POP: lambda ctx, _: self._stash_op(ctx, "pop"),
            BranchAction.STASH_DROP: self._stash_drop,
            BranchAction.WORKTREE_CREATE: lambda ctx, _: ctx.state.branches_view.open_input(
                InputAction.CREATE_WORKTREE
            ),
            BranchAction.WORKTREE_REMOVE: self._worktree_remove,
            BranchAction.NEXT_SECTION: self._next_section,
            BranchAction.PREVIOUS_SECTION: self._previous_section,
            BranchAction.CONFIRM_INPUT: self._confirm_input,
            BranchAction.CANCEL_INPUT: lambda ctx, _: ctx.state.branches_view.close_input(),
        }

    def _reload(self, context: HandlerContext) -> None:
        """Reload whichever branch listing is on screen."""
        state = context.state
        try:
            if state.view_mode is ViewMode.BRANCHES:
                load_branches_view(state, context.repo)
            else:
                load_branch_panel(state, context.repo)
        except LazyGraphError as exc:
            report_failure(state, "Branches", exc)

    def _selected(self, state: ApplicationState) -> BranchInfo | None:
        """Return the branch under the cursor of the panel or the branches view."""
        if state.view_mode is ViewMode.GRAPH:
            if not state.branches:
                return None
            return state.branches[max(0, min(state.branch_selected, len(state.branches) - 1))]
        if state.branches_view.section is not BranchesSection.BRANCHES:
            return None
        return state.branches_view.selected_branch()

    # ------------------------------------------------------------ branches

    def _list(self, context: HandlerContext, action: Action) -> None:
        """Toggle the branch side panel over the graph."""
        state = context.state
        state.show_branch_panel = not state.show_branch_panel
        if state.show_branch_panel:
            state.branch_selected = 0
            self._reload(context)

    def _checkout(self, context: HandlerContext, action: Action) -> None:
        """Check out the selected branch, tracking it locally when it is remote."""
        state = context.state
        branch = self._selected(state)
        if branch is None:
            return
        name = _local_name(branch)
        try:
            context.repo.checkout_branch(branch.name if branch.is_remote else name, remote=branch.is_remote)
        except LazyGraphError as exc:
            report_failure(state, "Checkout", exc)
            return
        state.set_flash(f"Branch '{name}' checked out")
        state.mark_dirty()

    def _create(self, context: HandlerContext, action: Action) -> None:
        """Open the new-branch input, entering the branches view from the graph."""
        state = context.state
        if state.view_mode is ViewMode.GRAPH:
            state.show_branch_panel = False
            state.switch_view(ViewMode.BRANCHES)
            self._reload(context)
        state.branches_view.section = BranchesSection.BRANCHES
        state.branches_view.open_input(InputAction.CREATE_BRANCH)

    def _delete(self, context: HandlerContext, action: Action) -> None:
        """Ask before deleting the selected local branch."""
        state = context.state
        if state.view_mode is ViewMode.BRANCHES and state.branches_view.section is not BranchesSection.BRANCHES:
            return
        branch = self._selected(state)
        if branch is None:
            return
        if branch.is_remote:
            state.set_flash("Remote branches cannot be deleted here")
            return
        if branch.is_head:
            state.set_flash("Cannot delete the checked-out branch")
            return
        state.pending_confirmation = PendingConfirmation(ConfirmKind.BRANCH_DELETE, branch.name)

    def _rename(self, context: HandlerContext, action: Action) -> None:
        """Open the rename input prefilled with the selected branch name."""
        state = context.state
        branch = self._selected(state)
        if branch is None or branch.is_remote:
            return
        state.branches_view.open_input(InputAction.RENAME_BRANCH, branch.name)

    def _toggle_remote(self, context: HandlerContext, action: Action) -> None:
        """Show or hide remote-tracking branches."""
        view = context.state.branches_view
        view.show_remote = not view.show_remote
        view.clamp_all()

    def _merge(self, context: HandlerContext, action: Action) -> None:
        """Merge the selected branch into the current one."""
        state = context.state
        branch = self._selected(state)
        if branch is None:
            return
        if branch.is_head:
            state.set_flash("Cannot merge a branch into itself")
            return
        merge_named_branch(context, branch.name)

    # --------------------------------------------------- stashes / worktrees

    def _stash_op(self, context: HandlerContext, verb: str) -> None:
        """Apply or pop the selected stash depending on ``verb``."""
        state = context.state
        view = state.branches_view
        if view.section is not BranchesSection.STASHES:
            return
        stash = view.selected_stash()
        if stash is None:
            return
        operation = context.repo.stash_apply if verb == "apply" else context.repo.stash_pop
        try:
            operation(stash.index)
        except LazyGraphError as exc:
            report_failure(state, f"Stash {verb}", exc)
            return
        state.set_flash(f"{'Applied' if verb == 'apply' else 'Popped'} stash@{{{stash.index}}}")
        state.mark_dirty()

    def _stash_drop(self, context: HandlerContext, action: Action) -> None:
        """Ask before dropping the selected stash."""
        view = context.state.branches_view
        if view.section is not BranchesSection.STASHES:
            return
        stash = view.selected_stash()
        if stash is not None:
            context.state.pending_confirmation = PendingConfirmation(ConfirmKind.STASH_DROP, stash.index)

    def _worktree_remove(self, context: HandlerContext, action: Action) -> None:
        """Ask before removing the selected linked worktree."""
        state = context.state
        view = state.branches_view
        if view.section is not BranchesSection.WORKTREES:
            return
        worktree = view.selected_worktree()
        if worktree is None:
            return
        if worktree.is_main:
            state.set_flash("Cannot remove the main worktree")
            return
        state.pending_confirmation = PendingConfirmation(ConfirmKind.WORKTREE_REMOVE, worktree.path)

    def _next_section(self, context: HandlerContext, action: Action) -> None:
        """Cycle to the next section of the branches view."""
        view = context.state.branches_view
        view.section = view.section.next()

    def _previous_section(self, context: HandlerContext, action: Action) -> None:
        """Cycle to the previous section of the branches view."""
        view = context.state.branches_view
        view.section = view.section.previous()

    # ---------------------------------------------------------------- input

    def _confirm_input(self, context: HandlerContext, action: Action) -> None:
        """Run the pending input action with the typed value and close the input."""
        state = context.state
        view = state.branches_view
        input_action = view.input_action
        value = view.input.text.strip()
        repo = context.repo
        try:
            if input_action is InputAction.CREATE_BRANCH:
                if value:
                    repo.create_branch(value)
                    state.set_flash(f"Branch '{value}' created")
            elif input_action is InputAction.RENAME_BRANCH:
                branch = view.selected_branch()
                if branch is not None and value and value != branch.name:
                    repo.rename_branch(branch.name, value)
                    state.set_flash(f"Branch '{branch.name}' renamed to '{value}'")
            elif input_action is InputAction.CREATE_WORKTREE:
                parts = value.split()
                if len(parts) not in (2, 3):
                    state.set_flash(WORKTREE_FORMAT)
                else:
                    name, path = parts[0], parts[1]
                    repo.worktree_add(name, path, parts[2] if len(parts) == 3 else None)
                    state.set_flash(f"Worktree '{name}' created at {path}")
            elif input_action is InputAction.SAVE_STASH:
                repo.stash_save(value or None)
                state.set_flash("Changes stashed")
        except LazyGraphError as exc:
            report_failure(state, input_action.name.replace("_", " ").capitalize() if input_action else "Input", exc)
        view.close_input()
        state.mark_dirty()
