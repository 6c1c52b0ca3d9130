"""Key-to-action mapping across views and modal contexts."""

from __future__ import annotations

import unittest
from pathlib import Path

from lazygraph.actions import (
    AppAction,
    BranchAction,
    ConflictAction,
    EditAction,
    FilterAction,
    GitAction,
    NavigationAction,
    SearchAction,
    StagingAction,
    act,
)
from lazygraph.conflict import ConflictFile, Granularity, parse_conflicts
from lazygraph.input.key_registry import KeyTable, bind
from lazygraph.input.keymap import key_to_action
from lazygraph.state import ApplicationState, ConfirmKind, PendingConfirmation, ViewMode
from lazygraph.text_buffer import MultilineBuffer
from lazygraph.views import (
    BranchesSection,
    ConflictPanel,
    ConflictsState,
    InputAction,
    MergePickerState,
    StagingFocus,
)

CONFLICTED = "<<<<<<< HEAD\na\n=======\nb\n>>>>>>> x\n"


def _state(**changes) -> ApplicationState:
    state = ApplicationState(repo_path=Path("/repo"))
    for name, value in changes.items():
        setattr(state, name, value)
    return state


def _op(state: ApplicationState, key: str):
    action = key_to_action(state, key)
    return action.op if action is not None else None


class KeyTableTests(unittest.TestCase):
    def test_lookup_and_membership(self) -> None:
        table = KeyTable(bind(act(AppAction.QUIT), "q", "ESC"))
        self.assertIs(table.lookup("q").op, AppAction.QUIT)
        self.assertIn("ESC", table)
        self.assertIsNone(table.lookup("x"))

    def test_normalize_applies_to_lookup(self) -> None:
        table = KeyTable(bind(act(AppAction.CONFIRM_ACTION), "y"), normalize=str.lower)
        self.assertIs(table.lookup("Y").op, AppAction.CONFIRM_ACTION)


class GlobalKeyTests(unittest.TestCase):
    def test_ctrl_c_quits_everywhere(self) -> None:
        state = _state(pending_confirmation=PendingConfirmation(ConfirmKind.DISCARD_ALL))
        self.assertIs(_op(state, "CTRL_C"), AppAction.QUIT)

    def test_view_switch_keys(self) -> None:
        action = key_to_action(_state(), "3")
        self.assertIs(action.op, AppAction.SWITCH_VIEW)
        self.assertIs(action.view, ViewMode.BRANCHES)

    def test_unbound_key_maps_to_none(self) -> None:
        self.assertIsNone(key_to_action(_state(), "Z"))
        self.assertIsNone(key_to_action(_state(), ""))


class ModalPriorityTests(unittest.TestCase):
    def test_merge_picker_wins(self) -> None:
        state = _state(merge_picker=MergePickerState(["feature"]))
        self.assertIs(_op(state, "j"), AppAction.MERGE_PICKER_DOWN)
        self.assertIs(_op(state, "ENTER"), AppAction.MERGE_PICKER_CONFIRM)
        self.assertIsNone(_op(state, "c"))

    def test_confirmation_accepts_upper_and_lower_case(self) -> None:
        state = _state(pending_confirmation=PendingConfirmation(ConfirmKind.DISCARD_ALL))
        self.assertIs(_op(state, "Y"), AppAction.CONFIRM_ACTION)
        self.assertIs(_op(state, "n"), AppAction.CANCEL_ACTION)
        self.assertIs(_op(state, "ESC"), AppAction.CANCEL_ACTION)
        self.assertIsNone(_op(state, "q"))

    def test_search_prompt_captures_text(self) -> None:
        state = _state()
        state.search.is_active = True
        action = key_to_action(state, "q")
        self.assertIs(action.op, SearchAction.INSERT_CHAR)
        self.assertEqual(action.char, "q")
        self.assertIs(_op(state, "TAB"), SearchAction.CHANGE_TYPE)
        self.assertIs(_op(state, "ENTER"), SearchAction.EXECUTE)

    def test_filter_popup_captures_text(self) -> None:
        state = _state()
        state.filter_popup.is_open = True
        self.assertIs(_op(state, "a"), FilterAction.INSERT_CHAR)
        self.assertIs(_op(state, "TAB"), FilterAction.NEXT_FIELD)
        self.assertIs(_op(state, "CTRL_R"), FilterAction.CLEAR)

    def test_commit_editor_captures_text(self) -> None:
        state = _state(view_mode=ViewMode.STAGING)
        state.staging.is_committing = True
        state.staging.focus_on(StagingFocus.COMMIT_MESSAGE)
        self.assertIs(_op(state, "q"), EditAction.INSERT_CHAR)
        self.assertIs(_op(state, "2"), EditAction.INSERT_CHAR)
        self.assertIs(_op(state, "ENTER"), StagingAction.CONFIRM_COMMIT)
        self.assertIs(_op(state, "ESC"), StagingAction.CANCEL_COMMIT)
        self.assertIs(_op(state, "TAB"), StagingAction.SWITCH_FOCUS)
        self.assertIs(_op(state, "LEFT"), EditAction.CURSOR_LEFT)

    def test_branch_input_captures_text(self) -> None:
        state = _state(view_mode=ViewMode.BRANCHES)
        state.branches_view.open_input(InputAction.CREATE_BRANCH)
        self.assertIs(_op(state, "d"), EditAction.INSERT_CHAR)
        self.assertIs(_op(state, "ENTER"), BranchAction.CONFIRM_INPUT)


class ViewKeyTests(unittest.TestCase):
    def test_graph_keys(self) -> None:
        state = _state()
        self.assertIs(_op(state, "j"), NavigationAction.MOVE_DOWN)
        self.assertIs(_op(state, "/"), SearchAction.OPEN)
        self.assertIs(_op(state, "F"), FilterAction.OPEN)
        self.assertIs(_op(state, "x"), GitAction.CHERRY_PICK)
        self.assertIs(_op(state, "P"), GitAction.PUSH)
        self.assertIs(_op(state, "q"), AppAction.QUIT)

    def test_branch_panel_overrides_graph_keys(self) -> None:
        state = _state(show_branch_panel=True)
        self.assertIs(_op(state, "ENTER"), BranchAction.CHECKOUT)
        self.assertIs(_op(state, "n"), BranchAction.CREATE)
        self.assertIs(_op(state, "ESC"), BranchAction.LIST)

    def test_staging_keys_depend_on_focus(self) -> None:
        state = _state(view_mode=ViewMode.STAGING)
        self.assertIs(_op(state, "ENTER"), StagingAction.STAGE_FILE)
        self.assertIs(_op(state, "W"), StagingAction.STASH_UNSTAGED)
        state.staging.focus_on(StagingFocus.STAGED)
        self.assertIs(_op(state, "ENTER"), StagingAction.UNSTAGE_FILE)
        self.assertIs(_op(state, "q"), NavigationAction.BACK_TO_GRAPH)

    def test_branches_keys_depend_on_section(self) -> None:
        state = _state(view_mode=ViewMode.BRANCHES)
        self.assertIs(_op(state, "d"), BranchAction.DELETE)
        state.branches_view.section = BranchesSection.STASHES
        self.assertIs(_op(state, "d"), BranchAction.STASH_DROP)
        state.branches_view.section = BranchesSection.WORKTREES
        self.assertIs(_op(state, "d"), BranchAction.WORKTREE_REMOVE)

    def test_help_and_blame(self) -> None:
        self.assertIs(_op(_state(view_mode=ViewMode.HELP), "q"), AppAction.TOGGLE_HELP)
        self.assertIs(_op(_state(view_mode=ViewMode.BLAME), "ENTER"), GitAction.JUMP_TO_BLAME_COMMIT)


class ConflictKeyTests(unittest.TestCase):
    def _state(self) -> ApplicationState:
        conflict_file = ConflictFile("a.txt", parse_conflicts(CONFLICTED), original_text=CONFLICTED)
        state = _state(view_mode=ViewMode.CONFLICTS)
        state.conflicts = ConflictsState([conflict_file], "merge x", "main", "x")
        return state

    def test_side_keys_are_file_level_in_file_list(self) -> None:
        state = self._state()
        self.assertIs(_op(state, "o"), ConflictAction.ACCEPT_OURS_FILE)
        self.assertIs(_op(state, "RIGHT"), ConflictAction.ACCEPT_THEIRS_FILE)
        self.assertIs(_op(state, "j"), ConflictAction.NEXT_FILE)

    def test_side_keys_are_block_level_in_panels(self) -> None:
        state = self._state()
        state.conflicts.panel = ConflictPanel.OURS
        self.assertIs(_op(state, "t"), ConflictAction.ACCEPT_THEIRS_BLOCK)
        self.assertIs(_op(state, "j"), ConflictAction.NEXT_SECTION)

    def test_motion_follows_granularity(self) -> None:
        state = self._state()
        state.conflicts.panel = ConflictPanel.THEIRS
        state.conflicts.mode = Granularity.LINE
        self.assertIs(_op(state, "k"), ConflictAction.LINE_UP)
        state.conflicts.panel = ConflictPanel.RESULT
        self.assertIs(_op(state, "j"), ConflictAction.SCROLL_RESULT_DOWN)

    def test_editor_captures_text(self) -> None:
        state = self._state()
        state.conflicts.editor = MultilineBuffer()
        self.assertIs(_op(state, "q"), ConflictAction.EDIT_INSERT_CHAR)
        self.assertIs(_op(state, "CTRL_S"), ConflictAction.CONFIRM_EDIT)
        self.assertIs(_op(state, "ESC"), ConflictAction.CANCEL_EDIT)

    def test_finalize_and_abort(self) -> None:
        state = self._state()
        self.assertIs(_op(state, "V"), ConflictAction.FINALIZE_MERGE)
        self.assertIs(_op(state, "A"), ConflictAction.ABORT_MERGE)

    def test_without_merge_escape_goes_back(self) -> None:
        state = _state(view_mode=ViewMode.CONFLICTS)
        self.assertIs(_op(state, "q"), NavigationAction.BACK_TO_GRAPH)


if __name__ == "__main__":
    unittest.main()
