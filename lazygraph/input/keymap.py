"""Translate key tokens into ``Action`` values for the current state.

Modal contexts are checked first, in priority order: the merge picker, a
pending confirmation, the search prompt, the filter popup and any active
text editor. Otherwise the active view's table decides.
"""

from __future__ import annotations

from ..actions import (
    Action,
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
    switch_view,
)
from ..conflict import Granularity
from ..handlers.edit import editing_buffer
from ..state import ApplicationState, ViewMode
from ..views import BranchesSection, ConflictPanel, StagingFocus
from .key_registry import KeyTable, bind

QUIT = act(AppAction.QUIT)

VIEW_KEYS = KeyTable(
    bind(switch_view(ViewMode.GRAPH), "1"),
    bind(switch_view(ViewMode.STAGING), "2"),
    bind(switch_view(ViewMode.BRANCHES), "3"),
    bind(switch_view(ViewMode.CONFLICTS), "4"),
)

MERGE_PICKER_KEYS = KeyTable(
    bind(act(AppAction.MERGE_PICKER_DOWN), "j", "DOWN"),
    bind(act(AppAction.MERGE_PICKER_UP), "k", "UP"),
    bind(act(AppAction.MERGE_PICKER_CONFIRM), "ENTER"),
    bind(act(AppAction.MERGE_PICKER_CANCEL), "ESC", "q"),
)

CONFIRM_KEYS = KeyTable(
    bind(act(AppAction.CONFIRM_ACTION), "y"),
    bind(act(AppAction.CANCEL_ACTION), "n", "ESC"),
    normalize=lambda key: key.lower() if len(key) == 1 else key,
)

SEARCH_KEYS = KeyTable(
    bind(act(SearchAction.CLOSE), "ESC"),
    bind(act(SearchAction.EXECUTE), "ENTER"),
    bind(act(SearchAction.NEXT_RESULT), "CTRL_N", "DOWN"),
    bind(act(SearchAction.PREVIOUS_RESULT), "CTRL_P", "UP"),
    bind(act(SearchAction.CHANGE_TYPE), "TAB"),
    bind(act(SearchAction.DELETE_CHAR), "BACKSPACE"),
)

FILTER_KEYS = KeyTable(
    bind(act(FilterAction.CLOSE), "ESC"),
    bind(act(FilterAction.APPLY), "ENTER"),
    bind(act(FilterAction.NEXT_FIELD), "TAB", "DOWN"),
    bind(act(FilterAction.PREVIOUS_FIELD), "BACKTAB", "UP"),
    bind(act(FilterAction.CLEAR), "CTRL_R"),
    bind(act(FilterAction.DELETE_CHAR), "BACKSPACE"),
)

EDIT_KEYS = KeyTable(
    bind(act(EditAction.DELETE_CHAR_BEFORE), "BACKSPACE"),
    bind(act(EditAction.DELETE_CHAR_AFTER), "DELETE"),
    bind(act(EditAction.CURSOR_LEFT), "LEFT"),
    bind(act(EditAction.CURSOR_RIGHT), "RIGHT"),
    bind(act(EditAction.CURSOR_HOME), "HOME"),
    bind(act(EditAction.CURSOR_END), "END"),
)

COMMIT_EDITOR_KEYS = KeyTable(
    bind(act(StagingAction.CONFIRM_COMMIT), "ENTER"),
    bind(act(StagingAction.CANCEL_COMMIT), "ESC"),
    bind(act(StagingAction.SWITCH_FOCUS), "TAB"),
)

BRANCH_INPUT_KEYS = KeyTable(
    bind(act(BranchAction.CONFIRM_INPUT), "ENTER"),
    bind(act(BranchAction.CANCEL_INPUT), "ESC"),
)

LIST_MOTION = (
    bind(act(NavigationAction.MOVE_DOWN), "j", "DOWN"),
    bind(act(NavigationAction.MOVE_UP), "k", "UP"),
    bind(act(NavigationAction.GO_TOP), "g", "HOME"),
    bind(act(NavigationAction.GO_BOTTOM), "G", "END"),
    bind(act(NavigationAction.PAGE_UP), "PAGE_UP"),
    bind(act(NavigationAction.PAGE_DOWN), "PAGE_DOWN"),
)

BRANCH_PANEL_KEYS = KeyTable(
    *LIST_MOTION,
    bind(act(BranchAction.LIST), "ESC", "b"),
    bind(act(BranchAction.CHECKOUT), "ENTER"),
    bind(act(BranchAction.CREATE), "n"),
    bind(act(BranchAction.DELETE), "d"),
    bind(QUIT, "q"),
)

GRAPH_KEYS = KeyTable(
    *LIST_MOTION,
    bind(QUIT, "q"),
    bind(act(AppAction.SELECT), "ENTER"),
    bind(act(GitAction.COMMIT_PROMPT), "c"),
    bind(act(GitAction.AMEND_PROMPT), "A"),
    bind(act(GitAction.STASH_PROMPT), "s"),
    bind(act(GitAction.MERGE_PROMPT), "m"),
    bind(act(BranchAction.LIST), "b"),
    bind(act(GitAction.PUSH), "P"),
    bind(act(GitAction.PULL), "p"),
    bind(act(GitAction.FETCH), "f"),
    bind(act(SearchAction.OPEN), "/"),
    bind(act(SearchAction.NEXT_RESULT), "n"),
    bind(act(SearchAction.PREVIOUS_RESULT), "N"),
    bind(act(FilterAction.OPEN), "F"),
    bind(act(GitAction.OPEN_BLAME), "B"),
    bind(act(GitAction.CHERRY_PICK), "x"),
    bind(act(AppAction.TOGGLE_HELP), "?"),
    bind(act(AppAction.REFRESH), "r"),
    bind(act(AppAction.COPY_TO_CLIPBOARD), "y"),
    bind(act(NavigationAction.SWITCH_PANEL), "TAB"),
    bind(act(AppAction.TOGGLE_DIFF_VIEW_MODE), "v"),
    bind(act(NavigationAction.BACK_TO_GRAPH), "ESC"),
    bind(act(NavigationAction.SCROLL_DIFF_DOWN), "J"),
    bind(act(NavigationAction.SCROLL_DIFF_UP), "K"),
    bind(act(NavigationAction.FILE_DOWN), "]"),
    bind(act(NavigationAction.FILE_UP), "["),
)

STAGING_COMMON = (
    bind(act(NavigationAction.MOVE_DOWN), "j", "DOWN"),
    bind(act(NavigationAction.MOVE_UP), "k", "UP"),
    bind(act(NavigationAction.PAGE_UP), "PAGE_UP"),
    bind(act(NavigationAction.PAGE_DOWN), "PAGE_DOWN"),
    bind(act(StagingAction.SWITCH_FOCUS), "TAB"),
    bind(act(AppAction.TOGGLE_DIFF_VIEW_MODE), "v"),
    bind(act(AppAction.TOGGLE_HELP), "?"),
    bind(act(AppAction.REFRESH), "r"),
    bind(act(AppAction.COPY_TO_CLIPBOARD), "y"),
    bind(act(NavigationAction.BACK_TO_GRAPH), "ESC", "q"),
)

STAGING_KEYS = {
    StagingFocus.UNSTAGED: KeyTable(
        *STAGING_COMMON,
        bind(act(StagingAction.STAGE_FILE), "s", "ENTER"),
        bind(act(StagingAction.STASH_FILE), "S"),
        bind(act(StagingAction.STASH_UNSTAGED), "W"),
        bind(act(StagingAction.STAGE_ALL), "a"),
        bind(act(StagingAction.DISCARD_FILE), "d"),
        bind(act(StagingAction.DISCARD_ALL), "D"),
        bind(act(StagingAction.START_COMMIT), "c"),
        bind(act(StagingAction.START_AMEND), "A"),
    ),
    StagingFocus.STAGED: KeyTable(
        *STAGING_COMMON,
        bind(act(StagingAction.UNSTAGE_FILE), "u", "ENTER"),
        bind(act(StagingAction.UNSTAGE_ALL), "U"),
        bind(act(StagingAction.START_COMMIT), "c"),
        bind(act(StagingAction.START_AMEND), "A"),
    ),
    StagingFocus.DIFF: KeyTable(
        *STAGING_COMMON,
        bind(act(StagingAction.SWITCH_FOCUS), "TAB", "ESC"),
        bind(act(NavigationAction.BACK_TO_GRAPH), "q"),
    ),
    StagingFocus.COMMIT_MESSAGE: COMMIT_EDITOR_KEYS,
}

BRANCHES_COMMON = (
    *LIST_MOTION,
    bind(act(BranchAction.NEXT_SECTION), "TAB"),
    bind(act(BranchAction.PREVIOUS_SECTION), "BACKTAB"),
    bind(act(NavigationAction.BACK_TO_GRAPH), "ESC", "q"),
    bind(act(AppAction.TOGGLE_HELP), "?"),
)

BRANCHES_KEYS = {
    BranchesSection.BRANCHES: KeyTable(
        *BRANCHES_COMMON,
        bind(act(BranchAction.CHECKOUT), "ENTER"),
        bind(act(BranchAction.CREATE), "n"),
        bind(act(BranchAction.DELETE), "d"),
        bind(act(BranchAction.RENAME), "r"),
        bind(act(BranchAction.TOGGLE_REMOTE), "R"),
        bind(act(BranchAction.MERGE), "m"),
    ),
    BranchesSection.WORKTREES: KeyTable(
        *BRANCHES_COMMON,
        bind(act(BranchAction.WORKTREE_CREATE), "n"),
        bind(act(BranchAction.WORKTREE_REMOVE), "d"),
    ),
    BranchesSection.STASHES: KeyTable(
        *BRANCHES_COMMON,
        bind(act(BranchAction.STASH_APPLY), "a", "ENTER"),
        bind(act(BranchAction.STASH_POP), "p"),
        bind(act(BranchAction.STASH_DROP), "d"),
        bind(act(BranchAction.STASH_SAVE), "s"),
    ),
}

BLAME_KEYS = KeyTable(
    *LIST_MOTION,
    bind(act(GitAction.CLOSE_BLAME), "q", "ESC"),
    bind(act(GitAction.JUMP_TO_BLAME_COMMIT), "ENTER"),
    bind(act(AppAction.COPY_TO_CLIPBOARD), "y"),
    bind(act(AppAction.TOGGLE_HELP), "?"),
)

HELP_KEYS = KeyTable(bind(act(AppAction.TOGGLE_HELP), "?", "ESC", "q"))

CONFLICT_EDITOR_KEYS = KeyTable(
    bind(act(ConflictAction.CANCEL_EDIT), "ESC"),
    bind(act(ConflictAction.CONFIRM_EDIT), "CTRL_S"),
    bind(act(ConflictAction.EDIT_BACKSPACE), "BACKSPACE"),
    bind(act(ConflictAction.EDIT_DELETE), "DELETE"),
    bind(act(ConflictAction.EDIT_NEWLINE), "ENTER"),
    bind(act(ConflictAction.EDIT_CURSOR_UP), "UP"),
    bind(act(ConflictAction.EDIT_CURSOR_DOWN), "DOWN"),
    bind(act(ConflictAction.EDIT_CURSOR_LEFT), "LEFT"),
    bind(act(ConflictAction.EDIT_CURSOR_RIGHT), "RIGHT"),
)

CONFLICT_KEYS = KeyTable(
    bind(act(ConflictAction.SWITCH_PANEL), "TAB"),
    bind(act(ConflictAction.SWITCH_PANEL_REVERSE), "BACKTAB"),
    bind(act(ConflictAction.ACCEPT_BOTH), "b"),
    bind(act(ConflictAction.START_EDITING), "i", "e"),
    bind(act(ConflictAction.TOGGLE_LINE), " "),
    bind(act(ConflictAction.SET_MODE_FILE), "F"),
    bind(act(ConflictAction.SET_MODE_BLOCK), "B"),
    bind(act(ConflictAction.SET_MODE_LINE), "L"),
    bind(act(ConflictAction.ENTER_RESOLVE), "ENTER"),
    bind(act(ConflictAction.MARK_RESOLVED), "M"),
    bind(act(ConflictAction.FINALIZE_MERGE), "V"),
    bind(act(ConflictAction.ABORT_MERGE), "A"),
    bind(act(ConflictAction.LEAVE_VIEW), "q", "ESC"),
    bind(act(AppAction.TOGGLE_HELP), "?"),
)

FILE_MOTION = {
    "j": act(ConflictAction.NEXT_FILE),
    "DOWN": act(ConflictAction.NEXT_FILE),
    "k": act(ConflictAction.PREVIOUS_FILE),
    "UP": act(ConflictAction.PREVIOUS_FILE),
}
SECTION_MOTION = {
    "j": act(ConflictAction.NEXT_SECTION),
    "DOWN": act(ConflictAction.NEXT_SECTION),
    "k": act(ConflictAction.PREVIOUS_SECTION),
    "UP": act(ConflictAction.PREVIOUS_SECTION),
}
LINE_MOTION = {
    "j": act(ConflictAction.LINE_DOWN),
    "DOWN": act(ConflictAction.LINE_DOWN),
    "k": act(ConflictAction.LINE_UP),
    "UP": act(ConflictAction.LINE_UP),
}
RESULT_MOTION = {
    "j": act(ConflictAction.SCROLL_RESULT_DOWN),
    "DOWN": act(ConflictAction.SCROLL_RESULT_DOWN),
    "k": act(ConflictAction.SCROLL_RESULT_UP),
    "UP": act(ConflictAction.SCROLL_RESULT_UP),
}


def is_text_key(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def _table_or_text(table: KeyTable, key: str, text_op) -> Action | None:
    action = table.lookup(key)
    if action is not None:
        return action
    if is_text_key(key):
        return act(text_op, key)
    return None


def _graph_action(state: ApplicationState, key: str) -> Action | None:
    if state.show_branch_panel:
        return BRANCH_PANEL_KEYS.lookup(key)
    return GRAPH_KEYS.lookup(key)


def _conflict_action(state: ApplicationState, key: str) -> Action | None:
    conflicts = state.conflicts
    if conflicts is None:
        return act(NavigationAction.BACK_TO_GRAPH) if key in {"q", "ESC"} else None
    if conflicts.is_editing:
        return _table_or_text(CONFLICT_EDITOR_KEYS, key, ConflictAction.EDIT_INSERT_CHAR)

    panel = conflicts.panel
    if key in {"o", "LEFT", "t", "RIGHT"}:
        ours = key in {"o", "LEFT"}
        if panel is ConflictPanel.FILE_LIST:
            return act(ConflictAction.ACCEPT_OURS_FILE if ours else ConflictAction.ACCEPT_THEIRS_FILE)
        return act(ConflictAction.ACCEPT_OURS_BLOCK if ours else ConflictAction.ACCEPT_THEIRS_BLOCK)

    if key in FILE_MOTION:
        if panel is ConflictPanel.FILE_LIST:
            return FILE_MOTION[key]
        if panel is ConflictPanel.RESULT:
            return RESULT_MOTION[key]
        if conflicts.mode is Granularity.FILE:
            return FILE_MOTION[key]
        if conflicts.mode is Granularity.LINE:
            return LINE_MOTION[key]
        return SECTION_MOTION[key]

    return CONFLICT_KEYS.lookup(key) or VIEW_KEYS.lookup(key)


def key_to_action(state: ApplicationState, key: str) -> Action | None:
    """Return the action ``key`` means in ``state``, or ``None`` when it is unbound."""
    if not key:
        return None
    if key == "CTRL_C":
        return QUIT

    if state.merge_picker is not None:
        return MERGE_PICKER_KEYS.lookup(key)
    if state.pending_confirmation is not None:
        return CONFIRM_KEYS.lookup(key)

    mode = state.view_mode
    if mode is ViewMode.GRAPH and state.search.is_active:
        return _table_or_text(SEARCH_KEYS, key, SearchAction.INSERT_CHAR)
    if mode is ViewMode.GRAPH and state.filter_popup.is_open:
        return _table_or_text(FILTER_KEYS, key, FilterAction.INSERT_CHAR)

    if editing_buffer(state) is not None:
        confirm_keys = COMMIT_EDITOR_KEYS if mode is ViewMode.STAGING else BRANCH_INPUT_KEYS
        action = confirm_keys.lookup(key) or EDIT_KEYS.lookup(key)
        if action is not None:
            return action
        if is_text_key(key):
            return act(EditAction.INSERT_CHAR, key)
        return None

    if mode is ViewMode.HELP:
        return HELP_KEYS.lookup(key)
    if mode is ViewMode.CONFLICTS:
        return _conflict_action(state, key)
    if mode is ViewMode.BLAME:
        return BLAME_KEYS.lookup(key)

    view_action = VIEW_KEYS.lookup(key)
    if view_action is not None:
        return view_action
    if mode is ViewMode.STAGING:
        return STAGING_KEYS[state.staging.focus].lookup(key)
    if mode is ViewMode.BRANCHES:
        return BRANCHES_KEYS[state.branches_view.section].lookup(key)
    return _graph_action(state, key)
