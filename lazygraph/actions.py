"""Action vocabulary produced by the keymap and consumed by the dispatcher.

Every concrete operation is a member of one category enum. ``Action`` wraps
that member together with the payload a few operations carry (a typed
character or a target view), so one value flows from input to handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .state import ViewMode


class EditAction(Enum):
    INSERT_CHAR = "insert_char"
    DELETE_CHAR_BEFORE = "delete_char_before"
    DELETE_CHAR_AFTER = "delete_char_after"
    CURSOR_LEFT = "cursor_left"
    CURSOR_RIGHT = "cursor_right"
    CURSOR_HOME = "cursor_home"
    CURSOR_END = "cursor_end"
    INSERT_NEWLINE = "insert_newline"


class FilterAction(Enum):
    OPEN = "open"
    CLOSE = "close"
    NEXT_FIELD = "next_field"
    PREVIOUS_FIELD = "previous_field"
    INSERT_CHAR = "insert_char"
    DELETE_CHAR = "delete_char"
    APPLY = "apply"
    CLEAR = "clear"


class GitAction(Enum):
    PUSH = "push"
    PULL = "pull"
    FETCH = "fetch"
    CHERRY_PICK = "cherry_pick"
    COMMIT_PROMPT = "commit_prompt"
    AMEND_PROMPT = "amend_prompt"
    STASH_PROMPT = "stash_prompt"
    MERGE_PROMPT = "merge_prompt"
    OPEN_BLAME = "open_blame"
    CLOSE_BLAME = "close_blame"
    JUMP_TO_BLAME_COMMIT = "jump_to_blame_commit"


class NavigationAction(Enum):
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    GO_TOP = "go_top"
    GO_BOTTOM = "go_bottom"
    SWITCH_PANEL = "switch_panel"
    SCROLL_DIFF_UP = "scroll_diff_up"
    SCROLL_DIFF_DOWN = "scroll_diff_down"
    FILE_UP = "file_up"
    FILE_DOWN = "file_down"
    BACK_TO_GRAPH = "back_to_graph"


class SearchAction(Enum):
    OPEN = "open"
    CLOSE = "close"
    INSERT_CHAR = "insert_char"
    DELETE_CHAR = "delete_char"
    NEXT_RESULT = "next_result"
    PREVIOUS_RESULT = "previous_result"
    CHANGE_TYPE = "change_type"
    EXECUTE = "execute"


class StagingAction(Enum):
    STAGE_FILE = "stage_file"
    UNSTAGE_FILE = "unstage_file"
    STAGE_ALL = "stage_all"
    UNSTAGE_ALL = "unstage_all"
    START_COMMIT = "start_commit"
    START_AMEND = "start_amend"
    CONFIRM_COMMIT = "confirm_commit"
    CANCEL_COMMIT = "cancel_commit"
    DISCARD_FILE = "discard_file"
    DISCARD_ALL = "discard_all"
    STASH_FILE = "stash_file"
    STASH_UNSTAGED = "stash_unstaged"
    SWITCH_FOCUS = "switch_focus"


class BranchAction(Enum):
    LIST = "list"
    CHECKOUT = "checkout"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
    TOGGLE_REMOTE = "toggle_remote"
    MERGE = "merge"
    STASH_SAVE = "stash_save"
    STASH_APPLY = "stash_apply"
    STASH_POP = "stash_pop"
    STASH_DROP = "stash_drop"
    WORKTREE_CREATE = "worktree_create"
    WORKTREE_REMOVE = "worktree_remove"
    NEXT_SECTION = "next_section"
    PREVIOUS_SECTION = "previous_section"
    CONFIRM_INPUT = "confirm_input"
    CANCEL_INPUT = "cancel_input"


class ConflictAction(Enum):
    PREVIOUS_FILE = "previous_file"
    NEXT_FILE = "next_file"
    PREVIOUS_SECTION = "previous_section"
    NEXT_SECTION = "next_section"
    LINE_UP = "line_up"
    LINE_DOWN = "line_down"
    SCROLL_RESULT_UP = "scroll_result_up"
    SCROLL_RESULT_DOWN = "scroll_result_down"
    SWITCH_PANEL = "switch_panel"
    SWITCH_PANEL_REVERSE = "switch_panel_reverse"
    ACCEPT_OURS_FILE = "accept_ours_file"
    ACCEPT_THEIRS_FILE = "accept_theirs_file"
    ACCEPT_OURS_BLOCK = "accept_ours_block"
    ACCEPT_THEIRS_BLOCK = "accept_theirs_block"
    ACCEPT_BOTH = "accept_both"
    SET_MODE_FILE = "set_mode_file"
    SET_MODE_BLOCK = "set_mode_block"
    SET_MODE_LINE = "set_mode_line"
    TOGGLE_LINE = "toggle_line"
    ENTER_RESOLVE = "enter_resolve"
    MARK_RESOLVED = "mark_resolved"
    START_EDITING = "start_editing"
    CONFIRM_EDIT = "confirm_edit"
    CANCEL_EDIT = "cancel_edit"
    EDIT_INSERT_CHAR = "edit_insert_char"
    EDIT_BACKSPACE = "edit_backspace"
    EDIT_DELETE = "edit_delete"
    EDIT_NEWLINE = "edit_newline"
    EDIT_CURSOR_UP = "edit_cursor_up"
    EDIT_CURSOR_DOWN = "edit_cursor_down"
    EDIT_CURSOR_LEFT = "edit_cursor_left"
    EDIT_CURSOR_RIGHT = "edit_cursor_right"
    FINALIZE_MERGE = "finalize_merge"
    ABORT_MERGE = "abort_merge"
    LEAVE_VIEW = "leave_view"


class AppAction(Enum):
    """Operations the dispatcher performs itself instead of routing to a handler."""

    QUIT = "quit"
    REFRESH = "refresh"
    TOGGLE_HELP = "toggle_help"
    SWITCH_VIEW = "switch_view"
    SELECT = "select"
    COPY_TO_CLIPBOARD = "copy_to_clipboard"
    MERGE_PICKER_UP = "merge_picker_up"
    MERGE_PICKER_DOWN = "merge_picker_down"
    MERGE_PICKER_CONFIRM = "merge_picker_confirm"
    MERGE_PICKER_CANCEL = "merge_picker_cancel"
    CONFIRM_ACTION = "confirm_action"
    CANCEL_ACTION = "cancel_action"
    TOGGLE_DIFF_VIEW_MODE = "toggle_diff_view_mode"


CategoryOp = Union[
    EditAction,
    FilterAction,
    GitAction,
    NavigationAction,
    SearchAction,
    StagingAction,
    BranchAction,
    ConflictAction,
    AppAction,
]

CHAR_OPS = frozenset(
    {
        EditAction.INSERT_CHAR,
        FilterAction.INSERT_CHAR,
        SearchAction.INSERT_CHAR,
        ConflictAction.EDIT_INSERT_CHAR,
    }
)


@dataclass(frozen=True)
class Action:
    """One input event's meaning: a category operation plus its payload."""

    op: CategoryOp
    char: str | None = None
    view: ViewMode | None = None

    def __post_init__(self) -> None:
        if self.op in CHAR_OPS and not self.char:
            raise ValueError(f"{self.op} requires a character")
        if self.op is AppAction.SWITCH_VIEW and self.view is None:
            raise ValueError("switch_view requires a target view")

    @property
    def category(self) -> type[Enum]:
        return type(self.op)

    def __str__(self) -> str:
        suffix = f"({self.char!r})" if self.char else f"({self.view.value})" if self.view else ""
        return f"{type(self.op).__name__}.{self.op.name}{suffix}"


def act(op: CategoryOp, char: str | None = None) -> Action:
    """Build an action for ``op``, carrying ``char`` for text input."""
    return Action(op, char=char)


def switch_view(mode: ViewMode) -> Action:
    """Build an action that switches to ``mode``."""
    return Action(AppAction.SWITCH_VIEW, view=mode)
