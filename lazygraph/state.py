"""Single mutable application model.

One ``ApplicationState`` lives for the whole session. It owns the active
view mode, every per-view substate, the dirty flag and the flash slot.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .git.types import BranchInfo, CommitInfo, DiffFile, FileDiff
from .runtime.config import Settings
from .views import (
    BlameState,
    BranchesViewState,
    ConflictsState,
    FilterPopupState,
    GraphFilter,
    MergePickerState,
    SearchState,
    StagingState,
)

FLASH_SECONDS = 3.0
DIFF_CACHE_SIZE = 128
PAGE_SIZE = 10


class ViewMode(Enum):
    GRAPH = "graph"
    STAGING = "staging"
    BRANCHES = "branches"
    CONFLICTS = "conflicts"
    BLAME = "blame"
    HELP = "help"


class FocusPanel(Enum):
    GRAPH = "graph"
    FILES = "files"
    DETAIL = "detail"

    def next(self) -> FocusPanel:
        """Return the following panel, wrapping around."""
        order = list(FocusPanel)
        return order[(order.index(self) + 1) % len(order)]


class ConfirmKind(Enum):
    DISCARD_FILE = "discard_file"
    DISCARD_ALL = "discard_all"
    BRANCH_DELETE = "branch_delete"
    STASH_DROP = "stash_drop"
    WORKTREE_REMOVE = "worktree_remove"
    CHERRY_PICK = "cherry_pick"
    ABORT_MERGE = "abort_merge"
    FINALIZE_MERGE = "finalize_merge"


@dataclass(frozen=True)
class PendingConfirmation:
    kind: ConfirmKind
    target: str | int | None = None
    untracked: bool = False

    @property
    def prompt(self) -> str:
        kind = self.kind
        if kind is ConfirmKind.DISCARD_FILE:
            return f"Discard changes to '{self.target}'?"
        if kind is ConfirmKind.DISCARD_ALL:
            return "Discard ALL unstaged changes?"
        if kind is ConfirmKind.BRANCH_DELETE:
            return f"Delete branch '{self.target}'?"
        if kind is ConfirmKind.STASH_DROP:
            return f"Drop stash@{{{self.target}}}?"
        if kind is ConfirmKind.WORKTREE_REMOVE:
            return f"Remove worktree '{self.target}'?"
        if kind is ConfirmKind.CHERRY_PICK:
            return f"Cherry-pick {str(self.target)[:7]}?"
        if kind is ConfirmKind.ABORT_MERGE:
            return "Abort merge and discard its changes?"
        return "Create the merge commit?"


class DiffCache:
    """Small LRU of computed diffs keyed by ``(revision marker, path)``."""

    def __init__(self, max_entries: int = DIFF_CACHE_SIZE) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple[str, str], FileDiff] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: tuple[str, str]) -> FileDiff | None:
        """Return the cached diff for ``key`` and mark it recently used."""
        diff = self._entries.get(key)
        if diff is not None:
            self._entries.move_to_end(key)
        return diff

    def put(self, key: tuple[str, str], diff: FileDiff) -> None:
        """Store ``diff``, evicting the least recently used entries over capacity."""
        self._entries[key] = diff
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()


@dataclass
class ApplicationState:
    repo_path: Path
    settings: Settings = field(default_factory=Settings)
    current_branch: str = ""
    view_mode: ViewMode = ViewMode.GRAPH
    previous_view_mode: ViewMode | None = None
    focus: FocusPanel = FocusPanel.GRAPH
    dirty: bool = True
    should_quit: bool = False
    flash_message: str | None = None
    flash_until: float = 0.0

    commits: list[CommitInfo] = field(default_factory=list)
    selected_index: int = 0
    commit_files: list[DiffFile] = field(default_factory=list)
    file_selected_index: int = 0
    selected_diff: FileDiff | None = None
    diff_scroll: int = 0
    side_by_side_diff: bool = False

    show_branch_panel: bool = False
    branches: list[BranchInfo] = field(default_factory=list)
    branch_selected: int = 0

    staging: StagingState = field(default_factory=StagingState)
    branches_view: BranchesViewState = field(default_factory=BranchesViewState)
    conflicts: ConflictsState | None = None
    blame: BlameState | None = None
    merge_picker: MergePickerState | None = None
    search: SearchState = field(default_factory=SearchState)
    graph_filter: GraphFilter = field(default_factory=GraphFilter)
    filter_popup: FilterPopupState = field(default_factory=FilterPopupState)
    pending_confirmation: PendingConfirmation | None = None
    diff_cache: DiffCache = field(default_factory=DiffCache)

    def mark_dirty(self) -> None:
        """Request a data reload before the next frame."""
        self.dirty = True

    def set_flash(self, message: str, now: float | None = None) -> None:
        """Show ``message`` in the status row, replacing any earlier one."""
        moment = time.monotonic() if now is None else now
        self.flash_message = message
        self.flash_until = moment + FLASH_SECONDS

    def expire_flash(self, now: float | None = None) -> bool:
        """Drop the flash message once its display time has passed."""
        if self.flash_message is None:
            return False
        moment = time.monotonic() if now is None else now
        if moment < self.flash_until:
            return False
        self.flash_message = None
        return True

    def selected_commit(self) -> CommitInfo | None:
        """Return the commit under the graph cursor."""
        if not self.commits:
            return None
        return self.commits[max(0, min(self.selected_index, len(self.commits) - 1))]

    def selected_file(self) -> DiffFile | None:
        """Return the file under the cursor of the selected commit's file list."""
        if not self.commit_files:
            return None
        return self.commit_files[max(0, min(self.file_selected_index, len(self.commit_files) - 1))]

    def switch_view(self, mode: ViewMode) -> None:
        """Enter ``mode``, remembering the view it replaces."""
        if mode is self.view_mode:
            return
        self.previous_view_mode = self.view_mode
        self.view_mode = mode
