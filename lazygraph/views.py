"""Per-view substates owned by ``ApplicationState``.

Each dataclass keeps its cursors clamped to the lists it indexes so handlers
can move freely without bounds checks of their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .conflict import ConflictFile, ConflictSection, Granularity, count_unresolved_files, count_unresolved_sections
from .git.search import SearchType
from .git.types import BranchInfo, FileBlame, FileDiff, StashEntry, StatusEntry, WorktreeInfo
from .text_buffer import MultilineBuffer, TextBuffer


def _clamp(index: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def _cycle(member: Enum, step: int) -> Enum:
    order = list(type(member))
    return order[(order.index(member) + step) % len(order)]


# ---------------------------------------------------------------- staging


class StagingFocus(Enum):
    UNSTAGED = "unstaged"
    STAGED = "staged"
    DIFF = "diff"
    COMMIT_MESSAGE = "commit_message"


@dataclass
class StagingState:
    staged: list[StatusEntry] = field(default_factory=list)
    unstaged: list[StatusEntry] = field(default_factory=list)
    staged_selected: int = 0
    unstaged_selected: int = 0
    focus: StagingFocus = StagingFocus.UNSTAGED
    last_list: StagingFocus = StagingFocus.UNSTAGED
    is_committing: bool = False
    is_amending: bool = False
    commit_message: TextBuffer = field(default_factory=TextBuffer)
    diff: FileDiff | None = None
    diff_scroll: int = 0

    def set_entries(self, entries: list[StatusEntry]) -> None:
        """Split status entries into staged and unstaged lists, keeping cursors in range."""
        self.staged = [entry for entry in entries if entry.is_staged]
        self.unstaged = [entry for entry in entries if entry.is_unstaged]
        self.staged_selected = _clamp(self.staged_selected, len(self.staged))
        self.unstaged_selected = _clamp(self.unstaged_selected, len(self.unstaged))

    def focus_on(self, focus: StagingFocus) -> None:
        """Move focus, remembering the last file list that had it."""
        self.focus = focus
        if focus in {StagingFocus.UNSTAGED, StagingFocus.STAGED}:
            self.last_list = focus

    def selected_unstaged(self) -> StatusEntry | None:
        """Return the unstaged entry under the cursor."""
        if not self.unstaged:
            return None
        return self.unstaged[_clamp(self.unstaged_selected, len(self.unstaged))]

    def selected_staged(self) -> StatusEntry | None:
        """Return the staged entry under the cursor."""
        if not self.staged:
            return None
        return self.staged[_clamp(self.staged_selected, len(self.staged))]

    def selected_entry(self) -> tuple[StatusEntry | None, bool]:
        """Entry whose diff is shown, with ``True`` when it comes from the staged list."""
        if self.last_list is StagingFocus.STAGED:
            return self.selected_staged(), True
        return self.selected_unstaged(), False

    def move(self, delta: int) -> None:
        """Move the cursor of the last focused file list by ``delta``."""
        if self.last_list is StagingFocus.STAGED:
            self.staged_selected = _clamp(self.staged_selected + delta, len(self.staged))
        else:
            self.unstaged_selected = _clamp(self.unstaged_selected + delta, len(self.unstaged))
        self.diff_scroll = 0

    def reset_commit(self) -> None:
        """Leave commit-message mode and clear the draft."""
        self.is_committing = False
        self.is_amending = False
        self.commit_message.clear()


# --------------------------------------------------------------- branches


class BranchesSection(Enum):
    BRANCHES = "branches"
    WORKTREES = "worktrees"
    STASHES = "stashes"

    def next(self) -> BranchesSection:
        """Return the following section, wrapping around."""
        return _cycle(self, 1)

    def previous(self) -> BranchesSection:
        """Return the preceding section, wrapping around."""
        return _cycle(self, -1)


class BranchesFocus(Enum):
    LIST = "list"
    INPUT = "input"


class InputAction(Enum):
    CREATE_BRANCH = "New branch name"
    RENAME_BRANCH = "Rename branch to"
    CREATE_WORKTREE = "Worktree (name path [branch])"
    SAVE_STASH = "Stash message"

    @property
    def prompt(self) -> str:
        """Prompt label shown in front of the input line."""
        return self.value


@dataclass
class BranchesViewState:
    section: BranchesSection = BranchesSection.BRANCHES
    focus: BranchesFocus = BranchesFocus.LIST
    local: list[BranchInfo] = field(default_factory=list)
    remote: list[BranchInfo] = field(default_factory=list)
    worktrees: list[WorktreeInfo] = field(default_factory=list)
    stashes: list[StashEntry] = field(default_factory=list)
    branch_selected: int = 0
    worktree_selected: int = 0
    stash_selected: int = 0
    show_remote: bool = False
    input_action: InputAction | None = None
    input: TextBuffer = field(default_factory=TextBuffer)

    def visible_branches(self) -> list[BranchInfo]:
        """Return local branches, followed by remote ones when shown."""
        return self.local + self.remote if self.show_remote else list(self.local)

    def selected_branch(self) -> BranchInfo | None:
        """Return the branch under the cursor."""
        branches = self.visible_branches()
        return branches[_clamp(self.branch_selected, len(branches))] if branches else None

    def selected_worktree(self) -> WorktreeInfo | None:
        """Return the worktree under the cursor."""
        if not self.worktrees:
            return None
        return self.worktrees[_clamp(self.worktree_selected, len(self.worktrees))]

    def selected_stash(self) -> StashEntry | None:
        """Return the stash entry under the cursor."""
        if not self.stashes:
            return None
        return self.stashes[_clamp(self.stash_selected, len(self.stashes))]

    def move(self, delta: int) -> None:
        """Move the cursor of the active section by ``delta``."""
        if self.section is BranchesSection.BRANCHES:
            self.branch_selected = _clamp(self.branch_selected + delta, len(self.visible_branches()))
        elif self.section is BranchesSection.WORKTREES:
            self.worktree_selected = _clamp(self.worktree_selected + delta, len(self.worktrees))
        else:
            self.stash_selected = _clamp(self.stash_selected + delta, len(self.stashes))

    def clamp_all(self) -> None:
        """Pull every section cursor back inside its list after a reload."""
        self.branch_selected = _clamp(self.branch_selected, len(self.visible_branches()))
        self.worktree_selected = _clamp(self.worktree_selected, len(self.worktrees))
        self.stash_selected = _clamp(self.stash_selected, len(self.stashes))

    def open_input(self, action: InputAction, initial: str = "") -> None:
        """Focus the input line for ``action``, prefilled with ``initial``."""
        self.input_action = action
        self.focus = BranchesFocus.INPUT
        self.input.set_text(initial)

    def close_input(self) -> None:
        """Drop the pending input and return focus to the list."""
        self.input_action = None
        self.focus = BranchesFocus.LIST
        self.input.clear()


# -------------------------------------------------------------- conflicts


class ConflictPanel(Enum):
    FILE_LIST = "files"
    OURS = "ours"
    THEIRS = "theirs"
    RESULT = "result"

    def next(self) -> ConflictPanel:
        """Return the following panel, wrapping around."""
        return _cycle(self, 1)

    def previous(self) -> ConflictPanel:
        """Return the preceding panel, wrapping around."""
        return _cycle(self, -1)


@dataclass
class ConflictsState:
    """Conflicted files of one in-progress merge plus the cursors over them."""

    files: list[ConflictFile]
    operation_description: str
    ours_label: str
    theirs_label: str
    file_selected: int = 0
    section_selected: int = 0
    line_selected: int = 0
    panel: ConflictPanel = ConflictPanel.FILE_LIST
    mode: Granularity = Granularity.BLOCK
    result_scroll: int = 0
    editor: MultilineBuffer | None = None

    @property
    def is_editing(self) -> bool:
        """True while the result panel holds a manual edit."""
        return self.editor is not None

    def current_file(self) -> ConflictFile | None:
        """Return the conflicted file under the cursor."""
        if not self.files:
            return None
        return self.files[_clamp(self.file_selected, len(self.files))]

    def current_section(self) -> ConflictSection | None:
        """Return the selected section of the current file."""
        current = self.current_file()
        if current is None or not current.conflicts:
            return None
        return current.conflicts[_clamp(self.section_selected, len(current.conflicts))]

    def select_file(self, index: int) -> None:
        """Select file ``index`` and reset the section and line cursors."""
        self.file_selected = _clamp(index, len(self.files))
        self.section_selected = 0
        self.line_selected = 0
        self.result_scroll = 0

    def select_section(self, index: int) -> None:
        """Select section ``index`` of the current file and reset the line cursor."""
        current = self.current_file()
        self.section_selected = _clamp(index, len(current.conflicts) if current else 0)
        self.line_selected = 0

    def panel_lines(self) -> list[str]:
        """Lines of the current section on the focused side (empty outside Ours/Theirs)."""
        section = self.current_section()
        if section is None:
            return []
        if self.panel is ConflictPanel.OURS:
            return section.ours
        if self.panel is ConflictPanel.THEIRS:
            return section.theirs
        return []

    @property
    def unresolved_files(self) -> int:
        """Number of files that still need a resolution."""
        return count_unresolved_files(self.files)

    @property
    def unresolved_sections(self) -> int:
        """Number of unresolved sections across all files."""
        return count_unresolved_sections(self.files)


# ------------------------------------------------------ blame / picker / search


@dataclass
class BlameState:
    commit_oid: str
    path: str
    blame: FileBlame
    selected_line: int = 0
    scroll: int = 0

    def move(self, delta: int) -> None:
        """Move the line cursor by ``delta``."""
        self.selected_line = _clamp(self.selected_line + delta, len(self.blame.lines))

    def selected(self):
        """Return the blame line under the cursor."""
        if not self.blame.lines:
            return None
        return self.blame.lines[_clamp(self.selected_line, len(self.blame.lines))]


@dataclass
class MergePickerState:
    branches: list[str]
    selected: int = 0

    def move(self, delta: int) -> None:
        """Move the branch cursor by ``delta``."""
        self.selected = _clamp(self.selected + delta, len(self.branches))

    def current(self) -> str | None:
        """Return the highlighted branch name."""
        return self.branches[_clamp(self.selected, len(self.branches))] if self.branches else None


@dataclass
class SearchState:
    is_active: bool = False
    query: str = ""
    search_type: SearchType = SearchType.MESSAGE
    results: list[int] = field(default_factory=list)
    current_result: int = 0

    def current_index(self) -> int | None:
        """Commit index of the current match, if any."""
        if not self.results:
            return None
        return self.results[self.current_result % len(self.results)]


# ------------------------------------------------------------------ filter


@dataclass
class GraphFilter:
    """History filter passed to ``GitRepo.log``; empty strings mean "unset"."""

    author: str = ""
    date_from: str = ""
    date_to: str = ""
    path: str = ""
    message: str = ""

    def is_active(self) -> bool:
        """True when any filter field is set."""
        return bool(self.author or self.date_from or self.date_to or self.path or self.message)

    def clear(self) -> None:
        """Unset every filter field."""
        self.author = self.date_from = self.date_to = self.path = self.message = ""

    def active_labels(self) -> list[str]:
        """Short names of the set fields, for the status bar."""
        labels = []
        if self.author:
            labels.append("author")
        if self.date_from or self.date_to:
            labels.append("date")
        if self.path:
            labels.append("path")
        if self.message:
            labels.append("message")
        return labels


class FilterField(Enum):
    AUTHOR = "author"
    DATE_FROM = "date_from"
    DATE_TO = "date_to"
    PATH = "path"
    MESSAGE = "message"

    @property
    def label(self) -> str:
        """Title shown next to the field in the popup."""
        return self.value.replace("_", " ").title()


@dataclass
class FilterPopupState:
    is_open: bool = False
    active_field: FilterField = FilterField.AUTHOR
    values: dict[FilterField, str] = field(default_factory=lambda: {member: "" for member in FilterField})

    def open(self, graph_filter: GraphFilter) -> None:
        """Open the popup seeded from ``graph_filter``."""
        self.is_open = True
        self.active_field = FilterField.AUTHOR
        self.values = {member: getattr(graph_filter, member.value) for member in FilterField}

    def close(self) -> None:
        """Hide the popup without applying."""
        self.is_open = False

    def next_field(self) -> None:
        """Focus the next field, wrapping around."""
        self.active_field = _cycle(self.active_field, 1)

    def previous_field(self) -> None:
        """Focus the previous field, wrapping around."""
        self.active_field = _cycle(self.active_field, -1)

    @property
    def current_input(self) -> str:
        """Text typed into the active field."""
        return self.values[self.active_field]

    def insert_char(self, ch: str) -> None:
        """Append ``ch`` to the active field."""
        self.values[self.active_field] += ch

    def delete_char(self) -> None:
        """Remove the last character of the active field."""
        self.values[self.active_field] = self.values[self.active_field][:-1]

    def clear(self) -> None:
        """Empty every field."""
        self.values = {member: "" for member in FilterField}

    def apply_to(self, graph_filter: GraphFilter) -> None:
        """Copy the trimmed field values onto ``graph_filter``."""
        for member in FilterField:
            setattr(graph_filter, member.value, self.values[member].strip())
