"""Key hints for the footer and the full help page."""

from __future__ import annotations

from ..state import ApplicationState, ViewMode
from ..views import BranchesSection, StagingFocus

HELP_SECTIONS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "General",
        (
            ("1 2 3 4", "graph / staging / branches / conflicts"),
            ("?", "toggle help"),
            ("r", "refresh"),
            ("y", "copy hash, path or line"),
            ("q / Ctrl+C", "quit"),
        ),
    ),
    (
        "Graph",
        (
            ("j/k g/G PgUp/PgDn", "move"),
            ("Enter / Tab", "open files, diff"),
            ("J/K  [ ]", "scroll diff, previous/next file"),
            ("c / A", "commit / amend"),
            ("s", "stash"),
            ("m", "merge a branch"),
            ("b", "branch panel"),
            ("p / P / f", "pull / push / fetch"),
            ("/  n/N", "search, next/previous result"),
            ("F", "filter history"),
            ("B", "blame selected file"),
            ("x", "cherry-pick commit"),
            ("v", "unified / side-by-side diff"),
        ),
    ),
    (
        "Staging",
        (
            ("s / u / Enter", "stage / unstage"),
            ("a / U", "stage all / unstage all"),
            ("d / D", "discard file / all"),
            ("S / W", "stash file / all unstaged"),
            ("c / A", "commit / amend"),
        ),
    ),
    (
        "Branches",
        (
            ("Tab", "branches / worktrees / stashes"),
            ("Enter n d r", "checkout, new, delete, rename"),
            ("R / m", "remote branches / merge"),
            ("a p d s", "stash apply, pop, drop, save"),
        ),
    ),
    (
        "Conflicts",
        (
            ("Tab", "files / ours / theirs / result"),
            ("o t b", "take ours / theirs / both"),
            ("F B L", "file / block / line mode"),
            ("Space", "toggle line"),
            ("i  Ctrl+S", "edit result, save edit"),
            ("M", "mark resolved from disk"),
            ("V / A", "finalize / abort"),
        ),
    ),
)

FOOTERS = {
    ViewMode.GRAPH: "Enter files  c commit  m merge  p/P pull/push  / search  F filter  b branches  ? help",
    ViewMode.BLAME: "j/k move  Enter jump to commit  y copy  q close",
    ViewMode.HELP: "? / Esc / q close help",
}

STAGING_FOOTERS = {
    StagingFocus.UNSTAGED: "s stage  a all  d discard  S/W stash  c commit  A amend  Tab focus  Esc graph",
    StagingFocus.STAGED: "u unstage  U all  c commit  A amend  Tab focus  Esc graph",
    StagingFocus.DIFF: "j/k scroll  Tab/Esc lists  v diff mode",
    StagingFocus.COMMIT_MESSAGE: "Enter commit  Esc cancel  Tab lists",
}

BRANCHES_FOOTERS = {
    BranchesSection.BRANCHES: "Enter checkout  n new  d delete  r rename  R remotes  m merge  Tab section",
    BranchesSection.WORKTREES: "n new worktree  d remove  Tab section",
    BranchesSection.STASHES: "a apply  p pop  d drop  s save  Tab section",
}


def footer_text(state: ApplicationState) -> str:
    """One-line key hint for whatever currently owns the keyboard."""
    if state.pending_confirmation is not None:
        return "y confirm  n/Esc cancel"
    if state.merge_picker is not None:
        return "j/k choose  Enter merge  Esc cancel"
    mode = state.view_mode
    if mode is ViewMode.GRAPH and state.search.is_active:
        return "Enter done  Tab search type  Ctrl+N/P next/prev  Esc close"
    if mode is ViewMode.GRAPH and state.filter_popup.is_open:
        return "Tab/Shift+Tab field  Enter apply  Ctrl+R clear  Esc close"
    if mode is ViewMode.GRAPH and state.show_branch_panel:
        return "Enter checkout  n new  d delete  Esc close"
    if mode is ViewMode.STAGING:
        return STAGING_FOOTERS[state.staging.focus]
    if mode is ViewMode.BRANCHES:
        if state.branches_view.input_action is not None:
            return "Enter confirm  Esc cancel"
        return BRANCHES_FOOTERS[state.branches_view.section]
    if mode is ViewMode.CONFLICTS:
        conflicts = state.conflicts
        if conflicts is not None and conflicts.is_editing:
            return "Ctrl+S save  Esc cancel  arrows move"
        return "o/t/b accept  F/B/L mode  Space line  i edit  M mark  V finalize  A abort  q leave"
    return FOOTERS[mode]


def help_lines() -> list[tuple[str, str] | str]:
    """Help page rows: a section title string or a ``(keys, description)`` pair."""
    rows: list[tuple[str, str] | str] = []
    for title, entries in HELP_SECTIONS:
        if rows:
            rows.append("")
        rows.append(title)
        rows.extend(entries)
    return rows
