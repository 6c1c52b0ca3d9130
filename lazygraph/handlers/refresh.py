"""Reloading repository-derived state into ``ApplicationState``.

Used by the main loop when the dirty flag is set, by the explicit refresh
action, and by handlers that change the selected commit or staging entry.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..conflict import ConflictFile
from ..errors import LazyGraphError
from ..git.repo import GitRepo
from ..merge import MergeOutcome, MergeResult
from ..state import ApplicationState, ViewMode
from ..views import ConflictsState

logger = logging.getLogger(__name__)

WORKTREE_MARKER = "0" * 40
STAGED_MARKER = "index"


def _clamp(index: int, length: int) -> int:
    return max(0, min(index, length - 1)) if length else 0


def load_commit_files(state: ApplicationState, repo: GitRepo) -> None:
    """Reload the file list of the selected commit and reset the file cursor."""
    state.selected_diff = None
    state.diff_scroll = 0
    commit = state.selected_commit()
    if commit is None:
        state.commit_files = []
        state.file_selected_index = 0
        return
    try:
        state.commit_files = repo.commit_files(commit.oid)
    except LazyGraphError as exc:
        logger.warning("cannot list files of %s: %s", commit.short_hash, exc)
        state.commit_files = []
        state.set_flash(f"Files error: {exc}")
    state.file_selected_index = _clamp(state.file_selected_index, len(state.commit_files))


def select_commit(state: ApplicationState, repo: GitRepo, index: int) -> None:
    """Move the graph cursor to ``index`` and load that commit's files."""
    index = _clamp(index, len(state.commits))
    if index == state.selected_index and state.commit_files:
        return
    state.selected_index = index
    state.file_selected_index = 0
    load_commit_files(state, repo)


def load_commit_file_diff(state: ApplicationState, repo: GitRepo) -> None:
    """Diff of the selected file in the selected commit, through the diff cache."""
    commit = state.selected_commit()
    selected = state.selected_file()
    state.diff_scroll = 0
    if commit is None or selected is None:
        state.selected_diff = None
        return
    key = (commit.oid, selected.path)
    cached = state.diff_cache.get(key)
    if cached is not None:
        state.selected_diff = cached
        return
    try:
        diff = repo.commit_file_diff(commit.oid, selected.path)
    except LazyGraphError as exc:
        state.selected_diff = None
        state.set_flash(f"Diff error: {exc}")
        return
    state.diff_cache.put(key, diff)
    state.selected_diff = diff


def load_staging_diff(state: ApplicationState, repo: GitRepo) -> None:
    """Load the diff of the staging entry under the cursor."""
    staging = state.staging
    staging.diff_scroll = 0
    entry, staged = staging.selected_entry()
    if entry is None:
        staging.diff = None
        return
    key = (STAGED_MARKER if staged else WORKTREE_MARKER, entry.path)
    cached = state.diff_cache.get(key)
    if cached is not None:
        staging.diff = cached
        return
    try:
        diff = repo.working_file_diff(entry.path, staged=staged, untracked=entry.is_untracked and not staged)
    except LazyGraphError as exc:
        staging.diff = None
        state.set_flash(f"Diff error: {exc}")
        return
    state.diff_cache.put(key, diff)
    staging.diff = diff


def refresh_staging(state: ApplicationState, repo: GitRepo) -> None:
    """Reload status entries and the selected entry's diff."""
    state.staging.set_entries(repo.status())
    state.diff_cache.clear()
    load_staging_diff(state, repo)


def load_branches_view(state: ApplicationState, repo: GitRepo) -> None:
    """Reload branches, worktrees and stashes for the branches view."""
    view = state.branches_view
    view.local, view.remote = repo.list_branches()
    view.worktrees = repo.list_worktrees()
    view.stashes = repo.list_stashes()
    view.clamp_all()


def load_branch_panel(state: ApplicationState, repo: GitRepo) -> None:
    """Reload the branch list shown beside the graph."""
    state.branches, _ = repo.list_branches()
    state.branch_selected = _clamp(state.branch_selected, len(state.branches))


def refresh_state(state: ApplicationState, repo: GitRepo) -> None:
    """Reload everything the views show and clear the dirty flag.

    Failures are flashed; the previous values stay in place.
    """
    selected_oid = state.selected_commit().oid if state.commits else None
    try:
        state.current_branch = repo.current_branch()
        state.commits = repo.log(state.settings.max_commits, state.graph_filter)
        if selected_oid is not None:
            for idx, commit in enumerate(state.commits):
                if commit.oid == selected_oid:
                    state.selected_index = idx
                    break
        state.selected_index = _clamp(state.selected_index, len(state.commits))
        state.diff_cache.clear()
        load_commit_files(state, repo)
        state.staging.set_entries(repo.status())
        load_staging_diff(state, repo)
        if state.show_branch_panel:
            load_branch_panel(state, repo)
        if state.view_mode is ViewMode.BRANCHES:
            load_branches_view(state, repo)
    except LazyGraphError as exc:
        logger.warning("refresh failed: %s", exc)
        state.set_flash(f"Refresh error: {exc}")
    state.dirty = False


def open_conflicts(
    state: ApplicationState,
    files: Sequence[ConflictFile],
    description: str,
    ours_label: str,
    theirs_label: str,
) -> None:
    """Enter the conflicts view for a merge-class operation that stopped on conflicts."""
    state.conflicts = ConflictsState(list(files), description, ours_label, theirs_label)
    state.switch_view(ViewMode.CONFLICTS)
    state.set_flash(f"{description}: {len(files)} conflicted file(s)")
    state.mark_dirty()


def report_merge_result(state: ApplicationState, result: MergeResult, verb: str) -> None:
    """Flash the outcome of a merge-class operation, entering conflicts when it stopped."""
    current = state.current_branch or "HEAD"
    source = result.source
    if result.outcome is MergeOutcome.UP_TO_DATE:
        state.set_flash("Already up to date")
    elif result.outcome is MergeOutcome.FAST_FORWARD:
        state.set_flash(f"Fast-forward to '{source}'")
    elif result.outcome is MergeOutcome.SUCCESS:
        state.set_flash(f"Merged '{source}' into '{current}'")
    else:
        open_conflicts(state, result.conflicts, f"{verb} {source}", current, source)
    state.mark_dirty()
