"""Dispatcher and handler behavior against an in-memory repository double."""

from __future__ import annotations

import tempfile
import unittest
from enum import Enum
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
    switch_view,
)
from lazygraph.conflict import ConflictFile, parse_conflicts
from lazygraph.errors import GitCommandError
from lazygraph.git.types import BlameLine, BranchInfo, CommitInfo, DiffFile, FileBlame, FileDiff, StatusEntry
from lazygraph.handlers import ActionHandler, Dispatcher, HandlerContext
from lazygraph.handlers.refresh import open_conflicts
from lazygraph.state import ApplicationState, ConfirmKind, FocusPanel, ViewMode
from lazygraph.views import BranchesFocus, ConflictPanel, InputAction, StagingFocus

CONFLICTED = """\
header
<<<<<<< HEAD
ours one
=======
theirs one
>>>>>>> feature
middle
<<<<<<< HEAD
ours two
=======
theirs two
>>>>>>> feature
"""


class FakeRepo:
    def __init__(self, root: Path | None = None) -> None:
        self.root = root or Path("/nonexistent/repo")
        self.calls: list[tuple] = []
        self.entries: list[StatusEntry] = []
        self.fail: str | None = None

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.fail == name:
            raise GitCommandError(name, 1, "boom")

    def called(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def current_branch(self) -> str:
        return "main"

    def symbolic_branch(self) -> str | None:
        return "main"

    def head_oid(self) -> str | None:
        return "a" * 40

    def head_message(self) -> str:
        return "previous message"

    def remotes(self) -> list[str]:
        return []

    def commit_files(self, oid: str) -> list[DiffFile]:
        return [DiffFile("src/app.py", "M", 1, 1)]

    def commit_file_diff(self, oid: str, path: str) -> FileDiff:
        return FileDiff(path)

    def working_file_diff(self, path: str, *, staged: bool = False, untracked: bool = False) -> FileDiff:
        return FileDiff(path)

    def status(self) -> list[StatusEntry]:
        return list(self.entries)

    def list_branches(self):
        return [BranchInfo("main", is_head=True), BranchInfo("feature")], []

    def list_worktrees(self):
        return []

    def list_stashes(self):
        return []

    def stage_path(self, path: str) -> None:
        self._record("stage_path", path)

    def unstage_path(self, path: str) -> None:
        self._record("unstage_path", path)

    def discard_path(self, path: str, *, untracked: bool = False) -> None:
        self._record("discard_path", path, untracked)

    def commit(self, message: str, *, amend: bool = False) -> str:
        self._record("commit", message, amend)
        return "c" * 40

    def create_branch(self, name: str) -> None:
        self._record("create_branch", name)

    def delete_branch(self, name: str) -> None:
        self._record("delete_branch", name)

    def blame(self, oid: str, path: str) -> FileBlame:
        self._record("blame", oid, path)
        return FileBlame(
            path,
            [
                BlameLine(1, "import os", "3" * 40, "Ada", "ada@example.com", 1_700_000_200),
                BlameLine(2, "print(os.sep)", "9" * 40, "Eve", "eve@example.com", 1_600_000_000),
                BlameLine(3, "# wip", "0" * 40, "Not Committed Yet", "", 1_700_000_300),
            ],
        )


def _commits() -> list[CommitInfo]:
    return [
        CommitInfo("1" * 40, "Fix parser crash", "Ada", "ada@example.com", 1_700_000_000),
        CommitInfo("2" * 40, "Add feature flag", "Bob", "bob@example.com", 1_700_000_100),
        CommitInfo("3" * 40, "fix tests", "Ada", "ada@example.com", 1_700_000_200),
    ]


class _HandlerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.repo = FakeRepo(self.root)
        self.state = ApplicationState(repo_path=self.root)
        self.state.dirty = False
        self.state.commits = _commits()
        self.copied: list[str] = []
        self.refreshes = 0
        context = HandlerContext(self.state, self.repo, self._refresh, copy_text=self.copied.append)
        self.dispatcher = Dispatcher(context)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _refresh(self) -> None:
        self.refreshes += 1

    def dispatch(self, op, char: str | None = None) -> bool:
        return self.dispatcher.dispatch(act(op, char))


class HandlerTableTests(unittest.TestCase):
    def test_partial_operation_table_is_rejected(self) -> None:
        class PartialSearch(ActionHandler):
            category = SearchAction

            def operations(self) -> dict[Enum, object]:
                return {SearchAction.OPEN: lambda ctx, action: None}

        with self.assertRaises(TypeError):
            PartialSearch()


class AppActionTests(_HandlerTestCase):
    def test_quit(self) -> None:
        self.dispatch(AppAction.QUIT)
        self.assertTrue(self.state.should_quit)

    def test_refresh_calls_context_and_flashes(self) -> None:
        self.dispatch(AppAction.REFRESH)
        self.assertEqual(self.refreshes, 1)
        self.assertEqual(self.state.flash_message, "Refreshed")

    def test_help_toggles_back_to_previous_view(self) -> None:
        self.dispatcher.dispatch(switch_view(ViewMode.STAGING))
        self.dispatch(AppAction.TOGGLE_HELP)
        self.assertIs(self.state.view_mode, ViewMode.HELP)
        self.dispatch(AppAction.TOGGLE_HELP)
        self.assertIs(self.state.view_mode, ViewMode.STAGING)

    def test_conflicts_view_requires_a_merge(self) -> None:
        self.dispatcher.dispatch(switch_view(ViewMode.CONFLICTS))
        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertEqual(self.state.flash_message, "No merge in progress")

    def test_copy_selected_commit_hash(self) -> None:
        self.state.selected_index = 1
        self.dispatch(AppAction.COPY_TO_CLIPBOARD)
        self.assertEqual(self.copied, ["2" * 40])
        self.assertTrue(self.state.flash_message.startswith("Copied: "))

    def test_select_moves_focus_into_files(self) -> None:
        self.state.commit_files = self.repo.commit_files("x")
        self.dispatch(AppAction.SELECT)
        self.assertEqual(self.state.focus.value, "files")
        self.assertIsNotNone(self.state.selected_diff)

    def test_action_for_other_view_is_a_noop(self) -> None:
        self.assertFalse(self.dispatch(StagingAction.STAGE_ALL))
        self.assertEqual(self.repo.calls, [])


class SearchTests(_HandlerTestCase):
    def test_typing_filters_and_selects_first_match(self) -> None:
        self.dispatch(SearchAction.OPEN)
        for ch in "fix":
            self.dispatch(SearchAction.INSERT_CHAR, ch)

        self.assertEqual(self.state.search.results, [0, 2])
        self.assertEqual(self.state.selected_index, 0)

        self.dispatch(SearchAction.NEXT_RESULT)
        self.assertEqual(self.state.selected_index, 2)
        self.dispatch(SearchAction.NEXT_RESULT)
        self.assertEqual(self.state.selected_index, 0)

    def test_change_type_reruns_search(self) -> None:
        self.dispatch(SearchAction.OPEN)
        for ch in "bob":
            self.dispatch(SearchAction.INSERT_CHAR, ch)
        self.assertEqual(self.state.search.results, [])

        self.dispatch(SearchAction.CHANGE_TYPE)
        self.assertEqual(self.state.search.results, [1])
        self.assertEqual(self.state.selected_index, 1)

    def test_execute_closes_and_keeps_results(self) -> None:
        self.dispatch(SearchAction.OPEN)
        self.dispatch(SearchAction.INSERT_CHAR, "f")
        self.dispatch(SearchAction.EXECUTE)

        self.assertFalse(self.state.search.is_active)
        self.assertEqual(self.state.search.results, [0, 1, 2])
        self.assertEqual(self.state.flash_message, "3 results found")

    def test_execute_without_matches(self) -> None:
        self.dispatch(SearchAction.OPEN)
        self.dispatch(SearchAction.INSERT_CHAR, "z")
        self.dispatch(SearchAction.EXECUTE)
        self.assertEqual(self.state.flash_message, "No results")


class FilterTests(_HandlerTestCase):
    def test_apply_copies_values_and_marks_dirty(self) -> None:
        self.dispatch(FilterAction.OPEN)
        for ch in "ada":
            self.dispatch(FilterAction.INSERT_CHAR, ch)
        self.dispatch(FilterAction.NEXT_FIELD)
        for ch in "2024-01-01":
            self.dispatch(FilterAction.INSERT_CHAR, ch)
        self.dispatch(FilterAction.APPLY)

        self.assertFalse(self.state.filter_popup.is_open)
        self.assertEqual(self.state.graph_filter.author, "ada")
        self.assertEqual(self.state.graph_filter.date_from, "2024-01-01")
        self.assertTrue(self.state.dirty)
        self.assertEqual(self.state.flash_message, "Active filters: author, date")

    def test_fields_cycle_and_edit_independently(self) -> None:
        self.dispatch(FilterAction.OPEN)
        self.dispatch(FilterAction.PREVIOUS_FIELD)
        for ch in "fixx":
            self.dispatch(FilterAction.INSERT_CHAR, ch)
        self.dispatch(FilterAction.DELETE_CHAR)

        popup = self.state.filter_popup
        self.assertEqual(popup.current_input, "fix")
        self.dispatch(FilterAction.NEXT_FIELD)
        self.assertEqual(popup.current_input, "")

    def test_clear_resets_filter(self) -> None:
        self.state.graph_filter.author = "ada"
        self.dispatch(FilterAction.CLEAR)
        self.assertFalse(self.state.graph_filter.is_active())
        self.assertEqual(self.state.flash_message, "Filters cleared")


class StagingTests(_HandlerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.repo.entries = [
            StatusEntry("a.py", " ", "M"),
            StatusEntry("b.py", "M", " "),
            StatusEntry("new.txt", "?", "?"),
        ]
        self.state.view_mode = ViewMode.STAGING
        self.state.staging.set_entries(self.repo.entries)

    def test_entries_split_into_lists(self) -> None:
        self.assertEqual([e.path for e in self.state.staging.unstaged], ["a.py", "new.txt"])
        self.assertEqual([e.path for e in self.state.staging.staged], ["b.py"])

    def test_stage_selected_file(self) -> None:
        self.dispatch(StagingAction.STAGE_FILE)
        self.assertEqual(self.repo.called("stage_path"), [("stage_path", "a.py")])
        self.assertTrue(self.state.dirty)

    def test_failed_stage_is_flashed(self) -> None:
        self.repo.fail = "stage_path"
        self.dispatch(StagingAction.STAGE_FILE)
        self.assertEqual(self.state.flash_message, "Stage error: git stage_path failed: boom")

    def test_discard_waits_for_confirmation(self) -> None:
        self.state.staging.unstaged_selected = 1
        self.dispatch(StagingAction.DISCARD_FILE)

        pending = self.state.pending_confirmation
        self.assertIsNotNone(pending)
        self.assertIs(pending.kind, ConfirmKind.DISCARD_FILE)
        self.assertEqual(self.repo.called("discard_path"), [])

        self.dispatch(AppAction.CONFIRM_ACTION)
        self.assertEqual(self.repo.called("discard_path"), [("discard_path", "new.txt", True)])
        self.assertIsNone(self.state.pending_confirmation)

    def test_cancelled_discard_does_nothing(self) -> None:
        self.dispatch(StagingAction.DISCARD_FILE)
        self.dispatch(AppAction.CANCEL_ACTION)
        self.assertEqual(self.repo.called("discard_path"), [])
        self.assertEqual(self.state.flash_message, "Cancelled")

    def test_commit_flow(self) -> None:
        self.dispatch(StagingAction.START_COMMIT)
        self.assertIs(self.state.staging.focus, StagingFocus.COMMIT_MESSAGE)
        for ch in "Initial":
            self.dispatch(EditAction.INSERT_CHAR, ch)
        self.dispatch(StagingAction.CONFIRM_COMMIT)

        self.assertEqual(self.repo.called("commit"), [("commit", "Initial", False)])
        self.assertFalse(self.state.staging.is_committing)
        self.assertEqual(self.state.flash_message, "Committed ccccccc")

    def test_empty_commit_message_is_ignored(self) -> None:
        self.dispatch(StagingAction.START_COMMIT)
        self.dispatch(EditAction.INSERT_CHAR, " ")
        self.dispatch(StagingAction.CONFIRM_COMMIT)
        self.assertEqual(self.repo.called("commit"), [])
        self.assertTrue(self.state.staging.is_committing)

    def test_amend_prefills_head_message(self) -> None:
        self.dispatch(StagingAction.START_AMEND)
        self.dispatch(StagingAction.CONFIRM_COMMIT)
        self.assertEqual(self.repo.called("commit"), [("commit", "previous message", True)])

    def test_focus_cycle_returns_to_commit_message(self) -> None:
        self.dispatch(StagingAction.START_COMMIT)
        seen = []
        for _ in range(4):
            self.dispatch(NavigationAction.SWITCH_PANEL)
            seen.append(self.state.staging.focus)
        self.assertEqual(
            seen,
            [StagingFocus.UNSTAGED, StagingFocus.STAGED, StagingFocus.DIFF, StagingFocus.COMMIT_MESSAGE],
        )


class GitOperationTests(_HandlerTestCase):
    def test_push_without_remote_flashes_error(self) -> None:
        self.dispatch(GitAction.PUSH)
        self.assertEqual(self.state.flash_message, "Push error: push: no remote configured")

    def test_commit_prompt_switches_to_staging(self) -> None:
        self.dispatch(GitAction.COMMIT_PROMPT)
        self.assertIs(self.state.view_mode, ViewMode.STAGING)
        self.assertTrue(self.state.staging.is_committing)

    def test_cherry_pick_asks_first(self) -> None:
        self.dispatch(GitAction.CHERRY_PICK)
        self.assertIs(self.state.pending_confirmation.kind, ConfirmKind.CHERRY_PICK)
        self.assertEqual(self.state.pending_confirmation.prompt, "Cherry-pick 1111111?")

    def test_merge_prompt_lists_other_branches(self) -> None:
        self.state.current_branch = "main"
        self.dispatch(GitAction.MERGE_PROMPT)
        self.assertEqual(self.state.merge_picker.branches, ["feature"])
        self.dispatch(AppAction.MERGE_PICKER_CANCEL)
        self.assertIsNone(self.state.merge_picker)


class BlameTests(_HandlerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.state.commit_files = self.repo.commit_files("1" * 40)

    def _open(self) -> None:
        self.state.focus = FocusPanel.FILES
        self.dispatch(GitAction.OPEN_BLAME)

    def test_open_requires_file_list_focus(self) -> None:
        self.dispatch(GitAction.OPEN_BLAME)
        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertEqual(self.repo.called("blame"), [])

        self._open()

        self.assertIs(self.state.view_mode, ViewMode.BLAME)
        self.assertEqual(self.repo.called("blame"), [("blame", "1" * 40, "src/app.py")])
        self.assertEqual(self.state.blame.path, "src/app.py")
        self.assertEqual(len(self.state.blame.blame.lines), 3)

    def test_deleted_file_has_nothing_to_blame(self) -> None:
        self.state.commit_files = [DiffFile("gone.py", "D", 0, 4)]
        self._open()
        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertEqual(self.state.flash_message, "'gone.py' was deleted in 1111111")

    def test_close_returns_to_graph(self) -> None:
        self._open()
        self.dispatch(GitAction.CLOSE_BLAME)
        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertIsNone(self.state.blame)

    def test_jump_selects_loaded_commit(self) -> None:
        self._open()
        self.dispatch(GitAction.JUMP_TO_BLAME_COMMIT)

        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertIsNone(self.state.blame)
        self.assertEqual(self.state.selected_index, 2)
        self.assertIs(self.state.focus, FocusPanel.GRAPH)

    def test_jump_to_commit_outside_history_flashes(self) -> None:
        self._open()
        self.state.blame.selected_line = 1
        self.dispatch(GitAction.JUMP_TO_BLAME_COMMIT)

        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertEqual(self.state.selected_index, 0)
        self.assertEqual(self.state.flash_message, "Commit 9999999 is not in the loaded history")

    def test_jump_from_uncommitted_line_flashes(self) -> None:
        self._open()
        self.state.blame.selected_line = 2
        self.dispatch(GitAction.JUMP_TO_BLAME_COMMIT)
        self.assertEqual(self.state.flash_message, "Line is not committed yet")


class BranchTests(_HandlerTestCase):
    def test_create_from_graph_opens_branch_input(self) -> None:
        self.dispatch(BranchAction.CREATE)
        view = self.state.branches_view
        self.assertIs(self.state.view_mode, ViewMode.BRANCHES)
        self.assertIs(view.focus, BranchesFocus.INPUT)
        self.assertIs(view.input_action, InputAction.CREATE_BRANCH)

        for ch in "topic":
            self.dispatch(EditAction.INSERT_CHAR, ch)
        self.dispatch(BranchAction.CONFIRM_INPUT)

        self.assertEqual(self.repo.called("create_branch"), [("create_branch", "topic")])
        self.assertEqual(self.state.flash_message, "Branch 'topic' created")

    def test_checked_out_branch_cannot_be_deleted(self) -> None:
        self.dispatcher.dispatch(switch_view(ViewMode.BRANCHES))
        self.dispatch(BranchAction.DELETE)
        self.assertIsNone(self.state.pending_confirmation)
        self.assertEqual(self.state.flash_message, "Cannot delete the checked-out branch")

    def test_delete_after_confirmation(self) -> None:
        self.dispatcher.dispatch(switch_view(ViewMode.BRANCHES))
        self.dispatch(NavigationAction.MOVE_DOWN)
        self.dispatch(BranchAction.DELETE)
        self.dispatch(AppAction.CONFIRM_ACTION)
        self.assertEqual(self.repo.called("delete_branch"), [("delete_branch", "feature")])


class ConflictHandlerTests(_HandlerTestCase):
    def setUp(self) -> None:
        super().setUp()
        (self.root / "a.txt").write_text(CONFLICTED, encoding="utf-8")
        conflict_file = ConflictFile("a.txt", parse_conflicts(CONFLICTED), original_text=CONFLICTED)
        open_conflicts(self.state, [conflict_file], "merge feature", "main", "feature")

    def test_block_resolution_advances_and_stages_when_complete(self) -> None:
        conflicts = self.state.conflicts
        self.dispatch(ConflictAction.ENTER_RESOLVE)
        self.assertIs(conflicts.panel, ConflictPanel.OURS)

        self.dispatch(ConflictAction.ENTER_RESOLVE)
        self.assertEqual(conflicts.section_selected, 1)
        self.assertEqual(self.repo.called("stage_path"), [])
        self.assertIn("<<<<<<<", (self.root / "a.txt").read_text(encoding="utf-8"))

        self.dispatch(ConflictAction.SWITCH_PANEL)
        self.dispatch(ConflictAction.ENTER_RESOLVE)

        self.assertEqual(
            (self.root / "a.txt").read_text(encoding="utf-8"),
            "header\nours one\nmiddle\ntheirs two\n",
        )
        self.assertEqual(self.repo.called("stage_path"), [("stage_path", "a.txt")])
        self.assertEqual(self.state.flash_message, "'a.txt' resolved, 0 file(s) remaining")

    def test_line_mode_toggles_lines_and_keeps_file_order(self) -> None:
        conflicts = self.state.conflicts
        self.dispatch(ConflictAction.SET_MODE_LINE)
        self.assertEqual(self.state.flash_message, "Resolution mode: line")
        self.dispatch(ConflictAction.ENTER_RESOLVE)
        self.dispatch(ConflictAction.SWITCH_PANEL)
        self.assertIs(conflicts.panel, ConflictPanel.THEIRS)

        self.dispatch(ConflictAction.ENTER_RESOLVE)

        on_disk = (self.root / "a.txt").read_text(encoding="utf-8")
        self.assertTrue(on_disk.startswith("header\nours one\ntheirs one\nmiddle\n<<<<<<< HEAD\n"))
        self.assertEqual(self.repo.called("stage_path"), [])

        self.dispatch(ConflictAction.NEXT_SECTION)
        self.dispatch(ConflictAction.TOGGLE_LINE)

        self.assertEqual(
            (self.root / "a.txt").read_text(encoding="utf-8"),
            "header\nours one\ntheirs one\nmiddle\nours two\ntheirs two\n",
        )
        self.assertEqual(self.repo.called("stage_path"), [("stage_path", "a.txt")])

    def test_finalize_refuses_unresolved(self) -> None:
        self.dispatch(ConflictAction.FINALIZE_MERGE)
        self.assertIsNone(self.state.pending_confirmation)
        self.assertEqual(self.state.flash_message, "Cannot finalize: 2 unresolved conflict(s) remain")

    def test_finalize_asks_once_everything_is_resolved(self) -> None:
        self.dispatch(ConflictAction.ACCEPT_THEIRS_FILE)
        self.dispatch(ConflictAction.FINALIZE_MERGE)
        self.assertIs(self.state.pending_confirmation.kind, ConfirmKind.FINALIZE_MERGE)

    def test_manual_edit_replaces_file(self) -> None:
        self.dispatch(ConflictAction.START_EDITING)
        editor = self.state.conflicts.editor
        self.assertIsNotNone(editor)
        editor.lines = ["merged by hand"]
        editor.row = editor.col = 0
        self.dispatch(ConflictAction.CONFIRM_EDIT)

        self.assertIsNone(self.state.conflicts.editor)
        self.assertEqual((self.root / "a.txt").read_text(encoding="utf-8"), "merged by hand\n")
        self.assertTrue(self.state.conflicts.files[0].is_resolved)

    def test_drifted_file_reports_error_without_staging(self) -> None:
        (self.root / "a.txt").write_text("rewritten elsewhere\n", encoding="utf-8")
        self.dispatch(ConflictAction.ACCEPT_OURS_FILE)
        self.assertTrue(self.state.flash_message.startswith("Resolve error: "))
        self.assertEqual(self.repo.called("stage_path"), [])

    def test_leave_returns_to_graph_and_keeps_state(self) -> None:
        self.dispatch(ConflictAction.LEAVE_VIEW)
        self.assertIs(self.state.view_mode, ViewMode.GRAPH)
        self.assertIsNotNone(self.state.conflicts)


if __name__ == "__main__":
    unittest.main()
