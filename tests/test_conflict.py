"""Conflict-marker parsing, resolution splicing and work-tree writes."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from lazygraph.conflict import (
    ConflictFile,
    ConflictSection,
    ConflictType,
    LineSource,
    Resolution,
    load_conflict_file,
    parse_conflicts,
    preview_lines,
    render_resolved,
    resolve_file,
    write_manual_resolution,
)
from lazygraph.errors import ConflictDriftError, ConflictParseError, IndexOutOfBoundsError, InvalidStateError

TWO_BLOCKS = """\
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
theirs two b
>>>>>>> feature
footer
"""


class _RecordingRepo:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.staged: list[str] = []
        self.removed: list[str] = []
        self.checkouts: list[tuple[str, bool]] = []
        self.blobs: dict[str, str] = {}

    def stage_path(self, path: str) -> None:
        self.staged.append(path)

    def remove_path(self, path: str) -> None:
        self.removed.append(path)

    def checkout_stage(self, path: str, *, theirs: bool) -> None:
        self.checkouts.append((path, theirs))

    def show_blob(self, rev: str, path: str) -> str | None:
        return self.blobs.get(f"{rev}:{path}")


class ParseConflictsTests(unittest.TestCase):
    def test_parses_blocks_in_order_with_context(self) -> None:
        sections = parse_conflicts(TWO_BLOCKS)

        self.assertEqual([s.ordinal for s in sections], [0, 1])
        self.assertEqual(sections[0].start_line, 2)
        self.assertEqual(sections[0].ours, ["ours one"])
        self.assertEqual(sections[0].theirs, ["theirs one"])
        self.assertEqual(sections[0].context_before, ["header"])
        self.assertEqual(sections[0].context_after, ["middle"])
        self.assertEqual(sections[1].theirs, ["theirs two", "theirs two b"])
        self.assertEqual(sections[1].context_before, ["middle"])

    def test_no_markers_means_no_sections(self) -> None:
        self.assertEqual(parse_conflicts("plain\ntext\n"), [])

    def test_diff3_base_is_captured(self) -> None:
        text = "<<<<<<< ours\na\n||||||| base\norig\n=======\nb\n>>>>>>> theirs\n"
        (section,) = parse_conflicts(text)
        self.assertEqual(section.base, ["orig"])
        self.assertEqual((section.ours, section.theirs), (["a"], ["b"]))

    def test_context_is_bounded_to_three_lines(self) -> None:
        text = "1\n2\n3\n4\n5\n<<<<<<< a\nx\n=======\ny\n>>>>>>> b\n6\n7\n8\n9\n"
        (section,) = parse_conflicts(text)
        self.assertEqual(section.context_before, ["3", "4", "5"])
        self.assertEqual(section.context_after, ["6", "7", "8"])

    def test_unterminated_block_is_rejected(self) -> None:
        with self.assertRaises(ConflictParseError):
            parse_conflicts("<<<<<<< HEAD\nours\n=======\ntheirs\n")

    def test_close_before_separator_is_rejected(self) -> None:
        with self.assertRaises(ConflictParseError):
            parse_conflicts("<<<<<<< HEAD\nours\n>>>>>>> other\n")

    def test_nested_open_marker_is_rejected(self) -> None:
        with self.assertRaises(ConflictParseError) as caught:
            parse_conflicts("<<<<<<< HEAD\n<<<<<<< HEAD\n=======\n>>>>>>> x\n")
        self.assertEqual(caught.exception.line, 2)

    def test_empty_sides_are_allowed(self) -> None:
        (section,) = parse_conflicts("<<<<<<< HEAD\n=======\nonly theirs\n>>>>>>> x\n")
        self.assertEqual(section.ours, [])
        self.assertEqual(section.theirs, ["only theirs"])


class ResolutionModelTests(unittest.TestCase):
    def _file(self) -> ConflictFile:
        return ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)

    def test_file_is_resolved_only_when_every_section_is(self) -> None:
        conflict_file = self._file()
        self.assertFalse(conflict_file.is_resolved)
        conflict_file.set_resolution(0, Resolution.OURS)
        self.assertFalse(conflict_file.is_resolved)
        conflict_file.set_resolution(1, Resolution.THEIRS)
        self.assertTrue(conflict_file.is_resolved)
        conflict_file.set_resolution(1, None)
        self.assertFalse(conflict_file.is_resolved)

    def test_out_of_range_section_raises(self) -> None:
        with self.assertRaises(IndexOutOfBoundsError):
            self._file().set_resolution(5, Resolution.OURS)

    def test_line_toggle_starts_from_ours_selected(self) -> None:
        conflict_file = self._file()
        conflict_file.toggle_line(1, LineSource.THEIRS, 1)

        section = conflict_file.conflicts[1]
        self.assertEqual(section.resolution, Resolution.BOTH)
        self.assertEqual(section.resolved_lines(), ["ours two", "theirs two b"])

    def test_block_resolution_clears_line_selection(self) -> None:
        conflict_file = self._file()
        conflict_file.toggle_line(0, LineSource.OURS, 0)
        conflict_file.set_resolution(0, Resolution.THEIRS)
        self.assertIsNone(conflict_file.conflicts[0].line_selection)
        self.assertEqual(conflict_file.conflicts[0].resolved_lines(), ["theirs one"])

    def test_both_keeps_ours_then_theirs(self) -> None:
        conflict_file = self._file()
        conflict_file.set_resolution(0, Resolution.BOTH)
        self.assertEqual(conflict_file.conflicts[0].resolved_lines(), ["ours one", "theirs one"])


class RenderResolvedTests(unittest.TestCase):
    def test_fully_resolved_file_has_no_markers(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        conflict_file.set_all(Resolution.THEIRS)

        result = render_resolved(TWO_BLOCKS, conflict_file)

        self.assertEqual(result, "header\ntheirs one\nmiddle\ntheirs two\ntheirs two b\nfooter\n")

    def test_unresolved_block_is_kept_verbatim(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        conflict_file.set_resolution(0, Resolution.OURS)

        result = render_resolved(TWO_BLOCKS, conflict_file)

        self.assertIn("<<<<<<< HEAD\nours two\n=======\ntheirs two\ntheirs two b\n>>>>>>> feature\n", result)
        self.assertTrue(result.startswith("header\nours one\nmiddle\n"))
        # Re-rendering the partial result with the same resolutions changes nothing.
        self.assertEqual(parse_conflicts(result)[0].ours, ["ours two"])

    def test_crlf_line_endings_are_preserved(self) -> None:
        text = TWO_BLOCKS.replace("\n", "\r\n")
        conflict_file = ConflictFile("a.txt", parse_conflicts(text), original_text=text)
        conflict_file.set_all(Resolution.OURS)

        result = render_resolved(text, conflict_file)

        self.assertEqual(result, "header\r\nours one\r\nmiddle\r\nours two\r\nfooter\r\n")

    def test_line_selection_keeps_file_order_and_line_endings(self) -> None:
        text = TWO_BLOCKS.replace("\n", "\r\n")
        conflict_file = ConflictFile("a.txt", parse_conflicts(text), original_text=text)
        conflict_file.set_resolution(0, Resolution.THEIRS)
        conflict_file.toggle_line(1, LineSource.THEIRS, 1)
        conflict_file.toggle_line(1, LineSource.THEIRS, 0)

        result = render_resolved(text, conflict_file)

        self.assertEqual(
            result,
            "header\r\ntheirs one\r\nmiddle\r\nours two\r\ntheirs two\r\ntheirs two b\r\nfooter\r\n",
        )

    def test_deselecting_every_line_drops_the_block(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        conflict_file.toggle_line(0, LineSource.OURS, 0)
        conflict_file.set_resolution(1, Resolution.OURS)

        result = render_resolved(TWO_BLOCKS, conflict_file)

        self.assertEqual(result, "header\nmiddle\nours two\nfooter\n")

    def test_changed_block_count_is_drift(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        conflict_file.set_all(Resolution.OURS)
        one_block = "<<<<<<< HEAD\nours one\n=======\ntheirs one\n>>>>>>> feature\n"

        with self.assertRaises(ConflictDriftError):
            render_resolved(one_block, conflict_file)

    def test_changed_block_content_is_drift(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        edited = TWO_BLOCKS.replace("theirs one", "someone else")

        with self.assertRaises(ConflictDriftError):
            render_resolved(edited, conflict_file)

    def test_preview_marks_line_sources(self) -> None:
        conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)
        conflict_file.set_resolution(0, Resolution.THEIRS)

        preview = preview_lines(conflict_file)

        self.assertEqual(preview[0], (LineSource.CONTEXT, "header"))
        self.assertEqual(preview[1], (LineSource.THEIRS, "theirs one"))
        self.assertIn((LineSource.MARKER, "======="), preview)


class ResolveFileTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.repo = _RecordingRepo(self.root)
        (self.root / "a.txt").write_text(TWO_BLOCKS, encoding="utf-8")
        self.conflict_file = ConflictFile("a.txt", parse_conflicts(TWO_BLOCKS), original_text=TWO_BLOCKS)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_partial_resolution_writes_but_does_not_stage(self) -> None:
        self.conflict_file.set_resolution(0, Resolution.OURS)

        resolve_file(self.repo, self.conflict_file)

        on_disk = (self.root / "a.txt").read_text(encoding="utf-8")
        self.assertTrue(on_disk.startswith("header\nours one\nmiddle\n<<<<<<< HEAD\n"))
        self.assertEqual(self.repo.staged, [])

    def test_second_pass_after_partial_write_completes_and_stages(self) -> None:
        self.conflict_file.set_resolution(0, Resolution.OURS)
        resolve_file(self.repo, self.conflict_file)
        self.conflict_file.set_resolution(1, Resolution.BOTH)

        resolve_file(self.repo, self.conflict_file)

        on_disk = (self.root / "a.txt").read_text(encoding="utf-8")
        self.assertEqual(on_disk, "header\nours one\nmiddle\nours two\ntheirs two\ntheirs two b\nfooter\n")
        self.assertEqual(self.repo.staged, ["a.txt"])

    def test_repeated_partial_resolve_leaves_identical_bytes(self) -> None:
        self.conflict_file.set_resolution(1, Resolution.THEIRS)
        resolve_file(self.repo, self.conflict_file)
        first = (self.root / "a.txt").read_bytes()

        resolve_file(self.repo, self.conflict_file)

        self.assertEqual((self.root / "a.txt").read_bytes(), first)
        self.assertIn(b"<<<<<<< HEAD\nours one\n=======\ntheirs one\n>>>>>>> feature\n", first)
        self.assertTrue(first.endswith(b"middle\ntheirs two\ntheirs two b\nfooter\n"))
        self.assertEqual(self.repo.staged, [])

    def test_line_selection_resolve_is_repeatable(self) -> None:
        self.conflict_file.set_resolution(0, Resolution.OURS)
        self.conflict_file.toggle_line(1, LineSource.THEIRS, 1)
        resolve_file(self.repo, self.conflict_file)
        first = (self.root / "a.txt").read_bytes()

        resolve_file(self.repo, self.conflict_file)

        self.assertEqual(first, b"header\nours one\nmiddle\nours two\ntheirs two b\nfooter\n")
        self.assertEqual((self.root / "a.txt").read_bytes(), first)
        self.assertEqual(self.repo.staged, ["a.txt", "a.txt"])

    def test_external_edit_is_detected_as_drift(self) -> None:
        (self.root / "a.txt").write_text("header\nno conflicts any more\n", encoding="utf-8")
        self.conflict_file.set_all(Resolution.OURS)

        with self.assertRaises(ConflictDriftError):
            resolve_file(self.repo, self.conflict_file)
        self.assertEqual(self.repo.staged, [])

    def test_manual_resolution_without_markers_stages(self) -> None:
        write_manual_resolution(self.repo, self.conflict_file, "hand merged\n")

        self.assertTrue(self.conflict_file.is_resolved)
        self.assertEqual(self.conflict_file.conflicts, [])
        self.assertEqual(self.repo.staged, ["a.txt"])
        self.assertEqual((self.root / "a.txt").read_text(encoding="utf-8"), "hand merged\n")

    def test_manual_resolution_keeping_markers_reparses(self) -> None:
        edited = "top\n<<<<<<< HEAD\nmine\n=======\nyours\n>>>>>>> x\n"
        write_manual_resolution(self.repo, self.conflict_file, edited)

        self.assertFalse(self.conflict_file.is_resolved)
        self.assertEqual(len(self.conflict_file.conflicts), 1)
        self.assertEqual(self.repo.staged, [])

    def test_deleted_by_them_resolved_as_theirs_removes_file(self) -> None:
        section = ConflictSection(0, 1, [], ["kept"], [], [])
        deletion = ConflictFile("a.txt", [section], ConflictType.DELETED_BY_THEM, "kept\n")
        deletion.set_all(Resolution.THEIRS)

        resolve_file(self.repo, deletion)

        self.assertEqual(self.repo.removed, ["a.txt"])
        self.assertFalse((self.root / "a.txt").exists())


class SideResolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.repo = _RecordingRepo(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_file_without_markers_waits_for_a_side(self) -> None:
        (self.root / "blob.bin").write_bytes(b"\x00ours\x00")
        self.repo.blobs = {":2:blob.bin": "\x00ours\x00", ":3:blob.bin": "\x00theirs\x00"}

        conflict_file = load_conflict_file(self.repo, "blob.bin", frozenset({1, 2, 3}))

        self.assertTrue(conflict_file.whole_file)
        self.assertEqual(len(conflict_file.conflicts), 1)
        self.assertEqual(conflict_file.conflicts[0].ours, [])
        self.assertFalse(conflict_file.is_resolved)
        resolve_file(self.repo, conflict_file)
        self.assertEqual((self.repo.checkouts, self.repo.staged), ([], []))

        conflict_file.set_all(Resolution.THEIRS)
        resolve_file(self.repo, conflict_file)

        self.assertTrue(conflict_file.is_resolved)
        self.assertEqual(self.repo.checkouts, [("blob.bin", True)])
        self.assertEqual(self.repo.staged, ["blob.bin"])
        self.assertEqual(preview_lines(conflict_file), [(LineSource.MARKER, "(keep theirs version)")])

    def test_keeping_both_sides_without_markers_is_refused(self) -> None:
        (self.root / "notes.txt").write_text("hand merged\n", encoding="utf-8")
        self.repo.blobs = {":2:notes.txt": "mine\n", ":3:notes.txt": "yours\n"}
        conflict_file = load_conflict_file(self.repo, "notes.txt", frozenset({2, 3}))
        self.assertIs(conflict_file.conflict_type, ConflictType.BOTH_ADDED)
        self.assertEqual(conflict_file.conflicts[0].theirs, ["yours"])

        conflict_file.set_resolution(0, Resolution.BOTH)
        with self.assertRaises(InvalidStateError):
            resolve_file(self.repo, conflict_file)

        self.assertFalse(conflict_file.is_resolved)
        self.assertIsNone(conflict_file.conflicts[0].resolution)
        self.assertEqual((self.repo.checkouts, self.repo.staged), ([], []))

    def test_line_toggle_is_refused(self) -> None:
        self.repo.blobs = {":3:gone.txt": "theirs\n"}
        conflict_file = load_conflict_file(self.repo, "gone.txt", frozenset({1, 3}))

        with self.assertRaises(InvalidStateError):
            conflict_file.toggle_line(0, LineSource.THEIRS, 0)
        self.assertFalse(conflict_file.is_resolved)

    def test_deleted_by_us_kept_as_theirs_checks_out_the_stage(self) -> None:
        self.repo.blobs = {":3:gone.txt": "theirs\n"}
        conflict_file = load_conflict_file(self.repo, "gone.txt", frozenset({1, 3}))
        self.assertIs(conflict_file.conflict_type, ConflictType.DELETED_BY_US)
        self.assertEqual(conflict_file.conflicts[0].theirs, ["theirs"])

        conflict_file.set_all(Resolution.THEIRS)
        resolve_file(self.repo, conflict_file)

        self.assertEqual(self.repo.checkouts, [("gone.txt", True)])
        self.assertEqual(self.repo.staged, ["gone.txt"])
        self.assertEqual(self.repo.removed, [])

    def test_deleted_by_them_kept_as_ours_checks_out_the_stage(self) -> None:
        (self.root / "kept.txt").write_text("ours\n", encoding="utf-8")
        self.repo.blobs = {":2:kept.txt": "ours\n"}
        conflict_file = load_conflict_file(self.repo, "kept.txt", frozenset({1, 2}))

        conflict_file.set_all(Resolution.BOTH)
        resolve_file(self.repo, conflict_file)

        self.assertEqual(self.repo.checkouts, [("kept.txt", False)])
        self.assertEqual(self.repo.staged, ["kept.txt"])
        self.assertEqual(preview_lines(conflict_file), [(LineSource.OURS, "ours")])


if __name__ == "__main__":
    unittest.main()
