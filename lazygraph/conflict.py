"""Conflict-marker parsing and resolution.

Working-tree files left with ``<<<<<<<``/``=======``/``>>>>>>>`` blocks are
parsed into ordered ``ConflictSection`` values. A resolution is tracked per
section (whole side, both sides, or a per-line selection). ``render_resolved``
re-scans the same text and splices each block positionally: a block without
a resolution is reproduced byte-for-byte, so partial passes are idempotent.
Deletions and files without markers are resolved by checking out one index
stage whole, which keeps binary and non-UTF-8 content intact.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import (
    ConflictDriftError,
    ConflictParseError,
    GitIOError,
    IndexOutOfBoundsError,
    InvalidStateError,
)

logger = logging.getLogger(__name__)

OPEN_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
SEPARATOR = "======="
CLOSE_MARKER = ">>>>>>>"
CONTEXT_LINES = 3


class Resolution(Enum):
    OURS = "ours"
    THEIRS = "theirs"
    BOTH = "both"


class Granularity(Enum):
    """Scope a resolution choice applies to."""

    FILE = "file"
    BLOCK = "block"
    LINE = "line"


class ConflictType(Enum):
    BOTH_MODIFIED = "both modified"
    BOTH_ADDED = "both added"
    DELETED_BY_US = "deleted by us"
    DELETED_BY_THEM = "deleted by them"


class LineSource(Enum):
    CONTEXT = "context"
    OURS = "ours"
    THEIRS = "theirs"
    MARKER = "marker"


@dataclass
class LineSelection:
    """Per-line inclusion flags layered over one section's two sides.

    New selections start with every ``ours`` line included and every
    ``theirs`` line excluded.
    """

    ours: list[bool]
    theirs: list[bool]

    @classmethod
    def for_section(cls, section: ConflictSection) -> LineSelection:
        """Selection over ``section`` with only the ours lines included."""
        return cls([True] * len(section.ours), [False] * len(section.theirs))

    def toggle(self, side: LineSource, index: int) -> None:
        """Flip inclusion of line ``index`` on ``side``."""
        flags = self.ours if side is LineSource.OURS else self.theirs
        if not 0 <= index < len(flags):
            raise IndexOutOfBoundsError(index, len(flags))
        flags[index] = not flags[index]


@dataclass
class ConflictSection:
    """One conflict block plus bounded surrounding context.

    ``ordinal`` is the block's position in its file; reassembly pairs sections
    with on-disk blocks by this position.
    """

    ordinal: int
    start_line: int
    context_before: list[str]
    ours: list[str]
    theirs: list[str]
    context_after: list[str]
    base: list[str] = field(default_factory=list)
    resolution: Resolution | None = None
    line_selection: LineSelection | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution is not None

    def resolved_lines(self) -> list[str] | None:
        """Lines this section resolves to, or ``None`` while unresolved."""
        if self.resolution is None:
            return None
        if self.line_selection is not None:
            picked = [line for line, keep in zip(self.ours, self.line_selection.ours) if keep]
            picked += [line for line, keep in zip(self.theirs, self.line_selection.theirs) if keep]
            return picked
        if self.resolution is Resolution.OURS:
            return list(self.ours)
        if self.resolution is Resolution.THEIRS:
            return list(self.theirs)
        return list(self.ours) + list(self.theirs)


@dataclass
class ConflictFile:
    """Conflicted path with its ordered sections.

    Every mutation goes through the methods below so ``is_resolved`` is kept
    in sync with the sections.
    """

    path: str
    conflicts: list[ConflictSection]
    conflict_type: ConflictType = ConflictType.BOTH_MODIFIED
    original_text: str = ""
    is_resolved: bool = False
    written_text: str | None = None
    whole_file: bool = False

    def __post_init__(self) -> None:
        self.refresh_resolved()

    def refresh_resolved(self) -> bool:
        """Recompute ``is_resolved`` from the sections and return it."""
        self.is_resolved = all(section.resolution is not None for section in self.conflicts)
        return self.is_resolved

    def section(self, index: int) -> ConflictSection:
        """Section ``index``, raising ``IndexOutOfBoundsError`` when out of range."""
        if not 0 <= index < len(self.conflicts):
            raise IndexOutOfBoundsError(index, len(self.conflicts))
        return self.conflicts[index]

    def set_resolution(self, index: int, resolution: Resolution | None) -> None:
        """Resolve (or with ``None`` reopen) one section as a whole block."""
        section = self.section(index)
        section.resolution = resolution
        section.line_selection = None
        self.refresh_resolved()

    def set_all(self, resolution: Resolution | None) -> None:
        """Apply ``resolution`` to every section of the file."""
        for section in self.conflicts:
            section.resolution = resolution
            section.line_selection = None
        self.refresh_resolved()

    def toggle_line(self, index: int, side: LineSource, line_index: int) -> None:
        """Flip one line's inclusion; the section becomes a line-level resolution."""
        if self.resolves_by_side:
            raise InvalidStateError(f"'{self.path}' can only be resolved by picking a side")
        section = self.section(index)
        if section.line_selection is None:
            section.line_selection = LineSelection.for_section(section)
        section.line_selection.toggle(side, line_index)
        section.resolution = Resolution.BOTH
        self.refresh_resolved()

    @property
    def unresolved_sections(self) -> int:
        """Number of sections still without a resolution."""
        return sum(1 for section in self.conflicts if section.resolution is None)

    @property
    def is_deletion(self) -> bool:
        return self.conflict_type in {ConflictType.DELETED_BY_US, ConflictType.DELETED_BY_THEM}

    @property
    def resolves_by_side(self) -> bool:
        """True when the file is settled by checking out one index stage whole."""
        return self.is_deletion or self.whole_file


@dataclass(frozen=True)
class _RawBlock:
    start_line: int
    raw_lines: tuple[str, ...]
    ours: tuple[str, ...]
    base: tuple[str, ...]
    theirs: tuple[str, ...]
    ours_raw: tuple[str, ...]
    theirs_raw: tuple[str, ...]


def _strip_eol(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1]
    return line


def _scan(text: str, path: str) -> Iterator[str | _RawBlock]:
    """Yield plain lines (with line endings) and complete conflict blocks."""
    raw_lines = text.splitlines(keepends=True)
    state = None
    block_start = 0
    collected: list[str] = []
    ours_raw: list[str] = []
    base: list[str] = []
    theirs_raw: list[str] = []

    for number, raw in enumerate(raw_lines, start=1):
        line = _strip_eol(raw)
        if state is None:
            if line.startswith(OPEN_MARKER):
                state = "ours"
                block_start = number
                collected = [raw]
                ours_raw, base, theirs_raw = [], [], []
            else:
                yield raw
            continue

        collected.append(raw)
        if line.startswith(OPEN_MARKER):
            raise ConflictParseError(path, number, "nested conflict marker")
        if state == "ours":
            if line == SEPARATOR:
                state = "theirs"
            elif line.startswith(BASE_MARKER):
                state = "base"
            elif line.startswith(CLOSE_MARKER):
                raise ConflictParseError(path, number, "close marker before separator")
            else:
                ours_raw.append(raw)
        elif state == "base":
            if line == SEPARATOR:
                state = "theirs"
            elif line.startswith(CLOSE_MARKER):
                raise ConflictParseError(path, number, "close marker before separator")
            else:
                base.append(line)
        else:
            if line.startswith(CLOSE_MARKER):
                yield _RawBlock(
                    start_line=block_start,
                    raw_lines=tuple(collected),
                    ours=tuple(_strip_eol(item) for item in ours_raw),
                    base=tuple(base),
                    theirs=tuple(_strip_eol(item) for item in theirs_raw),
                    ours_raw=tuple(ours_raw),
                    theirs_raw=tuple(theirs_raw),
                )
                state = None
            elif line == SEPARATOR or line.startswith(BASE_MARKER):
                raise ConflictParseError(path, number, "unexpected marker inside theirs")
            else:
                theirs_raw.append(raw)

    if state is not None:
        raise ConflictParseError(path, block_start, "unterminated conflict block")


def parse_conflicts(text: str, path: str = "<text>") -> list[ConflictSection]:
    """Parse every conflict block in ``text`` into ordered sections.

    Malformed input (unterminated or out-of-order markers) raises
    ``ConflictParseError``; no partial result is returned.
    """
    events = list(_scan(text, path))
    sections: list[ConflictSection] = []
    before: deque[str] = deque(maxlen=CONTEXT_LINES)
    for position, event in enumerate(events):
        if isinstance(event, str):
            before.append(_strip_eol(event))
            continue
        after: list[str] = []
        for follower in events[position + 1:]:
            if not isinstance(follower, str) or len(after) >= CONTEXT_LINES:
                break
            after.append(_strip_eol(follower))
        sections.append(
            ConflictSection(
                ordinal=len(sections),
                start_line=event.start_line,
                context_before=list(before),
                ours=list(event.ours),
                theirs=list(event.theirs),
                context_after=after,
                base=list(event.base),
            )
        )
        before.clear()
    return sections


def _selected_raw(section: ConflictSection, block: _RawBlock) -> list[str]:
    if section.line_selection is not None:
        picked = [raw for raw, keep in zip(block.ours_raw, section.line_selection.ours) if keep]
        picked += [raw for raw, keep in zip(block.theirs_raw, section.line_selection.theirs) if keep]
        return picked
    if section.resolution is Resolution.OURS:
        return list(block.ours_raw)
    if section.resolution is Resolution.THEIRS:
        return list(block.theirs_raw)
    return list(block.ours_raw) + list(block.theirs_raw)


def render_resolved(text: str, conflict_file: ConflictFile) -> str:
    """Re-scan ``text`` and replace each resolved block by its chosen lines.

    The i-th block on disk must be section ``i`` with the same sides;
    otherwise the file changed since parsing and ``ConflictDriftError`` is
    raised instead of splicing the wrong lines.
    """
    sections = conflict_file.conflicts
    out: list[str] = []
    ordinal = 0
    for event in _scan(text, conflict_file.path):
        if isinstance(event, str):
            out.append(event)
            continue
        if ordinal >= len(sections):
            raise ConflictDriftError(conflict_file.path, len(sections), ordinal + 1)
        section = sections[ordinal]
        assert section.ordinal == ordinal
        if list(event.ours) != section.ours or list(event.theirs) != section.theirs:
            raise ConflictDriftError(conflict_file.path, len(sections), ordinal)
        ordinal += 1
        if section.resolution is None:
            out.extend(event.raw_lines)
        else:
            out.extend(_selected_raw(section, event))
    if ordinal != len(sections):
        raise ConflictDriftError(conflict_file.path, len(sections), ordinal)
    return "".join(out)


def preview_lines(conflict_file: ConflictFile) -> list[tuple[LineSource, str]]:
    """Current merged result of ``conflict_file`` annotated by line origin."""
    if conflict_file.resolves_by_side:
        section = conflict_file.conflicts[0] if conflict_file.conflicts else None
        if section is None:
            return []
        if section.resolution is None:
            return [(LineSource.MARKER, f"({conflict_file.conflict_type.value}: unresolved)")]
        kept = _kept_side(conflict_file, section.resolution)
        if kept is None:
            return [(LineSource.MARKER, "(file will be deleted)")]
        lines = section.ours if kept is Resolution.OURS else section.theirs
        source = LineSource.OURS if kept is Resolution.OURS else LineSource.THEIRS
        if conflict_file.whole_file and not lines:
            return [(LineSource.MARKER, f"(keep {kept.value} version)")]
        return [(source, line) for line in lines]

    out: list[tuple[LineSource, str]] = []
    ordinal = 0
    try:
        events = list(_scan(conflict_file.original_text, conflict_file.path))
    except ConflictParseError:
        return [(LineSource.CONTEXT, line) for line in conflict_file.original_text.splitlines()]
    for event in events:
        if isinstance(event, str):
            out.append((LineSource.CONTEXT, _strip_eol(event)))
            continue
        section = conflict_file.conflicts[ordinal] if ordinal < len(conflict_file.conflicts) else None
        ordinal += 1
        if section is None or section.resolution is None:
            out.extend((LineSource.MARKER, _strip_eol(raw)) for raw in event.raw_lines)
            continue
        if section.line_selection is not None:
            out.extend(
                (LineSource.OURS, line) for line, keep in zip(section.ours, section.line_selection.ours) if keep
            )
            out.extend(
                (LineSource.THEIRS, line)
                for line, keep in zip(section.theirs, section.line_selection.theirs)
                if keep
            )
        else:
            if section.resolution in {Resolution.OURS, Resolution.BOTH}:
                out.extend((LineSource.OURS, line) for line in section.ours)
            if section.resolution in {Resolution.THEIRS, Resolution.BOTH}:
                out.extend((LineSource.THEIRS, line) for line in section.theirs)
    return out


def read_worktree_text(path: Path) -> str:
    """Read ``path`` losslessly, keeping line endings and undecodable bytes."""
    try:
        with open(path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
            return handle.read()
    except OSError as exc:
        raise GitIOError(f"cannot read {path}: {exc}") from exc


def write_worktree_text(path: Path, text: str) -> None:
    """Write text produced by ``read_worktree_text`` back byte-for-byte."""
    try:
        with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as handle:
            handle.write(text)
    except OSError as exc:
        raise GitIOError(f"cannot write {path}: {exc}") from exc


def _classify(stages: frozenset[int]) -> ConflictType:
    if 2 not in stages:
        return ConflictType.DELETED_BY_US
    if 3 not in stages:
        return ConflictType.DELETED_BY_THEM
    if 1 not in stages:
        return ConflictType.BOTH_ADDED
    return ConflictType.BOTH_MODIFIED


def _stage_lines(repo, stage: str, path: str) -> list[str]:
    """Display lines of an index stage; binary blobs show as nothing."""
    text = repo.show_blob(stage, path) or ""
    if "\0" in text:
        return []
    return text.splitlines()


def load_conflict_file(repo, path: str, stages: frozenset[int]) -> ConflictFile:
    """Build a ``ConflictFile`` for one unmerged path of ``repo``.

    Deletions and files without conflict markers (binary content, for one)
    get a single whole-file section that is resolved by picking a side.
    """
    conflict_type = _classify(stages)
    target = repo.root / path
    if conflict_type is ConflictType.DELETED_BY_US:
        section = ConflictSection(0, 1, [], [], _stage_lines(repo, ":3", path), [])
        return ConflictFile(path, [section], conflict_type, "")
    if conflict_type is ConflictType.DELETED_BY_THEM:
        section = ConflictSection(0, 1, [], _stage_lines(repo, ":2", path), [], [])
        return ConflictFile(path, [section], conflict_type, "")

    text = read_worktree_text(target)
    sections = parse_conflicts(text, path)
    if sections:
        return ConflictFile(path, sections, conflict_type, text)
    logger.info("%s has no conflict markers; resolving it by side", path)
    section = ConflictSection(0, 1, [], _stage_lines(repo, ":2", path), _stage_lines(repo, ":3", path), [])
    return ConflictFile(path, [section], conflict_type, text, whole_file=True)


def collect_conflicts(repo) -> list[ConflictFile]:
    """Parse every unmerged path currently recorded in ``repo``'s index."""
    files = [load_conflict_file(repo, path, stages) for path, stages in sorted(repo.conflicted_paths().items())]
    logger.info("collected %d conflicted file(s)", len(files))
    return files


def _kept_side(conflict_file: ConflictFile, resolution: Resolution) -> Resolution | None:
    """Index stage a side-resolved file keeps, or ``None`` when it is deleted."""
    if conflict_file.whole_file:
        return resolution
    present = Resolution.THEIRS if conflict_file.conflict_type is ConflictType.DELETED_BY_US else Resolution.OURS
    return present if resolution in {present, Resolution.BOTH} else None


def _resolve_by_side(repo, conflict_file: ConflictFile) -> None:
    section = conflict_file.conflicts[0]
    if section.resolution is None:
        return
    if conflict_file.whole_file and section.resolution is Resolution.BOTH:
        section.resolution = None
        conflict_file.refresh_resolved()
        raise InvalidStateError(f"'{conflict_file.path}' has no conflict markers; keep ours or theirs")
    kept = _kept_side(conflict_file, section.resolution)
    if kept is None:
        repo.remove_path(conflict_file.path)
        target = repo.root / conflict_file.path
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise GitIOError(f"cannot delete {target}: {exc}") from exc
    else:
        repo.checkout_stage(conflict_file.path, theirs=kept is Resolution.THEIRS)
        repo.stage_path(conflict_file.path)
    logger.info("resolved %s by keeping %s", conflict_file.path, kept.value if kept else "nothing")


def resolve_file(repo, conflict_file: ConflictFile) -> None:
    """Write the current resolutions of ``conflict_file`` to the work tree.

    The path is staged only once every section is resolved; a partially
    resolved file keeps its remaining markers and its unmerged index entry.
    Side-resolved files are restored byte-for-byte from their index stage.
    """
    if conflict_file.resolves_by_side:
        _resolve_by_side(repo, conflict_file)
        return

    target = repo.root / conflict_file.path
    current = read_worktree_text(target)
    # Our own earlier partial write is re-rendered from the parsed baseline.
    baseline = conflict_file.original_text if current == conflict_file.written_text else current
    resolved_text = render_resolved(baseline, conflict_file)
    if resolved_text != current:
        write_worktree_text(target, resolved_text)
    conflict_file.written_text = resolved_text
    if conflict_file.is_resolved:
        repo.stage_path(conflict_file.path)
        logger.info("resolved and staged %s", conflict_file.path)


def resolve_file_with_strategy(repo, conflict_file: ConflictFile, strategy: Resolution) -> None:
    """Resolve every section of ``conflict_file`` with ``strategy`` and write it."""
    conflict_file.set_all(strategy)
    resolve_file(repo, conflict_file)


def write_manual_resolution(repo, conflict_file: ConflictFile, text: str) -> None:
    """Replace the file with hand-edited ``text`` and re-parse what is left.

    Markers still present become fresh unresolved sections; without markers the
    file counts as resolved and is staged.
    """
    sections = parse_conflicts(text, conflict_file.path)
    write_worktree_text(repo.root / conflict_file.path, text)
    conflict_file.conflicts = sections
    conflict_file.conflict_type = ConflictType.BOTH_MODIFIED
    conflict_file.whole_file = False
    conflict_file.original_text = text
    conflict_file.written_text = text
    if conflict_file.refresh_resolved():
        repo.stage_path(conflict_file.path)


def count_unresolved_files(files: list[ConflictFile]) -> int:
    return sum(1 for item in files if not item.is_resolved)


def count_unresolved_sections(files: list[ConflictFile]) -> int:
    return sum(item.unresolved_sections for item in files)
