"""Body builders for each view.

Every builder takes the state plus the body size and returns at most
``rows`` styled lines; the frame module adds header, status and footer.
"""

from __future__ import annotations

import time
from itertools import zip_longest

from ..conflict import LineSource, preview_lines
from ..git.types import CommitInfo, DiffLine, FileDiff, StatusEntry
from ..state import ApplicationState, FocusPanel
from ..text_buffer import MultilineBuffer, TextBuffer
from ..views import BranchesFocus, BranchesSection, ConflictPanel, StagingFocus
from .ansi import (
    ACCENT,
    BOLD,
    CYAN,
    DIM,
    GRAY,
    GREEN,
    KEY,
    MAGENTA,
    RED,
    REVERSE,
    YELLOW,
    fit_line,
    selected,
    side_by_side,
    style,
)
from .help import help_lines
from .highlight import highlight_lines, sanitize_terminal_text

DIFF_KIND_COLORS = {"add": GREEN, "del": RED, "hunk": CYAN}
DIFF_KIND_PREFIX = {"add": "+", "del": "-", "context": " ", "hunk": ""}
SOURCE_COLORS = {LineSource.OURS: GREEN, LineSource.THEIRS: MAGENTA, LineSource.MARKER: RED}
STATUS_COLORS = {"A": GREEN, "M": YELLOW, "D": RED, "R": CYAN, "?": GRAY, "U": RED}


def window_start(selected_index: int, count: int, rows: int) -> int:
    """First visible index that keeps ``selected_index`` on screen."""
    if rows <= 0 or count <= rows:
        return 0
    return max(0, min(selected_index - rows // 2, count - rows))


def _format_date(timestamp: int) -> str:
    return time.strftime("%Y-%m-%d", time.localtime(timestamp)) if timestamp else ""


def _title(text: str, focused: bool, color: bool) -> str:
    return style(text, BOLD, ACCENT, enabled=color) if focused else style(text, BOLD, enabled=color)


def _cursor_text(buffer: TextBuffer, color: bool) -> str:
    before, after = buffer.text[: buffer.cursor], buffer.text[buffer.cursor:]
    under = after[:1] or " "
    return f"{before}{style(under, REVERSE, enabled=color) if color else '|' + under}{after[1:]}"


def _list_rows(items: list[str], selected_index: int, rows: int, focused: bool, color: bool) -> list[str]:
    start = window_start(selected_index, len(items), rows)
    out = []
    for index in range(start, min(len(items), start + rows)):
        current = index == selected_index
        text = ("> " if current else "  ") + items[index]
        if current and focused:
            text = selected(text, color)
        out.append(text)
    return out


# ---------------------------------------------------------------- diffs


def _unified_lines(diff: FileDiff, color: bool) -> list[str]:
    out = []
    for line in diff.lines:
        text = DIFF_KIND_PREFIX.get(line.kind, " ") + sanitize_terminal_text(line.content)
        color_code = DIFF_KIND_COLORS.get(line.kind)
        out.append(style(text, color_code, enabled=color) if color_code else text)
    return out


def _split_lines(diff: FileDiff, half: int, color: bool) -> list[str]:
    """Old and new text in two columns; deletions pair with the additions after them."""
    out: list[str] = []
    removed: list[DiffLine] = []
    added: list[DiffLine] = []

    def flush() -> None:
        for old, new in zip_longest(removed, added):
            lhs = style("-" + sanitize_terminal_text(old.content), RED, enabled=color) if old else ""
            rhs = style("+" + sanitize_terminal_text(new.content), GREEN, enabled=color) if new else ""
            out.append(f"{fit_line(lhs, half)}│{rhs}")
        removed.clear()
        added.clear()

    for line in diff.lines:
        if line.kind == "del":
            if added:
                flush()
            removed.append(line)
        elif line.kind == "add":
            added.append(line)
        else:
            flush()
            text = sanitize_terminal_text(line.content)
            if line.kind == "hunk":
                out.append(style(text, CYAN, enabled=color))
            else:
                out.append(f"{fit_line(' ' + text, half)}│ {text}")
    flush()
    return out


def diff_lines(diff: FileDiff | None, width: int, *, split: bool, color: bool) -> list[str]:
    """Render ``diff`` as unified or side-by-side rows."""
    if diff is None:
        return [style("(no diff)", DIM, enabled=color)]
    header = style(f"{diff.path}  +{diff.additions} -{diff.deletions}", BOLD, enabled=color)
    if not diff.lines:
        return [header, style("(no textual changes)", DIM, enabled=color)]
    body = _split_lines(diff, max(1, (width - 1) // 2), color) if split else _unified_lines(diff, color)
    return [header, *body]


# ---------------------------------------------------------------- graph


def _commit_row(commit: CommitInfo, color: bool) -> str:
    refs = f" ({', '.join(commit.refs)})" if commit.refs else ""
    marker = "◆" if len(commit.parents) > 1 else "●"
    return (
        f"{style(marker, ACCENT, enabled=color)} {style(commit.short_hash, YELLOW, enabled=color)}"
        f"{style(refs, GREEN, BOLD, enabled=color)} {sanitize_terminal_text(commit.summary)}"
        f" {style(commit.author, GRAY, enabled=color)}"
    )


def graph_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    """Rows of the graph view: history on the left, branches or commit details on the right."""
    color = state.settings.color
    left_width = max(20, width * 11 // 20)
    right_width = max(1, width - left_width - 1)

    left = [_title(f"Commits ({len(state.commits)})", state.focus is FocusPanel.GRAPH, color)]
    if state.search.results:
        matches = set(state.search.results)
        items = [("* " if i in matches else "") + _commit_row(c, color) for i, c in enumerate(state.commits)]
    else:
        items = [_commit_row(commit, color) for commit in state.commits]
    if not items:
        items_rows = [style("(no commits)", DIM, enabled=color)]
    else:
        items_rows = _list_rows(items, state.selected_index, rows - 1, state.focus is FocusPanel.GRAPH, color)
    left.extend(items_rows)

    if state.show_branch_panel:
        right = [_title("Branches (Enter to check out)", True, color)]
        names = [("* " if b.is_head else "  ") + b.name for b in state.branches]
        right.extend(_list_rows(names, state.branch_selected, rows - 1, True, color))
        return side_by_side(left, right, left_width, right_width, rows)

    right = _commit_detail(state, right_width, rows, color)
    return side_by_side(left, right, left_width, right_width, rows)


def _commit_detail(state: ApplicationState, width: int, rows: int, color: bool) -> list[str]:
    commit = state.selected_commit()
    if commit is None:
        return []
    out = [
        style(f"commit {commit.oid}", YELLOW, enabled=color),
        f"Author: {commit.author} <{commit.email}>  {_format_date(commit.timestamp)}",
        sanitize_terminal_text(commit.summary),
        _title(f"Files ({len(state.commit_files)})", state.focus is FocusPanel.FILES, color),
    ]
    file_rows = max(1, min(len(state.commit_files), rows // 3))
    names = [
        f"{style(f.status, STATUS_COLORS.get(f.status[:1], ''), enabled=color)} {f.path}"
        f" {style(f'+{f.additions} -{f.deletions}', GRAY, enabled=color)}"
        for f in state.commit_files
    ]
    out.extend(_list_rows(names, state.file_selected_index, file_rows, state.focus is FocusPanel.FILES, color))
    detail = diff_lines(state.selected_diff, width, split=state.side_by_side_diff, color=color)
    scroll = state.diff_scroll
    title = _title("Diff", state.focus is FocusPanel.DETAIL, color)
    out.append(title)
    out.extend(detail[:1] + detail[1 + scroll:])
    return out[:rows]


# -------------------------------------------------------------- staging


def _status_rows(entries: list[StatusEntry], staged: bool, color: bool) -> list[str]:
    rows = []
    for entry in entries:
        code = entry.display_status(staged)
        rows.append(f"{style(code, STATUS_COLORS.get(code, ''), enabled=color)} {entry.path}")
    return rows


def staging_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    """Rows of the staging view."""
    color = state.settings.color
    staging = state.staging
    left_width = max(20, width * 2 // 5)
    right_width = max(1, width - left_width - 1)

    editor_rows = 3 if staging.is_committing else 0
    list_rows = max(2, (rows - editor_rows) // 2)
    unstaged_focus = staging.focus is StagingFocus.UNSTAGED
    staged_focus = staging.focus is StagingFocus.STAGED

    left = [_title(f"Unstaged ({len(staging.unstaged)})", unstaged_focus, color)]
    left.extend(
        _list_rows(
            _status_rows(staging.unstaged, False, color), staging.unstaged_selected, list_rows - 1, unstaged_focus, color
        )
    )
    left.extend([""] * (list_rows - len(left)))
    left.append(_title(f"Staged ({len(staging.staged)})", staged_focus, color))
    left.extend(
        _list_rows(_status_rows(staging.staged, True, color), staging.staged_selected, list_rows - 1, staged_focus, color)
    )
    if staging.is_committing:
        left.extend([""] * (rows - editor_rows - len(left)))
        label = "Amend message" if staging.is_amending else "Commit message"
        left.append(_title(label, staging.focus is StagingFocus.COMMIT_MESSAGE, color))
        left.append(_cursor_text(staging.commit_message, color))

    detail = diff_lines(staging.diff, right_width, split=state.side_by_side_diff, color=color)
    right = [_title("Diff", staging.focus is StagingFocus.DIFF, color)]
    right.extend(detail[:1] + detail[1 + staging.diff_scroll:])
    return side_by_side(left, right, left_width, right_width, rows)


# ------------------------------------------------------------- branches


def branches_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    """Rows of the branches view."""
    color = state.settings.color
    view = state.branches_view
    tabs = "  ".join(
        style(f"[{section.value}]", BOLD, ACCENT, enabled=color) if section is view.section else section.value
        for section in BranchesSection
    )
    out = [tabs, ""]
    input_rows = 2 if view.input_action is not None else 0
    list_rows = max(1, rows - len(out) - input_rows)
    focused = view.focus is BranchesFocus.LIST

    if view.section is BranchesSection.BRANCHES:
        items = []
        for branch in view.visible_branches():
            head = style("*", GREEN, BOLD, enabled=color) if branch.is_head else " "
            upstream = style(f" -> {branch.upstream}", CYAN, enabled=color) if branch.upstream else ""
            summary = style(f"  {branch.last_commit_summary}", GRAY, enabled=color) if branch.last_commit_summary else ""
            items.append(f"{head} {branch.name}{upstream}{summary}")
        index = view.branch_selected
    elif view.section is BranchesSection.WORKTREES:
        items = [
            f"{'*' if tree.is_main else ' '} {tree.name}  {style(tree.branch or '(detached)', GREEN, enabled=color)}"
            f"  {style(tree.path, GRAY, enabled=color)}"
            for tree in view.worktrees
        ]
        index = view.worktree_selected
    else:
        items = [
            f"stash@{{{stash.index}}}  {sanitize_terminal_text(stash.message)}"
            + (style(f"  ({stash.branch})", GRAY, enabled=color) if stash.branch else "")
            for stash in view.stashes
        ]
        index = view.stash_selected
    if not items:
        out.append(style(f"(no {view.section.value})", DIM, enabled=color))
    else:
        out.extend(_list_rows(items, index, list_rows, focused, color))

    if view.input_action is not None:
        out.extend([""] * (rows - input_rows - len(out)))
        out.append(_title(view.input_action.prompt, True, color))
        out.append(_cursor_text(view.input, color))
    return out[:rows]


# ------------------------------------------------------------ conflicts


def _side_rows(lines: list[str], flags: list[bool] | None, cursor: int | None, color: bool) -> list[str]:
    out = []
    for index, line in enumerate(lines):
        mark = ""
        if flags is not None:
            mark = "[x] " if flags[index] else "[ ] "
        text = mark + sanitize_terminal_text(line)
        out.append(selected(text, color) if index == cursor else text)
    return out


def _editor_rows(editor: MultilineBuffer, rows: int, color: bool) -> list[str]:
    start = window_start(editor.row, len(editor.lines), rows)
    out = []
    for index in range(start, min(len(editor.lines), start + rows)):
        line = editor.lines[index]
        if index == editor.row:
            line = _cursor_text(TextBuffer(line, editor.col), color)
        out.append(line)
    return out


def conflicts_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    """Rows of the conflicts view: files, both sides and the merged result."""
    color = state.settings.color
    conflicts = state.conflicts
    if conflicts is None:
        return [style("No merge in progress", DIM, enabled=color)]

    header = (
        f"{style(conflicts.operation_description, BOLD, enabled=color)}  "
        f"ours: {style(conflicts.ours_label, GREEN, enabled=color)}  "
        f"theirs: {style(conflicts.theirs_label, MAGENTA, enabled=color)}  "
        f"mode: {conflicts.mode.value}  "
        f"{conflicts.unresolved_sections} unresolved in {conflicts.unresolved_files} file(s)"
    )
    body_rows = max(1, rows - 1)
    left_width = max(16, width // 4)
    right_width = max(1, width - left_width - 1)
    panel = conflicts.panel

    names = []
    for conflict_file in conflicts.files:
        mark = style("✓", GREEN, enabled=color) if conflict_file.is_resolved else style("!", RED, enabled=color)
        names.append(f"{mark} {conflict_file.path} {style(conflict_file.conflict_type.value, GRAY, enabled=color)}")
    left = [_title("Files", panel is ConflictPanel.FILE_LIST, color)]
    left.extend(_list_rows(names, conflicts.file_selected, body_rows - 1, panel is ConflictPanel.FILE_LIST, color))

    right: list[str] = []
    current = conflicts.current_file()
    section = conflicts.current_section()
    half = max(1, (right_width - 1) // 2)
    side_rows = max(3, body_rows // 2)
    if current is not None and section is not None:
        selection = section.line_selection
        state_label = section.resolution.value if section.resolution else "unresolved"
        right.append(
            f"Section {conflicts.section_selected + 1}/{len(current.conflicts)} at line {section.start_line}"
            f" ({state_label})"
        )
        ours_cursor = conflicts.line_selected if panel is ConflictPanel.OURS else None
        theirs_cursor = conflicts.line_selected if panel is ConflictPanel.THEIRS else None
        ours = [_title(f"Ours: {conflicts.ours_label}", panel is ConflictPanel.OURS, color)]
        ours.extend(_side_rows(section.ours, selection.ours if selection else None, ours_cursor, color))
        theirs = [_title(f"Theirs: {conflicts.theirs_label}", panel is ConflictPanel.THEIRS, color)]
        theirs.extend(_side_rows(section.theirs, selection.theirs if selection else None, theirs_cursor, color))
        right.extend(side_by_side(ours, theirs, half, half, side_rows - 1))
    elif current is not None:
        right.append(style("All sections resolved", GREEN, enabled=color))

    result_rows = max(1, body_rows - len(right) - 1)
    if conflicts.editor is not None:
        right.append(_title("Result (editing, Ctrl+S to save)", True, color))
        right.extend(_editor_rows(conflicts.editor, result_rows, color))
    elif current is not None:
        right.append(_title("Result", panel is ConflictPanel.RESULT, color))
        preview = [
            style(sanitize_terminal_text(text), SOURCE_COLORS[source], enabled=color) if source in SOURCE_COLORS else text
            for source, text in preview_lines(current)
        ]
        scroll = min(conflicts.result_scroll, max(0, len(preview) - 1))
        right.extend(preview[scroll: scroll + result_rows])

    return [fit_line(header, width, pad=False), *side_by_side(left, right, left_width, right_width, body_rows)]


# ---------------------------------------------------------------- blame


def blame_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    """Rows of the blame view."""
    color = state.settings.color
    blame = state.blame
    if blame is None:
        return []
    source = "\n".join(line.content for line in blame.blame.lines)
    highlighted = highlight_lines(source, blame.path, state.settings.style, color=color)
    out = [style(f"{blame.path} @ {blame.commit_oid[:7]}", BOLD, enabled=color)]
    body_rows = max(1, rows - 1)
    start = window_start(blame.selected_line, len(blame.blame.lines), body_rows)
    gutter = max(3, len(str(len(blame.blame.lines))))
    for index in range(start, min(len(blame.blame.lines), start + body_rows)):
        line = blame.blame.lines[index]
        meta = f"{line.short_hash} {line.author[:12]:<12} {_format_date(line.timestamp)} {line.line_num:>{gutter}} "
        content = highlighted[index] if index < len(highlighted) else line.content
        if index == blame.selected_line:
            out.append(selected(meta, color) + content)
        else:
            out.append(style(meta, GRAY, enabled=color) + content)
    return out


# ----------------------------------------------------------------- help


def help_body(state: ApplicationState, width: int, rows: int) -> list[str]:
    color = state.settings.color
    out = [style("lazygraph help", BOLD, ACCENT, enabled=color), ""]
    for row in help_lines():
        if isinstance(row, str):
            out.append(style(row, BOLD, ACCENT, enabled=color) if row else "")
        else:
            keys, description = row
            out.append(f"  {style(f'{keys:<20}', KEY, enabled=color)} {description}")
    out.append("")
    out.append(style("Press ? / Esc / q to close", DIM, enabled=color))
    return out[:rows]
