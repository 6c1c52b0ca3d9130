"""Conflict resolution view: navigation, per-granularity resolution and hand edits."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from ..actions import Action, ConflictAction
from ..conflict import (
    ConflictFile,
    Granularity,
    LineSource,
    Resolution,
    read_worktree_text,
    render_resolved,
    resolve_file,
    resolve_file_with_strategy,
    write_manual_resolution,
)
from ..errors import LazyGraphError
from ..state import ApplicationState, ConfirmKind, PendingConfirmation, ViewMode
from ..text_buffer import MultilineBuffer
from ..views import ConflictPanel, ConflictsState
from .base import ActionHandler, HandlerContext, Operation, report_failure

PANEL_SIDES = {ConflictPanel.OURS: Resolution.OURS, ConflictPanel.THEIRS: Resolution.THEIRS}


class ConflictHandler(ActionHandler):
    category = ConflictAction

    def can_handle(self, state: ApplicationState, action: Action) -> bool:
        return state.view_mode is ViewMode.CONFLICTS and state.conflicts is not None

    def operations(self) -> dict[Enum, Operation]:
        return {
            ConflictAction.PREVIOUS_FILE: lambda ctx, _: self._select_file(ctx, -1),
            ConflictAction.NEXT_FILE: lambda ctx, _: self._select_file(ctx, 1),
            ConflictAction.PREVIOUS_SECTION: lambda ctx, _: self._select_section(ctx, -1),
            ConflictAction.NEXT_SECTION: lambda ctx, _: self._select_section(ctx, 1),
            ConflictAction.LINE_UP: lambda ctx, _: self._move_line(ctx, -1),
            ConflictAction.LINE_DOWN: lambda ctx, _: self._move_line(ctx, 1),
            ConflictAction.SCROLL_RESULT_UP: lambda ctx, _: self._scroll_result(ctx, -1),
            ConflictAction.SCROLL_RESULT_DOWN: lambda ctx, _: self._scroll_result(ctx, 1),
            ConflictAction.SWITCH_PANEL: lambda ctx, _: self._switch_panel(ctx, forward=True),
            ConflictAction.SWITCH_PANEL_REVERSE: lambda ctx, _: self._switch_panel(ctx, forward=False),
            ConflictAction.ACCEPT_OURS_FILE: lambda ctx, _: self._accept_file(ctx, Resolution.OURS),
            ConflictAction.ACCEPT_THEIRS_FILE: lambda ctx, _: self._accept_file(ctx, Resolution.THEIRS),
            ConflictAction.ACCEPT_OURS_BLOCK: lambda ctx, _: self._accept_block(ctx, Resolution.OURS),
            ConflictAction.ACCEPT_THEIRS_BLOCK: lambda ctx, _: self._accept_block(ctx, Resolution.THEIRS),
            ConflictAction.ACCEPT_BOTH: lambda ctx, _: self._accept_block(ctx, Resolution.BOTH),
            ConflictAction.SET_MODE_FILE: lambda ctx, _: self._set_mode(ctx, Granularity.FILE),
            ConflictAction.SET_MODE_BLOCK: lambda ctx, _: self._set_mode(ctx, Granularity.BLOCK),
            ConflictAction.SET_MODE_LINE: lambda ctx, _: self._set_mode(ctx, Granularity.LINE),
            ConflictAction.TOGGLE_LINE: self._toggle_line,
            ConflictAction.ENTER_RESOLVE: self._enter_resolve,
            ConflictAction.MARK_RESOLVED: self._mark_resolved,
            ConflictAction.START_EDITING: self._start_editing,
            ConflictAction.CONFIRM_EDIT: self._confirm_edit,
            ConflictAction.CANCEL_EDIT: self._cancel_edit,
            ConflictAction.EDIT_INSERT_CHAR: lambda ctx, act: self._edit(ctx, lambda ed: ed.insert(act.char or "")),
            ConflictAction.EDIT_BACKSPACE: lambda ctx, _: self._edit(ctx, MultilineBuffer.backspace),
            ConflictAction.EDIT_DELETE: lambda ctx, _: self._edit(ctx, MultilineBuffer.delete),
            ConflictAction.EDIT_NEWLINE: lambda ctx, _: self._edit(ctx, MultilineBuffer.newline),
            ConflictAction.EDIT_CURSOR_UP: lambda ctx, _: self._edit(ctx, MultilineBuffer.move_up),
            ConflictAction.EDIT_CURSOR_DOWN: lambda ctx, _: self._edit(ctx, MultilineBuffer.move_down),
            ConflictAction.EDIT_CURSOR_LEFT: lambda ctx, _: self._edit(ctx, MultilineBuffer.move_left),
            ConflictAction.EDIT_CURSOR_RIGHT: lambda ctx, _: self._edit(ctx, MultilineBuffer.move_right),
            ConflictAction.FINALIZE_MERGE: self._finalize,
            ConflictAction.ABORT_MERGE: self._abort,
            ConflictAction.LEAVE_VIEW: self._leave,
        }

    @staticmethod
    def _conflicts(context: HandlerContext) -> ConflictsState:
        conflicts = context.state.conflicts
        assert conflicts is not None
        return conflicts

    # ----------------------------------------------------------- navigation

    def _select_file(self, context: HandlerContext, delta: int) -> None:
        conflicts = self._conflicts(context)
        conflicts.editor = None
        conflicts.select_file(conflicts.file_selected + delta)

    def _select_section(self, context: HandlerContext, delta: int) -> None:
        conflicts = self._conflicts(context)
        conflicts.select_section(conflicts.section_selected + delta)

    def _move_line(self, context: HandlerContext, delta: int) -> None:
        conflicts = self._conflicts(context)
        lines = conflicts.panel_lines()
        conflicts.line_selected = max(0, min(conflicts.line_selected + delta, len(lines) - 1)) if lines else 0

    def _scroll_result(self, context: HandlerContext, delta: int) -> None:
        conflicts = self._conflicts(context)
        conflicts.result_scroll = max(0, conflicts.result_scroll + delta)

    def _switch_panel(self, context: HandlerContext, *, forward: bool) -> None:
        conflicts = self._conflicts(context)
        if conflicts.is_editing:
            return
        conflicts.panel = conflicts.panel.next() if forward else conflicts.panel.previous()
        conflicts.line_selected = 0

    def _set_mode(self, context: HandlerContext, mode: Granularity) -> None:
        conflicts = self._conflicts(context)
        conflicts.mode = mode
        conflicts.line_selected = 0
        context.state.set_flash(f"Resolution mode: {mode.value}")

    # ----------------------------------------------------------- resolution

    def _write(self, context: HandlerContext, conflict_file: ConflictFile, write: Callable[[], None]) -> bool:
        state = context.state
        try:
            write()
        except LazyGraphError as exc:
            report_failure(state, "Resolve", exc)
            return False
        state.mark_dirty()
        if conflict_file.is_resolved:
            remaining = self._conflicts(context).unresolved_files
            state.set_flash(f"'{conflict_file.path}' resolved, {remaining} file(s) remaining")
        return True

    def _accept_file(self, context: HandlerContext, resolution: Resolution) -> None:
        current = self._conflicts(context).current_file()
        if current is None:
            return
        self._write(context, current, lambda: resolve_file_with_strategy(context.repo, current, resolution))

    def _accept_block(self, context: HandlerContext, resolution: Resolution) -> None:
        conflicts = self._conflicts(context)
        current = conflicts.current_file()
        if current is None or not current.conflicts:
            return
        index = conflicts.section_selected

        def write() -> None:
            current.set_resolution(index, resolution)
            resolve_file(context.repo, current)

        if self._write(context, current, write):
            self._advance_to_unresolved(conflicts)

    def _advance_to_unresolved(self, conflicts: ConflictsState) -> None:
        current = conflicts.current_file()
        if current is None:
            return
        count = len(current.conflicts)
        for step in range(1, count + 1):
            candidate = (conflicts.section_selected + step) % count
            if current.conflicts[candidate].resolution is None:
                conflicts.select_section(candidate)
                return

    def _toggle_line(self, context: HandlerContext, action: Action) -> None:
        conflicts = self._conflicts(context)
        current = conflicts.current_file()
        if current is None or not current.conflicts or conflicts.panel not in PANEL_SIDES:
            return
        if current.resolves_by_side:
            context.state.set_flash("Line selection is not available for this file; accept a side instead")
            return
        if not conflicts.panel_lines():
            return
        side = LineSource.OURS if conflicts.panel is ConflictPanel.OURS else LineSource.THEIRS
        index, line = conflicts.section_selected, conflicts.line_selected

        def write() -> None:
            current.toggle_line(index, side, line)
            resolve_file(context.repo, current)

        self._write(context, current, write)

    def _enter_resolve(self, context: HandlerContext, action: Action) -> None:
        conflicts = self._conflicts(context)
        if conflicts.panel is ConflictPanel.FILE_LIST:
            conflicts.panel = ConflictPanel.OURS
            conflicts.line_selected = 0
            return
        if conflicts.panel is ConflictPanel.RESULT:
            self._start_editing(context, action)
            return
        resolution = PANEL_SIDES[conflicts.panel]
        if conflicts.mode is Granularity.FILE:
            self._accept_file(context, resolution)
        elif conflicts.mode is Granularity.BLOCK:
            self._accept_block(context, resolution)
        else:
            self._toggle_line(context, action)

    def _mark_resolved(self, context: HandlerContext, action: Action) -> None:
        """Adopt the file as it is on disk, staging it when no markers remain."""
        state = context.state
        current = self._conflicts(context).current_file()
        if current is None or current.is_deletion:
            return
        def write() -> None:
            text = read_worktree_text(context.repo.root / current.path)
            write_manual_resolution(context.repo, current, text)

        if self._write(context, current, write) and not current.is_resolved:
            state.set_flash(f"'{current.path}' still has {current.unresolved_sections} conflict(s)")

    # -------------------------------------------------------------- editing

    def _start_editing(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        conflicts = self._conflicts(context)
        current = conflicts.current_file()
        if current is None:
            return
        if current.resolves_by_side:
            state.set_flash(f"'{current.path}' cannot be edited; accept a side instead")
            return
        try:
            text = render_resolved(current.original_text, current)
        except LazyGraphError as exc:
            report_failure(state, "Edit", exc)
            return
        conflicts.panel = ConflictPanel.RESULT
        conflicts.editor = MultilineBuffer.from_lines(text.splitlines())

    def _confirm_edit(self, context: HandlerContext, action: Action) -> None:
        conflicts = self._conflicts(context)
        current = conflicts.current_file()
        editor = conflicts.editor
        if current is None or editor is None:
            return
        conflicts.editor = None
        if self._write(context, current, lambda: write_manual_resolution(context.repo, current, editor.text())):
            conflicts.select_section(0)

    def _cancel_edit(self, context: HandlerContext, action: Action) -> None:
        self._conflicts(context).editor = None

    def _edit(self, context: HandlerContext, operation: Callable[[MultilineBuffer], None]) -> None:
        editor = self._conflicts(context).editor
        if editor is not None:
            operation(editor)

    # ------------------------------------------------------- finalize / abort

    def _finalize(self, context: HandlerContext, action: Action) -> None:
        state = context.state
        conflicts = self._conflicts(context)
        remaining = conflicts.unresolved_sections
        if remaining:
            state.set_flash(f"Cannot finalize: {remaining} unresolved conflict(s) remain")
            return
        state.pending_confirmation = PendingConfirmation(ConfirmKind.FINALIZE_MERGE)

    def _abort(self, context: HandlerContext, action: Action) -> None:
        context.state.pending_confirmation = PendingConfirmation(ConfirmKind.ABORT_MERGE)

    def _leave(self, context: HandlerContext, action: Action) -> None:
        conflicts = self._conflicts(context)
        conflicts.editor = None
        context.state.switch_view(ViewMode.GRAPH)
