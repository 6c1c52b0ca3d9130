"""Frame composition for the terminal UI.

``build_frame`` turns the application state into a list of screen lines
without side effects; ``render_frame`` writes one composed frame to stdout.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable

from ..state import ApplicationState, ViewMode
from .ansi import ACCENT, BOLD, DIM, RED, REVERSE, YELLOW, display_width, fit_line, selected, status_bar, style
from .help import footer_text
from .panes import blame_body, branches_body, conflicts_body, graph_body, help_body, staging_body

ViewBuilder = Callable[[ApplicationState, int, int], list[str]]

VIEW_BUILDERS: dict[ViewMode, ViewBuilder] = {
    ViewMode.GRAPH: graph_body,
    ViewMode.STAGING: staging_body,
    ViewMode.BRANCHES: branches_body,
    ViewMode.CONFLICTS: conflicts_body,
    ViewMode.BLAME: blame_body,
    ViewMode.HELP: help_body,
}

TAB_VIEWS = (ViewMode.GRAPH, ViewMode.STAGING, ViewMode.BRANCHES, ViewMode.CONFLICTS)


def _header(state: ApplicationState, width: int) -> str:
    color = state.settings.color
    tabs = []
    for number, mode in enumerate(TAB_VIEWS, start=1):
        label = f" {number} {mode.value.capitalize()} "
        tabs.append(style(label, BOLD, REVERSE, enabled=color) if mode is state.view_mode else label)
    parts = [
        style("lazygraph", BOLD, ACCENT, enabled=color),
        state.repo_path.name,
        style(state.current_branch or "HEAD", YELLOW, enabled=color),
        "".join(tabs),
    ]
    if state.graph_filter.is_active():
        parts.append(style(f"[filter: {', '.join(state.graph_filter.active_labels())}]", YELLOW, enabled=color))
    if state.conflicts is not None and state.view_mode is not ViewMode.CONFLICTS:
        parts.append(style(f"[{state.conflicts.unresolved_files} conflicted]", RED, BOLD, enabled=color))
    return "  ".join(parts)


def _status_row(state: ApplicationState, width: int) -> str:
    color = state.settings.color
    pending = state.pending_confirmation
    if pending is not None:
        return style(fit_line(f"{pending.prompt} [y/n]", width), BOLD, YELLOW, enabled=color)
    search = state.search
    if state.view_mode is ViewMode.GRAPH and search.is_active:
        count = f"{search.current_result + 1}/{len(search.results)}" if search.results else "0"
        return fit_line(f"/{search.query}▏ ({search.search_type.value}) {count}", width)
    if state.flash_message:
        return style(fit_line(state.flash_message, width), BOLD, enabled=color)
    return style(status_bar(_summary(state), width), DIM, enabled=color)


def _summary(state: ApplicationState) -> str:
    mode = state.view_mode
    if mode is ViewMode.GRAPH:
        commit = state.selected_commit()
        position = f"{state.selected_index + 1}/{len(state.commits)}" if commit else "0/0"
        return f"commit {position}"
    if mode is ViewMode.STAGING:
        return f"{len(state.staging.unstaged)} unstaged, {len(state.staging.staged)} staged"
    if mode is ViewMode.BRANCHES:
        view = state.branches_view
        return f"{len(view.local)} local, {len(view.remote)} remote, {len(view.stashes)} stash(es)"
    if mode is ViewMode.CONFLICTS and state.conflicts is not None:
        return f"{state.conflicts.unresolved_files} file(s) left"
    return ""


def _boxed(title: str, rows: list[str], width: int) -> list[str]:
    inner = max(display_width(title) + 2, *(display_width(row) for row in rows), 20)
    inner = min(inner, max(10, width - 4))
    top = f"╭─ {title} " + "─" * max(0, inner - display_width(title) - 2) + "╮"
    body = [f"│{fit_line(row, inner)}│" for row in rows]
    return [top, *body, "╰" + "─" * inner + "╯"]


def _overlay_rows(state: ApplicationState, width: int) -> list[str]:
    color = state.settings.color
    picker = state.merge_picker
    if picker is not None:
        current = state.current_branch or "HEAD"
        rows = [
            selected(f"> {name}", color) if index == picker.selected else f"  {name}"
            for index, name in enumerate(picker.branches)
        ]
        return _boxed(f"Merge into {current}", rows, width)
    popup = state.filter_popup
    if state.view_mode is ViewMode.GRAPH and popup.is_open:
        rows = []
        for field_name, value in popup.values.items():
            line = f"{field_name.label:<10} {value}"
            if field_name is popup.active_field:
                line = selected(f"{line}▏", color)
            rows.append(line)
        rows.append(style("dates as YYYY-MM-DD", DIM, enabled=color))
        return _boxed("Filter history", rows, width)
    return []


def _place_overlay(body: list[str], overlay: list[str], width: int) -> list[str]:
    if not overlay:
        return body
    top = max(0, (len(body) - len(overlay)) // 2)
    left = max(0, (width - display_width(overlay[0])) // 2)
    out = list(body)
    for offset, row in enumerate(overlay):
        if top + offset < len(out):
            out[top + offset] = " " * left + row
    return out


def build_frame(state: ApplicationState, width: int, height: int) -> list[str]:
    """Compose header, view body, overlays, status row and footer for one screen."""
    width = max(20, width)
    height = max(5, height)
    body_rows = height - 3
    body = VIEW_BUILDERS[state.view_mode](state, width, body_rows)[:body_rows]
    body.extend([""] * (body_rows - len(body)))
    body = _place_overlay(body, _overlay_rows(state, width), width)
    footer = style(footer_text(state), DIM, enabled=state.settings.color)
    lines = [_header(state, width), *body, _status_row(state, width), footer]
    return [fit_line(line, width - 1, pad=False) for line in lines]


def render_frame(state: ApplicationState, width: int, height: int) -> None:
    out = ["\033[H\033[J", "\r\n".join(build_frame(state, width, height))]
    os.write(sys.stdout.fileno(), "".join(out).encode("utf-8", errors="replace"))


__all__ = ["build_frame", "render_frame"]
