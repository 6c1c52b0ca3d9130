"""Session bootstrap: repository, state, watcher and dispatcher wiring."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..conflict import collect_conflicts
from ..errors import LazyGraphError
from ..git.repo import GitRepo, open_repository
from ..handlers import Dispatcher, HandlerContext, refresh_state
from ..handlers.refresh import open_conflicts
from ..input.reader import read_key
from ..render import render_frame
from ..state import ApplicationState
from ..watch import ChangeWatcher
from .clipboard import copy_text_to_clipboard
from .config import Settings
from .loop import RuntimeLoopCallbacks, run_main_loop
from .terminal import TerminalController

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Everything one interactive run shares between the loop and the handlers."""

    state: ApplicationState
    repo: GitRepo
    watcher: ChangeWatcher
    dispatcher: Dispatcher

    def refresh(self) -> None:
        refresh_state(self.state, self.repo)
        self.watcher.reset()


def resume_in_progress_merge(state: ApplicationState, repo: GitRepo) -> bool:
    """Reopen the conflicts view when the repository is already mid-merge."""
    if not repo.conflicted_paths():
        return False
    files = collect_conflicts(repo)
    cherry = repo.cherry_pick_head()
    merging = repo.merge_head()
    current = repo.current_branch() or "HEAD"
    if cherry is not None:
        open_conflicts(state, files, f"cherry-pick {cherry[:7]}", current, cherry[:7])
    else:
        theirs = merging[:7] if merging else "MERGE_HEAD"
        open_conflicts(state, files, f"merge {theirs}", current, theirs)
    logger.info("resumed in-progress operation with %d conflicted file(s)", len(files))
    return True


def create_session(
    repo: GitRepo,
    state: ApplicationState,
    *,
    render: Callable[[], None] | None = None,
    copy_text: Callable[[str], None] = copy_text_to_clipboard,
) -> Session:
    settings = state.settings
    watcher = ChangeWatcher(
        repo.git_dir,
        common_dir=repo.common_dir(),
        poll_interval=settings.poll_interval_seconds,
        debounce=settings.debounce_seconds,
    )

    def show_progress(message: str) -> None:
        state.set_flash(message)
        if render is not None:
            render()

    session: Session

    def refresh() -> None:
        session.refresh()

    context = HandlerContext(state, repo, refresh, show_progress=show_progress, copy_text=copy_text)
    session = Session(state, repo, watcher, Dispatcher(context))
    try:
        resume_in_progress_merge(state, repo)
    except LazyGraphError as exc:
        logger.warning("could not resume in-progress merge: %s", exc)
        state.set_flash(f"Conflicts error: {exc}")
    return session


def run_app(path: Path, settings: Settings) -> None:
    """Open the repository at ``path`` and run the TUI until the user quits.

    Raises ``RepositoryNotFoundError`` or ``TerminalError`` before the
    terminal is touched when startup cannot proceed.
    """
    repo = open_repository(path)
    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    terminal = TerminalController(stdin_fd, stdout_fd)
    state = ApplicationState(repo_path=repo.root, settings=settings)

    def render() -> None:
        columns, rows = terminal.size()
        render_frame(state, columns, rows)

    session = create_session(repo, state, render=render)
    callbacks = RuntimeLoopCallbacks(
        render=render,
        read_key=lambda timeout_ms: read_key(stdin_fd, timeout_ms=timeout_ms),
        dispatch=session.dispatcher.dispatch,
        refresh=session.refresh,
        check_for_changes=session.watcher.check,
        screen_size=terminal.size,
    )
    logger.info("session start in %s (pid %d)", repo.root, os.getpid())
    with terminal.raw_mode():
        run_main_loop(state, callbacks)
    logger.info("session end")
