"""Thin subprocess wrapper around the ``git`` executable.

All repository access goes through ``run_git``/``git`` so failures are mapped
onto ``GitCommandError`` in one place.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from ..errors import GitCommandError, GitIOError

logger = logging.getLogger(__name__)

# Keep git from opening editors or credential prompts on the raw terminal.
_GIT_ENV_OVERRIDES = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_EDITOR": "true",
    "GIT_MERGE_AUTOEDIT": "no",
    "LC_ALL": "C",
}


def _git_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ)
    env.update(_GIT_ENV_OVERRIDES)
    if extra:
        env.update(extra)
    return env


def run_git(
    root: Path,
    args: list[str],
    *,
    input_text: str | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run ``git -C root *args`` and return the completed process without checking."""
    logger.debug("git %s", " ".join(args))
    try:
        return subprocess.run(
            ["git", "-C", str(root), *args],
            input=input_text,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            env=_git_env(env),
        )
    except OSError as exc:
        raise GitIOError(f"cannot run git: {exc}") from exc


def git(root: Path, *args: str, input_text: str | None = None, env: dict[str, str] | None = None) -> str:
    """Run git and return stdout, raising ``GitCommandError`` on non-zero exit."""
    proc = run_git(root, list(args), input_text=input_text, env=env)
    if proc.returncode != 0:
        operation = args[0] if args else "git"
        logger.warning("git %s exited %d: %s", operation, proc.returncode, proc.stderr.strip())
        raise GitCommandError(operation, proc.returncode, proc.stderr)
    return proc.stdout


def resolve_git_paths(path: Path) -> tuple[Path | None, Path | None]:
    """Resolve repository root and git-dir for ``path``.

    Returns ``(None, None)`` if git is unavailable or ``path`` is not inside a
    work tree.
    """
    try:
        proc = run_git(path, ["rev-parse", "--show-toplevel", "--git-dir"])
    except GitIOError:
        return None, None
    if proc.returncode != 0:
        return None, None

    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if len(lines) < 2:
        return None, None

    repo_root = Path(lines[0]).resolve()
    git_dir_raw = Path(lines[1])
    git_dir = git_dir_raw if git_dir_raw.is_absolute() else (path.resolve() / git_dir_raw)
    return repo_root, git_dir.resolve()
