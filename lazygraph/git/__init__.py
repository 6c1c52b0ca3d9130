"""Git facade: subprocess runner, repository operations and value types."""

from .repo import MAX_COMMITS, GitRepo, open_repository
from .runner import git, resolve_git_paths, run_git
from .search import SearchType, filter_commits

__all__ = [
    "MAX_COMMITS",
    "GitRepo",
    "SearchType",
    "filter_commits",
    "git",
    "open_repository",
    "resolve_git_paths",
    "run_git",
]
