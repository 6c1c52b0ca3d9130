"""Value types returned by the git facade."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CommitInfo:
    """One commit of the history window shown in the graph view."""

    oid: str
    message: str
    author: str
    email: str
    timestamp: int
    parents: tuple[str, ...] = ()
    refs: tuple[str, ...] = ()

    @property
    def short_hash(self) -> str:
        return self.oid[:7]

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.splitlines()[0] if self.message else ""


@dataclass(frozen=True)
class StatusEntry:
    """Porcelain v1 status for one path: index column ``X`` and worktree column ``Y``."""

    path: str
    index_status: str
    worktree_status: str
    orig_path: str | None = None

    @property
    def is_untracked(self) -> bool:
        return self.index_status == "?" and self.worktree_status == "?"

    @property
    def is_conflicted(self) -> bool:
        pair = self.index_status + self.worktree_status
        return "U" in pair or pair in {"AA", "DD"}

    @property
    def is_staged(self) -> bool:
        """True when the index column records a change."""
        if self.is_untracked or self.is_conflicted:
            return False
        return self.index_status not in {" ", "?", "!"}

    @property
    def is_unstaged(self) -> bool:
        """True when the entry belongs in the unstaged list."""
        if self.is_untracked or self.is_conflicted:
            return True
        return self.worktree_status not in {" ", "!"}

    def display_status(self, staged: bool) -> str:
        """Status letter to show in the staged or unstaged list."""
        if self.is_untracked:
            return "?"
        if self.is_conflicted:
            return "U"
        return self.index_status if staged else self.worktree_status


@dataclass(frozen=True)
class BranchInfo:
    name: str
    is_head: bool = False
    is_remote: bool = False
    upstream: str | None = None
    last_commit_summary: str = ""


@dataclass(frozen=True)
class StashEntry:
    index: int
    message: str
    branch: str | None = None


@dataclass(frozen=True)
class WorktreeInfo:
    path: str
    head: str | None = None
    branch: str | None = None
    is_main: bool = False

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class DiffFile:
    """File touched by a commit, as listed in the graph's file panel."""

    path: str
    status: str
    additions: int = 0
    deletions: int = 0
    old_path: str | None = None


@dataclass(frozen=True)
class DiffLine:
    """One rendered diff line; ``kind`` is ``context``, ``add``, ``del`` or ``hunk``."""

    kind: str
    content: str
    old_lineno: int | None = None
    new_lineno: int | None = None


@dataclass
class FileDiff:
    path: str
    lines: list[DiffLine] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class BlameLine:
    line_num: int
    content: str
    commit_oid: str
    author: str
    author_email: str
    timestamp: int

    @property
    def short_hash(self) -> str:
        return self.commit_oid[:7]


@dataclass
class FileBlame:
    path: str
    lines: list[BlameLine] = field(default_factory=list)


__all__ = [
    "BlameLine",
    "BranchInfo",
    "CommitInfo",
    "DiffFile",
    "DiffLine",
    "FileBlame",
    "FileDiff",
    "StashEntry",
    "StatusEntry",
    "WorktreeInfo",
]
