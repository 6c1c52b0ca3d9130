"""Merge, pull, push and merge-finalization control flow.

Every merge-class operation (explicit merge, pull, cherry-pick) ends in a
``MergeResult``. Conflicts come back parsed so the caller can open the
conflicts view without touching the index again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .conflict import ConflictFile, collect_conflicts
from .errors import (
    GitCommandError,
    GitIOError,
    InvalidStateError,
    LazyGraphError,
    NoRemoteError,
    NoUpstreamError,
    OperationFailedError,
)
from .git.repo import GitRepo

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"


class MergeOutcome(Enum):
    SUCCESS = "success"
    FAST_FORWARD = "fast-forward"
    UP_TO_DATE = "up-to-date"
    CONFLICTS = "conflicts"


@dataclass(frozen=True)
class MergeResult:
    outcome: MergeOutcome
    conflicts: tuple[ConflictFile, ...] = ()
    commit: str | None = None
    source: str = ""

    @property
    def has_conflicts(self) -> bool:
        """True when the operation stopped with unmerged paths."""
        return self.outcome is MergeOutcome.CONFLICTS


def classify_merge(repo: GitRepo, head: str | None, target: str) -> MergeOutcome | None:
    """Return ``UP_TO_DATE``/``FAST_FORWARD``, or ``None`` when a true merge is needed."""
    if head is None:
        return MergeOutcome.FAST_FORWARD
    if head == target or repo.is_ancestor(target, head):
        return MergeOutcome.UP_TO_DATE
    if repo.is_ancestor(head, target):
        return MergeOutcome.FAST_FORWARD
    return None


def _commit_merge(repo: GitRepo, parents: list[str], message: str) -> str:
    tree = repo.write_tree()
    commit = repo.commit_tree(tree, parents, message)
    repo.update_ref("HEAD", commit, message.splitlines()[0] if message else "merge")
    repo.clear_merge_state()
    return commit


def merge_into_head(repo: GitRepo, rev: str, message: str) -> MergeResult:
    """Merge ``rev`` into the current HEAD.

    Fast-forwards move the branch and force the work tree to match it (local
    edits to tracked files are overwritten) without creating a commit. A
    clean true merge creates a two-parent commit ``(HEAD, rev)``.
    Conflicts are left in the work tree and returned parsed.
    """
    head = repo.head_oid()
    target = repo.rev_parse(rev)
    outcome = classify_merge(repo, head, target)

    if outcome is MergeOutcome.UP_TO_DATE:
        logger.info("merge %s: already up to date", rev)
        return MergeResult(MergeOutcome.UP_TO_DATE, commit=head, source=rev)

    if outcome is MergeOutcome.FAST_FORWARD:
        repo.fast_forward_worktree(target)
        repo.update_ref("HEAD", target, f"fast-forward to {rev}")
        logger.info("merge %s: fast-forward to %s", rev, target[:7])
        return MergeResult(MergeOutcome.FAST_FORWARD, commit=target, source=rev)

    assert head is not None
    if not repo.merge_no_commit(target):
        files = collect_conflicts(repo)
        logger.info("merge %s: %d conflicted file(s)", rev, len(files))
        return MergeResult(MergeOutcome.CONFLICTS, conflicts=tuple(files), source=rev)

    commit = _commit_merge(repo, [head, target], message)
    logger.info("merge %s: created %s", rev, commit[:7])
    return MergeResult(MergeOutcome.SUCCESS, commit=commit, source=rev)


def merge_branch(repo: GitRepo, name: str) -> MergeResult:
    """Merge local branch ``name`` into the current branch."""
    current = repo.current_branch()
    return merge_into_head(repo, name, f"Merge branch '{name}' into {current}")


def _remote_for(repo: GitRepo, branch: str | None, operation: str, default_remote: str) -> str:
    remotes = repo.remotes()
    if not remotes:
        raise NoRemoteError(operation)
    configured = repo.branch_remote(branch) if branch else None
    if configured:
        return configured
    if default_remote in remotes:
        return default_remote
    return remotes[0]


def pull(repo: GitRepo, default_remote: str = DEFAULT_REMOTE) -> MergeResult:
    """Fetch, then merge the current branch's upstream into it."""
    branch = repo.symbolic_branch()
    remote = _remote_for(repo, branch, "pull", default_remote)
    repo.fetch(remote)
    if branch is None:
        raise NoUpstreamError(repo.current_branch())
    upstream = repo.upstream_of(branch)
    if upstream is None:
        raise NoUpstreamError(branch)
    return merge_into_head(repo, upstream, f"Merge {upstream} into {branch}")


def fetch(repo: GitRepo, default_remote: str = DEFAULT_REMOTE) -> str:
    """Fetch from the current branch's remote and return its name."""
    remote = _remote_for(repo, repo.symbolic_branch(), "fetch", default_remote)
    repo.fetch(remote)
    return remote


def push(repo: GitRepo, default_remote: str = DEFAULT_REMOTE) -> tuple[str, str]:
    """Push the current branch to its remote under the same name.

    The upstream is recorded on first push. Returns ``(remote, branch)``.
    """
    branch = repo.symbolic_branch()
    if branch is None:
        raise OperationFailedError("push", "HEAD is detached")
    remote = _remote_for(repo, branch, "push", default_remote)
    repo.push(remote, branch, set_upstream=repo.upstream_of(branch) is None)
    logger.info("pushed %s to %s", branch, remote)
    return remote, branch


def cherry_pick(repo: GitRepo, oid: str) -> MergeResult:
    if repo.cherry_pick(oid):
        return MergeResult(MergeOutcome.SUCCESS, commit=repo.head_oid(), source=oid)
    files = collect_conflicts(repo)
    logger.info("cherry-pick %s: %d conflicted file(s)", oid[:7], len(files))
    return MergeResult(MergeOutcome.CONFLICTS, conflicts=tuple(files), source=oid)


def finalize_merge(repo: GitRepo, message: str | None = None) -> str:
    """Commit the resolved index and clear merge-in-progress state.

    Refuses while the index still records unmerged paths. Parents are HEAD
    plus ``MERGE_HEAD`` when a merge is pending, HEAD alone otherwise.
    """
    remaining = repo.conflicted_paths()
    if remaining:
        raise InvalidStateError(f"{len(remaining)} file(s) still have unresolved conflicts")
    parents: list[str] = []
    head = repo.head_oid()
    if head is not None:
        parents.append(head)
    merge_head = repo.merge_head()
    if merge_head is not None:
        parents.append(merge_head)
    if message is None:
        message = repo.merge_message() or "Merge"
    commit = _commit_merge(repo, parents, message)
    logger.info("finalized merge as %s with %d parent(s)", commit[:7], len(parents))
    return commit


def abort_merge(repo: GitRepo) -> None:
    """Drop merge state and force the work tree back to HEAD.

    Both steps are attempted even if the first fails; failures are reported
    together afterwards.
    """
    failures: list[str] = []
    try:
        repo.clear_merge_state()
    except (GitIOError, GitCommandError) as exc:
        failures.append(str(exc))
    try:
        repo.reset_hard("HEAD")
    except LazyGraphError as exc:
        failures.append(str(exc))
    if failures:
        logger.warning("abort merge incomplete: %s", "; ".join(failures))
        raise OperationFailedError("abort merge", "; ".join(failures))
    logger.info("merge aborted")
