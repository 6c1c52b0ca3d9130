"""Repository facade over the ``git`` command-line tool.

``GitRepo`` exposes the reads and mutations the handlers need: history,
status, branches, stashes, worktrees, diffs, blame, index manipulation,
low-level commit plumbing and remote transfer. Output parsing lives here so
the rest of the application only sees the value types from ``types``.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from ..errors import (
    BranchNotFoundError,
    FileNotFoundInRepoError,
    GitCommandError,
    GitIOError,
    RepositoryNotFoundError,
)
from .runner import git, resolve_git_paths, run_git
from .types import (
    BlameLine,
    BranchInfo,
    CommitInfo,
    DiffFile,
    DiffLine,
    FileBlame,
    FileDiff,
    StashEntry,
    StatusEntry,
    WorktreeInfo,
)

logger = logging.getLogger(__name__)

MAX_COMMITS = 200

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_STASH_REF_RE = re.compile(r"^stash@\{(\d+)\}$")
_STASH_BRANCH_RE = re.compile(r"^(?:WIP on|On) ([^:]+):")
_MERGE_STATE_FILES = ("MERGE_HEAD", "MERGE_MSG", "MERGE_MODE", "CHERRY_PICK_HEAD", "AUTO_MERGE")


def _parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _parse_unified_diff(path: str, text: str) -> FileDiff:
    """Turn ``git diff`` output into ``DiffLine`` rows with line numbers."""
    diff = FileDiff(path=path)
    old_no = new_no = 0
    in_hunk = False
    for raw in text.splitlines():
        match = _HUNK_RE.match(raw)
        if match:
            old_no = int(match.group(1))
            new_no = int(match.group(3))
            in_hunk = True
            diff.lines.append(DiffLine("hunk", raw))
            continue
        if not in_hunk or raw.startswith("\\"):
            continue
        if raw.startswith("+"):
            diff.lines.append(DiffLine("add", raw[1:], None, new_no))
            diff.additions += 1
            new_no += 1
        elif raw.startswith("-"):
            diff.lines.append(DiffLine("del", raw[1:], old_no, None))
            diff.deletions += 1
            old_no += 1
        else:
            diff.lines.append(DiffLine("context", raw[1:], old_no, new_no))
            old_no += 1
            new_no += 1
    return diff


class GitRepo:
    """Facade over one work tree, addressed by its top-level directory."""

    def __init__(self, root: Path, git_dir: Path) -> None:
        self.root = root
        self.git_dir = git_dir

    # ------------------------------------------------------------------ reads

    def common_dir(self) -> Path:
        """Shared git dir holding ``refs/`` (differs from ``git_dir`` in linked worktrees)."""
        raw = Path(git(self.root, "rev-parse", "--git-common-dir").strip())
        return raw if raw.is_absolute() else (self.root / raw).resolve()

    def symbolic_branch(self) -> str | None:
        """Branch HEAD points at, or ``None`` when detached."""
        proc = run_git(self.root, ["symbolic-ref", "--quiet", "--short", "HEAD"])
        name = proc.stdout.strip()
        return name if proc.returncode == 0 and name else None

    def current_branch(self) -> str:
        """Short branch name, or a 7-char SHA when detached, or ``HEAD`` as a last resort."""
        name = self.symbolic_branch()
        if name:
            return name
        head = self.head_oid()
        return head[:7] if head else "HEAD"

    def _has_any_commit(self) -> bool:
        return run_git(self.root, ["rev-list", "-n", "1", "--all"]).stdout.strip() != ""

    def head_oid(self) -> str | None:
        """Return the commit HEAD points to, or ``None`` on an unborn branch."""
        proc = run_git(self.root, ["rev-parse", "--verify", "--quiet", "HEAD"])
        oid = proc.stdout.strip()
        return oid if proc.returncode == 0 and oid else None

    def rev_parse(self, rev: str) -> str:
        """Resolve ``rev`` to a full commit id."""
        return git(self.root, "rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}").strip()

    def log(self, max_count: int = MAX_COMMITS, graph_filter=None) -> list[CommitInfo]:
        """Return up to ``max_count`` commits across all refs, newest first.

        ``graph_filter`` is any object exposing ``author``, ``date_from``,
        ``date_to``, ``path`` and ``message`` string-or-None attributes.
        """
        args = [
            "log",
            "--all",
            "--topo-order",
            f"--max-count={max_count}",
            f"--format={_RECORD_SEP}%H{_FIELD_SEP}%P{_FIELD_SEP}%an{_FIELD_SEP}%ae"
            f"{_FIELD_SEP}%at{_FIELD_SEP}%D{_FIELD_SEP}%B",
        ]
        path_spec: list[str] = []
        if graph_filter is not None:
            if graph_filter.author:
                args.append(f"--author={graph_filter.author}")
            since = _parse_iso_date(graph_filter.date_from)
            if since is not None:
                args.append(f"--since={since.isoformat()} 00:00:00")
            until = _parse_iso_date(graph_filter.date_to)
            if until is not None:
                args.append(f"--until={until.isoformat()} 23:59:59")
            if graph_filter.message:
                args.extend([f"--grep={graph_filter.message}", "--fixed-strings"])
            if graph_filter.author or graph_filter.message:
                args.append("--regexp-ignore-case")
            if graph_filter.path:
                path_spec = ["--", graph_filter.path]

        proc = run_git(self.root, args + path_spec)
        if proc.returncode != 0:
            if not self._has_any_commit():
                return []
            raise GitCommandError("log", proc.returncode, proc.stderr)

        commits: list[CommitInfo] = []
        for record in proc.stdout.split(_RECORD_SEP):
            if not record.strip():
                continue
            parts = record.split(_FIELD_SEP, 6)
            if len(parts) < 7:
                continue
            oid, parents, author, email, timestamp, refs, message = parts
            commits.append(
                CommitInfo(
                    oid=oid,
                    message=message.strip("\n"),
                    author=author,
                    email=email,
                    timestamp=int(timestamp or 0),
                    parents=tuple(parents.split()),
                    refs=tuple(ref.strip() for ref in refs.split(",") if ref.strip()),
                )
            )
        return commits

    def status(self) -> list[StatusEntry]:
        """Return porcelain status entries, untracked files included."""
        out = git(self.root, "status", "--porcelain=v1", "-z", "--untracked-files=all")
        entries: list[StatusEntry] = []
        tokens = out.split("\0")
        i = 0
        while i < len(tokens):
            token = tokens[i]
            i += 1
            if len(token) < 4:
                continue
            x, y, path = token[0], token[1], token[3:]
            orig_path = None
            if x in {"R", "C"} and i < len(tokens):
                orig_path = tokens[i]
                i += 1
            entries.append(StatusEntry(path, x, y, orig_path))
        return entries

    def list_branches(self) -> tuple[list[BranchInfo], list[BranchInfo]]:
        """Return ``(local, remote)`` branches, each sorted by ref name."""
        fmt = _FIELD_SEP.join(
            ["%(refname)", "%(refname:short)", "%(HEAD)", "%(upstream:short)", "%(contents:subject)"]
        )
        out = git(self.root, "for-each-ref", f"--format={fmt}", "refs/heads", "refs/remotes")
        local: list[BranchInfo] = []
        remote: list[BranchInfo] = []
        for line in out.splitlines():
            parts = line.split(_FIELD_SEP)
            if len(parts) < 5:
                continue
            refname, short, head_mark, upstream, subject = parts
            if refname.startswith("refs/remotes/"):
                if refname.endswith("/HEAD"):
                    continue
                remote.append(BranchInfo(short, False, True, None, subject))
            else:
                local.append(BranchInfo(short, head_mark == "*", False, upstream or None, subject))
        return local, remote

    def list_stashes(self) -> list[StashEntry]:
        """Return stash entries, newest first."""
        out = git(self.root, "stash", "list", f"--format=%gd{_FIELD_SEP}%gs")
        stashes: list[StashEntry] = []
        for line in out.splitlines():
            ref, _, message = line.partition(_FIELD_SEP)
            match = _STASH_REF_RE.match(ref.strip())
            if match is None:
                continue
            branch_match = _STASH_BRANCH_RE.match(message)
            stashes.append(
                StashEntry(
                    index=int(match.group(1)),
                    message=message,
                    branch=branch_match.group(1) if branch_match else None,
                )
            )
        return stashes

    def list_worktrees(self) -> list[WorktreeInfo]:
        """Return the main worktree followed by linked ones."""
        out = git(self.root, "worktree", "list", "--porcelain")
        worktrees: list[WorktreeInfo] = []
        block: dict[str, str] = {}

        def flush() -> None:
            if "worktree" not in block:
                return
            branch = block.get("branch")
            if branch and branch.startswith("refs/heads/"):
                branch = branch[len("refs/heads/"):]
            worktrees.append(
                WorktreeInfo(
                    path=block["worktree"],
                    head=block.get("HEAD"),
                    branch=branch,
                    is_main=not worktrees,
                )
            )

        for line in out.splitlines():
            if not line.strip():
                flush()
                block = {}
                continue
            key, _, value = line.partition(" ")
            block[key] = value
        flush()
        return worktrees

    def remotes(self) -> list[str]:
        """Return configured remote names."""
        return [line.strip() for line in git(self.root, "remote").splitlines() if line.strip()]

    def branch_remote(self, branch: str) -> str | None:
        """Return the remote configured for ``branch``, if any."""
        proc = run_git(self.root, ["config", "--get", f"branch.{branch}.remote"])
        remote = proc.stdout.strip()
        return remote if proc.returncode == 0 and remote else None

    def upstream_of(self, branch: str) -> str | None:
        """Return the upstream ref (``origin/main``) configured for ``branch``."""
        proc = run_git(
            self.root,
            ["rev-parse", "--abbrev-ref", "--symbolic-full-name", f"refs/heads/{branch}@{{upstream}}"],
        )
        upstream = proc.stdout.strip()
        return upstream if proc.returncode == 0 and upstream else None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True when ``ancestor`` is reachable from ``descendant``."""
        proc = run_git(self.root, ["merge-base", "--is-ancestor", ancestor, descendant])
        if proc.returncode in {0, 1}:
            return proc.returncode == 0
        raise GitCommandError("merge-base", proc.returncode, proc.stderr)

    def first_parent(self, oid: str) -> str | None:
        """Return the first parent of ``oid``, or ``None`` for a root commit."""
        proc = run_git(self.root, ["rev-parse", "--verify", "--quiet", f"{oid}^1"])
        parent = proc.stdout.strip()
        return parent if proc.returncode == 0 and parent else None

    def commit_files(self, oid: str) -> list[DiffFile]:
        """Files changed by ``oid`` relative to its first parent."""
        parent = self.first_parent(oid)
        base = ["-c", "core.quotepath=off"]
        if parent is None:
            status_out = git(self.root, *base, "diff-tree", "--root", "-r", "--no-commit-id", "--no-renames", "--name-status", oid)
            numstat_out = git(self.root, *base, "diff-tree", "--root", "-r", "--no-commit-id", "--no-renames", "--numstat", oid)
        else:
            status_out = git(self.root, *base, "diff", "--no-renames", "--name-status", parent, oid)
            numstat_out = git(self.root, *base, "diff", "--no-renames", "--numstat", parent, oid)

        counts: dict[str, tuple[int, int]] = {}
        for line in numstat_out.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            counts[path] = (
                int(added) if added.isdigit() else 0,
                int(deleted) if deleted.isdigit() else 0,
            )

        files: list[DiffFile] = []
        for line in status_out.splitlines():
            status, _, path = line.partition("\t")
            if not path:
                continue
            additions, deletions = counts.get(path, (0, 0))
            files.append(DiffFile(path, status[:1], additions, deletions))
        return files

    def commit_file_diff(self, oid: str, path: str) -> FileDiff:
        """Diff of ``path`` in ``oid`` against its first parent."""
        parent = self.first_parent(oid)
        if parent is None:
            out = git(self.root, "show", "--no-color", "--format=", oid, "--", path)
        else:
            out = git(self.root, "diff", "--no-color", parent, oid, "--", path)
        return _parse_unified_diff(path, out)

    def working_file_diff(self, path: str, *, staged: bool = False, untracked: bool = False) -> FileDiff:
        """Diff of one path: index vs HEAD when ``staged``, else worktree vs index."""
        if untracked:
            proc = run_git(self.root, ["diff", "--no-color", "--no-index", "--", "/dev/null", path])
            if proc.returncode not in {0, 1}:
                raise GitCommandError("diff", proc.returncode, proc.stderr)
            return _parse_unified_diff(path, proc.stdout)
        args = ["diff", "--no-color"]
        if staged:
            args.append("--cached")
        out = git(self.root, *args, "--", path)
        return _parse_unified_diff(path, out)

    def blame(self, oid: str, path: str) -> FileBlame:
        """Per-line attribution of ``path`` as of ``oid`` from ``git blame --porcelain``."""
        proc = run_git(self.root, ["blame", "--porcelain", oid, "--", path])
        if proc.returncode != 0:
            if "no such path" in proc.stderr:
                raise FileNotFoundInRepoError(path)
            raise GitCommandError("blame", proc.returncode, proc.stderr)

        meta: dict[str, dict[str, str]] = {}
        blame = FileBlame(path=path)
        current_oid = ""
        final_line = 0
        for line in proc.stdout.splitlines():
            if line.startswith("\t"):
                info = meta.get(current_oid, {})
                mail = info.get("author-mail", "").strip("<>")
                blame.lines.append(
                    BlameLine(
                        line_num=final_line,
                        content=line[1:],
                        commit_oid=current_oid,
                        author=info.get("author", ""),
                        author_email=mail,
                        timestamp=int(info.get("author-time", "0") or 0),
                    )
                )
                continue
            head, _, rest = line.partition(" ")
            if len(head) == 40 and all(ch in "0123456789abcdef" for ch in head):
                current_oid = head
                fields = rest.split()
                final_line = int(fields[1]) if len(fields) > 1 else final_line + 1
                meta.setdefault(current_oid, {})
            else:
                meta.setdefault(current_oid, {})[head] = rest
        return blame

    def show_blob(self, rev: str, path: str) -> str | None:
        """Return blob text at ``rev:path`` (``rev`` may be ``:2``/``:3`` index stages)."""
        spec = f"{rev}:{path}"
        proc = run_git(self.root, ["show", spec])
        if proc.returncode != 0:
            return None
        return proc.stdout

    def commit_message(self, rev: str = "HEAD") -> str:
        """Return the full message of ``rev``."""
        return git(self.root, "log", "-1", "--format=%B", rev).rstrip("\n")

    def head_message(self) -> str:
        return self.commit_message("HEAD")

    def conflicted_paths(self) -> dict[str, frozenset[int]]:
        """Map each unmerged path to the set of index stages present for it."""
        out = git(self.root, "ls-files", "-u", "-z")
        stages: dict[str, set[int]] = {}
        for record in out.split("\0"):
            if not record:
                continue
            info, _, path = record.partition("\t")
            fields = info.split()
            if len(fields) != 3 or not path:
                continue
            stages.setdefault(path, set()).add(int(fields[2]))
        return {path: frozenset(values) for path, values in stages.items()}

    def merge_head(self) -> str | None:
        """Return the pending merge head recorded in ``MERGE_HEAD``, if any."""
        return self._read_state_oid("MERGE_HEAD")

    def cherry_pick_head(self) -> str | None:
        return self._read_state_oid("CHERRY_PICK_HEAD")

    def merge_message(self) -> str | None:
        """Prepared message from ``MERGE_MSG`` without comment lines."""
        try:
            text = (self.git_dir / "MERGE_MSG").read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise GitIOError(f"cannot read MERGE_MSG: {exc}") from exc
        lines = [line for line in text.splitlines() if not line.startswith("#")]
        message = "\n".join(lines).strip()
        return message or None

    def _read_state_oid(self, name: str) -> str | None:
        try:
            text = (self.git_dir / name).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise GitIOError(f"cannot read {name}: {exc}") from exc
        first = text.strip().splitlines()
        return first[0].strip() if first else None

    # -------------------------------------------------------------- mutations

    def stage_path(self, path: str) -> None:
        """Stage ``path``, including deletions."""
        git(self.root, "add", "-A", "--", path)

    def unstage_path(self, path: str) -> None:
        """Drop the staged change of ``path``, keeping the work tree."""
        if self.head_oid() is None:
            git(self.root, "rm", "--cached", "-q", "--", path)
        else:
            git(self.root, "reset", "-q", "HEAD", "--", path)

    def stage_all(self) -> None:
        git(self.root, "add", "-A")

    def unstage_all(self) -> None:
        if self.head_oid() is None:
            git(self.root, "rm", "-r", "--cached", "-q", "--ignore-unmatch", ".")
        else:
            git(self.root, "reset", "-q")

    def remove_path(self, path: str) -> None:
        """Remove ``path`` from the index, clearing any unmerged stages."""
        git(self.root, "rm", "--cached", "-q", "--ignore-unmatch", "--", path)

    def checkout_stage(self, path: str, *, theirs: bool) -> None:
        """Restore an unmerged ``path`` byte-for-byte from stage ``:2`` (ours) or ``:3`` (theirs)."""
        git(self.root, "checkout", "--theirs" if theirs else "--ours", "--", path)

    def discard_path(self, path: str, *, untracked: bool = False) -> None:
        """Drop unstaged changes of ``path``; untracked files are deleted."""
        if untracked:
            git(self.root, "clean", "-f", "-q", "--", path)
        else:
            git(self.root, "checkout", "-q", "--", path)

    def discard_all(self) -> None:
        git(self.root, "checkout", "-q", "--", ".")

    def commit(self, message: str, *, amend: bool = False) -> str:
        """Commit the index with ``message`` and return the new HEAD."""
        args = ["commit", "-q", "-F", "-"]
        if amend:
            args.append("--amend")
        git(self.root, *args, input_text=message)
        head = self.head_oid()
        assert head is not None
        return head

    def write_tree(self) -> str:
        return git(self.root, "write-tree").strip()

    def commit_tree(self, tree: str, parents: list[str], message: str) -> str:
        """Create a commit object for ``tree`` without moving any ref."""
        args = ["commit-tree", tree]
        for parent in parents:
            args.extend(["-p", parent])
        args.extend(["-F", "-"])
        return git(self.root, *args, input_text=message).strip()

    def update_ref(self, ref: str, oid: str, reason: str) -> None:
        """Point ``ref`` at ``oid``, recording ``reason`` in the reflog."""
        git(self.root, "update-ref", "-m", reason, ref, oid)

    def fast_forward_worktree(self, target: str) -> None:
        """Force index and work tree to ``target``; local edits to tracked files are lost."""
        git(self.root, "read-tree", "-u", "--reset", target)

    def reset_hard(self, rev: str = "HEAD") -> None:
        git(self.root, "reset", "--hard", "-q", rev)

    def create_branch(self, name: str) -> None:
        git(self.root, "branch", name)

    def delete_branch(self, name: str) -> None:
        """Force-delete local branch ``name``."""
        proc = run_git(self.root, ["branch", "-D", name])
        if proc.returncode != 0:
            if "not found" in proc.stderr:
                raise BranchNotFoundError(name)
            raise GitCommandError("branch", proc.returncode, proc.stderr)

    def rename_branch(self, old: str, new: str) -> None:
        git(self.root, "branch", "-m", old, new)

    def checkout_branch(self, name: str, *, remote: bool = False) -> None:
        """Switch to ``name``; a remote branch is checked out as a new tracking branch."""
        if remote:
            git(self.root, "checkout", "-q", "--track", name)
            return
        proc = run_git(self.root, ["checkout", "-q", name])
        if proc.returncode != 0:
            if "did not match any" in proc.stderr:
                raise BranchNotFoundError(name)
            raise GitCommandError("checkout", proc.returncode, proc.stderr)

    def stash_save(self, message: str | None = None) -> None:
        """Stash every local change."""
        args = ["stash", "push", "-q"]
        if message:
            args.extend(["-m", message])
        git(self.root, *args)

    def stash_push_paths(self, paths: list[str], message: str | None = None) -> None:
        """Stash only ``paths``, untracked ones included."""
        args = ["stash", "push", "-q", "--include-untracked"]
        if message:
            args.extend(["-m", message])
        git(self.root, *args, "--", *paths)

    def stash_unstaged(self, message: str | None = None) -> None:
        """Stash unstaged and untracked changes, leaving the index alone."""
        args = ["stash", "push", "-q", "--keep-index", "--include-untracked"]
        if message:
            args.extend(["-m", message])
        git(self.root, *args)

    def stash_apply(self, index: int) -> None:
        git(self.root, "stash", "apply", "-q", f"stash@{{{index}}}")

    def stash_pop(self, index: int) -> None:
        git(self.root, "stash", "pop", "-q", f"stash@{{{index}}}")

    def stash_drop(self, index: int) -> None:
        git(self.root, "stash", "drop", "-q", f"stash@{{{index}}}")

    def worktree_add(self, name: str, path: str, branch: str | None = None) -> None:
        """Add a worktree at ``path``; without ``branch`` a new branch ``name`` is created."""
        if branch:
            git(self.root, "worktree", "add", path, branch)
        else:
            git(self.root, "worktree", "add", "-b", name, path)

    def worktree_remove(self, path: str) -> None:
        git(self.root, "worktree", "remove", path)

    def fetch(self, remote: str) -> None:
        git(self.root, "fetch", "--quiet", remote)

    def push(self, remote: str, branch: str, *, set_upstream: bool = False) -> None:
        """Push ``branch`` to the same name on ``remote``."""
        args = ["push", "--quiet"]
        if set_upstream:
            args.append("--set-upstream")
        git(self.root, *args, remote, f"refs/heads/{branch}:refs/heads/{branch}")

    def merge_no_commit(self, rev: str) -> bool:
        """Merge ``rev`` into the index and work tree without committing.

        Returns ``True`` on a clean merge, ``False`` when conflicts were left
        in place. Any other failure raises ``GitCommandError``.
        """
        proc = run_git(self.root, ["merge", "--no-ff", "--no-commit", "--no-edit", rev])
        if proc.returncode == 0:
            return True
        if self.conflicted_paths():
            return False
        raise GitCommandError("merge", proc.returncode, proc.stderr or proc.stdout)

    def cherry_pick(self, oid: str) -> bool:
        """Cherry-pick ``oid``; ``False`` means it stopped on conflicts."""
        proc = run_git(self.root, ["cherry-pick", oid])
        if proc.returncode == 0:
            return True
        if self.conflicted_paths():
            return False
        raise GitCommandError("cherry-pick", proc.returncode, proc.stderr or proc.stdout)

    def clear_merge_state(self) -> None:
        """Remove merge/cherry-pick-in-progress markers from the git dir."""
        for name in _MERGE_STATE_FILES:
            try:
                (self.git_dir / name).unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise GitIOError(f"cannot remove {name}: {exc}") from exc
        run_git(self.root, ["cherry-pick", "--quit"])


def open_repository(path: Path) -> GitRepo:
    """Open the repository containing ``path`` or raise ``RepositoryNotFoundError``."""
    repo_root, git_dir = resolve_git_paths(path)
    if repo_root is None or git_dir is None:
        raise RepositoryNotFoundError(str(path))
    logger.info("opened repository %s (git dir %s)", repo_root, git_dir)
    return GitRepo(repo_root, git_dir)
