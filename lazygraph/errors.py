"""Error taxonomy shared by the git facade, conflict engine, and handlers.

Handlers catch ``LazyGraphError`` around repository calls and turn it into a
flash message; only startup failures escape to the CLI.
"""

from __future__ import annotations


class LazyGraphError(Exception):
    """Base class for every error raised by lazygraph itself."""


class GitCommandError(LazyGraphError):
    """A ``git`` invocation exited non-zero."""

    def __init__(self, operation: str, returncode: int, stderr: str = "") -> None:
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr.splitlines()[-1] if self.stderr else f"exit status {returncode}"
        super().__init__(f"git {operation} failed: {detail}")


class GitIOError(LazyGraphError):
    """Reading or writing a working-tree file failed."""


class TerminalError(LazyGraphError):
    """Terminal setup or raw-mode handling failed."""


class ClipboardError(LazyGraphError):
    """No clipboard tool accepted the text."""


class OperationFailedError(LazyGraphError):
    """A named operation failed with extra context."""

    def __init__(self, operation: str, details: str) -> None:
        self.operation = operation
        self.details = details
        super().__init__(f"{operation}: {details}")


class NoRemoteError(OperationFailedError):
    def __init__(self, operation: str) -> None:
        super().__init__(operation, "no remote configured")


class NoUpstreamError(OperationFailedError):
    def __init__(self, branch: str) -> None:
        super().__init__("pull", f"branch '{branch}' has no upstream")


class NotFoundError(LazyGraphError):
    """Something looked up by name does not exist."""


class RepositoryNotFoundError(NotFoundError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"not a git repository: {path}")


class BranchNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"branch not found: {name}")


class FileNotFoundInRepoError(NotFoundError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"file not found: {path}")


class InvalidStateError(LazyGraphError):
    """The requested transition is not valid for the current state."""


class IndexOutOfBoundsError(LazyGraphError):
    def __init__(self, index: int, length: int) -> None:
        self.index = index
        self.length = length
        super().__init__(f"index {index} out of bounds for length {length}")


class ConflictParseError(InvalidStateError):
    """Conflict markers in a file are malformed."""

    def __init__(self, path: str, line: int, reason: str) -> None:
        self.path = path
        self.line = line
        self.reason = reason
        super().__init__(f"{path}:{line}: {reason}")


class ConflictDriftError(InvalidStateError):
    """The file on disk no longer matches the parsed conflict sections."""

    def __init__(self, path: str, expected: int, found: int) -> None:
        self.path = path
        self.expected = expected
        self.found = found
        super().__init__(
            f"{path}: expected {expected} conflict section(s) on disk, found {found}; re-open the file"
        )
