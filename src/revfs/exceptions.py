"""Exceptions for revfs."""

from __future__ import annotations

import errno

from dulwich.errors import NotGitRepository


class RevfsError(Exception):
    """Base class for revfs errors."""


class UnresolvedRevisionError(RevfsError, LookupError):
    """Raised when a revision names neither a commit nor a branch.

    Attributes:
        revision: The revision string as given by the caller.
        repository: Working directory of the repository that was searched.
    """

    def __init__(self, revision: str, repository: str):
        self.revision = revision
        self.repository = repository
        super().__init__(
            f"Couldn't find git commit or branch with name {revision!r} "
            f"in repository {repository}"
        )


class EntryNotFoundError(RevfsError, FileNotFoundError):
    """Raised when a virtual path has no entry in the snapshot tree.

    Subclasses :exc:`FileNotFoundError` so callers can treat it exactly like
    a missing file on disk.
    """

    def __init__(self, path: str, commit: str | None = None):
        self.commit = commit
        where = f" at {commit[:7]}" if commit else ""
        super().__init__(errno.ENOENT, f"No such entry in snapshot{where}", path)


class ReadOnlyFilesystemError(RevfsError, PermissionError):
    """Raised when a write-intent call reaches a path backed by a snapshot."""

    def __init__(self, path: str, detail: str):
        self.detail = detail
        super().__init__(errno.EROFS, f"Git virtual filesystem is read-only [{detail}]", path)


class InvalidModeError(RevfsError, ValueError):
    """Raised when the object store reports a tree entry mode we don't know."""

    def __init__(self, mode: int, path: str | None = None):
        self.mode = mode
        self.path = path
        where = f" at {path!r}" if path else ""
        super().__init__(f"Unexpected git filemode {mode:#o}{where}")


class NotGitRepositoryError(RevfsError, NotGitRepository):
    """Raised when a directory exists but is not a git working tree."""
