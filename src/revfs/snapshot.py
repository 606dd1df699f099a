"""Snapshot: immutable, read-only view of a committed tree."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from dulwich.objects import Commit

from ._fileobj import ReadableFile
from .exceptions import EntryNotFoundError
from .tree import (
    EntryMode,
    TreeEntry,
    entry_at_path,
    read_blob_at_path,
)

if TYPE_CHECKING:
    from .repo import GitRepository

__all__ = ["Snapshot"]


class Snapshot:
    """The tree of one commit.

    Paths are relative to the repository root and use ``/`` separators.
    A snapshot never changes after it is created and has no write methods.
    """

    def __init__(self, repo: GitRepository, commit: Commit):
        self._repo = repo
        self._commit = commit
        self._tree_sha = commit.tree

    def __repr__(self) -> str:
        return f"Snapshot(commit={self.commit_hash[:7]})"

    def __eq__(self, other):
        if isinstance(other, Snapshot):
            return self._commit.id == other._commit.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._commit.id)

    @property
    def commit_hash(self) -> str:
        """Hex SHA of the commit this snapshot reads from."""
        return self._commit.id.decode()

    @property
    def tree_hash(self) -> str:
        """Hex SHA of the commit's root tree."""
        return self._tree_sha.decode()

    @property
    def message(self) -> str:
        """Commit message without its trailing newline."""
        return self._commit.message.decode().rstrip("\n")

    @property
    def author_name(self) -> str:
        ident = self._commit.author.decode()
        name, _, _ = ident.partition(" <")
        return name

    @property
    def author_email(self) -> str:
        ident = self._commit.author.decode()
        _, _, email_part = ident.partition(" <")
        return email_part.rstrip(">")

    @property
    def author_time(self) -> datetime:
        """Authoring timestamp as a UTC datetime."""
        return datetime.fromtimestamp(self._commit.author_time, tz=timezone.utc)

    # --- Read operations ---

    def entry(self, path: str | os.PathLike[str]) -> TreeEntry | None:
        """Return the :class:`TreeEntry` at *path*, or None if missing."""
        return entry_at_path(self._repo.object_store, self._tree_sha, path)

    def read(self, path: str | os.PathLike[str]) -> bytes:
        """Return the blob at *path*.

        Raises:
            EntryNotFoundError: If *path* does not exist in this snapshot.
            IsADirectoryError: If *path* is a directory.
        """
        try:
            return read_blob_at_path(self._repo.object_store, self._tree_sha, path)
        except FileNotFoundError:
            raise EntryNotFoundError(os.fspath(path), self.commit_hash) from None

    def open(self, path: str | os.PathLike[str]) -> ReadableFile:
        """Open *path* as a read-only binary stream."""
        return ReadableFile(self.read(path), os.fspath(path))

    def exists(self, path: str | os.PathLike[str]) -> bool:
        """True if *path* names any entry in this commit."""
        entry = self.entry(path)
        return entry is not None and entry.mode is not EntryMode.NONEXISTENT

    def is_dir(self, path: str | os.PathLike[str]) -> bool:
        entry = self.entry(path)
        return entry is not None and entry.mode.is_dir

    def is_file(self, path: str | os.PathLike[str]) -> bool:
        entry = self.entry(path)
        return entry is not None and entry.mode.is_file
