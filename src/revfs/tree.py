"""Read-only tree helpers for revfs.

Path-based lookups and lazy walks over dulwich tree objects, plus the
git filemode taxonomy used by the overlay.
"""

from __future__ import annotations

import os
from enum import IntEnum
from typing import Iterator, NamedTuple

from dulwich.object_store import BaseObjectStore
from dulwich.objects import Tree

from .exceptions import InvalidModeError


class EntryMode(IntEnum):
    """Git tree entry modes.

    ``GROUP_WRITABLE`` is a legacy blob mode still found in old trees; every
    overlay primitive treats it like ``REGULAR``.
    """

    NONEXISTENT = 0
    DIRECTORY = 0o040000
    REGULAR = 0o100644
    GROUP_WRITABLE = 0o100664
    EXECUTABLE = 0o100755
    SYMLINK = 0o120000
    GITLINK = 0o160000

    @classmethod
    def from_filemode(cls, mode: int, path: str | None = None) -> EntryMode:
        """Convert a raw git filemode, raising :exc:`InvalidModeError` if unknown."""
        try:
            return cls(mode)
        except ValueError:
            raise InvalidModeError(mode, path) from None

    @property
    def kind(self) -> str | None:
        """Target kind: ``"tree"``, ``"blob"``, ``"commit"``, or ``None``."""
        return _MODE_KIND[self]

    @property
    def is_file(self) -> bool:
        return self in FILE_MODES

    @property
    def is_dir(self) -> bool:
        return self is EntryMode.DIRECTORY


_MODE_KIND = {
    EntryMode.NONEXISTENT: None,
    EntryMode.DIRECTORY: "tree",
    EntryMode.REGULAR: "blob",
    EntryMode.GROUP_WRITABLE: "blob",
    EntryMode.EXECUTABLE: "blob",
    EntryMode.SYMLINK: "blob",
    EntryMode.GITLINK: "commit",
}

FILE_MODES = frozenset({
    EntryMode.REGULAR,
    EntryMode.GROUP_WRITABLE,
    EntryMode.EXECUTABLE,
    EntryMode.SYMLINK,
    EntryMode.GITLINK,
})


class TreeEntry(NamedTuple):
    """A single tree entry: *name*, *mode*, and target *sha* (hex bytes)."""

    name: str
    mode: EntryMode
    sha: bytes


def _is_root_path(path: str | os.PathLike[str]) -> bool:
    """Return True if path represents the root (empty, '.', or only slashes)."""
    p = os.fspath(path)
    if os.name == "nt":
        p = p.replace("\\", "/")
    return p.strip("/") in ("", ".")


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: strip leading/trailing slashes, reject bad segments."""
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return "/".join(segments)


def _entries(object_store: BaseObjectStore, tree_sha: bytes, prefix: str = "") -> Iterator[TreeEntry]:
    tree = object_store[tree_sha]
    if not isinstance(tree, Tree):
        raise NotADirectoryError(prefix or "/")
    for item in tree.iteritems():
        name = item.path.decode()
        full = f"{prefix}/{name}" if prefix else name
        yield TreeEntry(name, EntryMode.from_filemode(item.mode, full), item.sha)


def entry_at_path(
    object_store: BaseObjectStore, tree_sha: bytes, path: str | os.PathLike[str]
) -> TreeEntry | None:
    """Return the :class:`TreeEntry` at *path*, or None if missing.

    The root path yields a synthetic ``DIRECTORY`` entry named ``""``.
    Descending through anything that is not a directory counts as missing.
    """
    if _is_root_path(path):
        return TreeEntry("", EntryMode.DIRECTORY, tree_sha)
    path = _normalize_path(path)
    segments = path.split("/")
    tree = object_store[tree_sha]
    for i, seg in enumerate(segments):
        try:
            mode, sha = tree[seg.encode()]
        except KeyError:
            return None
        entry_mode = EntryMode.from_filemode(mode, "/".join(segments[: i + 1]))
        if i == len(segments) - 1:
            return TreeEntry(seg, entry_mode, sha)
        if entry_mode is not EntryMode.DIRECTORY:
            return None
        tree = object_store[sha]
    return None


def read_blob_at_path(
    object_store: BaseObjectStore, tree_sha: bytes, path: str | os.PathLike[str]
) -> bytes:
    """Read a blob at the given path in the tree."""
    entry = entry_at_path(object_store, tree_sha, path)
    if entry is None:
        raise FileNotFoundError(os.fspath(path))
    if entry.mode is EntryMode.DIRECTORY:
        raise IsADirectoryError(os.fspath(path))
    if entry.mode is EntryMode.GITLINK:
        raise FileNotFoundError(f"Submodule has no content in this repository: {os.fspath(path)}")
    return object_store[entry.sha].data


def walk_entries(
    object_store: BaseObjectStore,
    tree_sha: bytes,
    prefix: str = "",
    *,
    recursive: bool = True,
) -> Iterator[tuple[str, TreeEntry]]:
    """Yield ``(relative_path, entry)`` for every entry under a tree.

    Entries of a directory are yielded before descending into its
    subdirectories.  Nothing is read until the caller pulls the next item.
    """
    subdirs: list[tuple[str, bytes]] = []
    for entry in _entries(object_store, tree_sha, prefix):
        full = f"{prefix}/{entry.name}" if prefix else entry.name
        yield full, entry
        if recursive and entry.mode is EntryMode.DIRECTORY:
            subdirs.append((full, entry.sha))
    for full, sha in subdirs:
        yield from walk_entries(object_store, sha, full, recursive=True)

