"""Changed-file detection between snapshots or against the working copy."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

from dulwich.diff_tree import CHANGE_ADD, CHANGE_DELETE, tree_changes
from dulwich.index import ConflictedIndexEntry, blob_from_path_and_stat, cleanup_mode
from dulwich.objects import S_ISGITLINK

from .repo import GitRepository
from .revision import ComparisonTarget, resolve_range
from .tree import EntryMode, _normalize_path, walk_entries

if TYPE_CHECKING:
    from dulwich.index import Index

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "compute_changes",
    "diff_trees",
    "diff_working_copy",
    "get_changed_files",
    "to_paths",
]

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Kind of change: ``ADDED``, ``DELETED``, ``MODIFIED``, or ``TYPE_CHANGED``."""
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    TYPE_CHANGED = "type_changed"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One entry of a diff result.

    Attributes:
        kind: :class:`ChangeKind` value.
        path: Repo-relative path with ``/`` separators, or ``None`` for a
            record that carries no path.
        old_mode: Git filemode on the old side (``None`` when added).
        new_mode: Git filemode on the new side (``None`` when deleted).
    """
    kind: ChangeKind
    path: str | None
    old_mode: int | None = None
    new_mode: int | None = None


def _classify(old_mode: int | None, new_mode: int | None) -> ChangeKind:
    if old_mode is None:
        return ChangeKind.ADDED
    if new_mode is None:
        return ChangeKind.DELETED
    if stat.S_IFMT(old_mode) != stat.S_IFMT(new_mode):
        return ChangeKind.TYPE_CHANGED
    return ChangeKind.MODIFIED


def _path_filter(paths: Iterable[str] | None) -> Callable[[str | None], bool]:
    """Return a predicate keeping paths equal to, or beneath, any of *paths*."""
    if paths is None:
        return lambda path: True
    prefixes = tuple(_normalize_path(p) for p in paths)

    def keep(path: str | None) -> bool:
        if path is None:
            return False
        return any(path == p or path.startswith(p + "/") for p in prefixes)

    return keep


def _as_bytes(sha: bytes | str) -> bytes:
    return sha.encode() if isinstance(sha, str) else sha


def diff_trees(
    repo: GitRepository,
    old_tree: bytes | str,
    new_tree: bytes | str,
    paths: Iterable[str] | None = None,
) -> list[ChangeRecord]:
    """Compare two trees.  Records come back in dulwich's walk order."""
    keep = _path_filter(paths)
    records = []
    for change in tree_changes(
        repo.object_store, _as_bytes(old_tree), _as_bytes(new_tree), change_type_same=True
    ):
        old_mode = None if change.type == CHANGE_ADD or change.old is None else change.old.mode
        new_mode = None if change.type == CHANGE_DELETE or change.new is None else change.new.mode
        side = change.old if new_mode is None else change.new
        path = side.path.decode() if side is not None and side.path is not None else None
        if not keep(path):
            continue
        records.append(ChangeRecord(_classify(old_mode, new_mode), path, old_mode, new_mode))
    return records


def _working_copy_state(root: bytes, name: bytes, entry) -> tuple[int, bytes] | None:
    """Return ``(mode, sha)`` of an indexed path as it exists on disk, or None."""
    full_path = os.path.join(root, name.replace(b"/", os.fsencode(os.sep)))
    try:
        st = os.lstat(full_path)
    except (FileNotFoundError, NotADirectoryError):
        return None
    if stat.S_ISDIR(st.st_mode):
        if not isinstance(entry, ConflictedIndexEntry) and S_ISGITLINK(entry.mode):
            # Submodule checkouts are compared by their recorded commit.
            return entry.mode, entry.sha
        return None
    if not stat.S_ISREG(st.st_mode) and not stat.S_ISLNK(st.st_mode):
        return None
    blob = blob_from_path_and_stat(full_path, st)
    return cleanup_mode(st.st_mode), blob.id


def _indexed_state(repo: GitRepository, index: Index) -> dict[str, tuple[int, bytes] | None]:
    root = os.fsencode(repo.workdir)
    return {
        name.decode(): _working_copy_state(root, name, entry)
        for name, entry in index.iteritems()
    }


def diff_working_copy(
    repo: GitRepository,
    tree: bytes | str,
    paths: Iterable[str] | None = None,
) -> list[ChangeRecord]:
    """Compare a tree with the index and working tree combined.

    Every indexed path is compared by its on-disk content, so staged and
    unstaged edits both show up, as do staged additions and removals and
    files deleted from disk.  Files git does not track are ignored.
    Records are sorted by path.
    """
    keep = _path_filter(paths)
    committed = {
        path: (cleanup_mode(int(entry.mode)), entry.sha)
        for path, entry in walk_entries(repo.object_store, _as_bytes(tree))
        if entry.mode is not EntryMode.DIRECTORY
    }
    current = _indexed_state(repo, repo.open_index())

    records = []
    for path in sorted(set(committed) | set(current)):
        if not keep(path):
            continue
        old = committed.get(path)
        new = current.get(path)
        if old == new:
            continue
        old_mode = old[0] if old is not None else None
        new_mode = new[0] if new is not None else None
        records.append(ChangeRecord(_classify(old_mode, new_mode), path, old_mode, new_mode))
    return records


def compute_changes(
    repo: GitRepository,
    target: ComparisonTarget,
    paths: Iterable[str] | None = None,
) -> list[ChangeRecord]:
    """Compute the diff described by *target*, optionally restricted to *paths*."""
    if target.base is None:
        changes = diff_working_copy(repo, target.head.tree_hash, paths)
    else:
        changes = diff_trees(repo, target.base.tree_hash, target.head.tree_hash, paths)
    logger.debug("Found %d changed entries", len(changes))
    return changes


def to_paths(changes: Iterable[ChangeRecord], repository_root: str) -> Iterator[str]:
    """Yield the absolute path of every change that carries one, in order."""
    for change in changes:
        if change is None or change.path is None:
            continue
        yield os.path.join(repository_root, *change.path.split("/"))


def get_changed_files(
    directory: str | os.PathLike[str],
    from_spec: str | None = "",
    to_spec: str | None = "",
    paths: Iterable[str] | None = None,
) -> Iterator[str]:
    """Return absolute paths of files changed between *from_spec* and *to_spec*.

    A blank *from_spec* compares *to_spec* (default: tip) against the working
    copy.  The repository is closed before this function returns; the
    returned iterator only walks the already computed diff.

    Raises:
        UnresolvedRevisionError: If either revision cannot be resolved.
    """
    with GitRepository.open(directory) as repo:
        target = resolve_range(repo, from_spec, to_spec)
        changes = compute_changes(repo, target, paths)
        root = repo.workdir
    return to_paths(changes, root)
