"""VirtualFileSystem: per-path overlay of live disk and a historical snapshot.

An evaluation engine that resolves imports through a pluggable filesystem
can be handed a :class:`VirtualFileSystem` to read a project as it looked
at some commit.  Paths inside the repository's working tree are answered
from the snapshot; paths outside it (installed SDKs, toolchain files) are
always read from disk, because git never tracked them.

With a :class:`Live` binding every call goes to disk, which is how the
working copy is evaluated.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, Flag
from pathlib import Path
from typing import IO, TYPE_CHECKING, BinaryIO, Iterator, TextIO, Union

from ._fileobj import text_reader
from ._glob import _glob_match
from .exceptions import EntryNotFoundError, ReadOnlyFilesystemError
from .tree import EntryMode, TreeEntry, walk_entries

if TYPE_CHECKING:
    from .repo import GitRepository
    from .snapshot import Snapshot

__all__ = [
    "Binding",
    "FileAccess",
    "FileAttributes",
    "FileMode",
    "FileShare",
    "Historical",
    "Live",
    "VirtualFileSystem",
]


@dataclass(frozen=True, slots=True)
class Live:
    """No snapshot bound: every path is answered from disk."""


@dataclass(frozen=True, slots=True)
class Historical:
    """Paths inside the working tree are answered from *snapshot*."""
    snapshot: Snapshot


Binding = Union[Live, Historical]


class FileMode(Enum):
    """How :meth:`VirtualFileSystem.open_stream` opens or creates a file."""
    CREATE_NEW = "create_new"
    CREATE = "create"
    OPEN = "open"
    OPEN_OR_CREATE = "open_or_create"
    TRUNCATE = "truncate"
    APPEND = "append"


class FileAccess(Flag):
    READ = 1
    WRITE = 2
    READ_WRITE = READ | WRITE


class FileShare(Flag):
    """Sharing mode.  Accepted for interface parity; POSIX ignores it."""
    NONE = 0
    READ = 1
    WRITE = 2
    READ_WRITE = READ | WRITE
    DELETE = 4


class FileAttributes(Flag):
    NORMAL = 0x80
    READ_ONLY = 0x01
    HIDDEN = 0x02
    DIRECTORY = 0x10


_MODE_FLAGS = {
    FileMode.OPEN: 0,
    FileMode.CREATE_NEW: os.O_CREAT | os.O_EXCL,
    FileMode.CREATE: os.O_CREAT | os.O_TRUNC,
    FileMode.OPEN_OR_CREATE: os.O_CREAT,
    FileMode.TRUNCATE: os.O_TRUNC,
    FileMode.APPEND: os.O_CREAT | os.O_APPEND,
}

_ACCESS_FLAGS = {
    FileAccess.READ: os.O_RDONLY,
    FileAccess.WRITE: os.O_WRONLY,
    FileAccess.READ_WRITE: os.O_RDWR,
}

_WRITE_ONLY_MODES = frozenset({FileMode.CREATE_NEW, FileMode.CREATE, FileMode.TRUNCATE, FileMode.APPEND})


def _open_disk(path: str, mode: FileMode, access: FileAccess) -> BinaryIO:
    """Open *path* on disk with the flags *mode* and *access* map to."""
    if access not in _ACCESS_FLAGS:
        raise ValueError(f"Unsupported access: {access!r}")
    if access is FileAccess.READ and mode in _WRITE_ONLY_MODES:
        raise ValueError(f"{mode.name} requires write access")
    if mode is FileMode.APPEND and access is not FileAccess.WRITE:
        raise ValueError("APPEND can only be combined with WRITE access")

    flags = _MODE_FLAGS[mode] | _ACCESS_FLAGS[access] | getattr(os, "O_BINARY", 0)
    if access is FileAccess.READ:
        pymode = "rb"
    elif access is FileAccess.WRITE:
        pymode = "ab" if mode is FileMode.APPEND else "wb"
    else:
        pymode = "r+b"
    fd = os.open(path, flags, 0o666)
    try:
        return os.fdopen(fd, pymode)
    except BaseException:
        os.close(fd)
        raise


def _walk_disk(path: str, recursive: bool) -> Iterator[tuple[str, bool, bool]]:
    """Yield ``(path, is_dir, is_file)`` for entries under *path* on disk."""
    subdirs: list[str] = []
    with os.scandir(path) as it:
        for entry in it:
            is_dir = entry.is_dir()
            yield entry.path, is_dir, entry.is_file()
            if recursive and is_dir and not entry.is_symlink():
                subdirs.append(entry.path)
    for sub in subdirs:
        yield from _walk_disk(sub, True)


class VirtualFileSystem:
    """Read-mostly filesystem over a repository's working tree.

    Args:
        repo: Open repository.  The overlay borrows it; closing it is the
            caller's job.
        snapshot: Snapshot to bind, or ``None`` for a live overlay.
        binding: Alternatively, an explicit :class:`Live` or
            :class:`Historical` binding.

    Relative paths are taken relative to the working tree root.  Each call
    classifies its path afresh: it is *virtual* when a snapshot is bound and
    the path is the working tree root or lies beneath it, and *live*
    otherwise.  Virtual paths are strictly read-only.
    """

    def __init__(
        self,
        repo: GitRepository,
        snapshot: Snapshot | None = None,
        *,
        binding: Binding | None = None,
    ):
        if binding is None:
            binding = Live() if snapshot is None else Historical(snapshot)
        elif snapshot is not None:
            raise TypeError("Pass either snapshot or binding, not both")
        if not isinstance(binding, (Live, Historical)):
            raise TypeError(f"Expected Live or Historical binding, got {type(binding).__name__}")
        self._repo = repo
        self._binding = binding
        self._root = repo.workdir
        self._root_prefix = self._root if self._root.endswith(os.sep) else self._root + os.sep

    def __repr__(self) -> str:
        if isinstance(self._binding, Historical):
            return f"VirtualFileSystem({self._root!r}, commit={self._binding.snapshot.commit_hash[:7]})"
        return f"VirtualFileSystem({self._root!r}, live)"

    @property
    def binding(self) -> Binding:
        return self._binding

    @property
    def snapshot(self) -> Snapshot | None:
        """The bound snapshot, or ``None`` when live."""
        if isinstance(self._binding, Historical):
            return self._binding.snapshot
        return None

    @property
    def is_historical(self) -> bool:
        return isinstance(self._binding, Historical)

    @property
    def root(self) -> str:
        return self._root

    # --- Path classification ---

    def _absolute(self, path: str | os.PathLike[str]) -> str:
        path = os.fspath(path)
        if not os.path.isabs(path):
            path = os.path.join(self._root, path)
        return os.path.normpath(path)

    def _classify(self, path: str | os.PathLike[str]) -> tuple[str, str | None]:
        """Return ``(absolute_path, relative_path)``.

        *relative_path* is the repo-relative ``/``-separated path for a
        virtual path and ``None`` for a live one.
        """
        full = self._absolute(path)
        if not isinstance(self._binding, Historical):
            return full, None
        if full == self._root:
            return full, ""
        if full.startswith(self._root_prefix):
            return full, full[len(self._root_prefix):].replace(os.sep, "/")
        return full, None

    def _resolve_entry(self, relative: str) -> TreeEntry | None:
        return self._binding.snapshot.entry(relative)

    def _require_entry(self, relative: str) -> TreeEntry:
        entry = self._resolve_entry(relative)
        if entry is None or entry.mode is EntryMode.NONEXISTENT:
            raise EntryNotFoundError(relative, self._binding.snapshot.commit_hash)
        return entry

    def is_virtual(self, path: str | os.PathLike[str]) -> bool:
        """Return True if *path* would be answered from the snapshot."""
        return self._classify(path)[1] is not None

    # --- Reading ---

    def _read_blob(self, relative: str) -> bytes:
        self._require_entry(relative)
        return self._binding.snapshot.read(relative)

    def read_file(self, path: str | os.PathLike[str]) -> TextIO:
        """Open *path* as a UTF-8 text stream (a leading BOM is skipped).

        Raises:
            EntryNotFoundError: If a virtual *path* is not in the snapshot.
            IsADirectoryError: If *path* is a directory.
        """
        full, relative = self._classify(path)
        if relative is None:
            return open(full, encoding="utf-8-sig")
        return text_reader(self._read_blob(relative), full, encoding="utf-8-sig")

    def open_stream(
        self,
        path: str | os.PathLike[str],
        mode: FileMode = FileMode.OPEN,
        access: FileAccess = FileAccess.READ,
        share: FileShare = FileShare.NONE,
    ) -> IO[bytes]:
        """Open *path* as a binary stream.

        Live paths are opened on disk with the requested *mode* and
        *access*.  Virtual paths only accept ``FileMode.OPEN`` with
        ``FileAccess.READ``.

        Raises:
            ReadOnlyFilesystemError: If a virtual path is opened with any
                other mode or access.
            EntryNotFoundError: If a virtual *path* is not in the snapshot.
        """
        full, relative = self._classify(path)
        if relative is None:
            return _open_disk(full, mode, access)
        if mode is not FileMode.OPEN:
            raise ReadOnlyFilesystemError(full, f"FileMode: {mode.name}")
        if access is not FileAccess.READ:
            raise ReadOnlyFilesystemError(full, f"FileAccess: {access.name}")
        self._require_entry(relative)
        return self._binding.snapshot.open(relative)

    def read_all_text(self, path: str | os.PathLike[str]) -> str:
        """Read the whole of *path* as UTF-8 text."""
        full, relative = self._classify(path)
        if relative is None:
            return Path(full).read_text(encoding="utf-8-sig")
        with self.read_file(full) as f:
            return f.read()

    def read_all_bytes(self, path: str | os.PathLike[str]) -> bytes:
        """Read the whole of *path* as bytes.

        Virtual content goes through :meth:`read_all_text` and is encoded
        back to UTF-8, so a leading BOM is dropped.  Use :meth:`open_stream`
        for the raw blob.
        """
        full, relative = self._classify(path)
        if relative is None:
            return Path(full).read_bytes()
        return self.read_all_text(full).encode("utf-8")

    # --- Enumeration ---

    def _enumerate(
        self,
        path: str | os.PathLike[str],
        pattern: str,
        recursive: bool,
        want_dirs: bool,
        want_files: bool,
    ) -> Iterator[str]:
        full, relative = self._classify(path)
        if relative is None:
            for entry_path, is_dir, is_file in _walk_disk(full, recursive):
                if (is_dir and want_dirs) or (is_file and want_files):
                    if _glob_match(pattern, os.path.basename(entry_path)):
                        yield entry_path
            return

        entry = self._require_entry(relative)
        if entry.mode is not EntryMode.DIRECTORY:
            raise NotADirectoryError(full)
        store = self._repo.object_store
        for sub, item in walk_entries(store, entry.sha, recursive=recursive):
            if (item.mode.is_dir and want_dirs) or (item.mode.is_file and want_files):
                if _glob_match(pattern, item.name):
                    yield os.path.join(full, *sub.split("/"))

    def enumerate_files(
        self, path: str | os.PathLike[str], pattern: str = "*", recursive: bool = False
    ) -> Iterator[str]:
        """Lazily yield files under *path* whose names match *pattern*."""
        return self._enumerate(path, pattern, recursive, want_dirs=False, want_files=True)

    def enumerate_directories(
        self, path: str | os.PathLike[str], pattern: str = "*", recursive: bool = False
    ) -> Iterator[str]:
        """Lazily yield directories under *path* whose names match *pattern*."""
        return self._enumerate(path, pattern, recursive, want_dirs=True, want_files=False)

    def enumerate_entries(
        self, path: str | os.PathLike[str], pattern: str = "*", recursive: bool = False
    ) -> Iterator[str]:
        """Lazily yield files and directories under *path* matching *pattern*."""
        return self._enumerate(path, pattern, recursive, want_dirs=True, want_files=True)

    # --- Metadata ---

    def get_attributes(self, path: str | os.PathLike[str]) -> FileAttributes:
        full, relative = self._classify(path)
        if relative is not None:
            return FileAttributes.DIRECTORY if self.directory_exists(full) else FileAttributes.NORMAL
        st = os.stat(full)
        attrs = FileAttributes(0)
        if stat.S_ISDIR(st.st_mode):
            attrs |= FileAttributes.DIRECTORY
        if not st.st_mode & stat.S_IWUSR:
            attrs |= FileAttributes.READ_ONLY
        if os.path.basename(full).startswith("."):
            attrs |= FileAttributes.HIDDEN
        return attrs or FileAttributes.NORMAL

    def get_last_write_time(self, path: str | os.PathLike[str]) -> datetime:
        """Return the last write time of *path* in UTC.

        Virtual paths all report the snapshot's authoring time.
        """
        full, relative = self._classify(path)
        if relative is None:
            return datetime.fromtimestamp(os.path.getmtime(full), tz=timezone.utc)
        return self._binding.snapshot.author_time

    def directory_exists(self, path: str | os.PathLike[str]) -> bool:
        full, relative = self._classify(path)
        if relative is None:
            return os.path.isdir(full)
        entry = self._resolve_entry(relative)
        return entry is not None and entry.mode is EntryMode.DIRECTORY

    def file_exists(self, path: str | os.PathLike[str]) -> bool:
        full, relative = self._classify(path)
        if relative is None:
            return os.path.isfile(full)
        entry = self._resolve_entry(relative)
        return entry is not None and entry.mode.is_file

    def file_or_directory_exists(self, path: str | os.PathLike[str]) -> bool:
        full, relative = self._classify(path)
        if relative is None:
            return os.path.exists(full)
        entry = self._resolve_entry(relative)
        return entry is not None and entry.mode is not EntryMode.NONEXISTENT
