"""Tests for tree lookups, walks, and filemode conversion."""

import pytest
from dulwich.object_store import MemoryObjectStore
from dulwich.objects import Blob, Tree

from revfs import EntryMode, InvalidModeError
from revfs.tree import (
    _is_root_path,
    _normalize_path,
    entry_at_path,
    read_blob_at_path,
    walk_entries,
)

SUBMODULE_SHA = b"1" * 40


def _tree(store, spec):
    """Build a tree from ``{name: bytes | (mode, bytes) | dict}``."""
    tree = Tree()
    for name, value in spec.items():
        if isinstance(value, dict):
            tree.add(name.encode(), EntryMode.DIRECTORY, _tree(store, value))
            continue
        mode, data = value if isinstance(value, tuple) else (EntryMode.REGULAR, value)
        if mode == EntryMode.GITLINK:
            tree.add(name.encode(), mode, data)
            continue
        blob = Blob.from_string(data)
        store.add_object(blob)
        tree.add(name.encode(), mode, blob.id)
    store.add_object(tree)
    return tree.id


class CountingStore(MemoryObjectStore):
    def __init__(self):
        super().__init__()
        self.reads = []

    def __getitem__(self, sha):
        self.reads.append(sha)
        return super().__getitem__(sha)


@pytest.fixture
def store():
    return MemoryObjectStore()


@pytest.fixture
def root(store):
    return _tree(store, {
        "a": {
            "b.txt": b"X",
            "sub": {"deep.txt": b"deep"},
        },
        "run.sh": (EntryMode.EXECUTABLE, b"#!/bin/sh\n"),
        "legacy.txt": (EntryMode.GROUP_WRITABLE, b"old"),
        "link": (EntryMode.SYMLINK, b"a/b.txt"),
        "vendor": (EntryMode.GITLINK, SUBMODULE_SHA),
        "z.txt": b"z",
    })


# ---------------------------------------------------------------------------
# EntryMode
# ---------------------------------------------------------------------------

class TestEntryMode:
    @pytest.mark.parametrize("raw, expected", [
        (0o040000, EntryMode.DIRECTORY),
        (0o100644, EntryMode.REGULAR),
        (0o100664, EntryMode.GROUP_WRITABLE),
        (0o100755, EntryMode.EXECUTABLE),
        (0o120000, EntryMode.SYMLINK),
        (0o160000, EntryMode.GITLINK),
    ])
    def test_known_modes(self, raw, expected):
        assert EntryMode.from_filemode(raw) is expected

    def test_unknown_mode_raises(self):
        with pytest.raises(InvalidModeError) as exc_info:
            EntryMode.from_filemode(0o100600, "odd.txt")
        assert exc_info.value.mode == 0o100600
        assert exc_info.value.path == "odd.txt"
        assert "0o100600" in str(exc_info.value)

    def test_invalid_mode_is_value_error(self):
        with pytest.raises(ValueError):
            EntryMode.from_filemode(0o777)

    def test_file_modes(self):
        for mode in (EntryMode.REGULAR, EntryMode.GROUP_WRITABLE, EntryMode.EXECUTABLE,
                     EntryMode.SYMLINK, EntryMode.GITLINK):
            assert mode.is_file
            assert not mode.is_dir

    def test_directory_and_nonexistent(self):
        assert EntryMode.DIRECTORY.is_dir
        assert not EntryMode.DIRECTORY.is_file
        assert not EntryMode.NONEXISTENT.is_file
        assert not EntryMode.NONEXISTENT.is_dir

    def test_kind(self):
        assert EntryMode.DIRECTORY.kind == "tree"
        assert EntryMode.GROUP_WRITABLE.kind == "blob"
        assert EntryMode.GITLINK.kind == "commit"
        assert EntryMode.NONEXISTENT.kind is None


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

class TestPaths:
    @pytest.mark.parametrize("path", ["", ".", "/", "//"])
    def test_root_paths(self, path):
        assert _is_root_path(path)

    def test_not_root(self):
        assert not _is_root_path("a")

    def test_normalize_strips_slashes(self):
        assert _normalize_path("/a/b/") == "a/b"

    @pytest.mark.parametrize("path", ["a//b", "a/../b", "./a", ""])
    def test_normalize_rejects(self, path):
        with pytest.raises(ValueError):
            _normalize_path(path)


# ---------------------------------------------------------------------------
# entry_at_path / read_blob_at_path
# ---------------------------------------------------------------------------

class TestEntryAtPath:
    def test_root_is_synthetic_directory(self, store, root):
        entry = entry_at_path(store, root, "")
        assert entry.name == ""
        assert entry.mode is EntryMode.DIRECTORY
        assert entry.sha == root

    def test_nested_file(self, store, root):
        entry = entry_at_path(store, root, "a/b.txt")
        assert entry.name == "b.txt"
        assert entry.mode is EntryMode.REGULAR

    def test_directory(self, store, root):
        assert entry_at_path(store, root, "a/sub").mode is EntryMode.DIRECTORY

    def test_missing(self, store, root):
        assert entry_at_path(store, root, "a/nope.txt") is None

    def test_through_file_is_missing(self, store, root):
        assert entry_at_path(store, root, "z.txt/child") is None

    def test_through_gitlink_is_missing(self, store, root):
        assert entry_at_path(store, root, "vendor/README") is None

    def test_special_modes(self, store, root):
        assert entry_at_path(store, root, "run.sh").mode is EntryMode.EXECUTABLE
        assert entry_at_path(store, root, "legacy.txt").mode is EntryMode.GROUP_WRITABLE
        assert entry_at_path(store, root, "link").mode is EntryMode.SYMLINK
        assert entry_at_path(store, root, "vendor").mode is EntryMode.GITLINK

    def test_unknown_mode_raises(self, store):
        tree_id = _tree(store, {"odd": (0o100600, b"x")})
        with pytest.raises(InvalidModeError):
            entry_at_path(store, tree_id, "odd")


class TestReadBlob:
    def test_read(self, store, root):
        assert read_blob_at_path(store, root, "a/sub/deep.txt") == b"deep"

    def test_symlink_reads_target(self, store, root):
        assert read_blob_at_path(store, root, "link") == b"a/b.txt"

    def test_missing(self, store, root):
        with pytest.raises(FileNotFoundError):
            read_blob_at_path(store, root, "nope")

    def test_directory(self, store, root):
        with pytest.raises(IsADirectoryError):
            read_blob_at_path(store, root, "a")

    def test_gitlink_has_no_content(self, store, root):
        with pytest.raises(FileNotFoundError):
            read_blob_at_path(store, root, "vendor")


# ---------------------------------------------------------------------------
# Walks
# ---------------------------------------------------------------------------

class TestWalkEntries:
    def test_order_lists_directory_before_descending(self, store):
        root = _tree(store, {"a": {"b.txt": b"X", "sub": {"deep": b"d"}}, "z.txt": b"z"})
        paths = [p for p, _ in walk_entries(store, root)]
        assert paths == ["a", "z.txt", "a/b.txt", "a/sub", "a/sub/deep"]

    def test_non_recursive(self, store):
        root = _tree(store, {"a": {"b.txt": b"X"}, "z.txt": b"z"})
        assert [p for p, _ in walk_entries(store, root, recursive=False)] == ["a", "z.txt"]

    def test_does_not_descend_into_gitlinks(self, store, root):
        paths = [p for p, _ in walk_entries(store, root)]
        assert "vendor" in paths
        assert not any(p.startswith("vendor/") for p in paths)

    def test_prefix(self, store):
        root = _tree(store, {"b.txt": b"X"})
        assert [p for p, _ in walk_entries(store, root, "a")] == ["a/b.txt"]

    def test_lazy(self):
        store = CountingStore()
        root = _tree(store, {"a": {"b.txt": b"X"}, "z.txt": b"z"})
        store.reads.clear()
        it = walk_entries(store, root)
        assert store.reads == []
        assert next(it)[0] == "a"
        assert store.reads == [root]
        it.close()
