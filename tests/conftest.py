"""Shared fixtures for revfs tests."""

from __future__ import annotations

import time
from pathlib import Path

import pytest
from click.testing import CliRunner
from dulwich import porcelain
from dulwich.objects import Blob, Commit, Tree
from dulwich.repo import Repo

from revfs import GitRepository

AUTHOR = b"Test Author <author@example.com>"


class RepoBuilder:
    """Builds history in a non-bare repository through dulwich porcelain."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, files: dict[str, bytes | str]) -> None:
        for rel, data in files.items():
            path = self.root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(data, str):
                data = data.encode()
            path.write_bytes(data)

    def stage(self, *paths: str) -> None:
        porcelain.add(str(self.root), paths=[str(self.root / p) for p in paths])

    def commit(self, files: dict[str, bytes | str] | None = None, message: str = "update") -> str:
        """Write and stage *files*, commit, and return the commit hash."""
        if files:
            self.write(files)
            self.stage(*files)
        sha = porcelain.commit(
            str(self.root), message=message.encode(), author=AUTHOR, committer=AUTHOR,
        )
        return sha.decode()

    def set_ref(self, name: str, sha: str) -> None:
        with Repo(str(self.root)) as repo:
            repo.refs[name.encode()] = sha.encode()

    def commit_tree(self, entries: list[tuple[str, int, bytes]], message: str = "raw") -> str:
        """Commit a flat tree built by hand from ``(name, mode, data)`` entries.

        Lets tests create modes that porcelain never writes.  The commit
        is not attached to any ref.
        """
        with Repo(str(self.root)) as repo:
            store = repo.object_store
            tree = Tree()
            for name, mode, data in entries:
                if mode == 0o160000:
                    # gitlinks point at a commit in another repository
                    tree.add(name.encode(), mode, data)
                    continue
                blob = Blob.from_string(data)
                store.add_object(blob)
                tree.add(name.encode(), mode, blob.id)
            store.add_object(tree)
            commit = Commit()
            commit.tree = tree.id
            commit.parents = []
            commit.author = commit.committer = AUTHOR
            commit.author_time = commit.commit_time = int(time.time())
            commit.author_timezone = commit.commit_timezone = 0
            commit.message = f"{message}\n".encode()
            store.add_object(commit)
            return commit.id.decode()

    def open(self) -> GitRepository:
        return GitRepository.open(self.root)


@pytest.fixture
def builder(tmp_path):
    """An empty non-bare repository at ``tmp_path / "repo"``."""
    root = tmp_path / "repo"
    Repo.init(str(root), mkdir=True).close()
    return RepoBuilder(root)


@pytest.fixture
def history(builder):
    """Repository with two commits, tags v1/v2, and a 'feature' branch at v1.

    v1:
        a/b.txt = "X", a/sub/deep.props, readme.txt, build/Common.props
    v2:
        a/b.txt = "Y", c.txt added
    """
    v1 = builder.commit({
        "a/b.txt": "X",
        "a/sub/deep.props": "<Project />",
        "readme.txt": "readme",
        "build/Common.props": "<Project><PropertyGroup /></Project>",
    }, message="first")
    v2 = builder.commit({"a/b.txt": "Y", "c.txt": "new"}, message="second")
    builder.set_ref("refs/tags/v1", v1)
    builder.set_ref("refs/tags/v2", v2)
    builder.set_ref("refs/heads/feature", v1)
    builder.v1 = v1
    builder.v2 = v2
    return builder


@pytest.fixture
def repo(history):
    """Open :class:`GitRepository` over the ``history`` fixture."""
    with history.open() as r:
        yield r


@pytest.fixture
def runner():
    return CliRunner()
