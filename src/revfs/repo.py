"""GitRepository: working-tree repository handle and ref lookups."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from dulwich.errors import NotGitRepository
from dulwich.objects import Commit
from dulwich.objectspec import AmbiguousShortId, parse_commit
from dulwich.repo import Repo

from .exceptions import NotGitRepositoryError

if TYPE_CHECKING:
    from dulwich.index import Index
    from dulwich.object_store import BaseObjectStore

    from .snapshot import Snapshot

# "<rev>~2^2" style suffixes
_ANCESTRY_RE = re.compile(r"^(.+?)((?:[~^]\d*)+)$")
_ANCESTRY_STEP_RE = re.compile(r"([~^])(\d*)")


class GitRepository:
    """A git repository with a working tree, backed by dulwich.

    Instances own open pack files; use them as context managers (or call
    :meth:`close`) so the handle never outlives the operation that opened it.
    """

    def __init__(self, dulwich_repo: Repo):
        self._repo = dulwich_repo
        self._workdir = os.path.normpath(os.path.abspath(dulwich_repo.path))

    def __repr__(self) -> str:
        return f"GitRepository({self._workdir!r})"

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> GitRepository:
        """Open the repository whose working tree is rooted at *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            NotGitRepositoryError: If *path* is not a git working tree.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Repository not found: {path}")
        try:
            repo = Repo(str(path))
        except NotGitRepository:
            raise NotGitRepositoryError(f"Not a git repository: {path}") from None
        if repo.bare:
            repo.close()
            raise NotGitRepositoryError(f"Repository has no working tree: {path}")
        return cls(repo)

    def close(self) -> None:
        """Release file handles held by the object store."""
        self._repo.close()

    def __enter__(self) -> GitRepository:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def workdir(self) -> str:
        """Absolute, normalized path of the working tree root."""
        return self._workdir

    @property
    def object_store(self) -> BaseObjectStore:
        return self._repo.object_store

    def open_index(self) -> Index:
        return self._repo.open_index()

    def snapshot(self, commit: Commit) -> Snapshot:
        from .snapshot import Snapshot
        return Snapshot(self, commit)

    # --- Ref and commit lookups ---

    def head_tip(self) -> Commit | None:
        """Return the commit ``HEAD`` points at, or None for an unborn branch."""
        try:
            sha = self._repo.head()
        except KeyError:
            return None
        return self._repo[sha]

    def lookup_commit(self, spec: str) -> Commit | None:
        """Look a commit up by SHA, short SHA, tag, ref, or ``HEAD~n`` expression.

        Annotated tags are peeled.  ``~n`` follows first parents and ``^n``
        selects the n-th parent.  Returns None when nothing matches.
        """
        commit = self._parse_commit(spec)
        if commit is not None:
            return commit
        match = _ANCESTRY_RE.match(spec)
        if match is None:
            return None
        commit = self._parse_commit(match.group(1))
        for op, digits in _ANCESTRY_STEP_RE.findall(match.group(2)):
            if commit is None:
                break
            n = int(digits) if digits else 1
            if op == "~":
                for _ in range(n):
                    commit = self._parent(commit, 0)
                    if commit is None:
                        break
            elif n:
                commit = self._parent(commit, n - 1)
        return commit

    def _parse_commit(self, spec: str) -> Commit | None:
        try:
            commit = parse_commit(self._repo, spec.encode())
        except (KeyError, ValueError, IndexError, AmbiguousShortId):
            return None
        return commit if isinstance(commit, Commit) else None

    def _parent(self, commit: Commit, index: int) -> Commit | None:
        if index >= len(commit.parents):
            return None
        return self._repo[commit.parents[index]]

    def branch_tip(self, name: str) -> Commit | None:
        """Return the tip of local branch *name*, then of remote branch *name*."""
        refs = self._repo.refs
        for ref_name in (f"refs/heads/{name}", f"refs/remotes/{name}"):
            key = ref_name.encode()
            if key in refs:
                obj = self._repo[refs[key]]
                if isinstance(obj, Commit):
                    return obj
        return None
