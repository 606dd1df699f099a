"""Revision and revision-range resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import UnresolvedRevisionError

if TYPE_CHECKING:
    from .repo import GitRepository
    from .snapshot import Snapshot

__all__ = [
    "ComparisonTarget",
    "is_blank",
    "resolve_range",
    "resolve_revision",
    "resolve_revision_or_tip",
]

logger = logging.getLogger(__name__)


def is_blank(spec: str | None) -> bool:
    """Return True for ``None``, ``""``, or a whitespace-only revision."""
    return spec is None or not spec.strip()


def _resolve_tip(repo: GitRepository) -> Snapshot:
    commit = repo.head_tip()
    if commit is None:
        raise UnresolvedRevisionError("HEAD", repo.workdir)
    return repo.snapshot(commit)


def _resolve_strict(repo: GitRepository, spec: str) -> Snapshot:
    """Resolve *spec* as a commit first, then as a branch name."""
    commit = repo.lookup_commit(spec)
    if commit is None:
        commit = repo.branch_tip(spec)
    if commit is None:
        raise UnresolvedRevisionError(spec, repo.workdir)
    logger.debug("Resolved %s to %s", spec, commit.id.decode())
    return repo.snapshot(commit)


def resolve_revision(repo: GitRepository, spec: str | None) -> Snapshot:
    """Resolve *spec* to a :class:`Snapshot`.

    A blank *spec* means the repository tip.  Otherwise *spec* is looked up
    as a commit (full or short SHA, tag, ref, ``HEAD~n``) and then as a
    local or remote branch name.

    Raises:
        UnresolvedRevisionError: If nothing matches, or the tip is requested
            on a repository without commits.
    """
    if is_blank(spec):
        return _resolve_tip(repo)
    return _resolve_strict(repo, spec)


def resolve_revision_or_tip(
    repo: GitRepository, spec: str | None, fallback_to_tip: bool
) -> Snapshot | None:
    """Like :func:`resolve_revision`, but a blank *spec* yields ``None``
    unless *fallback_to_tip* is set."""
    if is_blank(spec):
        return _resolve_tip(repo) if fallback_to_tip else None
    return _resolve_strict(repo, spec)


@dataclass(frozen=True, slots=True)
class ComparisonTarget:
    """The two sides of a change comparison.

    Attributes:
        base: The older snapshot, or ``None`` to compare *head* against the
            working copy and index.
        head: The newer snapshot.
    """

    base: Snapshot | None
    head: Snapshot

    @property
    def against_working_copy(self) -> bool:
        return self.base is None


def resolve_range(repo: GitRepository, from_spec: str | None, to_spec: str | None) -> ComparisonTarget:
    """Turn a ``from``/``to`` pair into a :class:`ComparisonTarget`.

    *to_spec* falls back to the tip when blank.  A blank *from_spec* selects
    working-copy mode; a non-blank one must resolve.
    """
    head = resolve_revision(repo, to_spec)
    if is_blank(from_spec):
        logger.debug("Comparing working copy against %s", head.commit_hash)
        return ComparisonTarget(None, head)
    base = _resolve_strict(repo, from_spec)
    logger.debug("Comparing %s..%s", base.commit_hash, head.commit_hash)
    return ComparisonTarget(base, head)
