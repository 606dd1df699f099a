"""Loading project files at a revision for an external evaluation engine."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import IO, Protocol

from .exceptions import EntryNotFoundError
from .repo import GitRepository
from .revision import resolve_revision_or_tip
from .vfs import FileAccess, FileMode, VirtualFileSystem

__all__ = [
    "CENTRAL_PACKAGE_FILE",
    "DocumentEngine",
    "EvaluationEngine",
    "Project",
    "ProjectDocument",
    "load_directory_package_props",
    "load_project",
]

logger = logging.getLogger(__name__)

CENTRAL_PACKAGE_FILE = "Directory.Packages.props"


@dataclass
class ProjectDocument:
    """A parsed project file.

    Attributes:
        root: Root XML element.
        full_path: Absolute path the document was loaded from.  Engines
            resolve relative imports against its directory, so it must be
            set before evaluation; documents parsed from a stream start
            without one.
    """

    root: ET.Element
    full_path: str | None = None

    @classmethod
    def parse(cls, stream: IO[bytes]) -> ProjectDocument:
        return cls(ET.parse(stream).getroot())

    @classmethod
    def from_text(cls, text: str) -> ProjectDocument:
        return cls(ET.fromstring(text))

    @property
    def directory(self) -> str:
        """Directory relative imports resolve against (the process cwd if unset)."""
        if self.full_path is None:
            return os.getcwd()
        return os.path.dirname(self.full_path)

    @property
    def tag(self) -> str:
        """Root element name without its XML namespace."""
        return self.root.tag.rpartition("}")[2]


@dataclass
class Project:
    """Result of evaluating a :class:`ProjectDocument`.

    Attributes:
        document: The evaluated document.
        commit: Commit hash the document was read at, or ``None`` for the
            working copy.
    """

    document: ProjectDocument
    commit: str | None = None

    @property
    def full_path(self) -> str | None:
        return self.document.full_path


class EvaluationEngine(Protocol):
    """What :func:`load_project` needs from a build-evaluation engine.

    Engines that resolve imports through a pluggable filesystem set
    ``supports_filesystem = True``; they must route every file access made
    during :meth:`evaluate` through *filesystem*, which is only valid until
    :meth:`evaluate` returns.  Engines without the attribute get the legacy
    single-file path and ``filesystem=None``.
    """

    def evaluate(self, document: ProjectDocument, filesystem: VirtualFileSystem | None) -> Project:
        ...


class DocumentEngine:
    """Default engine: no property or import evaluation, just the document."""

    supports_filesystem = True

    def evaluate(self, document: ProjectDocument, filesystem: VirtualFileSystem | None) -> Project:
        commit = None
        if filesystem is not None and filesystem.snapshot is not None:
            commit = filesystem.snapshot.commit_hash
        return Project(document, commit)


def _supports_filesystem(engine) -> bool:
    return bool(getattr(engine, "supports_filesystem", False))


def _project_path(root: str, project_path: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.path.join(root, os.fspath(project_path)))


def load_project(
    directory: str | os.PathLike[str],
    project_path: str | os.PathLike[str],
    revision: str | None = "",
    fallback_to_tip: bool = False,
    *,
    engine: EvaluationEngine | None = None,
) -> Project | None:
    """Load *project_path* as it exists at *revision* and evaluate it.

    A blank *revision* means the working copy, or the tip when
    *fallback_to_tip* is set.  Relative *project_path* values are taken
    relative to the repository root.

    Returns ``None`` when the project does not exist at that revision.

    Raises:
        UnresolvedRevisionError: If *revision* cannot be resolved.
    """
    if engine is None:
        engine = DocumentEngine()
    if _supports_filesystem(engine):
        return _load_project_core(directory, project_path, revision, fallback_to_tip, engine)
    return _load_project_legacy(directory, project_path, revision, fallback_to_tip, engine)


def _load_project_core(directory, project_path, revision, fallback_to_tip, engine) -> Project | None:
    with GitRepository.open(directory) as repo:
        snapshot = resolve_revision_or_tip(repo, revision, fallback_to_tip)
        vfs = VirtualFileSystem(repo, snapshot)
        full_path = _project_path(repo.workdir, project_path)

        if not vfs.file_exists(full_path):
            logger.debug("No project at %s (%s)", full_path, snapshot or "working copy")
            return None

        # The root document is read through the overlay; imports are then
        # resolved by the engine against full_path via the same overlay.
        try:
            with vfs.open_stream(full_path, FileMode.OPEN, FileAccess.READ) as stream:
                document = ProjectDocument.parse(stream)
        except EntryNotFoundError:
            # submodule entries count as files but carry no content here
            logger.debug("No content for %s (%s)", full_path, snapshot)
            return None
        document.full_path = full_path

        logger.debug("Evaluating %s (%s)", full_path, snapshot or "working copy")
        return engine.evaluate(document, vfs)


def _load_project_legacy(directory, project_path, revision, fallback_to_tip, engine) -> Project | None:
    with GitRepository.open(directory) as repo:
        snapshot = resolve_revision_or_tip(repo, revision, fallback_to_tip)
        full_path = _project_path(repo.workdir, project_path)

        if snapshot is None:
            if not os.path.isfile(full_path):
                return None
            with open(full_path, encoding="utf-8-sig") as f:
                text = f.read()
        else:
            relative = os.path.relpath(full_path, repo.workdir)
            if relative == os.pardir or relative.startswith(os.pardir + os.sep):
                return None
            relative = relative.replace(os.sep, "/")
            if not snapshot.is_file(relative):
                return None
            try:
                text = snapshot.read(relative).decode("utf-8-sig")
            except EntryNotFoundError:
                return None

    logger.debug("Evaluating %s without filesystem support", full_path)
    return engine.evaluate(ProjectDocument.from_text(text), None)


def _parent_directory(path: str) -> str | None:
    """Return the parent of *path*'s directory, or None past the filesystem root."""
    folder = os.path.dirname(path)
    parent = os.path.dirname(folder)
    if parent == folder:
        return None
    return parent


def load_directory_package_props(
    directory: str | os.PathLike[str],
    path_to_file: str | os.PathLike[str],
    revision: str | None = "",
    fallback_to_tip: bool = False,
    *,
    engine: EvaluationEngine | None = None,
) -> Project | None:
    """Load a central package management file, searching upward.

    Tries *path_to_file* first.  If it does not exist, retries with
    ``Directory.Packages.props`` in the parent of the file's directory, and
    so on, for as long as that parent is at least as long as the repository
    root path.  Engines without filesystem support only try *path_to_file*.
    """
    if engine is None:
        engine = DocumentEngine()
    root = os.path.normpath(os.path.abspath(directory))
    candidate = _project_path(root, path_to_file)

    project = load_project(root, candidate, revision, fallback_to_tip, engine=engine)
    if project is None and _supports_filesystem(engine):
        parent = _parent_directory(candidate)
        if parent is not None and len(parent) >= len(root):
            return load_directory_package_props(
                root,
                os.path.join(parent, CENTRAL_PACKAGE_FILE),
                revision,
                fallback_to_tip,
                engine=engine,
            )
    return project
