from .repo import GitRepository
from .snapshot import Snapshot
from .tree import EntryMode, TreeEntry
from .revision import ComparisonTarget, resolve_range, resolve_revision, resolve_revision_or_tip
from .changes import ChangeKind, ChangeRecord, compute_changes, get_changed_files, to_paths
from .vfs import FileAccess, FileAttributes, FileMode, FileShare, Historical, Live, VirtualFileSystem
from .project import (
    CENTRAL_PACKAGE_FILE, DocumentEngine, EvaluationEngine, Project, ProjectDocument,
    load_directory_package_props, load_project,
)
from .exceptions import (
    EntryNotFoundError, InvalidModeError, NotGitRepositoryError, ReadOnlyFilesystemError,
    RevfsError, UnresolvedRevisionError,
)

__all__ = [
    "GitRepository", "Snapshot", "EntryMode", "TreeEntry",
    "ComparisonTarget", "resolve_range", "resolve_revision", "resolve_revision_or_tip",
    "ChangeKind", "ChangeRecord", "compute_changes", "get_changed_files", "to_paths",
    "FileAccess", "FileAttributes", "FileMode", "FileShare", "Historical", "Live", "VirtualFileSystem",
    "CENTRAL_PACKAGE_FILE", "DocumentEngine", "EvaluationEngine", "Project", "ProjectDocument",
    "load_directory_package_props", "load_project",
    "EntryNotFoundError", "InvalidModeError", "NotGitRepositoryError", "ReadOnlyFilesystemError",
    "RevfsError", "UnresolvedRevisionError",
]
