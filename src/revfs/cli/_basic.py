"""Basic commands: changes, cat, ls, stat, project."""

from __future__ import annotations

import json
import sys
import xml.etree.ElementTree as ET

import click

from ..changes import compute_changes, to_paths
from ..exceptions import RevfsError
from ..project import load_directory_package_props, load_project
from ..revision import resolve_range
from ..tree import _normalize_path
from ..vfs import FileAttributes
from ._helpers import (
    main,
    _display_path,
    _open_repo,
    _open_vfs,
    _repo_option,
    _require_repo,
    _rev_option,
    _status,
)


# ---------------------------------------------------------------------------
# changes
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.option("--from", "from_rev", default="",
              help="Base revision (default: compare against the working copy).")
@click.option("--to", "to_rev", default="",
              help="Head revision (default: HEAD).")
@click.option("--path", "paths", multiple=True,
              help="Only report changes at or under this repo path (repeatable).")
@click.option("--relative", is_flag=True, default=False,
              help="Print paths relative to the working tree.")
@click.pass_context
def changes(ctx, from_rev, to_rev, paths, relative):
    """List files changed between two revisions.

    \b
    Without --from, compares --to (default HEAD) against the working copy
    and index: staged and unstaged edits are reported, untracked files
    are not.
    """
    try:
        filters = [_normalize_path(p) for p in paths] or None
    except ValueError as exc:
        raise click.ClickException(f"Invalid path: {exc}")

    with _open_repo(_require_repo(ctx)) as repo:
        try:
            target = resolve_range(repo, from_rev, to_rev)
        except RevfsError as exc:
            raise click.ClickException(str(exc))
        if target.against_working_copy:
            _status(ctx, f"Comparing working copy against {target.head.commit_hash[:7]}")
        else:
            _status(ctx, f"Comparing {target.base.commit_hash[:7]}..{target.head.commit_hash[:7]}")
        try:
            records = compute_changes(repo, target, filters)
        except RevfsError as exc:
            raise click.ClickException(str(exc))
        for path in to_paths(records, repo.workdir):
            click.echo(_display_path(repo, path) if relative else path)


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("paths", nargs=-1, required=True)
@_rev_option
@click.pass_context
def cat(ctx, paths, rev):
    """Concatenate file contents to stdout."""
    with _open_repo(_require_repo(ctx)) as repo:
        vfs = _open_vfs(repo, rev)
        for path in paths:
            try:
                with vfs.open_stream(path) as f:
                    data = f.read()
            except FileNotFoundError:
                raise click.ClickException(f"File not found: {path}")
            except IsADirectoryError:
                raise click.ClickException(f"{path} is a directory, not a file")
            except RevfsError as exc:
                raise click.ClickException(str(exc))
            sys.stdout.buffer.write(data)


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("path", required=False, default=".")
@_rev_option
@click.option("--pattern", default="*", help="Case-insensitive name glob (default: *).")
@click.option("-R", "--recursive", is_flag=True, default=False,
              help="Descend into subdirectories.")
@click.option("--dirs", "kind", flag_value="dirs", help="Only list directories.")
@click.option("--files", "kind", flag_value="files", help="Only list files.")
@click.pass_context
def ls(ctx, path, rev, pattern, recursive, kind):
    """List entries of a directory."""
    with _open_repo(_require_repo(ctx)) as repo:
        vfs = _open_vfs(repo, rev)
        if kind == "dirs":
            entries = vfs.enumerate_directories(path, pattern, recursive)
        elif kind == "files":
            entries = vfs.enumerate_files(path, pattern, recursive)
        else:
            entries = vfs.enumerate_entries(path, pattern, recursive)
        try:
            for entry in entries:
                click.echo(_display_path(repo, entry))
        except FileNotFoundError:
            raise click.ClickException(f"Path not found: {path}")
        except NotADirectoryError:
            raise click.ClickException(f"Not a directory: {path}")
        except RevfsError as exc:
            raise click.ClickException(str(exc))


# ---------------------------------------------------------------------------
# stat
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("path")
@_rev_option
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
@click.pass_context
def stat(ctx, path, rev, as_json):
    """Show existence, attributes, and last write time of PATH."""
    with _open_repo(_require_repo(ctx)) as repo:
        vfs = _open_vfs(repo, rev)
        try:
            exists = vfs.file_or_directory_exists(path)
        except RevfsError as exc:
            raise click.ClickException(str(exc))
        if not exists:
            raise click.ClickException(f"Path not found: {path}")
        attrs = vfs.get_attributes(path)
        info = {
            "path": path,
            "virtual": vfs.is_virtual(path),
            "type": "directory" if vfs.directory_exists(path) else "file",
            "attributes": [a.name for a in FileAttributes if a in attrs],
            "mtime": vfs.get_last_write_time(path).isoformat(),
        }
    if as_json:
        click.echo(json.dumps(info, indent=2))
    else:
        for key in ("path", "type", "virtual", "attributes", "mtime"):
            value = info[key]
            if isinstance(value, list):
                value = ",".join(value)
            click.echo(f"{key}: {value}")


# ---------------------------------------------------------------------------
# project
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("path")
@_rev_option
@click.option("--head", "fallback_to_tip", is_flag=True, default=False,
              help="Without --rev, read from HEAD instead of the working copy.")
@click.option("--central", is_flag=True, default=False,
              help="Search parent directories for Directory.Packages.props.")
@click.pass_context
def project(ctx, path, rev, fallback_to_tip, central):
    """Load a project file at a revision and print its path and root element."""
    loader = load_directory_package_props if central else load_project
    try:
        result = loader(_require_repo(ctx), path, rev, fallback_to_tip)
    except (FileNotFoundError, RevfsError) as exc:
        raise click.ClickException(str(exc))
    except ET.ParseError as exc:
        raise click.ClickException(f"Malformed project file {path}: {exc}")
    if result is None:
        raise click.ClickException(f"Project not found: {path}")
    _status(ctx, f"Loaded at {result.commit or 'working copy'}")
    click.echo(f"{result.full_path}\t{result.document.tag}")
