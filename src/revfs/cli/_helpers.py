"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
import os

import click

from ..exceptions import NotGitRepositoryError, UnresolvedRevisionError
from ..repo import GitRepository
from ..revision import resolve_revision_or_tip
from ..vfs import VirtualFileSystem


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_repo(ctx, param, value):
    """Click callback: store --repo value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["repo_path"] = value
    return value


def _repo_option(f):
    """Shared --repo/-r option decorator for all commands."""
    return click.option(
        "--repo", "-r", type=click.Path(file_okay=False), envvar="REVFS_REPO",
        help="Path to the git working tree (or set REVFS_REPO; default: .).",
        expose_value=False, callback=_store_repo, is_eager=True,
    )(f)


def _rev_option(f):
    """Shared --rev option: commit, tag, or branch to read from."""
    return click.option(
        "--rev", default="",
        help="Commit, tag, or branch to read from (default: working copy).",
    )(f)


def _require_repo(ctx) -> str:
    """Get the repo path from context, defaulting to the current directory."""
    return ctx.obj.get("repo_path") or os.curdir


def _open_repo(repo_path: str) -> GitRepository:
    try:
        return GitRepository.open(repo_path)
    except (FileNotFoundError, NotGitRepositoryError) as exc:
        raise click.ClickException(str(exc))


def _open_vfs(repo: GitRepository, rev: str) -> VirtualFileSystem:
    """Build an overlay bound to *rev*, or a live one when *rev* is blank."""
    try:
        snapshot = resolve_revision_or_tip(repo, rev, fallback_to_tip=False)
    except UnresolvedRevisionError as exc:
        raise click.ClickException(str(exc))
    return VirtualFileSystem(repo, snapshot)


def _display_path(repo: GitRepository, path: str) -> str:
    """Show paths inside the working tree relative to it."""
    root = repo.workdir
    if path == root:
        return os.curdir
    if path.startswith(root + os.sep):
        return path[len(root) + 1:]
    return path


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--repo", "-r", type=click.Path(file_okay=False), envvar="REVFS_REPO",
              help="Path to the git working tree (or set REVFS_REPO; default: .).",
              expose_value=False, callback=_store_repo, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """revfs: read a git working tree as it was at any revision.

    \b
    Quick start:
      revfs changes                    files changed since the last commit
      revfs changes --from v1 --to v2  files changed between two revisions
      revfs cat --rev v1 src/app.props file content at a revision
      revfs ls --rev main -R src       list a directory at a revision

    \b
    Paths inside the working tree are answered from the revision; paths
    outside it are always read from disk.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
