"""forksync sync / squash / rebase commands."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import click

from forksync.cli.analyze import print_summary
from forksync.cli.utils import RunContext, confirm_resolved, open_run
from forksync.core.errors import ForkSyncError, SyncError
from forksync.core.logging import get_logger
from forksync.core.progress import get_console, pluralize, status
from forksync.sync.models import FileAnalysis, SyncResult
from forksync.sync.orchestrator import SyncOrchestrator

log = get_logger("cli.sync")

_path_argument = click.argument(
    "path", default=None, required=False, type=click.Path(exists=True, path_type=Path)
)


def _orchestrator(run: RunContext, *, push: bool) -> SyncOrchestrator:
    return SyncOrchestrator(
        run.vcs,
        run.root,
        confirm_resolved,
        push_enabled=push and run.config.sync.push,
        remote=run.config.fork.remote_name,
        max_squash_previews=run.config.sync.max_squash_previews,
        ignore_dirty=run.metadata_dirs,
    )


def _report(result: SyncResult, as_json: bool) -> None:
    """Print the outcome and exit 1 unless the run finished."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        get_console().print()
        if result.ok:
            if result.applied:
                status(f"Applied {pluralize(len(result.applied), 'merge action')}", style="info")
            if result.commit_id:
                status(f"Committed {result.commit_id[:7]}", style="success")
            else:
                status("Nothing to commit", style="success")
            if result.pushed:
                status("Pushed", style="success")
        else:
            status(
                f"Aborted with {pluralize(len(result.unresolved_paths), 'unresolved file')}. "
                "The repository was left as is for inspection.",
                style="warning",
            )
    if not result.ok:
        err = SyncError.aborted_by_operator(list(result.unresolved_paths))
        log.warning("workflow_aborted", **err.to_dict())
        sys.exit(1)


def _guarded(action: str, fn: Callable[[], SyncResult]) -> SyncResult:
    try:
        return fn()
    except ForkSyncError as e:
        log.error("workflow_failed", workflow=action, error=e.message)
        raise click.ClickException(str(e)) from e


def _analyze_for_sync(run: RunContext, as_json: bool) -> list[FileAnalysis]:
    analyses = run.analyze()
    if not as_json:
        print_summary(analyses)
    return analyses


@click.command()
@_path_argument
@click.option("--no-push", is_flag=True, help="Commit locally without pushing")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before merging")
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON")
def sync_command(path: Path | None, no_push: bool, yes: bool, as_json: bool) -> None:
    """Merge the boilerplate into the fork's sync branch.

    Every file's recommended action is enforced on top of the merge. Files that
    cannot be decided automatically are left for you to resolve; the command
    waits until you do or abort.
    """
    run = open_run(path)
    analyses = _analyze_for_sync(run, as_json)

    fork = run.config.fork
    if not yes and not click.confirm(
        f"Merge {run.merge_source} into {fork.sync_branch}?", default=True, err=True
    ):
        click.echo("Cancelled", err=True)
        return

    def _run() -> SyncResult:
        return _orchestrator(run, push=not no_push).run_sync(
            analyses, run.merge_source, fork.sync_branch, base_branch=fork.branch
        )

    result = _guarded("sync", _run)
    if result.ok:
        run.tracker.flush(synced_at=datetime.now(UTC))
    _report(result, as_json)


@click.command()
@_path_argument
@click.option("--no-push", is_flag=True, help="Commit locally without pushing")
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON")
def squash_command(path: Path | None, no_push: bool, as_json: bool) -> None:
    """Fold the sync branch into the fork's branch as a single commit."""
    run = open_run(path, fetch=False)
    fork = run.config.fork
    result = _guarded(
        "squash",
        lambda: _orchestrator(run, push=not no_push).squash(
            [], fork.sync_branch, fork.branch, run.merge_source
        ),
    )
    _report(result, as_json)


@click.command()
@_path_argument
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON")
def rebase_command(path: Path | None, as_json: bool) -> None:
    """Replay the fork's branch on top of the sync branch.

    Rewritten history is never pushed.
    """
    run = open_run(path, fetch=False)
    analyses = _analyze_for_sync(run, as_json)
    fork = run.config.fork
    result = _guarded(
        "rebase",
        lambda: _orchestrator(run, push=False).rebase(analyses, fork.sync_branch, fork.branch),
    )
    _report(result, as_json)


@click.command()
@_path_argument
def abort_command(path: Path | None) -> None:
    """Undo a merge or rebase left behind by an aborted run.

    The fork is reset to its last commit, so any other uncommitted change is lost.
    """
    run = open_run(path, fetch=False)
    try:
        undone = run.vcs.abort(run.root)
    except ForkSyncError as e:
        raise click.ClickException(str(e)) from e
    if undone:
        status(f"Aborted the interrupted {undone}", style="success")
    else:
        status("Nothing to abort", style="info")
