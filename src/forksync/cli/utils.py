"""CLI utilities."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import click
import questionary

from forksync.config import ForkSyncConfig, load_config
from forksync.config.constants import CONFIG_DIR_NAME
from forksync.core.errors import ConfigError, ForkSyncError
from forksync.core.logging import configure_logging, get_logger
from forksync.core.progress import get_console, pluralize, spinner
from forksync.sync.analysis import Analyzer
from forksync.sync.models import FileAnalysis, RepoRef
from forksync.sync.preflight import reconcile_remote
from forksync.sync.swizzle import CustomizationStore, ManualOverrides, SwizzleTracker
from forksync.sync.vcs import GitVersionControl

log = get_logger("cli")


def find_repo_root(start_path: Path | None = None) -> Path:
    """Find the git repository root from the given path.

    Walks up the directory tree looking for a .git entry.
    If start_path is None, uses the current working directory.

    Raises:
        click.ClickException: If not inside a git repository
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent

    if (current / ".git").exists():
        return current

    raise click.ClickException(
        f"Not inside a git repository: {start_path}\n"
        "ForkSync commands must be run from within the fork's repository."
    )


@dataclass
class RunContext:
    """Everything one command needs: config, repositories and the customization store."""

    root: Path
    config: ForkSyncConfig
    vcs: GitVersionControl
    boilerplate: RepoRef
    fork: RepoRef
    merge_source: str
    tracker: SwizzleTracker

    @property
    def store(self) -> CustomizationStore:
        return self.tracker.store

    @property
    def metadata_dirs(self) -> list[str]:
        """Fork directories forksync writes to itself. Uncommitted changes there are fine."""
        return sorted({CONFIG_DIR_NAME, self.config.customizations.metadata_dir})

    def analyzer(self) -> Analyzer:
        return Analyzer(self.vcs, self.tracker, self.config.analysis)

    def analyze(self) -> list[FileAnalysis]:
        try:
            with spinner(f"Analyzing {self.boilerplate.ref} against {self.fork.ref}"):
                return self.analyzer().analyze(self.boilerplate, self.fork)
        except ForkSyncError as e:
            log.error("analysis_failed", error=e.error_name, reason=e.message)
            raise click.ClickException(str(e)) from e


def open_run(path: Path | None, *, fetch: bool = True) -> RunContext:
    """Load config for the fork at path and wire the engine up.

    The boilerplate is reached through a remote of the fork. When
    ``boilerplate.path`` is configured, that local checkout is analyzed
    directly and also registered as the remote so its commits can be merged.
    """
    root = find_repo_root(path)
    try:
        config = load_config(root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx = click.get_current_context(silent=True)
    if not (ctx and ctx.obj and ctx.obj.get("verbose")):
        configure_logging(config=config.logging)

    fork_root = (root / config.fork.path).resolve()
    vcs = GitVersionControl(fork_root)
    bp = config.boilerplate
    source = f"{bp.remote_name}/{bp.branch}"

    local = (root / Path(bp.path).expanduser()).resolve() if bp.path else None
    url = str(local) if local else bp.url
    try:
        if local is not None and not local.exists():
            raise ConfigError.file_not_found(str(local))
        if not url and not vcs.has_remote(fork_root, bp.remote_name):
            raise ConfigError.missing_required("boilerplate.url")
        if url:
            reconcile_remote(
                vcs, fork_root, bp.remote_name, url, overwrite=bp.overwrite_remote_url
            )
        if fetch and vcs.has_remote(fork_root, bp.remote_name):
            with spinner(f"Fetching {bp.remote_name}"):
                vcs.fetch(fork_root, bp.remote_name)
    except ForkSyncError as e:
        raise click.ClickException(str(e)) from e

    if local is not None:
        boilerplate = RepoRef(local, bp.branch)
    else:
        boilerplate = RepoRef(fork_root, source)

    store = CustomizationStore.for_fork(fork_root, config.customizations)
    tracker = SwizzleTracker(store, ManualOverrides.from_config(config.overrides))
    log.debug("run_opened", fork=str(fork_root), boilerplate=str(boilerplate.path), source=source)
    return RunContext(
        root=fork_root,
        config=config,
        vcs=vcs,
        boilerplate=boilerplate,
        fork=RepoRef(fork_root, config.fork.branch),
        merge_source=source,
        tracker=tracker,
    )


def confirm_resolved(paths: Sequence[str]) -> bool:
    """Block until the operator resolves the listed conflicts or aborts."""
    console = get_console()
    console.print()
    count = pluralize(len(paths), "conflicted file")
    console.print(f"[bold yellow]{count} need manual resolution[/bold yellow]")
    for p in paths:
        console.print(f"  [cyan]•[/cyan] {p}")
    console.print()

    answer = questionary.select(
        "Resolve and stage them in another terminal, then continue.",
        choices=[
            questionary.Choice("Continue, conflicts are resolved", value=True),
            questionary.Choice("Abort, leave the repository as is", value=False),
        ],
        style=questionary.Style(
            [
                ("question", "bold"),
                ("highlighted", "fg:cyan bold"),
                ("selected", "fg:cyan"),
            ]
        ),
    ).ask()
    return bool(answer)
