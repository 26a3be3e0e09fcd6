"""forksync customizations command - list recorded customizations."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.table import Table

from forksync.cli.utils import find_repo_root
from forksync.config import load_config
from forksync.core.errors import ConfigError
from forksync.core.progress import get_console, pluralize, status
from forksync.sync.swizzle import CustomizationStore


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def customizations_command(path: Path | None, as_json: bool) -> None:
    """List the customizations recorded for this fork."""
    root = find_repo_root(path)
    try:
        config = load_config(root)
        fork_root = (root / config.fork.path).resolve()
        store = CustomizationStore.for_fork(fork_root, config.customizations)
        records = store.entries()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        document = store.load()
        click.echo(
            json.dumps(
                {
                    "last_synced_at": (
                        document.last_synced_at.isoformat() if document.last_synced_at else None
                    ),
                    "entries": [r.model_dump(mode="json") for r in records],
                },
                indent=2,
            )
        )
        return

    console = get_console()
    if not records:
        status("No customizations recorded", style="info")
        return

    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("path", style="white", overflow="fold")
    table.add_column("event", style="cyan")
    table.add_column("boilerplate commit", style="dim")
    table.add_column("recorded", style="dim")
    for r in records:
        table.add_row(
            r.path,
            r.event.value,
            r.boilerplate_last_commit_id[:7],
            r.recorded_at.isoformat(timespec="seconds"),
        )
    console.print(table)
    status(f"{pluralize(len(records), 'customization')} in {store.path}", style="success")
