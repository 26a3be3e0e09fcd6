"""forksync analyze command - classify every boilerplate file against the fork."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import click
from rich.table import Table

from forksync.cli.utils import open_run
from forksync.core.progress import get_console, pluralize, status
from forksync.sync.analysis import summarize
from forksync.sync.models import CustomizationSource, FileAnalysis, Likelihood, MergeActionKind

_ACTION_STYLES = {
    MergeActionKind.KEEP_FORK: "green",
    MergeActionKind.KEEP_BOILERPLATE: "cyan",
    MergeActionKind.DROP_FROM_FORK: "magenta",
    MergeActionKind.DROP_FROM_BOILERPLATE: "magenta",
    MergeActionKind.MANUAL: "yellow",
    MergeActionKind.UNDETERMINED: "red",
}

_RISK_STYLES = {
    Likelihood.LOW: "green",
    Likelihood.MEDIUM: "yellow",
    Likelihood.HIGH: "red",
}


def make_analysis_table(analyses: Sequence[FileAnalysis], *, show_all: bool = False) -> Table:
    """One row per file. keep-fork rows with low risk are hidden unless show_all."""
    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("path", style="white", overflow="fold")
    table.add_column("status")
    table.add_column("blob")
    table.add_column("risk")
    table.add_column("action")
    table.add_column("customization", style="dim")

    for a in analyses:
        quiet = (
            a.action.kind == MergeActionKind.KEEP_FORK
            and a.risk is not None
            and a.risk.likelihood == Likelihood.LOW
            and a.customization.source == CustomizationSource.NONE
        )
        if quiet and not show_all:
            continue
        if a.risk is None:
            risk_cell = "[dim]-[/dim]"
        else:
            style = _RISK_STYLES[a.risk.likelihood]
            risk_cell = f"[{style}]{a.risk.likelihood.value}[/{style}]"
        action_style = _ACTION_STYLES[a.action.kind]
        custom = _customization_cell(a)
        table.add_row(
            a.path,
            a.divergence.status.value if a.divergence else "-",
            a.blob_status.value if a.blob_status else "-",
            risk_cell,
            f"[{action_style}]{a.action.kind.value}[/{action_style}]",
            custom,
        )
    return table


def _customization_cell(analysis: FileAnalysis) -> str:
    lookup = analysis.customization
    if lookup.source == CustomizationSource.NONE:
        return ""
    if lookup.event is None:
        return lookup.source.value
    return f"{lookup.source.value}:{lookup.event.value}"


def print_summary(analyses: Sequence[FileAnalysis]) -> None:
    summary = summarize(analyses)
    console = get_console()
    console.print()
    status(f"Analyzed {pluralize(summary.total, 'file')}", style="success")
    for kind in MergeActionKind:
        count = summary.by_action.get(kind, 0)
        if count:
            status(f"{kind.value}: {count}", style="none", indent=2)
    if summary.detected_customizations:
        status(
            f"{pluralize(summary.detected_customizations, 'new customization')} detected",
            style="info",
        )
    if summary.stale_customizations:
        status(
            f"{pluralize(summary.stale_customizations, 'stale customization')} "
            "(boilerplate changed since recorded, review manually)",
            style="warning",
        )
    if summary.errors:
        status(f"{pluralize(summary.errors, 'file')} failed to analyze", style="error")


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output analyses as JSON")
@click.option("--all", "show_all", is_flag=True, help="List unchanged files too")
@click.option("--no-fetch", is_flag=True, help="Use the boilerplate refs already present")
def analyze_command(path: Path | None, as_json: bool, show_all: bool, no_fetch: bool) -> None:
    """Classify every boilerplate file and recommend a merge action.

    PATH is the fork's repository root. If not specified, auto-detects by
    walking up from the current directory. Newly detected customizations are
    recorded in the customization store.
    """
    run = open_run(path, fetch=not no_fetch)
    analyses = run.analyze()
    run.tracker.flush()

    if as_json:
        click.echo(json.dumps([a.to_dict() for a in analyses], indent=2))
        return

    get_console().print(make_analysis_table(analyses, show_all=show_all))
    print_summary(analyses)
