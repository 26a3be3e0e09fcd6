"""ForkSync CLI - forksync command."""

import click

from forksync import __version__
from forksync.cli.analyze import analyze_command
from forksync.cli.customizations import customizations_command
from forksync.cli.sync import abort_command, rebase_command, squash_command, sync_command
from forksync.core.logging import configure_logging, set_run_id


@click.group()
@click.version_option(version=__version__, prog_name="forksync")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ForkSync - keep a fork in step with the boilerplate it started from."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")
    ctx.obj["run_id"] = set_run_id()


cli.add_command(analyze_command, name="analyze")
cli.add_command(sync_command, name="sync")
cli.add_command(squash_command, name="squash")
cli.add_command(rebase_command, name="rebase")
cli.add_command(abort_command, name="abort")
cli.add_command(customizations_command, name="customizations")


if __name__ == "__main__":
    cli()
