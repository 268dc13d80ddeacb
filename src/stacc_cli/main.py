"""CLI main entry point."""

import click

from . import __version__
from .commands import config_group, install_command
from .shared.logging import configure_logging, level_for_verbosity


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to a file")
@click.pass_context
def cli(ctx: click.Context, verbose: int, json_output: bool, log_file: str | None) -> None:
    """stacc - install editor commands, rules, agents and MCP servers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["json_output"] = json_output
    ctx.obj["log_file"] = log_file
    configure_logging(level_for_verbosity(verbose), log_file=log_file)


cli.add_command(install_command)
cli.add_command(config_group)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"stacc version {__version__}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
