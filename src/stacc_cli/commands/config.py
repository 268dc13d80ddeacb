"""Config commands - show and edit persistent installer defaults."""

from __future__ import annotations

import json
import sys

import click

from .. import config as cli_config
from ..errors import UsageError
from ..formatters import print_config_yaml


@click.group("config")
def config_group() -> None:
    """Manage installer defaults (~/.stacc/config.yaml)."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective configuration and where each value comes from."""
    loaded = cli_config.load_config()
    values = loaded.as_dict()
    sources = {key: loaded.get_source(key) for key in values}

    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    if obj.get("json_output"):
        data = {"path": str(cli_config.get_config_path()), "values": values, "sources": sources}
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("stacc Configuration")
    click.echo(f"Config file: {cli_config.get_config_path()}\n")
    print_config_yaml(values)
    click.echo("Sources:")
    for key, source in sources.items():
        click.echo(f"  {key}: {source}")


@config_group.command("set")
@click.argument("key", type=click.Choice(cli_config.CONFIG_KEYS))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a config value (lists are comma-separated)."""
    try:
        cli_config.save_config(key, value)
    except UsageError as e:
        click.echo(f"Error: {e.message}", err=True)
        if e.hint:
            click.echo(e.hint, err=True)
        sys.exit(e.exit_code)
    click.echo(f"Set {key} in {cli_config.get_config_path()}")


@config_group.command("unset")
@click.argument("key", type=click.Choice(cli_config.CONFIG_KEYS))
def config_unset(key: str) -> None:
    """Remove a config value, restoring its default."""
    if cli_config.unset_config(key):
        click.echo(f"Unset {key}")
    else:
        click.echo(f"{key} is not set in {cli_config.get_config_path()}")
