"""CLI output formatting helpers.

Plain YAML goes to stdout through click; the install plan and summary are
rendered with rich on the installer's stderr console.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from .install.orchestrator import InstallPlan, InstallSummary


def print_config_yaml(data: dict[str, Any], section: str | None = None) -> None:
    """Print config as YAML.

    Args:
        data: Configuration data
        section: Optional section name for header
    """
    if section:
        click.echo(f"{section}:")
        yaml_str = yaml.dump(data, default_flow_style=False, sort_keys=False)
        for line in yaml_str.splitlines():
            click.echo(f"  {line}")
    else:
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


def print_plan(console: Console, plan: InstallPlan) -> None:
    """Print what an install is about to do."""
    table = Table(title="Install plan", show_header=True, header_style="bold")
    table.add_column("Target")
    table.add_column("Destination")
    table.add_column("Categories")
    for target in plan.targets:
        categories = [c for c in plan.categories if target.supports(c)]
        table.add_row(
            escape(target.label),
            escape(str(target.root)),
            escape(", ".join(categories) or "-"),
        )
    console.print(table)

    if plan.bundles is not None:
        console.print(f"Stack bundles: {escape(', '.join(plan.bundles) or 'none')}")
    if plan.servers is not None:
        console.print(f"MCP servers: {escape(', '.join(plan.servers) or 'none')}")
    console.print(f"Conflict mode: {plan.conflict_label}")
    if plan.dry_run:
        console.print("[yellow]Dry run: nothing will be written[/yellow]")


def print_summary(console: Console, summary: InstallSummary) -> None:
    """Print the totals of a finished install."""
    report = summary.report
    verb = "Would install" if summary.dry_run else "Installed"
    console.print(
        f"[green]{verb}[/green] {len(report.installed)} new, "
        f"{len(report.overwritten)} overwritten, "
        f"{len(report.backups)} backed up, "
        f"{len(report.skipped)} skipped"
    )
    for record in report.backups:
        console.print(f"  backup: {escape(str(record.backup))}", highlight=False)
