"""Install command - copy stacc assets into editor configuration directories.

Implements `stacc install`: picks editors, scope and categories (from
flags, or interactively), then installs commands, rules, agents, skills,
stack bundles, hooks and MCP servers for every selected editor.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from .. import config as cli_config
from ..errors import InstallerError, UsageError
from ..install.bridge import BRIDGE_CHOICES, select_bridge
from ..install.conflicts import CONFLICT_MODES
from ..install.orchestrator import InstallRequest, Orchestrator
from ..install.source import locate_source
from ..install.targets import EDITOR_NAMES
from ..shared.cleanup import exit_handler
from ..shared.logging import configure_logging, get_logger, level_for_verbosity
from ..terminal.prompter import TerminalPrompter
from ..terminal.session import is_interactive

logger = get_logger(__name__)

EXIT_INTERRUPTED = 130


def _split(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return cli_config.split_list(value)


def build_request(
    editors: list[str],
    all_editors: bool,
    scope: str | None,
    categories: str | None,
    bundles: str | None,
    servers: str | None,
    conflict: str | None,
    non_interactive: bool,
    dry_run: bool,
    defaults: cli_config.CLIConfig,
) -> InstallRequest:
    """Merge flags with configured defaults.

    Configured editors, scope, categories and conflict mode only fill in
    for a non-interactive run; an interactive run asks instead.

    Raises:
        UsageError: If editor flags conflict
    """
    if all_editors and editors:
        raise UsageError("--all-editors cannot be combined with individual editor flags")
    selected_editors: list[str] | None = list(EDITOR_NAMES) if all_editors else editors or None

    request = InstallRequest(
        editors=selected_editors,
        scope=scope,  # type: ignore[arg-type]
        categories=_split(categories),
        bundles=_split(bundles),
        servers=_split(servers),
        conflict=conflict,
        non_interactive=non_interactive,
        dry_run=dry_run,
    )
    if non_interactive:
        if request.editors is None:
            request.editors = list(defaults.editors)
        if request.scope is None:
            request.scope = defaults.scope  # type: ignore[assignment]
        if request.categories is None:
            request.categories = list(defaults.categories)
        if request.conflict is None:
            request.conflict = defaults.conflict
    elif request.conflict is None and not defaults.is_default("conflict"):
        request.conflict = defaults.conflict
    return request


@click.command("install")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="stacc repository root containing configs/ (default: cwd, else download)",
)
@click.option("--cursor", is_flag=True, help="Install for Cursor")
@click.option("--claude", is_flag=True, help="Install for Claude Code")
@click.option("--codex", is_flag=True, help="Install for Codex")
@click.option("--opencode", is_flag=True, help="Install for OpenCode")
@click.option("--all-editors", is_flag=True, help="Install for every supported editor")
@click.option("--global", "scope", flag_value="global", help="Install into the home directory")
@click.option(
    "--project", "scope", flag_value="project", help="Install into the current directory"
)
@click.option("--categories", default=None, help="Comma-separated categories to install")
@click.option("--bundles", default=None, help="Comma-separated stack bundles (default: all)")
@click.option("--servers", default=None, help="Comma-separated MCP servers (default: all)")
@click.option(
    "--conflict",
    type=click.Choice(CONFLICT_MODES),
    default=None,
    help="How to handle existing files",
)
@click.option(
    "-y",
    "--yes",
    "--non-interactive",
    "non_interactive",
    is_flag=True,
    help="Never prompt; use flags, configured defaults and safe fallbacks",
)
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv)")
@click.option(
    "--bridge",
    type=click.Choice(BRIDGE_CHOICES),
    default=None,
    help="MCP config strategy: jq, text, or auto-detect",
)
@click.pass_context
def install_command(
    ctx: click.Context,
    root: Path | None,
    cursor: bool,
    claude: bool,
    codex: bool,
    opencode: bool,
    all_editors: bool,
    scope: str | None,
    categories: str | None,
    bundles: str | None,
    servers: str | None,
    conflict: str | None,
    non_interactive: bool,
    dry_run: bool,
    verbose: int,
    bridge: str | None,
) -> None:
    """Install stacc commands, rules, agents, skills and MCP servers.

    Without flags every choice is asked interactively. When no terminal is
    attached (or with --yes) configured defaults are used instead: Cursor
    and Claude Code, global scope, all categories, conflict mode backup.

    \b
    Examples:
      stacc install                              # Interactive
      stacc install --cursor --project --yes     # Cursor, current project
      stacc install --all-editors --categories rules,mcps --conflict skip
      stacc install --claude --global --dry-run  # Show what would change
    """
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    if verbose > obj.get("verbose", 0):
        configure_logging(level_for_verbosity(verbose), log_file=obj.get("log_file"))

    console = Console(stderr=True)
    exit_handler.install()

    flagged = [
        name for name, flag in zip(EDITOR_NAMES, (cursor, claude, codex, opencode)) if flag
    ]

    try:
        defaults = cli_config.load_config()
        interactive = not non_interactive and is_interactive()
        request = build_request(
            flagged,
            all_editors,
            scope or None,
            categories,
            bundles,
            servers,
            conflict,
            not interactive,
            dry_run,
            defaults,
        )
        logger.info(
            "install_requested",
            editors=request.editors,
            scope=request.scope,
            categories=request.categories,
            non_interactive=request.non_interactive,
            dry_run=dry_run,
        )

        source = locate_source(root, defaults.source_url)
        if source.fetched:
            console.print(f"Using downloaded repository at {escape(str(source.root))}")
        registry_bridge = select_bridge(bridge or defaults.bridge)
        prompter = TerminalPrompter() if interactive else None

        Orchestrator(request, source, registry_bridge, prompter, console).run()
    except InstallerError as e:
        console.print(f"[red]error:[/red] {escape(e.message)}", highlight=False)
        if e.hint:
            console.print(f"[dim]{escape(e.hint)}[/dim]", highlight=False)
        logger.debug("install_failed", error=e.message, exit_code=e.exit_code)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        exit_handler.run()
        console.print("aborted")
        sys.exit(EXIT_INTERRUPTED)
