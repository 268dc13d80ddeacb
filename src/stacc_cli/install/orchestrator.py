"""Installation Orchestrator.

Walks the install state machine:

    IDLE -> SELECTING_EDITORS -> SELECTING_SCOPE -> SELECTING_CATEGORIES
         -> SELECTING_SUB_OPTIONS -> CONFIRMING -> INSTALLING -> DONE

A selection stage is skipped when the request already carries its value.
CONFIRMING is skipped in non-interactive mode. INSTALLING handles one
(editor, scope) target completely before the next one starts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from rich.console import Console
from rich.markup import escape

from ..errors import InstallAborted, TerminalUnavailableError, UsageError
from ..formatters import print_plan, print_summary
from ..shared.logging import get_logger
from ..terminal.prompter import Prompter, multi_select_required
from ..terminal.state import SelectableItem
from .bridge import RegistryBridge
from .conflicts import ConflictPolicy, ConflictResolver
from .docs import append_shared_doc
from .registry import RegistryDocument, RegistryInstaller, load_registry
from .source import SourceTree
from .sync import FileSynchronizer, SyncReport
from .targets import (
    BUNDLE_CATEGORY,
    CATEGORIES,
    EDITORS,
    REGISTRY_CATEGORY,
    SCOPES,
    InstallTarget,
    Scope,
    common_categories,
)

logger = get_logger(__name__)


class Stage(Enum):
    """Orchestrator states, in order."""

    IDLE = "idle"
    SELECTING_EDITORS = "selecting_editors"
    SELECTING_SCOPE = "selecting_scope"
    SELECTING_CATEGORIES = "selecting_categories"
    SELECTING_SUB_OPTIONS = "selecting_sub_options"
    CONFIRMING = "confirming"
    INSTALLING = "installing"
    DONE = "done"


@dataclass
class InstallRequest:
    """Values supplied up front; None means "ask" (or fail non-interactively)."""

    editors: list[str] | None = None
    scope: Scope | None = None
    categories: list[str] | None = None
    bundles: list[str] | None = None
    servers: list[str] | None = None
    conflict: str | None = None
    non_interactive: bool = False
    dry_run: bool = False


@dataclass
class InstallPlan:
    """Everything decided before the first write."""

    targets: list[InstallTarget]
    categories: list[str]
    bundles: list[str] | None = None
    servers: list[str] | None = None
    conflict: str | None = None
    dry_run: bool = False

    @property
    def conflict_label(self) -> str:
        return self.conflict or "ask"


@dataclass
class InstallSummary:
    report: SyncReport
    dry_run: bool = False
    # (target label, category) pairs dropped as unsupported
    dropped: list[tuple[str, str]] = field(default_factory=list)


def _check_names(kind: str, names: Sequence[str], allowed: Sequence[str]) -> list[str]:
    unknown = [n for n in names if n not in allowed]
    if unknown:
        raise UsageError(
            f"Unknown {kind}: {', '.join(unknown)}",
            hint=f"Choose from: {', '.join(allowed) or 'none available'}",
        )
    return list(dict.fromkeys(names))


class Orchestrator:
    """Drive selection, confirmation and installation for one run."""

    def __init__(
        self,
        request: InstallRequest,
        source: SourceTree,
        bridge: RegistryBridge,
        prompter: Prompter | None = None,
        console: Console | None = None,
    ):
        self.request = request
        self.source = source
        self.bridge = bridge
        self.prompter = None if request.non_interactive else prompter
        self.console = console or Console(stderr=True)
        self.stage = Stage.IDLE
        self.registry: RegistryDocument | None = None

    def _enter(self, stage: Stage) -> None:
        logger.debug("stage_entered", stage=stage.value, previous=self.stage.value)
        self.stage = stage

    def _require_prompter(self, what: str) -> Prompter:
        if self.prompter is None:
            raise TerminalUnavailableError(f"No {what} given and no terminal to ask")
        return self.prompter

    # -- selection stages ---------------------------------------------------

    def select_editors(self) -> list[str]:
        self._enter(Stage.SELECTING_EDITORS)
        if self.request.editors is not None:
            if not self.request.editors:
                raise UsageError("At least one editor is required")
            return _check_names("editor", self.request.editors, list(EDITORS))

        prompter = self._require_prompter("editors")
        items = [SelectableItem(spec.label, name) for name, spec in EDITORS.items()]
        chosen = multi_select_required(
            prompter, "Select editors", items, warning="Select at least one editor"
        )
        return [item.key for item in chosen]

    def select_scope(self) -> Scope:
        self._enter(Stage.SELECTING_SCOPE)
        if self.request.scope is not None:
            _check_names("scope", [self.request.scope], SCOPES)
            return self.request.scope

        prompter = self._require_prompter("scope")
        items = [
            SelectableItem("Global (home directory)", "global"),
            SelectableItem("Project (current directory)", "project"),
        ]
        return prompter.select("Install scope", items).key

    def select_categories(self, targets: list[InstallTarget]) -> list[str]:
        """Pick categories; prompts offer only those every target supports."""
        self._enter(Stage.SELECTING_CATEGORIES)
        if self.request.categories is not None:
            if not self.request.categories:
                raise UsageError("At least one category is required")
            return _check_names("category", self.request.categories, CATEGORIES)

        available = common_categories(targets)
        if not available:
            raise UsageError("The selected editors share no installable category")
        prompter = self._require_prompter("categories")
        items = [SelectableItem(name) for name in available]
        chosen = multi_select_required(
            prompter, "Select categories", items, warning="Select at least one category"
        )
        return [item.key for item in chosen]

    def select_bundles(self) -> list[str] | None:
        available = self.source.bundles()
        if self.request.bundles is not None:
            return _check_names("bundle", self.request.bundles, available)
        if self.prompter is None or not available:
            return None
        chosen = self.prompter.multi_select(
            "Select stack bundles", [SelectableItem(name) for name in available]
        )
        return [item.key for item in chosen]

    def select_servers(self) -> list[str] | None:
        self.registry = load_registry(self.source.registry_path, self.bridge)
        available = self.registry.keys
        if self.request.servers is not None:
            return _check_names("MCP server", self.request.servers, available)
        if self.prompter is None or not available:
            return None
        items = [SelectableItem(entry.display, entry.key) for entry in self.registry.entries]
        chosen = self.prompter.multi_select("Select MCP servers", items)
        return [item.key for item in chosen]

    def plan(self) -> InstallPlan:
        """Run every selection stage and return the resulting plan."""
        editors = self.select_editors()
        scope = self.select_scope()
        targets = [InstallTarget(EDITORS[name], scope) for name in editors]
        categories = self.select_categories(targets)

        self._enter(Stage.SELECTING_SUB_OPTIONS)
        bundles = self.select_bundles() if BUNDLE_CATEGORY in categories else None
        servers = self.select_servers() if REGISTRY_CATEGORY in categories else None

        return InstallPlan(
            targets=targets,
            categories=categories,
            bundles=bundles,
            servers=servers,
            conflict=self.request.conflict,
            dry_run=self.request.dry_run,
        )

    # -- confirmation and install ------------------------------------------

    def confirm(self, plan: InstallPlan) -> None:
        self._enter(Stage.CONFIRMING)
        print_plan(self.console, plan)
        if self.prompter is None:
            return
        if not self.prompter.confirm("Proceed with installation?", default=True):
            raise InstallAborted()

    def install(self, plan: InstallPlan, policy: ConflictPolicy) -> InstallSummary:
        self._enter(Stage.INSTALLING)
        resolver = ConflictResolver(policy, self.prompter)
        synchronizer = FileSynchronizer(resolver, dry_run=plan.dry_run, console=self.console)
        registry_installer = RegistryInstaller(
            self.bridge,
            synchronizer,
            prompter=self.prompter,
            non_interactive=self.prompter is None,
        )
        summary = InstallSummary(report=synchronizer.report, dry_run=plan.dry_run)

        for target in plan.targets:
            self.console.print(
                f"[bold]{escape(target.label)}[/bold] -> {escape(str(target.root))}",
                highlight=False,
            )
            for category in plan.categories:
                if not target.supports(category):
                    summary.dropped.append((target.label, category))
                    logger.info("category_unsupported", target=target.label, category=category)
                    continue
                self.install_category(target, category, plan, synchronizer, registry_installer)
        return summary

    def install_category(
        self,
        target: InstallTarget,
        category: str,
        plan: InstallPlan,
        synchronizer: FileSynchronizer,
        registry_installer: RegistryInstaller,
    ) -> None:
        """Dispatch one (target, category) pair to the right engine."""
        logger.info("category_started", target=target.label, category=category)
        if category == REGISTRY_CATEGORY:
            if self.registry is None:
                self.registry = load_registry(self.source.registry_path, self.bridge)
            registry_installer.install(target, self.registry, plan.servers)
            return

        src = self.source.require_category(category)
        doc_path = target.editor.shared_doc_path(target.scope, category)
        if doc_path is not None:
            append_shared_doc(src, doc_path, synchronizer)
            return

        include = plan.bundles if category == BUNDLE_CATEGORY else None
        if include is not None and not include:
            synchronizer.say(f"No {category} bundles selected; nothing to install")
            return
        synchronizer.install_category(src, target.category_dir(category), include)

    def run(self) -> InstallSummary:
        """Run the whole state machine.

        Raises:
            InstallerError: Any subclass, for usage, source, terminal or
                conflict failures, or when the user declines to proceed
        """
        policy = ConflictPolicy.from_mode(self.request.conflict, self.prompter is None)
        plan = self.plan()
        self.confirm(plan)
        summary = self.install(plan, policy)
        self._enter(Stage.DONE)
        print_summary(self.console, summary)
        logger.info(
            "install_finished",
            written=summary.report.written,
            skipped=len(summary.report.skipped),
            dry_run=summary.dry_run,
        )
        return summary
