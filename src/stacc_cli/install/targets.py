"""Editors, categories and the fixed destination lookup.

Every host tool lays its configuration out differently. This module is
the single table describing where each category lands for each
(editor, scope) pair and which registry schema the editor expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from ..shared.paths import scope_root

Scope = Literal["global", "project"]
RegistryFormat = Literal["json", "namespaced_json", "sectioned_text"]

SCOPES: tuple[Scope, ...] = ("global", "project")

CATEGORIES = ("commands", "rules", "agents", "skills", "stack", "hooks", "mcps")
REGISTRY_CATEGORY = "mcps"
BUNDLE_CATEGORY = "stack"


@dataclass(frozen=True)
class EditorSpec:
    """Layout of one host tool."""

    name: str
    label: str
    global_dir: str
    project_dir: str
    registry_file: str
    registry_format: RegistryFormat
    registry_key: str | None
    supported: dict[str, frozenset[str]] = field(default_factory=dict)
    subpaths: dict[str, str] = field(default_factory=dict)
    # Categories installed by appending to a shared document instead of copying
    shared_docs: dict[str, dict[str, str]] = field(default_factory=dict)

    def root(self, scope: Scope) -> Path:
        """Resolved destination root for a scope."""
        relative = self.global_dir if scope == "global" else self.project_dir
        return scope_root(scope) / relative

    def supports(self, scope: Scope, category: str) -> bool:
        return category in self.supported.get(scope, frozenset())

    def registry_path(self, scope: Scope) -> Path:
        return self.root(scope) / self.registry_file

    def shared_doc_path(self, scope: Scope, category: str) -> Path | None:
        """Shared documentation file for an append-style category, if any."""
        by_scope = self.shared_docs.get(category)
        if not by_scope:
            return None
        return scope_root(scope) / by_scope[scope]


_ALL = frozenset(CATEGORIES)

EDITORS: dict[str, EditorSpec] = {
    "cursor": EditorSpec(
        name="cursor",
        label="Cursor",
        global_dir=".cursor",
        project_dir=".cursor",
        registry_file="mcp.json",
        registry_format="json",
        registry_key="mcpServers",
        supported={"global": _ALL, "project": _ALL},
    ),
    "claude": EditorSpec(
        name="claude",
        label="Claude Code",
        global_dir=".claude",
        project_dir=".claude",
        registry_file=".mcp.json",
        registry_format="json",
        registry_key="mcpServers",
        supported={"global": _ALL, "project": _ALL},
    ),
    "codex": EditorSpec(
        name="codex",
        label="Codex",
        global_dir=".codex",
        project_dir=".codex",
        registry_file="config.toml",
        registry_format="sectioned_text",
        registry_key=None,
        supported={
            "global": frozenset({"commands", "rules", "skills", "mcps"}),
            "project": frozenset({"rules", "skills", "mcps"}),
        },
        subpaths={"commands": "prompts"},
        shared_docs={"rules": {"global": ".codex/AGENTS.md", "project": "AGENTS.md"}},
    ),
    "opencode": EditorSpec(
        name="opencode",
        label="OpenCode",
        global_dir=".config/opencode",
        project_dir=".opencode",
        registry_file="opencode.json",
        registry_format="namespaced_json",
        registry_key="mcp",
        supported={
            "global": frozenset({"commands", "agents", "rules", "mcps"}),
            "project": frozenset({"commands", "agents", "rules", "mcps"}),
        },
        subpaths={"commands": "command", "agents": "agent"},
    ),
}

EDITOR_NAMES = tuple(EDITORS)


@dataclass(frozen=True)
class InstallTarget:
    """A concrete (editor, scope) pair. The root is always derived."""

    editor: EditorSpec
    scope: Scope

    @property
    def root(self) -> Path:
        return self.editor.root(self.scope)

    @property
    def label(self) -> str:
        return f"{self.editor.label} ({self.scope})"

    def supports(self, category: str) -> bool:
        return get_category(category).supports(self.editor.name, self.scope)

    def category_dir(self, category: str) -> Path:
        return self.root / get_category(category).subpath(self.editor.name)


def common_categories(targets: list[InstallTarget]) -> list[str]:
    """Categories supported by every target, in canonical order."""
    return [c for c in CATEGORIES if all(t.supports(c) for t in targets)]


@dataclass(frozen=True)
class ConfigCategory:
    """A category and the (editor, scope) pairs that accept it."""

    name: str
    targets: frozenset[tuple[str, Scope]]

    def supports(self, editor: str, scope: Scope) -> bool:
        return (editor, scope) in self.targets

    def subpath(self, editor: str) -> str:
        return EDITORS[editor].subpaths.get(self.name, self.name)


def get_category(name: str) -> ConfigCategory:
    """Build the category view of the support matrix."""
    pairs = frozenset(
        (editor.name, scope)
        for editor in EDITORS.values()
        for scope in SCOPES
        if editor.supports(scope, name)
    )
    return ConfigCategory(name=name, targets=pairs)
