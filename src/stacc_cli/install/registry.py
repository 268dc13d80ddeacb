"""Server registry loading and per-editor registry install.

The source registry is a JSON map of server name to
{command, args, type, url}, optionally wrapped in {"mcpServers": {...}}.
Each editor gets it in its own schema through the format bridge and a
single-file write.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Collection
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.markup import escape

from ..errors import SourceEnvironmentError
from ..shared.cleanup import exit_handler, remove_path
from ..shared.logging import get_logger
from ..terminal.prompter import Prompter
from .bridge import RegistryBridge, RegistryFormatError
from .sync import FileSynchronizer, read_text_file
from .targets import InstallTarget

logger = get_logger(__name__)

SOURCE_WRAPPER_KEY = "mcpServers"


@dataclass(frozen=True)
class ServerEntry:
    """One server of the registry."""

    key: str
    command: str | None = None
    args: tuple[str, ...] = ()
    type: str | None = None
    url: str | None = None

    @classmethod
    def from_mapping(cls, key: str, data: Any) -> ServerEntry:
        if not isinstance(data, dict):
            return cls(key=key)
        args = data.get("args") or ()
        return cls(
            key=key,
            command=data.get("command"),
            args=tuple(str(a) for a in args) if isinstance(args, list) else (),
            type=data.get("type"),
            url=data.get("url"),
        )

    @property
    def display(self) -> str:
        """Short human description used in the server picker."""
        if self.url:
            return f"{self.key} ({self.url})"
        if self.command:
            return f"{self.key} ({' '.join((self.command, *self.args))})"
        return self.key


@dataclass
class RegistryDocument:
    """The unwrapped source registry: raw text plus parsed entries."""

    path: Path
    text: str
    entries: list[ServerEntry] = field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]


def load_registry(path: Path, bridge: RegistryBridge) -> RegistryDocument:
    """Read and unwrap the source registry document.

    Raises:
        SourceEnvironmentError: If the document is missing or not a JSON object
    """
    if not path.is_file():
        raise SourceEnvironmentError(f"Missing MCP config: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
        text = bridge.unwrap_key(raw, SOURCE_WRAPPER_KEY)
        data = json.loads(text)
    except (OSError, UnicodeDecodeError, RegistryFormatError, json.JSONDecodeError) as e:
        raise SourceEnvironmentError(f"Cannot read MCP config {path}: {e}") from e
    if not isinstance(data, dict):
        raise SourceEnvironmentError(f"MCP config {path} is not a JSON object")

    entries = [ServerEntry.from_mapping(key, value) for key, value in data.items()]
    logger.debug("registry_loaded", path=str(path), servers=len(entries))
    return RegistryDocument(path=path, text=text, entries=entries)


class RegistryInstaller:
    """Write the selected servers into one editor's registry file."""

    def __init__(
        self,
        bridge: RegistryBridge,
        synchronizer: FileSynchronizer,
        prompter: Prompter | None = None,
        non_interactive: bool = False,
    ):
        self.bridge = bridge
        self.synchronizer = synchronizer
        self.prompter = prompter
        self.non_interactive = non_interactive

    @property
    def dry_run(self) -> bool:
        return self.synchronizer.dry_run

    def _wants_merge(self, dest: Path) -> bool:
        if self.non_interactive or self.prompter is None:
            return True
        return self.prompter.confirm(f"Merge MCP config into existing {dest}?", default=True)

    def render(self, target: InstallTarget, subset: str, existing: str | None) -> str:
        """Build the final document text for target.

        Args:
            target: Destination editor and scope
            subset: Filtered, unwrapped registry JSON
            existing: Current destination text when merging, else None
        """
        editor = target.editor
        if editor.registry_format == "sectioned_text":
            if existing is None:
                return self.bridge.to_sectioned_text(subset)
            return self.bridge.merge_into_sectioned_text(
                existing, subset, self.bridge.keys(subset)
            )

        document = subset
        if editor.registry_key:
            document = self.bridge.wrap_under_key(subset, editor.registry_key)
        if existing is None:
            return document
        return self.bridge.merge_documents(existing, document)

    def install(
        self,
        target: InstallTarget,
        registry: RegistryDocument,
        selected: Collection[str] | None = None,
    ) -> bool:
        """Install the selected servers for one target.

        Args:
            target: Destination editor and scope
            registry: The loaded source registry
            selected: Server keys to install; None installs every server

        Returns:
            True if the registry file was (or would be) written

        Raises:
            SourceEnvironmentError: If the existing destination cannot be parsed
        """
        dest = target.editor.registry_path(target.scope)
        if selected is not None and not selected:
            subset = "{}"
        else:
            subset = self.bridge.extract_subset(registry.text, list(selected or ()))
        if not self.bridge.keys(subset):
            self.synchronizer.say(
                f"No MCP servers selected for {escape(target.label)}; nothing to install"
            )
            logger.info("registry_empty", target=target.label)
            return False

        existing: str | None = None
        if dest.is_file() and self._wants_merge(dest):
            existing = read_text_file(dest)

        try:
            document = self.render(target, subset, existing)
        except RegistryFormatError as e:
            raise SourceEnvironmentError(
                f"Cannot merge into {dest}: {e}",
                hint="Fix or move the file, then run the installer again.",
            ) from e

        verb = "Merging MCP config into" if existing is not None else "Writing MCP config to"
        if self.dry_run:
            existed = dest.exists()
            if not self.synchronizer.prepare_destination(dest):
                return False
            self.synchronizer.say(f"{verb} {escape(str(dest))}")
            self.synchronizer.record_write(dest, existed)
            return True
        return self._write(dest, document, verb)

    def _write(self, dest: Path, document: str, verb: str) -> bool:
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
        scratch = exit_handler.register_path(Path(name))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)

            existed = dest.exists()
            if not self.synchronizer.prepare_destination(dest):
                return False
            self.synchronizer.say(f"{verb} {escape(str(dest))}")
            os.replace(scratch, dest)
            self.synchronizer.record_write(dest, existed=existed)
        finally:
            remove_path(scratch)
            exit_handler.release_path(scratch)
        logger.info("registry_written", dest=str(dest), bytes=len(document))
        return True
