"""Conflict Resolution Controller.

Decides what happens when a write target already exists. A decision is an
action (overwrite, backup, skip) plus a scope (just this path, or all the
remaining conflicts of the run). The per-run state lives in a
ConflictPolicy instance that callers pass explicitly, so two installs in
the same process never share a sticky choice.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from ..errors import ConflictUnresolvedError
from ..shared.logging import get_logger
from ..terminal.prompter import Prompter
from ..terminal.state import SelectableItem

logger = get_logger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

CONFLICT_MODES = ("overwrite", "backup", "skip", "selective")


class ConflictAction(Enum):
    """What to do with an existing destination path."""

    OVERWRITE = "overwrite"  # Replace in place
    BACKUP = "backup"  # Rename to a timestamped backup, then write
    SKIP = "skip"  # Leave the destination untouched


class ConflictScope(Enum):
    """How long a decision lasts."""

    JUST_THIS = "just_this"
    ALL_REMAINING = "all_remaining"


class DirectoryStrategy(Enum):
    """How a directory-level conflict is handled."""

    PER_FILE = "per_file"  # One action for every conflicting file inside
    REPLACE = "replace"  # Remove the whole directory, then install fresh
    SELECTIVE = "selective"  # Ask per conflicting file, this directory only


@dataclass(frozen=True)
class ConflictDecision:
    action: ConflictAction
    scope: ConflictScope = ConflictScope.JUST_THIS


@dataclass(frozen=True)
class DirectoryResolution:
    strategy: DirectoryStrategy
    action: ConflictAction | None = None


@dataclass
class ConflictPolicy:
    """Conflict state for one run.

    Attributes:
        sticky: Action applied to every later conflict without prompting
        selective: Directory conflicts default to per-file prompting
        non_interactive: No prompts may be shown
    """

    sticky: ConflictAction | None = None
    selective: bool = False
    non_interactive: bool = False

    @classmethod
    def from_mode(cls, mode: str | None, non_interactive: bool = False) -> ConflictPolicy:
        """Build the policy for a --conflict value.

        Raises:
            ConflictUnresolvedError: selective mode without a terminal
        """
        if mode is None:
            return cls(non_interactive=non_interactive)
        if mode == "selective":
            if non_interactive:
                raise ConflictUnresolvedError(
                    "Conflict mode 'selective' needs an interactive terminal",
                    hint="Use --conflict overwrite, backup or skip with --yes.",
                )
            return cls(selective=True)
        return cls(sticky=ConflictAction(mode), non_interactive=non_interactive)

    def remember(self, decision: ConflictDecision) -> ConflictAction:
        """Record a decision; *All choices stay set for the rest of the run."""
        if decision.scope is ConflictScope.ALL_REMAINING:
            self.sticky = decision.action
            logger.info("conflict_mode_sticky", action=decision.action.value)
        return decision.action


FILE_CHOICES = [
    SelectableItem("Overwrite", ConflictDecision(ConflictAction.OVERWRITE)),
    SelectableItem("Back up existing", ConflictDecision(ConflictAction.BACKUP)),
    SelectableItem("Skip", ConflictDecision(ConflictAction.SKIP)),
    SelectableItem(
        "Overwrite all", ConflictDecision(ConflictAction.OVERWRITE, ConflictScope.ALL_REMAINING)
    ),
    SelectableItem(
        "Back up all", ConflictDecision(ConflictAction.BACKUP, ConflictScope.ALL_REMAINING)
    ),
    SelectableItem("Skip all", ConflictDecision(ConflictAction.SKIP, ConflictScope.ALL_REMAINING)),
]

_REPLACE = DirectoryResolution(DirectoryStrategy.REPLACE)
_SELECTIVE = DirectoryResolution(DirectoryStrategy.SELECTIVE)

DIRECTORY_CHOICES = [
    SelectableItem("Overwrite conflicting files", ConflictDecision(ConflictAction.OVERWRITE)),
    SelectableItem("Back up conflicting files", ConflictDecision(ConflictAction.BACKUP)),
    SelectableItem("Skip conflicting files", ConflictDecision(ConflictAction.SKIP)),
    SelectableItem("Replace the whole directory", _REPLACE),
    SelectableItem("Selective (ask for each file)", _SELECTIVE),
    SelectableItem(
        "Overwrite all (rest of this run)",
        ConflictDecision(ConflictAction.OVERWRITE, ConflictScope.ALL_REMAINING),
    ),
    SelectableItem(
        "Back up all (rest of this run)",
        ConflictDecision(ConflictAction.BACKUP, ConflictScope.ALL_REMAINING),
    ),
    SelectableItem(
        "Skip all (rest of this run)",
        ConflictDecision(ConflictAction.SKIP, ConflictScope.ALL_REMAINING),
    ),
]

DEFAULT_CHOICE = 1  # Back up


class ConflictResolver:
    """Resolve file- and directory-level conflicts against a policy."""

    def __init__(self, policy: ConflictPolicy, prompter: Prompter | None = None):
        self.policy = policy
        self.prompter = prompter

    def _automatic(self) -> ConflictAction | None:
        if self.policy.sticky is not None:
            return self.policy.sticky
        if self.policy.non_interactive:
            return ConflictAction.BACKUP
        return None

    def _require_prompter(self, path: Path) -> Prompter:
        if self.prompter is None:
            raise ConflictUnresolvedError(
                f"Conflict at {path} needs a decision but prompting is unavailable",
                hint="Pass --conflict overwrite|backup|skip.",
            )
        return self.prompter

    def resolve_file(self, path: Path) -> ConflictAction:
        """Decide what to do with one existing file."""
        action = self._automatic()
        if action is not None:
            logger.debug("conflict_auto", path=str(path), action=action.value)
            return action

        prompter = self._require_prompter(path)
        choice = prompter.select(f"Conflict: {path} already exists", FILE_CHOICES, DEFAULT_CHOICE)
        return self.policy.remember(choice.value)

    def resolve_directory(self, path: Path) -> DirectoryResolution:
        """Decide how to treat an existing, non-empty category directory."""
        action = self._automatic()
        if action is not None:
            logger.debug("directory_conflict_auto", path=str(path), action=action.value)
            return DirectoryResolution(DirectoryStrategy.PER_FILE, action)
        if self.policy.selective:
            return _SELECTIVE

        prompter = self._require_prompter(path)
        choice = prompter.select(
            f"Conflict: {path} already has content", DIRECTORY_CHOICES, DEFAULT_CHOICE
        )
        if isinstance(choice.value, DirectoryResolution):
            return choice.value
        return DirectoryResolution(DirectoryStrategy.PER_FILE, self.policy.remember(choice.value))

    def file_decider(self, resolution: DirectoryResolution) -> Callable[[Path], ConflictAction]:
        """Per-file decision function valid inside one resolved directory."""
        if resolution.strategy is DirectoryStrategy.PER_FILE and resolution.action is not None:
            fixed = resolution.action
            return lambda path: fixed
        return self.resolve_file


@dataclass(frozen=True)
class BackupRecord:
    """An existing path and the unique name it was moved to."""

    original: Path
    backup: Path


def backup_path_for(path: Path, now: datetime | None = None) -> Path:
    """Generate <path>.bak.<timestamp>[.<n>], unique on disk right now."""
    stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    base = f"{path}.bak.{stamp}"
    candidate = Path(base)
    n = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = Path(f"{base}.{n}")
        n += 1
    return candidate


def create_backup(path: Path, dry_run: bool = False, now: datetime | None = None) -> BackupRecord:
    """Move path aside to a fresh backup name (no-op in dry-run)."""
    record = BackupRecord(original=path, backup=backup_path_for(path, now))
    if not dry_run:
        os.rename(path, record.backup)
    logger.info("backup_created", original=str(path), backup=str(record.backup), dry_run=dry_run)
    return record
