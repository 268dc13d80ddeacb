"""File Synchronization Engine.

Copies a category's source tree into a destination tree. One
directory-level conflict is raised per category when the destination
already has content; the resulting decision governs every file inside it.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Collection, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..errors import SourceEnvironmentError
from ..shared.cleanup import remove_path
from ..shared.logging import get_logger
from .conflicts import (
    BackupRecord,
    ConflictAction,
    ConflictResolver,
    DirectoryStrategy,
    create_backup,
)

logger = get_logger(__name__)

# Platform housekeeping files never copied
IGNORED_NAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})

Decider = Callable[[Path], ConflictAction]


def read_text_file(path: Path) -> str:
    """Read an existing file as UTF-8 text.

    Raises:
        SourceEnvironmentError: If the file cannot be read or is not UTF-8
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceEnvironmentError(
            f"Cannot read {path}: {e}",
            hint="Fix or move the file, then run the installer again.",
        ) from e



@dataclass
class SyncReport:
    """What a synchronization did (or would do, in dry-run)."""

    installed: list[Path] = field(default_factory=list)
    overwritten: list[Path] = field(default_factory=list)
    backups: list[BackupRecord] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)

    @property
    def written(self) -> int:
        return len(self.installed) + len(self.overwritten) + len(self.backups)


def has_content(path: Path) -> bool:
    """True when path is a directory holding at least one entry."""
    if not path.is_dir():
        return False
    return any(True for _ in path.iterdir())


class FileSynchronizer:
    """Copy files and trees, consulting the conflict resolver per path."""

    def __init__(
        self,
        resolver: ConflictResolver,
        dry_run: bool = False,
        console: Console | None = None,
    ):
        self.resolver = resolver
        self.dry_run = dry_run
        self.console = console or Console(stderr=True)
        self.report = SyncReport()

    def say(self, message: str) -> None:
        """Print one operator-facing progress line."""
        prefix = "[dim]\\[dry-run][/dim] " if self.dry_run else "  "
        self.console.print(f"{prefix}{message}", highlight=False)

    def record_write(self, dest: Path, existed: bool) -> None:
        """Count a write of a path that did not exist before."""
        if not existed:
            self.report.installed.append(dest)

    def iter_source_files(
        self, src: Path, include: Collection[str] | None = None
    ) -> Iterator[Path]:
        """Yield files under src in stable order, skipping housekeeping files."""
        for path in sorted(src.rglob("*")):
            if not path.is_file() or path.name in IGNORED_NAMES:
                continue
            relative = path.relative_to(src)
            if include is not None and relative.parts[0] not in include:
                continue
            yield path

    def prepare_destination(self, dest: Path, decide: Decider | None = None) -> bool:
        """Apply the conflict decision for an existing dest.

        Returns:
            False if the pending write must be skipped
        """
        if not (dest.exists() or dest.is_symlink()):
            return True

        action = (decide or self.resolver.resolve_file)(dest)
        if action is ConflictAction.SKIP:
            self.say(f"[yellow]Skipping[/yellow] {escape(str(dest))}")
            self.report.skipped.append(dest)
            logger.info("file_skipped", dest=str(dest))
            return False

        if action is ConflictAction.BACKUP:
            record = create_backup(dest, dry_run=self.dry_run)
            self.say(
                f"[cyan]Backing up[/cyan] {escape(str(dest))} -> {escape(str(record.backup))}"
            )
            self.report.backups.append(record)
        else:
            if dest.is_dir() and not self.dry_run:
                remove_path(dest)
            self.report.overwritten.append(dest)
        return True

    def copy_file(self, src: Path, dest: Path, decide: Decider | None = None) -> bool:
        """Copy one file, resolving a conflict if dest exists.

        Returns:
            True if the file was (or would be) written
        """
        if not self.dry_run:
            dest.parent.mkdir(parents=True, exist_ok=True)

        existed = dest.exists() or dest.is_symlink()
        if not self.prepare_destination(dest, decide):
            return False
        self.record_write(dest, existed)

        self.say(f"Installing {escape(str(dest))}")
        if not self.dry_run:
            shutil.copy2(src, dest)
        logger.debug("file_installed", src=str(src), dest=str(dest), dry_run=self.dry_run)
        return True

    def copy_tree(
        self,
        src: Path,
        dest: Path,
        decide: Decider | None = None,
        include: Collection[str] | None = None,
    ) -> None:
        """Mirror every file under src into dest."""
        for path in self.iter_source_files(src, include):
            self.copy_file(path, dest / path.relative_to(src), decide)

    def install_category(
        self,
        src: Path,
        dest: Path,
        include: Collection[str] | None = None,
    ) -> None:
        """Install one category directory with a single directory-level decision.

        Args:
            src: Category source directory
            dest: Category destination directory
            include: Optional top-level entries of src to restrict the copy to

        Raises:
            SourceEnvironmentError: If src does not exist
        """
        if not src.is_dir():
            raise SourceEnvironmentError(f"Source category not found: {src}")

        decide: Decider | None = None
        if has_content(dest):
            resolution = self.resolver.resolve_directory(dest)
            logger.info(
                "directory_conflict",
                dest=str(dest),
                strategy=resolution.strategy.value,
                action=resolution.action.value if resolution.action else None,
            )
            if resolution.strategy is DirectoryStrategy.REPLACE:
                self.say(f"[red]Replacing[/red] {escape(str(dest))}")
                if not self.dry_run:
                    shutil.rmtree(dest)
                decide = lambda path: ConflictAction.OVERWRITE  # noqa: E731
            else:
                decide = self.resolver.file_decider(resolution)

        self.copy_tree(src, dest, decide, include)
