"""Sentinel-guarded append to a shared documentation file.

Some hosts read their rules from one shared file (AGENTS.md) rather than a
rules directory. The concatenated rule files are appended between two
markers; a file that already carries the start marker is left alone.
"""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape

from ..shared.logging import get_logger
from .sync import FileSynchronizer, read_text_file

logger = get_logger(__name__)

SENTINEL_START = "<!-- stacc:rules:start -->"
SENTINEL_END = "<!-- stacc:rules:end -->"


def build_block(sources: list[Path]) -> str:
    """Concatenate rule files into one marked block."""
    parts = [SENTINEL_START]
    for path in sources:
        parts.append(read_text_file(path).rstrip("\n"))
    parts.append(SENTINEL_END)
    return "\n\n".join(parts) + "\n"


def has_block(path: Path) -> bool:
    if not path.is_file():
        return False
    return SENTINEL_START in read_text_file(path)


def block_separator(existing: str) -> str:
    """Text to write before the block so one blank line precedes it."""
    if not existing.strip():
        return ""
    return "\n" if existing.endswith("\n") else "\n\n"


def append_shared_doc(src: Path, dest: Path, synchronizer: FileSynchronizer) -> bool:
    """Append every file under src to dest once.

    Args:
        src: Category source directory
        dest: Shared documentation file
        synchronizer: Supplies dry-run, progress output and the report

    Returns:
        True if dest was (or would be) changed
    """
    sources = list(synchronizer.iter_source_files(src))
    if not sources:
        logger.info("shared_doc_nothing_to_append", src=str(src))
        return False
    if has_block(dest):
        synchronizer.say(f"[yellow]Already present[/yellow] in {escape(str(dest))}")
        synchronizer.report.skipped.append(dest)
        logger.info("shared_doc_block_present", dest=str(dest))
        return False

    existed = dest.exists()
    synchronizer.say(f"Appending {len(sources)} rule file(s) to {escape(str(dest))}")
    if not synchronizer.dry_run:
        block = build_block(sources)
        existing = read_text_file(dest) if existed else ""
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "a", encoding="utf-8") as f:
            f.write(block_separator(existing) + block)
    synchronizer.record_write(dest, existed)
    logger.info("shared_doc_appended", dest=str(dest), files=len(sources))
    return True
