"""Source asset tree location and remote fetch.

The asset repository holds one directory per category under configs/.
It is taken from --root, from the current directory, or downloaded as a
tarball into a scratch directory that the exit handler removes.
"""

from __future__ import annotations

import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from ..errors import SourceEnvironmentError
from ..shared.cleanup import exit_handler
from ..shared.logging import get_logger
from .targets import BUNDLE_CATEGORY, REGISTRY_CATEGORY

logger = get_logger(__name__)

DEFAULT_SOURCE_URL = "https://codeload.github.com/heyAyushh/stacc/tar.gz/main"
CONFIGS_DIR = "configs"
REGISTRY_FILE = "mcp.json"


@dataclass(frozen=True)
class SourceTree:
    """A located asset repository."""

    root: Path
    fetched: bool = False

    @property
    def configs(self) -> Path:
        return self.root / CONFIGS_DIR

    def category_dir(self, category: str) -> Path:
        return self.configs / category

    @property
    def registry_path(self) -> Path:
        return self.category_dir(REGISTRY_CATEGORY) / REGISTRY_FILE

    def bundles(self) -> list[str]:
        """Sub-bundles of the stack category (its immediate subdirectories)."""
        stack = self.category_dir(BUNDLE_CATEGORY)
        if not stack.is_dir():
            return []
        return sorted(p.name for p in stack.iterdir() if p.is_dir())

    def require_category(self, category: str) -> Path:
        """Source directory of a category.

        Raises:
            SourceEnvironmentError: If the directory does not exist
        """
        path = self.category_dir(category)
        if not path.is_dir():
            raise SourceEnvironmentError(f"Source category not found: {path}")
        return path


def _has_configs(path: Path) -> bool:
    return (path / CONFIGS_DIR).is_dir()


def locate_source(
    root: Path | None = None,
    source_url: str = DEFAULT_SOURCE_URL,
    cwd: Path | None = None,
    transport: httpx.BaseTransport | None = None,
) -> SourceTree:
    """Find the asset repository, downloading it when not available locally.

    Args:
        root: Explicit repository root (--root); never falls back to a fetch
        source_url: Tarball URL used when nothing local is found
        cwd: Directory checked for configs/ when root is not given
        transport: Optional httpx transport (tests)

    Raises:
        SourceEnvironmentError: If root lacks configs/ or the fetch fails
    """
    if root is not None:
        root = root.expanduser().resolve()
        if not _has_configs(root):
            raise SourceEnvironmentError(
                f"configs/ not found in {root}",
                hint="Point --root at a checkout of the stacc repository.",
            )
        return SourceTree(root)

    cwd = cwd or Path.cwd()
    if _has_configs(cwd):
        logger.debug("source_local", root=str(cwd))
        return SourceTree(cwd)
    return fetch_source(source_url, transport=transport)


def fetch_source(
    url: str = DEFAULT_SOURCE_URL,
    transport: httpx.BaseTransport | None = None,
    timeout: float = 60.0,
) -> SourceTree:
    """Download and extract the repository tarball into a scratch directory.

    Raises:
        SourceEnvironmentError: On network errors, bad archives, or a tree
            without configs/
    """
    scratch = exit_handler.register_path(Path(tempfile.mkdtemp(prefix="stacc-")))
    archive = scratch / "source.tar.gz"
    logger.info("source_fetch_started", url=url)

    try:
        with httpx.Client(transport=transport, timeout=timeout, follow_redirects=True) as client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(archive, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
    except httpx.HTTPStatusError as e:
        raise SourceEnvironmentError(
            f"Failed to download {url}: HTTP {e.response.status_code}"
        ) from e
    except httpx.HTTPError as e:
        raise SourceEnvironmentError(f"Failed to download {url}: {e}") from e

    extracted = scratch / "tree"
    try:
        with tarfile.open(archive, "r:*") as tar_ref:
            tar_ref.extractall(extracted, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise SourceEnvironmentError(f"Downloaded archive is not readable: {e}") from e
    archive.unlink()

    # Tarballs wrap the tree in one top-level directory (stacc-main/)
    candidates = [extracted, *sorted(p for p in extracted.iterdir() if p.is_dir())]
    for candidate in candidates:
        if _has_configs(candidate):
            logger.info("source_fetched", root=str(candidate))
            return SourceTree(candidate, fetched=True)
    raise SourceEnvironmentError("Downloaded repository is missing configs/")
