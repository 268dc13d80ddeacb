"""Process-wide exit handler.

Collects callbacks (terminal restore) and scratch paths (merge files,
downloaded source trees) and runs them exactly once on every exit path:
normal return, uncaught exception, SIGTERM/SIGHUP.
"""

from __future__ import annotations

import atexit
import shutil
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)


class ExitHandler:
    """Registry of cleanup actions run on process exit."""

    def __init__(self) -> None:
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._paths: list[Path] = []
        self._next_token = 0
        self._installed = False

    def install(self) -> None:
        """Hook atexit and termination signals (idempotent)."""
        if self._installed:
            return
        atexit.register(self.run)
        for signum in (signal.SIGTERM, signal.SIGHUP):
            signal.signal(signum, self._handle_signal)
        self._installed = True

    def register_callback(self, callback: Callable[[], None]) -> int:
        """Register a callback; returns a token for unregister_callback()."""
        self.install()
        token = self._next_token
        self._next_token += 1
        self._callbacks[token] = callback
        return token

    def unregister_callback(self, token: int) -> None:
        self._callbacks.pop(token, None)

    def register_path(self, path: Path) -> Path:
        """Register a scratch file or directory for removal on exit."""
        self.install()
        self._paths.append(path)
        return path

    def release_path(self, path: Path) -> None:
        """Forget a scratch path that was consumed (e.g. renamed into place)."""
        if path in self._paths:
            self._paths.remove(path)

    def run(self) -> None:
        """Run all callbacks and remove all scratch paths."""
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        for callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning("exit_callback_failed", error=str(e))

        paths, self._paths = self._paths, []
        for path in reversed(paths):
            remove_path(path)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.run()
        sys.exit(128 + signum)


def remove_path(path: Path) -> None:
    """Remove a file or directory tree if it exists."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)
    logger.debug("scratch_removed", path=str(path))


# Single process-wide instance
exit_handler = ExitHandler()
