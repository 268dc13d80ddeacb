"""Scoped acquisition of the controlling terminal.

TerminalSession is the only place that changes device state: it captures
the current termios mode, turns off echo and line buffering, hides the
cursor, and puts everything back on exit. The restore is also registered
on the process-wide exit handler so an interrupt or crash cannot leave
the terminal unusable.
"""

from __future__ import annotations

import sys
import termios
from typing import Any, TextIO

from ..errors import TerminalUnavailableError
from ..shared.cleanup import ExitHandler, exit_handler
from ..shared.logging import get_logger
from .render import HIDE_CURSOR, SHOW_CURSOR

logger = get_logger(__name__)


def is_interactive(stdin: TextIO | None = None, stdout: TextIO | None = None) -> bool:
    """Check whether both ends of the terminal are attached to a TTY."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    try:
        return stdin.isatty() and stdout.isatty()
    except (AttributeError, ValueError):
        return False


class TerminalSession:
    """Context manager owning raw/no-echo mode and cursor visibility."""

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        handler: ExitHandler | None = None,
    ):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.handler = handler or exit_handler
        self._saved: list[Any] | None = None
        self._fd: int | None = None
        self._token: int | None = None

    def __enter__(self) -> TerminalSession:
        if not is_interactive(self.stdin, self.stdout):
            raise TerminalUnavailableError(
                "An interactive prompt is required but no terminal is attached"
            )

        self._fd = self.stdin.fileno()
        self._saved = termios.tcgetattr(self._fd)
        mode = termios.tcgetattr(self._fd)
        mode[3] &= ~(termios.ECHO | termios.ICANON)
        termios.tcsetattr(self._fd, termios.TCSADRAIN, mode)

        self.stdout.write(HIDE_CURSOR)
        self.stdout.flush()
        self._token = self.handler.register_callback(self.restore)
        logger.debug("terminal_acquired", fd=self._fd)
        return self

    def restore(self) -> None:
        """Put the terminal back the way it was found (idempotent)."""
        if self._saved is None or self._fd is None:
            return
        saved, self._saved = self._saved, None
        termios.tcsetattr(self._fd, termios.TCSADRAIN, saved)
        self.stdout.write(SHOW_CURSOR)
        self.stdout.flush()
        logger.debug("terminal_restored", fd=self._fd)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.restore()
        if self._token is not None:
            self.handler.unregister_callback(self._token)
            self._token = None
