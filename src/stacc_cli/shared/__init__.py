"""Shared modules for stacc-cli.

- Paths (scope roots)
- Logging (structlog configuration)
- Exit handler (terminal restore and scratch cleanup)
"""

from .cleanup import ExitHandler, exit_handler, remove_path
from .logging import configure_logging, get_logger, level_for_verbosity
from .paths import home_root, project_root, scope_root

__all__ = [
    # Paths
    "home_root",
    "project_root",
    "scope_root",
    # Logging
    "configure_logging",
    "get_logger",
    "level_for_verbosity",
    # Exit handler
    "ExitHandler",
    "exit_handler",
    "remove_path",
]
