"""Path management for stacc-cli.

Resolves the roots of the two install scopes.
"""

from pathlib import Path


def home_root() -> Path:
    """Root for the global scope (the user's home directory)."""
    return Path.home()


def project_root() -> Path:
    """Root for the project scope (the current working directory)."""
    return Path.cwd()


def scope_root(scope: str) -> Path:
    """Get the base directory for an install scope.

    Args:
        scope: "global" or "project"

    Returns:
        Home directory for global scope, current directory for project scope
    """
    if scope == "global":
        return home_root()
    return project_root()
