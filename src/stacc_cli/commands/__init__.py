"""CLI commands."""

from .config import config_group
from .install import install_command

__all__ = ["config_group", "install_command"]
