"""CLI configuration management.

Handles persistent installer defaults stored in ~/.stacc/config.yaml.
Supports environment variable overrides and CLI flag precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import UsageError
from .install.bridge import BRIDGE_CHOICES
from .install.conflicts import CONFLICT_MODES
from .install.source import DEFAULT_SOURCE_URL
from .install.targets import CATEGORIES, EDITOR_NAMES, SCOPES
from .shared.logging import get_logger

logger = get_logger(__name__)

# Default values
DEFAULT_EDITORS = ["cursor", "claude"]
DEFAULT_SCOPE = "global"
DEFAULT_CONFLICT = "backup"
DEFAULT_BRIDGE = "auto"

# Environment variable mappings
ENV_VARS = {
    "editors": "STACC_EDITORS",
    "scope": "STACC_SCOPE",
    "categories": "STACC_CATEGORIES",
    "conflict": "STACC_CONFLICT",
    "source_url": "STACC_SOURCE_URL",
    "bridge": "STACC_BRIDGE",
}

LIST_KEYS = ("editors", "categories")
CONFIG_KEYS = tuple(ENV_VARS)


@dataclass
class CLIConfig:
    """Installer defaults."""

    editors: list[str] = field(default_factory=lambda: list(DEFAULT_EDITORS))
    scope: str = DEFAULT_SCOPE
    categories: list[str] = field(default_factory=lambda: list(CATEGORIES))
    conflict: str = DEFAULT_CONFLICT
    source_url: str = DEFAULT_SOURCE_URL
    bridge: str = DEFAULT_BRIDGE

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def is_default(self, key: str) -> bool:
        return self.get_source(key) == "default"

    def as_dict(self) -> dict[str, Any]:
        return {key: getattr(self, key) for key in CONFIG_KEYS}


def get_config_path() -> Path:
    """Get the CLI config file path.

    Returns:
        Path to ~/.stacc/config.yaml
    """
    return Path.home() / ".stacc" / "config.yaml"


def split_list(value: str | list[Any]) -> list[str]:
    """Normalize a comma-separated string or a YAML list."""
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(v) for v in value]
    return [item.strip() for item in items if item.strip()]


def validate_value(key: str, value: Any) -> Any:
    """Check and normalize one config value.

    Raises:
        UsageError: If the key is unknown or the value is not allowed
    """
    allowed: dict[str, tuple[str, ...]] = {
        "editors": EDITOR_NAMES,
        "scope": SCOPES,
        "categories": CATEGORIES,
        "conflict": CONFLICT_MODES,
        "bridge": BRIDGE_CHOICES,
    }
    if key not in CONFIG_KEYS:
        raise UsageError(
            f"Unknown config key '{key}'", hint=f"Valid keys: {', '.join(CONFIG_KEYS)}"
        )

    if key in LIST_KEYS:
        values = split_list(value)
        unknown = [v for v in values if v not in allowed[key]]
        if unknown:
            raise UsageError(
                f"Invalid {key}: {', '.join(unknown)}",
                hint=f"Choose from: {', '.join(allowed[key])}",
            )
        return values

    value = str(value).strip()
    if key in allowed and value not in allowed[key]:
        raise UsageError(
            f"Invalid {key}: {value}", hint=f"Choose from: {', '.join(allowed[key])}"
        )
    return value


def _read_file(config_path: Path) -> dict[str, Any]:
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("config file is not a mapping")
    return data


def load_config() -> CLIConfig:
    """Load CLI configuration.

    Precedence (highest to lowest):
    1. Environment variables
    2. Config file (~/.stacc/config.yaml)
    3. Defaults

    Returns:
        CLIConfig with values and sources
    """
    config = CLIConfig()
    sources: dict[str, str] = {key: "default" for key in CONFIG_KEYS}

    # Load from config file
    config_path = get_config_path()
    if config_path.exists():
        try:
            file_config = _read_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("config_file_ignored", path=str(config_path), error=str(e))
            file_config = {}
        for key in CONFIG_KEYS:
            if key not in file_config or file_config[key] is None:
                continue
            try:
                setattr(config, key, validate_value(key, file_config[key]))
            except UsageError as e:
                logger.warning("config_value_ignored", key=key, error=e.message)
                continue
            sources[key] = "config file"

    # Override with environment variables
    for key, env_var in ENV_VARS.items():
        raw = os.environ.get(env_var)
        if not raw:
            continue
        try:
            setattr(config, key, validate_value(key, raw))
        except UsageError as e:
            logger.warning("config_env_ignored", variable=env_var, error=e.message)
            continue
        sources[key] = "environment"

    config._sources = sources
    return config


def save_config(key: str, value: Any) -> None:
    """Save a config value to the config file.

    Args:
        key: Config key (editors, scope, categories, conflict, source_url, bridge)
        value: Value to save

    Raises:
        UsageError: If the key or value is invalid
    """
    value = validate_value(key, value)
    config_path = get_config_path()

    # Load existing config
    existing: dict[str, Any] = {}
    if config_path.exists():
        try:
            existing = _read_file(config_path)
        except (OSError, ValueError, yaml.YAMLError):
            existing = {}

    existing[key] = value

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)


def unset_config(key: str) -> bool:
    """Remove a config value from the config file.

    Args:
        key: Config key to remove

    Returns:
        True if key was removed, False if not found
    """
    config_path = get_config_path()
    if not config_path.exists():
        return False

    try:
        existing = _read_file(config_path)
    except (OSError, ValueError, yaml.YAMLError):
        return False

    if key not in existing:
        return False

    del existing[key]

    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)

    return True
