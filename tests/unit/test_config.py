"""Unit tests for CLI configuration loading and persistence."""

from __future__ import annotations

import pytest
import yaml

from stacc_cli.config import (
    DEFAULT_CONFLICT,
    DEFAULT_EDITORS,
    CLIConfig,
    get_config_path,
    load_config,
    save_config,
    split_list,
    unset_config,
    validate_value,
)
from stacc_cli.errors import UsageError
from stacc_cli.install.targets import CATEGORIES


def write_config(data):
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data))
    return path


class TestDefaults:
    """Tests for default values."""

    def test_config_path_in_home(self, isolated_env):
        """The config file lives in ~/.stacc."""
        assert get_config_path() == isolated_env.home / ".stacc" / "config.yaml"

    def test_defaults_without_file(self):
        """Every value comes from defaults when nothing is set."""
        config = load_config()
        assert config.editors == DEFAULT_EDITORS
        assert config.categories == list(CATEGORIES)
        assert config.conflict == DEFAULT_CONFLICT
        assert all(config.is_default(key) for key in config.as_dict())

    def test_defaults_not_shared(self):
        """List defaults are copied per instance."""
        first = CLIConfig()
        first.editors.append("codex")
        assert CLIConfig().editors == DEFAULT_EDITORS


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_file_values(self):
        """Values from the config file are used and tracked."""
        write_config({"editors": ["codex"], "scope": "project"})
        config = load_config()
        assert config.editors == ["codex"]
        assert config.scope == "project"
        assert config.get_source("scope") == "config file"
        assert config.get_source("conflict") == "default"

    def test_env_overrides_file(self, monkeypatch):
        """Environment variables beat the config file."""
        write_config({"conflict": "skip"})
        monkeypatch.setenv("STACC_CONFLICT", "overwrite")
        monkeypatch.setenv("STACC_EDITORS", "cursor, opencode")
        config = load_config()
        assert config.conflict == "overwrite"
        assert config.editors == ["cursor", "opencode"]
        assert config.get_source("conflict") == "environment"

    def test_invalid_values_ignored(self, monkeypatch):
        """Invalid file or environment values fall back to the lower layer."""
        write_config({"scope": "galaxy", "conflict": "skip"})
        monkeypatch.setenv("STACC_CONFLICT", "shred")
        config = load_config()
        assert config.scope == "global"
        assert config.is_default("scope")
        assert config.conflict == "skip"

    def test_unreadable_file_ignored(self):
        """A config file that is not a mapping is ignored."""
        path = get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("- just\n- a list\n")
        assert load_config().is_default("editors")


class TestValidateValue:
    """Tests for validate_value."""

    def test_unknown_key(self):
        """Unknown keys are usage errors with a hint."""
        with pytest.raises(UsageError) as exc_info:
            validate_value("colour", "blue")
        assert "editors" in exc_info.value.hint

    def test_list_values(self):
        """List keys accept comma-separated strings."""
        assert validate_value("categories", "rules,mcps") == ["rules", "mcps"]

    def test_bad_list_member(self):
        """Every list member must be known."""
        with pytest.raises(UsageError, match="Invalid editors: emacs"):
            validate_value("editors", "cursor,emacs")

    def test_free_text_key(self):
        """source_url accepts any value."""
        assert validate_value("source_url", " https://x/y.tgz ") == "https://x/y.tgz"

    def test_split_list(self):
        """Blank members are dropped."""
        assert split_list(" a, ,b,") == ["a", "b"]
        assert split_list(["a", 1]) == ["a", "1"]


class TestSaveUnset:
    """Tests for save_config and unset_config."""

    def test_save_creates_file(self):
        """Saving writes a YAML mapping, creating ~/.stacc."""
        save_config("editors", "claude,codex")
        data = yaml.safe_load(get_config_path().read_text())
        assert data == {"editors": ["claude", "codex"]}

    def test_save_keeps_other_keys(self):
        """Existing keys survive a save."""
        write_config({"scope": "project"})
        save_config("conflict", "skip")
        data = yaml.safe_load(get_config_path().read_text())
        assert data == {"scope": "project", "conflict": "skip"}

    def test_save_invalid_value(self):
        """Invalid values are rejected before writing."""
        with pytest.raises(UsageError):
            save_config("bridge", "sed")
        assert not get_config_path().exists()

    def test_unset(self):
        """Unset removes a key and reports whether it was there."""
        write_config({"scope": "project", "conflict": "skip"})
        assert unset_config("scope") is True
        assert unset_config("scope") is False
        assert yaml.safe_load(get_config_path().read_text()) == {"conflict": "skip"}

    def test_unset_without_file(self):
        """Unset without a config file is a no-op."""
        assert unset_config("scope") is False
