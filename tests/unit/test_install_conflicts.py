"""Unit tests for the conflict resolution controller and backups."""

from __future__ import annotations

from datetime import datetime

import pytest

from stacc_cli.errors import ConflictUnresolvedError
from stacc_cli.install.conflicts import (
    ConflictAction,
    ConflictDecision,
    ConflictPolicy,
    ConflictResolver,
    ConflictScope,
    DirectoryStrategy,
    backup_path_for,
    create_backup,
)
from tests.mocks import ScriptedPrompter


class TestConflictPolicy:
    """Tests for building the per-run policy."""

    @pytest.mark.parametrize("mode", ["overwrite", "backup", "skip"])
    def test_explicit_mode_is_sticky(self, mode):
        """--conflict overwrite|backup|skip applies to every conflict."""
        policy = ConflictPolicy.from_mode(mode)
        assert policy.sticky is ConflictAction(mode)

    def test_selective_requires_terminal(self):
        """Selective mode cannot run without prompts."""
        with pytest.raises(ConflictUnresolvedError) as exc_info:
            ConflictPolicy.from_mode("selective", non_interactive=True)
        assert exc_info.value.exit_code == 5

    def test_remember_all_remaining_is_sticky(self):
        """An *All choice sets the sticky action."""
        policy = ConflictPolicy()
        action = policy.remember(ConflictDecision(ConflictAction.SKIP, ConflictScope.ALL_REMAINING))
        assert action is ConflictAction.SKIP
        assert policy.sticky is ConflictAction.SKIP

    def test_remember_just_this_is_not_sticky(self):
        """A one-off choice leaves the policy unset."""
        policy = ConflictPolicy()
        policy.remember(ConflictDecision(ConflictAction.OVERWRITE))
        assert policy.sticky is None

    def test_policies_are_isolated(self):
        """Two runs never share a sticky choice."""
        first = ConflictPolicy()
        second = ConflictPolicy()
        first.remember(ConflictDecision(ConflictAction.SKIP, ConflictScope.ALL_REMAINING))
        assert second.sticky is None


class TestConflictResolver:
    """Tests for file and directory decisions."""

    def test_non_interactive_defaults_to_backup(self, tmp_path):
        """Without a mode or terminal every conflict is a backup."""
        resolver = ConflictResolver(ConflictPolicy(non_interactive=True))
        assert resolver.resolve_file(tmp_path / "a.md") is ConflictAction.BACKUP
        resolution = resolver.resolve_directory(tmp_path)
        assert resolution.strategy is DirectoryStrategy.PER_FILE
        assert resolution.action is ConflictAction.BACKUP

    def test_prompt_answer_applies_once(self, tmp_path):
        """A just-this answer is asked again for the next conflict."""
        prompter = ScriptedPrompter(selects=["Overwrite", "Skip"])
        resolver = ConflictResolver(ConflictPolicy(), prompter)

        assert resolver.resolve_file(tmp_path / "a") is ConflictAction.OVERWRITE
        assert resolver.resolve_file(tmp_path / "b") is ConflictAction.SKIP
        assert len(prompter.titles("select")) == 2

    def test_all_choice_stops_prompting(self, tmp_path):
        """After 'Skip all' no further prompt is shown."""
        prompter = ScriptedPrompter(selects=["Skip all"])
        resolver = ConflictResolver(ConflictPolicy(), prompter)

        actions = [resolver.resolve_file(tmp_path / name) for name in ("a", "b", "c")]

        assert actions == [ConflictAction.SKIP] * 3
        assert len(prompter.titles("select")) == 1

    def test_default_prompt_choice_is_backup(self, tmp_path):
        """Accepting the highlighted default backs up."""
        prompter = ScriptedPrompter()
        resolver = ConflictResolver(ConflictPolicy(), prompter)
        assert resolver.resolve_file(tmp_path / "a") is ConflictAction.BACKUP

    def test_directory_replace(self, tmp_path):
        """'Replace the whole directory' is offered at directory level."""
        prompter = ScriptedPrompter(selects=["Replace the whole directory"])
        resolver = ConflictResolver(ConflictPolicy(), prompter)
        assert resolver.resolve_directory(tmp_path).strategy is DirectoryStrategy.REPLACE

    def test_directory_selective_defers_to_files(self, tmp_path):
        """Selective asks per file inside that directory only."""
        prompter = ScriptedPrompter(selects=["Selective (ask for each file)", "Skip"])
        resolver = ConflictResolver(ConflictPolicy(), prompter)

        resolution = resolver.resolve_directory(tmp_path)
        decide = resolver.file_decider(resolution)

        assert resolution.strategy is DirectoryStrategy.SELECTIVE
        assert decide(tmp_path / "a") is ConflictAction.SKIP
        assert resolver.policy.sticky is None
        assert resolver.policy.selective is False

    def test_directory_choice_fixed_for_its_files(self, tmp_path):
        """A per-file action chosen at directory level needs no more prompts."""
        prompter = ScriptedPrompter(selects=["Overwrite conflicting files"])
        resolver = ConflictResolver(ConflictPolicy(), prompter)

        decide = resolver.file_decider(resolver.resolve_directory(tmp_path))

        assert decide(tmp_path / "a") is ConflictAction.OVERWRITE
        assert decide(tmp_path / "b") is ConflictAction.OVERWRITE
        assert len(prompter.titles("select")) == 1

    def test_no_prompter_and_no_default_is_unresolved(self, tmp_path):
        """Interactive policy without a prompter cannot decide."""
        resolver = ConflictResolver(ConflictPolicy())
        with pytest.raises(ConflictUnresolvedError):
            resolver.resolve_file(tmp_path / "a")


class TestBackups:
    """Tests for backup naming."""

    def test_backup_name_has_timestamp(self, tmp_path):
        """Backups are named <path>.bak.<YYYYmmddHHMMSS>."""
        path = tmp_path / "mcp.json"
        now = datetime(2026, 1, 2, 3, 4, 5)
        assert backup_path_for(path, now) == tmp_path / "mcp.json.bak.20260102030405"

    def test_same_second_backups_are_distinct(self, tmp_path):
        """Two backups within one second land in two different files."""
        path = tmp_path / "rules.md"
        now = datetime(2026, 1, 2, 3, 4, 5)

        path.write_text("first")
        first = create_backup(path, now=now)
        path.write_text("second")
        second = create_backup(path, now=now)

        assert first.backup != second.backup
        assert first.backup.read_text() == "first"
        assert second.backup.read_text() == "second"
        assert not path.exists()

    def test_dry_run_backup_touches_nothing(self, tmp_path):
        """Dry-run reports the backup name without renaming."""
        path = tmp_path / "a.md"
        path.write_text("keep")
        record = create_backup(path, dry_run=True)
        assert path.read_text() == "keep"
        assert not record.backup.exists()
