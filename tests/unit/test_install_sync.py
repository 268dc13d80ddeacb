"""Unit tests for the file synchronization engine."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from stacc_cli.errors import SourceEnvironmentError
from stacc_cli.install.conflicts import ConflictPolicy, ConflictResolver
from stacc_cli.install.sync import FileSynchronizer, has_content
from tests.mocks import ScriptedPrompter


def make_sync(mode=None, prompter=None, dry_run=False, non_interactive=False):
    policy = ConflictPolicy.from_mode(mode, non_interactive=non_interactive)
    console = Console(file=io.StringIO(), width=200)
    return FileSynchronizer(ConflictResolver(policy, prompter), dry_run=dry_run, console=console)


def output(sync: FileSynchronizer) -> str:
    return sync.console.file.getvalue()


@pytest.fixture
def category(tmp_path):
    """Source {a.md, b.md} and destination {a.md} with other content."""
    src = tmp_path / "src"
    dest = tmp_path / "dest"
    src.mkdir()
    dest.mkdir()
    (src / "a.md").write_text("source a")
    (src / "b.md").write_text("source b")
    (src / ".DS_Store").write_text("junk")
    (dest / "a.md").write_text("local a")
    return src, dest


class TestScenarios:
    """Overwrite and skip scenarios for one category."""

    def test_overwrite_mode(self, category):
        """Overwrite leaves destination matching source."""
        src, dest = category
        make_sync("overwrite").install_category(src, dest)
        assert (dest / "a.md").read_text() == "source a"
        assert (dest / "b.md").read_text() == "source b"

    def test_skip_mode(self, category):
        """Skip keeps a.md byte-identical and adds b.md."""
        src, dest = category
        before = (dest / "a.md").read_bytes()
        sync = make_sync("skip")
        sync.install_category(src, dest)
        assert (dest / "a.md").read_bytes() == before
        assert (dest / "b.md").read_text() == "source b"
        assert sync.report.skipped == [dest / "a.md"]

    def test_backup_mode(self, category):
        """Backup keeps the old file under a .bak name."""
        src, dest = category
        sync = make_sync("backup")
        sync.install_category(src, dest)
        assert (dest / "a.md").read_text() == "source a"
        (record,) = sync.report.backups
        assert record.backup.read_text() == "local a"
        assert record.backup.name.startswith("a.md.bak.")

    def test_housekeeping_files_ignored(self, category):
        """Platform junk files are never copied."""
        src, dest = category
        make_sync("overwrite").install_category(src, dest)
        assert not (dest / ".DS_Store").exists()

    def test_missing_source_is_environment_error(self, tmp_path):
        """A missing category source is fatal."""
        with pytest.raises(SourceEnvironmentError):
            make_sync("overwrite").install_category(tmp_path / "nope", tmp_path / "dest")


class TestDirectoryConflicts:
    """One directory-level decision per category."""

    def test_empty_destination_never_prompts(self, tmp_path):
        """No existing content means no conflict at all."""
        src = tmp_path / "src"
        src.mkdir()
        (src / "a.md").write_text("a")
        prompter = ScriptedPrompter()
        make_sync(prompter=prompter).install_category(src, tmp_path / "dest")
        assert prompter.asked == []

    def test_single_prompt_for_whole_category(self, category):
        """A directory conflict is asked once, not once per file."""
        src, dest = category
        (dest / "b.md").write_text("local b")
        prompter = ScriptedPrompter(selects=["Overwrite conflicting files"])
        make_sync(prompter=prompter).install_category(src, dest)
        assert len(prompter.titles("select")) == 1
        assert (dest / "b.md").read_text() == "source b"

    def test_selective_prompts_once_per_conflicting_file(self, tmp_path):
        """Selective asks for conflicting files only."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        src.mkdir()
        dest.mkdir()
        for name in ("a.md", "b.md", "c.md", "d.md"):
            (src / name).write_text(f"source {name}")
        (dest / "a.md").write_text("local a")
        (dest / "c.md").write_text("local c")

        prompter = ScriptedPrompter(selects=["Selective (ask for each file)", "Skip", "Overwrite"])
        make_sync(prompter=prompter).install_category(src, dest)

        titles = prompter.titles("select")
        assert len(titles) == 3
        assert str(dest / "a.md") in titles[1]
        assert str(dest / "c.md") in titles[2]
        assert (dest / "a.md").read_text() == "local a"
        assert (dest / "c.md").read_text() == "source c.md"
        assert (dest / "b.md").read_text() == "source b.md"

    def test_replace_removes_stale_files(self, category):
        """Replacing the directory drops files the source no longer has."""
        src, dest = category
        (dest / "stale.md").write_text("old")
        prompter = ScriptedPrompter(selects=["Replace the whole directory"])
        make_sync(prompter=prompter).install_category(src, dest)
        assert not (dest / "stale.md").exists()
        assert (dest / "a.md").read_text() == "source a"

    def test_include_limits_to_bundles(self, tmp_path):
        """Only the selected top-level entries are copied."""
        src = tmp_path / "stack"
        for bundle in ("python", "web"):
            (src / bundle).mkdir(parents=True)
            (src / bundle / "README.md").write_text(bundle)
        dest = tmp_path / "dest"
        make_sync("overwrite").install_category(src, dest, include=["web"])
        assert (dest / "web" / "README.md").exists()
        assert not (dest / "python").exists()


class TestDryRun:
    """Dry-run never mutates."""

    def test_dry_run_writes_nothing(self, category):
        """Every action is reported, nothing changes on disk."""
        src, dest = category
        before = sorted(p.name for p in dest.iterdir())
        sync = make_sync("backup", dry_run=True)
        sync.install_category(src, dest)

        assert sorted(p.name for p in dest.iterdir()) == before
        assert (dest / "a.md").read_text() == "local a"
        assert "[dry-run]" in output(sync)
        assert len(sync.report.backups) == 1
        assert sync.report.installed == [dest / "b.md"]

    def test_dry_run_creates_no_directories(self, tmp_path):
        """Missing destination parents are not created in dry-run."""
        src = tmp_path / "src"
        (src / "deep").mkdir(parents=True)
        (src / "deep" / "a.md").write_text("a")
        dest = tmp_path / "dest"
        make_sync(dry_run=True, non_interactive=True).install_category(src, dest)
        assert not dest.exists()


def test_has_content(tmp_path):
    """Only non-empty directories count as content."""
    folder = tmp_path / "folder"
    folder.mkdir()
    assert has_content(folder) is False
    (folder / "x").write_text("")
    assert has_content(folder) is True
    assert has_content(folder / "x") is False
