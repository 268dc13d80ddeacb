"""Shared test fixtures for stacc-cli tests.

- isolated_env: HOME, cwd and STACC_* variables pointed at a temp dir
- source_root: a small stacc repository with every category
- bridge: the registry bridge, parametrized over both strategies
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest

from stacc_cli.install.bridge import JqBridge, TextScanBridge, jq_available
from stacc_cli.install.source import SourceTree
from tests.mocks.source_tree import write_source


@dataclass
class IsolatedEnv:
    home: Path
    project: Path


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch) -> IsolatedEnv:
    """Point HOME and the working directory at fresh temp dirs."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(project)
    for name in (
        "STACC_EDITORS",
        "STACC_SCOPE",
        "STACC_CATEGORIES",
        "STACC_CONFLICT",
        "STACC_SOURCE_URL",
        "STACC_BRIDGE",
    ):
        monkeypatch.delenv(name, raising=False)
    return IsolatedEnv(home=home, project=project)


@pytest.fixture
def source_root(tmp_path) -> Path:
    """A stacc repository with every category populated."""
    return write_source(tmp_path / "stacc")


@pytest.fixture
def source_tree(source_root) -> SourceTree:
    return SourceTree(source_root)


@pytest.fixture(params=["text", "jq"])
def bridge(request):
    """Each registry bridge strategy; jq is skipped when not installed."""
    if request.param == "jq":
        if not jq_available():
            pytest.skip("jq is not installed")
        return JqBridge()
    return TextScanBridge()
