"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from tinyvcs.core import Repository


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for testing."""
    return tmp_path


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory (not yet a repository)."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def repo(workspace: Path) -> Repository:
    """Create an initialized repository in the workspace."""
    return Repository.init(workspace)


@pytest.fixture
def temp_repo(repo: Repository) -> Repository:
    """Create a repository with a few sample files in its workspace."""
    (repo.root / "README.md").write_text("# Sample project\n")
    (repo.root / "main.py").write_text("print('hello')\n")
    (repo.root / "src").mkdir()
    (repo.root / "src" / "util.py").write_text("def util():\n    return 42\n")
    return repo
