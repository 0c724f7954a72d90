"""Fixtures for integration tests."""

import subprocess
import sys
from pathlib import Path
from typing import List

import pytest


def run_tinyvcs(args: List[str], cwd: Path) -> subprocess.CompletedProcess:
    """Run the tinyvcs CLI in a separate process."""
    return subprocess.run(
        [sys.executable, "-m", "tinyvcs.cli.main", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def initialized_repo(tmp_path):
    """Create a temporary directory with initialized TinyVCS repository.

    Returns:
        Path: Path to the workspace root
    """
    workspace = tmp_path / "test_workspace"
    workspace.mkdir()

    result = run_tinyvcs(["init", "--quiet"], workspace)

    if result.returncode != 0:
        raise RuntimeError(f"Failed to initialize repo: {result.stdout}\n{result.stderr}")

    return workspace


@pytest.fixture
def run_cli():
    """The CLI runner, as a fixture so tests don't import conftest."""
    return run_tinyvcs
