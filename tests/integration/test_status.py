"""Integration tests for tinyvcs status command."""

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from tinyvcs.cli.main import app

runner = CliRunner()

EMPTY_STATUS = (
    "=== Branches ===\n"
    "*main\n"
    "\n"
    "=== Staged Files ===\n"
    "\n"
    "=== Removed Files ===\n"
    "\n"
    "=== Modifications Not Staged For Commit ===\n"
    "\n"
    "=== Untracked Files ===\n"
)


@pytest.fixture
def cli_repo(tmp_path: Path):
    """Initialize a repository in tmp_path and run the test from there."""
    original_cwd = Path.cwd()
    os.chdir(tmp_path)
    try:
        runner.invoke(app, ["init", "--quiet"])
        yield tmp_path
    finally:
        os.chdir(original_cwd)


class TestStatusCommand:
    """Test tinyvcs status command."""

    def test_status_empty_repository(self, cli_repo: Path) -> None:
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert result.stdout == EMPTY_STATUS

    def test_status_all_sections(self, cli_repo: Path) -> None:
        for name in ("tracked.txt", "gone.txt", "removed.txt"):
            (cli_repo / name).write_text(name)
        runner.invoke(app, ["add", "tracked.txt", "gone.txt", "removed.txt"])
        runner.invoke(app, ["commit", "base"])

        (cli_repo / "tracked.txt").write_text("edited")
        (cli_repo / "gone.txt").unlink()
        runner.invoke(app, ["rm", "removed.txt"])
        (cli_repo / "new.txt").write_text("new")
        runner.invoke(app, ["add", "new.txt"])
        (cli_repo / "stray.txt").write_text("stray")

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert result.stdout == (
            "=== Branches ===\n"
            "*main\n"
            "\n"
            "=== Staged Files ===\n"
            "new.txt\n"
            "\n"
            "=== Removed Files ===\n"
            "removed.txt\n"
            "\n"
            "=== Modifications Not Staged For Commit ===\n"
            "gone.txt (deleted)\n"
            "tracked.txt (modified)\n"
            "\n"
            "=== Untracked Files ===\n"
            "stray.txt\n"
        )

    def test_status_restaged_file_only_staged(self, cli_repo: Path) -> None:
        (cli_repo / "a.txt").write_text("v1")
        runner.invoke(app, ["add", "a.txt"])
        runner.invoke(app, ["commit", "v1"])
        (cli_repo / "a.txt").write_text("v2")
        runner.invoke(app, ["add", "a.txt"])

        result = runner.invoke(app, ["status"])

        assert "=== Staged Files ===\na.txt\n" in result.stdout
        assert "(modified)" not in result.stdout

    def test_status_from_subdirectory(self, cli_repo: Path) -> None:
        (cli_repo / "sub").mkdir()
        (cli_repo / "sub" / "f.txt").write_text("x")
        os.chdir(cli_repo / "sub")

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "=== Untracked Files ===\nsub/f.txt\n" in result.stdout

    def test_status_outside_repository(self, tmp_path: Path) -> None:
        original_cwd = Path.cwd()
        os.chdir(tmp_path)
        try:
            result = runner.invoke(app, ["status"])
            assert result.exit_code == 1
            assert "Not a TinyVCS repository" in result.stdout
        finally:
            os.chdir(original_cwd)

    def test_status_corrupted_index(self, cli_repo: Path) -> None:
        (cli_repo / ".tinyvcs" / "STAGED_ADD").write_text('{"blobs": {}, "removed": [[1]]}')

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "Corrupted index entry" in result.stdout
