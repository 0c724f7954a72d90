"""Main CLI entry point for TinyVCS."""

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from tinyvcs.constants import (
    EXIT_DATA_ERROR,
    EXIT_INTERRUPTED,
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
)
from tinyvcs.core import LockTimeoutError, Repository
from tinyvcs.errors import ConfigError, DataIntegrityError, RepositoryIOError, TinyVCSError

console = Console(highlight=False, soft_wrap=True, emoji=False)
app = typer.Typer(
    name="tinyvcs",
    help="Minimal version control with a staging area and linear history",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def _exit_code_for(error: TinyVCSError) -> int:
    if isinstance(error, DataIntegrityError):
        return EXIT_DATA_ERROR
    if isinstance(error, (RepositoryIOError, LockTimeoutError, ConfigError)):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


def _fail(error: TinyVCSError) -> NoReturn:
    """Print a single error line and exit with the matching status."""
    if isinstance(error, DataIntegrityError):
        prefix = "Repository corrupted"
    else:
        prefix = "Error"
    console.print(f"[bold red]{prefix}:[/bold red] {escape(str(error))}", style="red")
    logger.debug("Command failed", exc_info=error)
    raise typer.Exit(_exit_code_for(error))


def _open_repository() -> Repository:
    try:
        return Repository.find(Path.cwd())
    except TinyVCSError as e:
        _fail(e)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Minimal version control with a staging area and linear history."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Show TinyVCS version."""
    from tinyvcs import __version__
    typer.echo(f"TinyVCS version {__version__}")


@app.command()
def init(
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress output except errors",
    ),
) -> None:
    """Initialize a TinyVCS repository in the current directory."""
    try:
        repo = Repository.init(Path.cwd())
    except TinyVCSError as e:
        _fail(e)

    if not quiet:
        console.print(
            f"[bold green]✓[/bold green] Initialized empty TinyVCS repository in "
            f"{escape(str(repo.tinyvcs_dir))}"
        )


@app.command()
def add(
    paths: List[str] = typer.Argument(..., help="Files or directories to add"),
    force: bool = typer.Option(
        False,
        "--force",
        help="Override .tinyvcsignore rules",
    ),
) -> None:
    """Add files to the staging area."""
    repo = _open_repository()
    try:
        result = repo.add([Path.cwd() / p for p in paths], force=force)
    except TinyVCSError as e:
        _fail(e)

    for path in result.staged:
        console.print(f"  [green]+[/green] {escape(path)}")
    for path in result.unchanged:
        console.print(f"  [dim]=[/dim] {escape(path)}  [dim](unchanged)[/dim]")
    for path in result.ignored:
        console.print(f"  [dim]-[/dim] {escape(path)}  [dim](.tinyvcsignore)[/dim]")

    if not result.staged and not result.unchanged and result.ignored:
        console.print("[yellow]No files staged. All files were ignored.[/yellow]")
        console.print("  Use [bold]--force[/bold] to override .tinyvcsignore rules")


@app.command("rm")
def remove(
    paths: List[str] = typer.Argument(..., help="Files to unstage or remove"),
) -> None:
    """Unstage a file, or stage a tracked file for removal."""
    repo = _open_repository()
    try:
        result = repo.remove([Path.cwd() / p for p in paths])
    except TinyVCSError as e:
        _fail(e)

    for path in result.unstaged:
        console.print(f"  [yellow]*[/yellow] {escape(path)}  [dim](unstaged)[/dim]")
    for path in result.removed:
        console.print(f"  [red]-[/red] {escape(path)}")


@app.command()
def commit(
    message_arg: Optional[str] = typer.Argument(
        None,
        metavar="MESSAGE",
        help="Commit message",
    ),
    message_opt: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Commit message (alternative to the argument)",
    ),
) -> None:
    """Commit staged files as a snapshot."""
    message = message_opt if message_opt is not None else message_arg
    repo = _open_repository()
    try:
        new_commit = repo.commit(message or "")
    except TinyVCSError as e:
        _fail(e)

    console.print(
        f"[bold green]Committed[/bold green] [yellow]{new_commit.hash[:7]}[/yellow] "
        f"{escape(new_commit.message.splitlines()[0])}"
    )


@app.command()
def status() -> None:
    """Show working directory and staging area status."""
    repo = _open_repository()
    try:
        report = repo.status()
    except TinyVCSError as e:
        _fail(e)

    sections = [
        ("Branches", [f"*{report.branch}"]),
        ("Staged Files", report.staged),
        ("Removed Files", report.removed),
        (
            "Modifications Not Staged For Commit",
            [f"{path} ({kind})" for path, kind in report.modified],
        ),
        ("Untracked Files", report.untracked),
    ]
    for i, (title, lines) in enumerate(sections):
        console.print(f"=== {title} ===", markup=False)
        for line in lines:
            console.print(line, markup=False)
        if i < len(sections) - 1:
            console.print()


@app.command()
def log(
    max_count: Optional[int] = typer.Option(
        None,
        "--max-count",
        "-n",
        min=1,
        help="Limit number of commits to show",
    ),
    oneline: bool = typer.Option(
        False,
        "--oneline",
        help="Show each commit on a single line",
    ),
) -> None:
    """Show commit history."""
    repo = _open_repository()
    try:
        shown = 0
        for entry in repo.log(max_count=max_count):
            shown += 1
            if oneline:
                first_line = entry.message.splitlines()[0] if entry.message else ""
                console.print(f"[yellow]{entry.hash[:7]}[/yellow] {escape(first_line)}")
                continue

            date_str = entry.datetime.astimezone().strftime("%a %b %d %H:%M:%S %Y %z")
            console.print("===")
            console.print(f"[bold yellow]commit {entry.hash}[/bold yellow]")
            console.print(f"Date: {date_str}")
            console.print(entry.message, markup=False)
            console.print()
    except TinyVCSError as e:
        _fail(e)

    if shown == 0:
        console.print("[dim]No commits yet[/dim]")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise SystemExit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
