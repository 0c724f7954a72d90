"""Exception hierarchy shared by every TinyVCS layer.

Storage and core modules define their own specific errors next to the code
that raises them; all of them derive from :class:`TinyVCSError` so the CLI
can map any failure to a single message and exit code.
"""

from pathlib import Path
from typing import Optional, Union


class TinyVCSError(Exception):
    """Base class for all TinyVCS errors."""


class DataIntegrityError(TinyVCSError):
    """Raised when on-disk repository data is missing or inconsistent.

    These errors signal corruption or external tampering, never a normal
    user mistake. Nothing in TinyVCS tries to repair them automatically.
    """


class NotARepositoryError(TinyVCSError):
    """Raised when a command is run outside a TinyVCS repository."""

    def __init__(self, start_path: Union[str, Path]):
        super().__init__(
            f"Not a TinyVCS repository (no .tinyvcs/ found in {start_path} or any parent)"
        )
        self.start_path = Path(start_path)


class RepositoryExistsError(TinyVCSError):
    """Raised when initializing over an existing repository."""


class RepositoryIOError(TinyVCSError):
    """Raised when reading, writing or renaming a repository file fails."""

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"I/O failure on {path}{detail}")
        self.path = Path(path)
        self.cause = cause


class ConfigError(TinyVCSError):
    """Raised when the repository configuration is invalid."""
