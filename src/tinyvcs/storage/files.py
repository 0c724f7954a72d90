"""Low-level file helpers for the repository directory.

Every persisted TinyVCS file is written with the same recipe: write to a
temporary file in the target directory, fsync, then ``os.replace`` over the
destination. Readers therefore never observe a half-written file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from tinyvcs.errors import RepositoryIOError


def atomic_write_bytes(path: Path, data: bytes, prefix: str = ".tmp_") -> None:
    """Atomically replace ``path`` with ``data``.

    Raises:
        RepositoryIOError: If any step of the write or rename fails
    """
    path = Path(path)
    try:
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix)
    except OSError as e:
        raise RepositoryIOError(path, e) from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())  # Ensure written to disk

        # Atomic rename
        os.replace(tmp_path, path)

    except OSError as e:
        # Clean up temp file on error
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise RepositoryIOError(path, e) from e


def atomic_write_json(path: Path, obj: Any, prefix: str = ".tmp_") -> None:
    """Serialize ``obj`` as pretty-printed JSON and write it atomically."""
    json_str = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    atomic_write_bytes(path, json_str.encode("utf-8"), prefix=prefix)


def read_bytes(path: Path) -> bytes:
    """Read a whole file, wrapping OS errors as :class:`RepositoryIOError`.

    ``FileNotFoundError`` is re-raised untouched so callers can translate
    it into their own not-found error.
    """
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise RepositoryIOError(path, e) from e


def ensure_dir(path: Path) -> None:
    """Create ``path`` (and parents) if missing.

    Raises:
        RepositoryIOError: If the directory can't be created
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RepositoryIOError(path, e) from e
