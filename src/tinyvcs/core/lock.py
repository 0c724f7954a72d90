"""Advisory repository lock.

Mutating commands (add, rm, commit) hold the lock for their whole
read-modify-write sequence so two processes can't interleave writes to
the staging index or HEAD.

Uses atomic mkdir for cross-platform locking (no fcntl/msvcrt):

    .tinyvcs/lock.d/             # existence = locked
    .tinyvcs/lock.d/owner.json   # who holds it
"""

import json
import logging
import os
import shutil
import socket
import time
from pathlib import Path
from typing import Any, Dict, Optional

from tinyvcs.constants import (
    DEFAULT_LOCK_TIMEOUT,
    LOCK_DIR,
    LOCK_OWNER_FILE,
    LOCK_STALE_AGE,
)
from tinyvcs.errors import RepositoryIOError, TinyVCSError
from tinyvcs.storage.files import atomic_write_json

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05


class LockTimeoutError(TinyVCSError):
    """Raised when the repository lock can't be acquired in time."""

    def __init__(self, lock_dir: Path, owner: Optional[Dict[str, Any]], timeout: float):
        if owner:
            holder = f"pid {owner.get('pid', '?')} on {owner.get('hostname', 'unknown')}"
        else:
            holder = "another process"
        super().__init__(
            f"Repository is locked by {holder} (waited {timeout:.1f}s). "
            f"If no other tinyvcs command is running, remove {lock_dir}"
        )
        self.lock_dir = lock_dir
        self.owner = owner


def _pid_alive(pid: int) -> bool:
    if os.name == "nt":
        # No reliable signal-0 check; assume alive and rely on lock age
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


class RepositoryLock:
    """Exclusive advisory lock on a repository.

    Usage:
        with RepositoryLock(tinyvcs_dir, timeout=10.0):
            ...  # read-modify-write repository files
    """

    def __init__(self, tinyvcs_dir: Path, timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self.lock_dir = Path(tinyvcs_dir) / LOCK_DIR
        self.timeout = timeout
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Block until the lock is acquired.

        Raises:
            LockTimeoutError: If the lock is still held after ``timeout`` seconds
        """
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                self.lock_dir.mkdir()
                break
            except FileExistsError:
                owner = self.owner()
                if owner is not None and self._is_stale(owner) and self._reclaim(owner):
                    continue
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(self.lock_dir, owner, self.timeout) from None
                time.sleep(_POLL_INTERVAL)
            except OSError as e:
                raise RepositoryIOError(self.lock_dir, e) from e

        try:
            atomic_write_json(
                self.lock_dir / LOCK_OWNER_FILE,
                {"pid": os.getpid(), "hostname": socket.gethostname(), "acquired_at": time.time()},
                prefix=".tmp_owner_",
            )
        except RepositoryIOError:
            self._force_remove()
            raise

        self._held = True
        logger.debug("Acquired repository lock %s", self.lock_dir)

    def release(self) -> None:
        """Release the lock if held."""
        if not self._held:
            return
        self._force_remove()
        self._held = False
        logger.debug("Released repository lock %s", self.lock_dir)

    def owner(self) -> Optional[Dict[str, Any]]:
        """Read who holds the lock, or None if unknown."""
        owner_path = self.lock_dir / LOCK_OWNER_FILE
        try:
            data = json.loads(owner_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def _is_stale(self, owner: Dict[str, Any]) -> bool:
        """A lock is stale if its owner died on this host or it is too old."""
        acquired_at = owner.get("acquired_at", 0)
        if isinstance(acquired_at, (int, float)) and time.time() - acquired_at > LOCK_STALE_AGE:
            return True

        if owner.get("hostname") == socket.gethostname():
            pid = owner.get("pid")
            if isinstance(pid, int) and not _pid_alive(pid):
                return True

        return False

    def _reclaim(self, stale_owner: Dict[str, Any]) -> bool:
        """Remove a stale lock unless another waiter has already replaced it."""
        if self.owner() != stale_owner:
            return False
        logger.warning(
            "Reclaiming stale repository lock (pid=%s, host=%s)",
            stale_owner.get("pid"),
            stale_owner.get("hostname"),
        )
        self._force_remove()
        return True

    def _force_remove(self) -> None:
        try:
            shutil.rmtree(self.lock_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise RepositoryIOError(self.lock_dir, e) from e

    def __enter__(self) -> "RepositoryLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
