"""Staging area management for TinyVCS.

The staging area (index) tracks which files should be included in the next
commit: paths staged for addition with their blob hash, and paths staged
for removal. A path is never in both at once.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Set

from tinyvcs.constants import STAGED_ADD_FILE, STAGED_DIR
from tinyvcs.errors import RepositoryIOError, TinyVCSError
from tinyvcs.storage.files import (
    atomic_write_bytes,
    atomic_write_json,
    ensure_dir,
    read_bytes,
)
from tinyvcs.storage.object_store import ObjectStore, validate_hash

logger = logging.getLogger(__name__)


class StagingError(TinyVCSError):
    """Exception raised during staging operations."""


class NothingToRemoveError(StagingError):
    """Raised when removing a file that is neither staged nor tracked."""

    def __init__(self, path: str):
        super().__init__(f"No reason to remove the file: {path}")
        self.path = path


class StagingIndex:
    """Persisted staging index.

    Index format (JSON, ``.tinyvcs/STAGED_ADD``)::

        {
            "blobs": {"relative/path": "<blob hash>", ...},
            "removed": ["relative/path", ...]
        }

    The file is read fully before every operation and rewritten fully and
    atomically after every mutation. A copy of each blob staged for
    addition is kept in ``.tinyvcs/staged/``.

    Attributes:
        tinyvcs_dir: Path to .tinyvcs directory
        index_path: Path to the STAGED_ADD file
        staged_dir: Directory mirroring the staged blobs
        object_store: ObjectStore holding the staged blobs
    """

    def __init__(self, tinyvcs_dir: Path, object_store: ObjectStore) -> None:
        self.tinyvcs_dir = Path(tinyvcs_dir)
        self.index_path = self.tinyvcs_dir / STAGED_ADD_FILE
        self.staged_dir = self.tinyvcs_dir / STAGED_DIR
        self.object_store = object_store

    def stage_add(self, path: str, blob_hash: str) -> None:
        """Stage ``path`` at ``blob_hash``, cancelling any pending removal."""
        self.stage_many({path: blob_hash})

    def stage_many(self, additions: Mapping[str, str], unstaged: Iterable[str] = ()) -> None:
        """Apply a batch of changes with a single index load and save.

        Args:
            additions: Paths to stage mapped to their blob hash
            unstaged: Paths whose staged addition or removal is forgotten
        """
        for blob_hash in additions.values():
            validate_hash(blob_hash)

        index = self._load_index()
        changed = bool(additions)
        for path in unstaged:
            if index["blobs"].pop(path, None) is not None or path in index["removed"]:
                index["removed"].discard(path)
                changed = True
                logger.debug("Unstaged %s", path)

        for path, blob_hash in additions.items():
            previous = index["blobs"].get(path)
            index["blobs"][path] = blob_hash
            index["removed"].discard(path)
            self._copy_to_staged(blob_hash)

            if previous is None:
                logger.debug("Staged %s -> %s", path, blob_hash)
            elif previous != blob_hash:
                logger.debug("Restaged %s: %s -> %s", path, previous, blob_hash)

        if changed:
            self._save_index(index)

    def stage_remove(self, path: str) -> None:
        """Stage ``path`` for removal, dropping it from the additions."""
        index = self._load_index()
        index["blobs"].pop(path, None)
        index["removed"].add(path)
        self._save_index(index)
        logger.debug("Staged %s for removal", path)

    def unstage(self, path: str) -> bool:
        """Forget any staged change for ``path``.

        Returns:
            True if ``path`` was staged for addition or removal
        """
        index = self._load_index()
        was_added = index["blobs"].pop(path, None) is not None
        was_removed = path in index["removed"]
        index["removed"].discard(path)
        if not (was_added or was_removed):
            return False
        self._save_index(index)
        logger.debug("Unstaged %s", path)
        return True

    def snapshot(self) -> Dict[str, str]:
        """Paths staged for addition mapped to their blob hash (a copy)."""
        return dict(self._load_index()["blobs"])

    def removals(self) -> FrozenSet[str]:
        """Paths staged for removal."""
        return frozenset(self._load_index()["removed"])

    def is_empty(self) -> bool:
        """Check if staging area is empty."""
        index = self._load_index()
        return not index["blobs"] and not index["removed"]

    def clear(self) -> None:
        """Clear all staged additions and removals."""
        self._save_index({"blobs": {}, "removed": set()})
        logger.debug("Cleared staging index")

    def _load_index(self) -> Dict[str, Any]:
        """Load index from disk."""
        try:
            raw = read_bytes(self.index_path)
        except FileNotFoundError:
            return {"blobs": {}, "removed": set()}

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StagingError(f"Corrupted index file: {e}") from e

        if not isinstance(data, dict):
            raise StagingError("Corrupted index file: expected a JSON object")

        blobs = data.get("blobs", {})
        removed = data.get("removed", [])
        if not isinstance(blobs, dict) or not isinstance(removed, list):
            raise StagingError("Corrupted index file: bad 'blobs' or 'removed' entry")

        for path, blob_hash in blobs.items():
            try:
                validate_hash(blob_hash)
            except ValueError as e:
                raise StagingError(f"Corrupted index entry for {path}: {e}") from e

        for path in removed:
            if not isinstance(path, str):
                raise StagingError(f"Corrupted index entry in 'removed': {path!r}")

        removed_set: Set[str] = set(removed)
        overlap = removed_set.intersection(blobs)
        if overlap:
            raise StagingError(
                f"Corrupted index file: staged for both addition and removal: {sorted(overlap)}"
            )

        return {"blobs": blobs, "removed": removed_set}

    def _save_index(self, index: Dict[str, Any]) -> None:
        """Save index to disk and prune staged blob copies."""
        atomic_write_json(
            self.index_path,
            {"blobs": index["blobs"], "removed": sorted(index["removed"])},
            prefix=".tmp_index_",
        )
        self._prune_staged(set(index["blobs"].values()))

    def _copy_to_staged(self, blob_hash: str) -> None:
        target = self.staged_dir / blob_hash
        if target.is_file():
            return
        content = self.object_store.load(blob_hash)
        ensure_dir(self.staged_dir)
        atomic_write_bytes(target, content, prefix=".tmp_staged_")

    def _prune_staged(self, keep: Set[str]) -> None:
        if not self.staged_dir.exists():
            return
        for entry in os.listdir(self.staged_dir):
            if entry in keep or entry.startswith("."):
                continue
            entry_path = self.staged_dir / entry
            try:
                entry_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise RepositoryIOError(entry_path, e) from e
