"""Commit records and the linear commit graph.

Commits are immutable JSON files in ``.tinyvcs/commits/<hash>``. Each
commit holds the full path -> blob hash snapshot of the tracked tree, not a
diff against its parent. The graph is an arena keyed by commit hash: walking
history is repeated lookup of ``parent`` keys starting from the HEAD tip.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from tinyvcs.constants import COMMITS_DIR, HASH_ALGORITHM
from tinyvcs.errors import DataIntegrityError, TinyVCSError
from tinyvcs.storage.files import atomic_write_json, ensure_dir, read_bytes
from tinyvcs.storage.head import HeadPointer
from tinyvcs.storage.object_store import validate_hash

if TYPE_CHECKING:
    from tinyvcs.core.staging import StagingIndex

logger = logging.getLogger(__name__)


class EmptyStagingAreaError(TinyVCSError):
    """Raised when committing with nothing staged."""

    def __init__(self) -> None:
        super().__init__("No changes added to the commit.")


class EmptyCommitMessageError(TinyVCSError, ValueError):
    """Raised when a commit message is blank."""

    def __init__(self) -> None:
        super().__init__("Please enter a commit message.")


class CommitNotFoundError(DataIntegrityError):
    """Raised when a commit hash has no stored commit record."""


class CommitCorruptedError(DataIntegrityError):
    """Raised when a stored commit doesn't hash to its own name."""


@dataclass(frozen=True)
class Commit:
    """An immutable commit record.

    Attributes:
        hash: Commit hash (40 hex characters)
        parent: Parent commit hash, or None for the root commit
        message: Commit message
        timestamp: ISO-8601 UTC timestamp with microsecond precision
        snapshot: Complete path -> blob hash mapping of tracked files
    """

    hash: str
    parent: Optional[str]
    message: str
    timestamp: str
    snapshot: Dict[str, str] = field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def datetime(self) -> datetime:
        return datetime.fromisoformat(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "parent": self.parent,
            "message": self.message,
            "timestamp": self.timestamp,
            "snapshot": dict(self.snapshot),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commit":
        return cls(
            hash=data["hash"],
            parent=data.get("parent"),
            message=data["message"],
            timestamp=data["timestamp"],
            snapshot=dict(data.get("snapshot", {})),
        )


def compute_commit_hash(
    parent: Optional[str],
    snapshot: Dict[str, str],
    message: str,
    timestamp: str,
) -> str:
    """Compute the hash of a commit from its recorded fields.

    The hash covers the canonical JSON representation (sorted keys, no
    whitespace, UTF-8) of ``{parent, snapshot, message, timestamp}``. It is a
    pure function of those fields.
    """
    canonical_json = json.dumps(
        {
            "parent": parent,
            "snapshot": snapshot,
            "message": message,
            "timestamp": timestamp,
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(canonical_json.encode("utf-8"))
    return hasher.hexdigest()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CommitGraph:
    """Linear history of commits plus the HEAD pointer.

    Attributes:
        tinyvcs_dir: Path to .tinyvcs directory
        commits_dir: Directory holding one JSON file per commit
        head: HeadPointer tracking the current branch tip
    """

    def __init__(self, tinyvcs_dir: Path, head: Optional[HeadPointer] = None) -> None:
        self.tinyvcs_dir = Path(tinyvcs_dir)
        self.commits_dir = self.tinyvcs_dir / COMMITS_DIR
        self.head = head if head is not None else HeadPointer(self.tinyvcs_dir)

    def tip(self) -> Optional[str]:
        """Current branch tip, or None if no commit has been made."""
        return self.head.tip()

    def tip_snapshot(self) -> Dict[str, str]:
        """Snapshot of the tip commit (empty before the first commit)."""
        tip = self.tip()
        if tip is None:
            return {}
        return dict(self.get(tip).snapshot)

    def commit(self, message: str, staging: "StagingIndex", now: Optional[datetime] = None) -> str:
        """Record the staged changes as a new commit.

        The commit file is durably written before HEAD moves, and the
        staging index is cleared only after HEAD has moved. A crash in
        between leaves at worst an unreferenced commit file or a stale
        index, never a HEAD pointing at a missing commit.

        Args:
            message: Commit message (must not be blank)
            staging: Staging index whose contents are committed
            now: Override the wall-clock time (for tests)

        Returns:
            Hash of the new commit

        Raises:
            EmptyCommitMessageError: If the message is blank
            EmptyStagingAreaError: If nothing is staged
        """
        if not message or not message.strip():
            raise EmptyCommitMessageError()

        additions = staging.snapshot()
        removals = staging.removals()
        if not additions and not removals:
            raise EmptyStagingAreaError()

        parent_hash = self.tip()
        parent = self.get(parent_hash) if parent_hash is not None else None

        snapshot = dict(parent.snapshot) if parent is not None else {}
        snapshot.update(additions)
        for path in removals:
            snapshot.pop(path, None)

        stamp = now if now is not None else _utc_now()
        # History must read newest-first even if the clock steps backwards
        if parent is not None and stamp < parent.datetime:
            stamp = parent.datetime
        timestamp = stamp.astimezone(timezone.utc).isoformat(timespec="microseconds")

        commit_hash = compute_commit_hash(parent_hash, snapshot, message, timestamp)
        commit = Commit(
            hash=commit_hash,
            parent=parent_hash,
            message=message,
            timestamp=timestamp,
            snapshot=dict(sorted(snapshot.items())),
        )

        self._write_commit_file(commit)
        self.head.advance(commit_hash)
        staging.clear()

        logger.info(
            "Created commit %s (parent=%s, %d file(s))",
            commit_hash,
            parent_hash or "(root)",
            len(snapshot),
        )
        return commit_hash

    def get(self, commit_hash: str) -> Commit:
        """Read a commit record.

        Raises:
            CommitNotFoundError: If no commit with this hash is stored
            CommitCorruptedError: If the record is malformed or its hash
                doesn't match its content
        """
        try:
            validate_hash(commit_hash)
        except ValueError as e:
            raise CommitNotFoundError(f"Commit not found: {commit_hash!r} ({e})") from e

        commit_path = self.commits_dir / commit_hash
        try:
            raw = read_bytes(commit_path)
        except FileNotFoundError:
            raise CommitNotFoundError(f"Commit not found: {commit_hash}") from None

        try:
            commit = Commit.from_dict(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise CommitCorruptedError(f"Corrupted commit {commit_hash}: {e}") from e

        actual_hash = compute_commit_hash(
            commit.parent, commit.snapshot, commit.message, commit.timestamp
        )
        if commit.hash != commit_hash or actual_hash != commit_hash:
            raise CommitCorruptedError(
                f"Commit hash mismatch: expected {commit_hash}, got {actual_hash}"
            )

        return commit

    def exists(self, commit_hash: str) -> bool:
        """Check if a commit exists."""
        try:
            validate_hash(commit_hash)
        except ValueError:
            return False
        return (self.commits_dir / commit_hash).is_file()

    def history(self, max_count: Optional[int] = None) -> Iterator[Commit]:
        """Walk the history from the current tip back to the root.

        The walk is lazy and restarts from the current tip on every call.

        Args:
            max_count: Stop after this many commits

        Yields:
            Commits, newest first
        """
        commit_hash = self.tip()
        count = 0
        while commit_hash is not None:
            if max_count is not None and count >= max_count:
                return
            commit = self.get(commit_hash)
            yield commit
            count += 1
            commit_hash = commit.parent

    def _write_commit_file(self, commit: Commit) -> None:
        ensure_dir(self.commits_dir)
        atomic_write_json(
            self.commits_dir / commit.hash, commit.to_dict(), prefix=".tmp_commit_"
        )
