"""Storage layer for TinyVCS.

This module provides the content-addressable blob store, the HEAD pointer
and the commit graph.
"""

from tinyvcs.storage.commit_graph import (
    Commit,
    CommitCorruptedError,
    CommitGraph,
    CommitNotFoundError,
    EmptyCommitMessageError,
    EmptyStagingAreaError,
    compute_commit_hash,
)
from tinyvcs.storage.head import HeadCorruptedError, HeadPointer
from tinyvcs.storage.object_store import (
    ObjectCorruptedError,
    ObjectNotFoundError,
    ObjectStore,
    compute_hash,
)

__all__ = [
    "ObjectStore",
    "ObjectNotFoundError",
    "ObjectCorruptedError",
    "compute_hash",
    "HeadPointer",
    "HeadCorruptedError",
    "Commit",
    "CommitGraph",
    "CommitNotFoundError",
    "CommitCorruptedError",
    "EmptyStagingAreaError",
    "EmptyCommitMessageError",
    "compute_commit_hash",
]
