"""Core engine layer for TinyVCS.

This module provides the staging index, status reconciliation, the
repository lock and the :class:`Repository` handle that ties the storage
layer together.
"""

from tinyvcs.core.lock import LockTimeoutError, RepositoryLock
from tinyvcs.core.repository import AddResult, RemoveResult, Repository
from tinyvcs.core.staging import NothingToRemoveError, StagingError, StagingIndex
from tinyvcs.core.status import StatusReport, reconcile, scan_working_tree

__all__ = [
    "Repository",
    "AddResult",
    "RemoveResult",
    "StagingIndex",
    "StagingError",
    "NothingToRemoveError",
    "StatusReport",
    "reconcile",
    "scan_working_tree",
    "RepositoryLock",
    "LockTimeoutError",
]
