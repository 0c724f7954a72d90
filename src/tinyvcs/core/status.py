"""Working tree status.

``reconcile`` partitions every path seen in the working tree, the staging
index or the tip snapshot into exactly one bucket. Staged state wins over
the comparison with the tip, which wins over untracked.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Dict, List, Mapping, Optional, Tuple

from tinyvcs.constants import DEFAULT_BRANCH, TINYVCS_DIR
from tinyvcs.core.ignore import should_ignore
from tinyvcs.errors import RepositoryIOError
from tinyvcs.storage.files import read_bytes
from tinyvcs.storage.object_store import compute_hash

logger = logging.getLogger(__name__)

MODIFIED = "modified"
DELETED = "deleted"


@dataclass
class StatusReport:
    """Classification of every observed path.

    Attributes:
        branch: Current branch name
        staged: Paths staged for addition
        removed: Paths staged for removal
        modified: (path, kind) pairs for tracked files changed or deleted in
            the working tree, kind being "modified" or "deleted"
        untracked: Working tree files neither tracked nor staged
        clean: Tracked files identical to the tip (not displayed)
    """

    branch: str = DEFAULT_BRANCH
    staged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[Tuple[str, str]] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    clean: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.removed or self.modified or self.untracked)

    def all_paths(self) -> List[str]:
        return (
            self.staged
            + self.removed
            + [path for path, _ in self.modified]
            + self.untracked
            + self.clean
        )


def reconcile(
    working_tree: Mapping[str, str],
    staged_additions: Mapping[str, str],
    staged_removals: AbstractSet[str],
    tip_snapshot: Mapping[str, str],
    branch: str = DEFAULT_BRANCH,
) -> StatusReport:
    """Classify paths from the working tree, staging index and tip.

    Args:
        working_tree: Current files mapped to their freshly computed hash
        staged_additions: Staging index additions (path -> hash)
        staged_removals: Paths staged for removal
        tip_snapshot: Snapshot of the tip commit (empty before any commit)
        branch: Current branch name, copied into the report

    Returns:
        StatusReport with every path in exactly one bucket, each bucket sorted
    """
    report = StatusReport(branch=branch)
    all_paths = (
        set(working_tree) | set(staged_additions) | set(staged_removals) | set(tip_snapshot)
    )

    for path in sorted(all_paths):
        if path in staged_additions:
            report.staged.append(path)
        elif path in staged_removals:
            report.removed.append(path)
        elif path in tip_snapshot:
            if path not in working_tree:
                report.modified.append((path, DELETED))
            elif working_tree[path] != tip_snapshot[path]:
                report.modified.append((path, MODIFIED))
            else:
                report.clean.append(path)
        else:
            report.untracked.append(path)

    return report


def scan_working_tree(
    workspace_root: Path, ignore_patterns: Optional[List[str]] = None
) -> Dict[str, str]:
    """Hash every file in the workspace.

    Skips the .tinyvcs directory and paths matching ``ignore_patterns``.

    Returns:
        Mapping of POSIX relative path to content hash
    """
    workspace_root = Path(workspace_root)
    patterns = ignore_patterns or []
    dir_patterns = [p for p in patterns if p.endswith("/")]
    result: Dict[str, str] = {}

    def _on_error(error: OSError) -> None:
        raise RepositoryIOError(error.filename or workspace_root, error)

    for dirpath, dirnames, filenames in os.walk(workspace_root, onerror=_on_error):
        rel_dir = Path(dirpath).relative_to(workspace_root)
        at_root = rel_dir == Path(".")

        # Prune in place so os.walk doesn't descend into skipped directories
        kept = []
        for name in sorted(dirnames):
            if at_root and name == TINYVCS_DIR:
                continue
            if should_ignore((rel_dir / name / "_").as_posix(), dir_patterns):
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel_path = (rel_dir / name).as_posix()
            if should_ignore(rel_path, patterns):
                continue
            file_path = Path(dirpath) / name
            if not file_path.is_file():
                continue
            try:
                content = read_bytes(file_path)
            except FileNotFoundError:
                # Deleted while scanning
                continue
            result[rel_path] = compute_hash(content)

    logger.debug("Scanned %d file(s) in %s", len(result), workspace_root)
    return result
