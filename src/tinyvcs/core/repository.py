"""Repository handle tying the storage pieces together.

A :class:`Repository` is an explicit handle on one workspace and its
``.tinyvcs/`` directory. Nothing is cached between calls: every operation
re-reads HEAD and the staging index, so several handles (or processes) see
each other's changes.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from tinyvcs.config import RepositoryConfig, load_config, save_config
from tinyvcs.constants import BLOBS_DIR, COMMITS_DIR, STAGED_DIR, TINYVCS_DIR
from tinyvcs.core.ignore import load_ignore_patterns, should_ignore
from tinyvcs.core.lock import RepositoryLock
from tinyvcs.core.staging import NothingToRemoveError, StagingError, StagingIndex
from tinyvcs.core.status import StatusReport, reconcile, scan_working_tree
from tinyvcs.errors import NotARepositoryError, RepositoryExistsError, RepositoryIOError
from tinyvcs.storage.commit_graph import Commit, CommitGraph
from tinyvcs.storage.files import read_bytes
from tinyvcs.storage.head import HeadPointer
from tinyvcs.storage.object_store import ObjectNotFoundError, ObjectStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class AddResult:
    """Outcome of :meth:`Repository.add`.

    Attributes:
        staged: Paths staged for addition
        unchanged: Paths identical to the tip, left (or made) unstaged
        ignored: Paths skipped by .tinyvcsignore
    """

    staged: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


@dataclass
class RemoveResult:
    """Outcome of :meth:`Repository.remove`.

    Attributes:
        unstaged: Paths dropped from the staged additions
        removed: Tracked paths staged for removal
    """

    unstaged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


class Repository:
    """A TinyVCS repository.

    Attributes:
        root: Workspace root (the directory containing .tinyvcs/)
        tinyvcs_dir: Path to the .tinyvcs directory
        config: Repository configuration
        objects: Content store for blobs
        head: HEAD pointer
        graph: Commit graph
        staging: Staging index
    """

    def __init__(self, root: PathLike) -> None:
        """Open the repository whose .tinyvcs/ lives directly in ``root``.

        Raises:
            NotARepositoryError: If ``root`` has no .tinyvcs/ directory
        """
        self.root = Path(root).resolve()
        self.tinyvcs_dir = self.root / TINYVCS_DIR
        if not self.tinyvcs_dir.is_dir():
            raise NotARepositoryError(self.root)

        self.config: RepositoryConfig = load_config(self.tinyvcs_dir)
        self.objects = ObjectStore(self.tinyvcs_dir, verify_hashes=self.config.verify_hashes)
        self.head = HeadPointer(self.tinyvcs_dir)
        self.graph = CommitGraph(self.tinyvcs_dir, self.head)
        self.staging = StagingIndex(self.tinyvcs_dir, self.objects)

    @classmethod
    def init(cls, root: PathLike, config: Optional[RepositoryConfig] = None) -> "Repository":
        """Create an empty repository in ``root``.

        Raises:
            RepositoryExistsError: If ``root`` already has a .tinyvcs/ directory
            RepositoryIOError: If the layout can't be created
        """
        root = Path(root).resolve()
        tinyvcs_dir = root / TINYVCS_DIR
        if tinyvcs_dir.exists():
            raise RepositoryExistsError(f"TinyVCS repository already exists in {root}")

        config = config or RepositoryConfig()
        try:
            tinyvcs_dir.mkdir(parents=True)
            for subdir in (BLOBS_DIR, COMMITS_DIR, STAGED_DIR):
                (tinyvcs_dir / subdir).mkdir()
        except OSError as e:
            raise RepositoryIOError(tinyvcs_dir, e) from e

        save_config(tinyvcs_dir, config)
        HeadPointer.initialize(tinyvcs_dir, branch=config.default_branch)
        repo = cls(root)
        repo.staging.clear()

        logger.info("Initialized empty TinyVCS repository in %s", tinyvcs_dir)
        return repo

    @classmethod
    def find(cls, start: Optional[PathLike] = None) -> "Repository":
        """Find a repository by walking up from ``start`` (default: cwd).

        Raises:
            NotARepositoryError: If no parent directory holds a .tinyvcs/
        """
        start_path = Path(start if start is not None else Path.cwd()).resolve()
        for candidate in (start_path, *start_path.parents):
            if (candidate / TINYVCS_DIR).is_dir():
                return cls(candidate)
        raise NotARepositoryError(start_path)

    def lock(self) -> RepositoryLock:
        return RepositoryLock(self.tinyvcs_dir, timeout=self.config.lock_timeout)

    # ── Operations ────────────────────────────────────────────────

    def add(self, paths: Iterable[PathLike], force: bool = False) -> AddResult:
        """Stage files for the next commit.

        Every path is validated before anything is written. Directories are
        added recursively. A file whose content matches the tip is unstaged
        instead (and any pending removal of it is cancelled).

        Args:
            paths: Files or directories, relative to the workspace root or absolute
            force: Override .tinyvcsignore rules

        Returns:
            AddResult listing what happened to each file

        Raises:
            StagingError: If a path doesn't exist or is outside the workspace
        """
        resolved = [self._resolve(p, must_exist=True) for p in paths]
        patterns = [] if force else load_ignore_patterns(self.root)
        result = AddResult()

        with self.lock():
            tip_snapshot = self.graph.tip_snapshot()
            additions: Dict[str, str] = {}
            for abs_path, rel_path in self._expand(resolved, patterns, result):
                content = self._read_workspace_file(abs_path)
                blob_hash = self.objects.store(content)
                if tip_snapshot.get(rel_path) == blob_hash:
                    result.unchanged.append(rel_path)
                else:
                    additions[rel_path] = blob_hash
                    result.staged.append(rel_path)
            self.staging.stage_many(additions, unstaged=result.unchanged)

        logger.info(
            "add: %d staged, %d unchanged, %d ignored",
            len(result.staged),
            len(result.unchanged),
            len(result.ignored),
        )
        return result

    def remove(self, paths: Iterable[PathLike]) -> RemoveResult:
        """Unstage files and/or stage tracked files for removal.

        A file staged for addition is unstaged. A file tracked by the tip is
        staged for removal and deleted from the working tree if still
        present.

        Raises:
            NothingToRemoveError: If a path is neither staged nor tracked
                (checked for every path before anything is changed)
        """
        result = RemoveResult()

        with self.lock():
            tip_snapshot = self.graph.tip_snapshot()
            additions = self.staging.snapshot()

            targets: List[Tuple[Path, str]] = []
            for path in paths:
                abs_path, rel_path = self._resolve(path, must_exist=False)
                if rel_path not in additions and rel_path not in tip_snapshot:
                    raise NothingToRemoveError(rel_path)
                targets.append((abs_path, rel_path))

            for abs_path, rel_path in targets:
                if rel_path in tip_snapshot:
                    self.staging.stage_remove(rel_path)
                    result.removed.append(rel_path)
                    if abs_path.is_file():
                        try:
                            abs_path.unlink()
                        except OSError as e:
                            raise RepositoryIOError(abs_path, e) from e
                elif self.staging.unstage(rel_path):
                    result.unstaged.append(rel_path)

        return result

    def commit(self, message: str) -> Commit:
        """Record the staged changes as a new commit.

        Raises:
            EmptyCommitMessageError: If the message is blank
            EmptyStagingAreaError: If nothing is staged
            ObjectNotFoundError: If a staged blob is missing from the store
        """
        with self.lock():
            for path, blob_hash in self.staging.snapshot().items():
                if not self.objects.exists(blob_hash):
                    raise ObjectNotFoundError(
                        f"Blob {blob_hash} staged for {path} is missing from the object store"
                    )
            commit_hash = self.graph.commit(message, self.staging)
        return self.graph.get(commit_hash)

    def status(self) -> StatusReport:
        """Classify working tree files against the index and the tip."""
        patterns = load_ignore_patterns(self.root)
        return reconcile(
            working_tree=scan_working_tree(self.root, patterns),
            staged_additions=self.staging.snapshot(),
            staged_removals=self.staging.removals(),
            tip_snapshot=self.graph.tip_snapshot(),
            branch=self.head.branch(),
        )

    def log(self, max_count: Optional[int] = None) -> Iterator[Commit]:
        """Commits from the tip back to the root, newest first."""
        return self.graph.history(max_count=max_count)

    # ── Helpers ───────────────────────────────────────────────────

    def _resolve(self, path: PathLike, must_exist: bool) -> Tuple[Path, str]:
        """Resolve path to absolute path within workspace."""
        path = Path(path)
        abs_path = path if path.is_absolute() else self.root / path
        if abs_path.name in ("", "..", "."):
            abs_path = abs_path.resolve()
        else:
            # Resolve the parent only so a symlinked file keeps its own name
            abs_path = abs_path.parent.resolve() / abs_path.name

        try:
            rel_path = abs_path.relative_to(self.root)
        except ValueError:
            raise StagingError(f"Path {path} is outside workspace root {self.root}") from None

        if rel_path == Path("."):
            rel_str = "."
        else:
            rel_str = rel_path.as_posix()

        if rel_str != "." and rel_path.parts[0] == TINYVCS_DIR:
            raise StagingError(f"Path {path} is inside the repository directory")

        if must_exist and not abs_path.exists():
            raise StagingError(f"{path}: file not found")

        return abs_path, rel_str

    def _expand(
        self, resolved: List[Tuple[Path, str]], patterns: List[str], result: AddResult
    ) -> Iterator[Tuple[Path, str]]:
        """Yield (absolute, relative) file paths, recursing into directories."""
        seen = set()
        for abs_path, rel_path in resolved:
            if abs_path.is_dir():
                files = scan_working_tree(abs_path, patterns)
                prefix = "" if rel_path == "." else rel_path + "/"
                candidates = [(abs_path / name, prefix + name) for name in sorted(files)]
                # Nested patterns are matched relative to the workspace root too
                candidates = [c for c in candidates if not should_ignore(c[1], patterns)]
            elif should_ignore(rel_path, patterns):
                result.ignored.append(rel_path)
                continue
            else:
                candidates = [(abs_path, rel_path)]

            for candidate in candidates:
                if candidate[1] not in seen:
                    seen.add(candidate[1])
                    yield candidate

    @staticmethod
    def _read_workspace_file(abs_path: Path) -> bytes:
        try:
            return read_bytes(abs_path)
        except FileNotFoundError as e:
            raise RepositoryIOError(abs_path, e) from e
