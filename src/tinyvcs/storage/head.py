"""HEAD pointer: the current branch and its tip commit.

HEAD format (JSON)::

    {
        "branch": "main",
        "branches": {"main": "<commit hash>" | null}
    }

History is linear, so ``branches`` always holds exactly one entry.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from tinyvcs.constants import DEFAULT_BRANCH, HEAD_FILE
from tinyvcs.errors import DataIntegrityError
from tinyvcs.storage.files import atomic_write_json, read_bytes
from tinyvcs.storage.object_store import validate_hash

logger = logging.getLogger(__name__)


class HeadCorruptedError(DataIntegrityError):
    """Raised when the HEAD file is missing or malformed."""


class HeadPointer:
    """Persisted pointer to the current branch tip.

    Attributes:
        head_path: Path to the HEAD file
    """

    def __init__(self, tinyvcs_dir: Path) -> None:
        self.head_path = Path(tinyvcs_dir) / HEAD_FILE

    @classmethod
    def initialize(cls, tinyvcs_dir: Path, branch: str = DEFAULT_BRANCH) -> "HeadPointer":
        """Write the root state: one branch with no commits."""
        head = cls(tinyvcs_dir)
        head._save({"branch": branch, "branches": {branch: None}})
        return head

    def branch(self) -> str:
        """Name of the current branch."""
        return self._load()["branch"]

    def tip(self) -> Optional[str]:
        """Hash of the current branch tip, or None before the first commit."""
        state = self._load()
        return state["branches"][state["branch"]]

    def advance(self, new_tip: str) -> None:
        """Move the current branch to ``new_tip``."""
        validate_hash(new_tip)
        state = self._load()
        previous = state["branches"][state["branch"]]
        state["branches"][state["branch"]] = new_tip
        self._save(state)
        logger.info("Advanced %s: %s -> %s", state["branch"], previous, new_tip)

    def _load(self) -> Dict[str, Any]:
        try:
            raw = read_bytes(self.head_path)
        except FileNotFoundError:
            raise HeadCorruptedError(f"HEAD file missing: {self.head_path}") from None

        try:
            state = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise HeadCorruptedError(f"Corrupted HEAD file: {e}") from e

        if not isinstance(state, dict):
            raise HeadCorruptedError("Corrupted HEAD file: expected a JSON object")

        branch = state.get("branch")
        branches = state.get("branches")
        if not isinstance(branch, str) or not isinstance(branches, dict):
            raise HeadCorruptedError("Corrupted HEAD file: missing branch or branches")
        if len(branches) != 1 or branch not in branches:
            raise HeadCorruptedError(
                f"Corrupted HEAD file: expected exactly one branch '{branch}', "
                f"found {sorted(branches)}"
            )

        tip = branches[branch]
        if tip is not None:
            try:
                validate_hash(tip)
            except ValueError as e:
                raise HeadCorruptedError(f"Corrupted HEAD file: bad tip {tip!r}: {e}") from e

        return state

    def _save(self, state: Dict[str, Any]) -> None:
        atomic_write_json(self.head_path, state, prefix=".tmp_head_")
