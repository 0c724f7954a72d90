"""Ignore rules from the workspace's ``.tinyvcsignore`` file.

Patterns follow a small subset of .gitignore syntax: fnmatch globs matched
against the relative path or its file name, a trailing ``/`` for
directories, and ``#`` comments.
"""

import fnmatch
import logging
from pathlib import Path, PurePosixPath
from typing import List, Union

from tinyvcs.constants import IGNORE_FILE

logger = logging.getLogger(__name__)


def load_ignore_patterns(workspace_root: Path) -> List[str]:
    """Load patterns from .tinyvcsignore file."""
    ignore_file = Path(workspace_root) / IGNORE_FILE

    if not ignore_file.exists():
        return []

    patterns = []
    try:
        content = ignore_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s, ignoring it: %s", ignore_file, e)
        return []

    for line in content.splitlines():
        line = line.strip()
        # Skip empty lines and comments
        if line and not line.startswith("#"):
            patterns.append(line)

    return patterns


def should_ignore(rel_path: Union[str, PurePosixPath], patterns: List[str]) -> bool:
    """Check if a workspace-relative POSIX path matches any ignore pattern."""
    path = PurePosixPath(rel_path)
    path_str = path.as_posix()

    for pattern in patterns:
        if pattern.endswith("/"):
            # Match if any parent directory matches
            dir_pattern = pattern.rstrip("/")
            for parent in path.parents:
                parent_str = parent.as_posix()
                if parent_str == ".":
                    continue
                if fnmatch.fnmatch(parent_str, dir_pattern) or fnmatch.fnmatch(
                    parent.name, dir_pattern
                ):
                    return True
        else:
            if fnmatch.fnmatch(path_str, pattern):
                return True
            if fnmatch.fnmatch(path.name, pattern):
                return True

    return False
