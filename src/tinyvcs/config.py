"""Repository configuration stored in ``.tinyvcs/config.json``.

Config format (JSON)::

    {
        "version": 1,
        "default_branch": "main",
        "verify_hashes": true,
        "lock_timeout": 10.0
    }

A missing file means defaults. Unknown keys are logged and ignored so an
older TinyVCS can still open a repository written by a newer one, unless
the schema version itself is newer.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

from tinyvcs.constants import (
    CONFIG_FILE,
    CONFIG_VERSION,
    DEFAULT_BRANCH,
    DEFAULT_LOCK_TIMEOUT,
)
from tinyvcs.errors import ConfigError
from tinyvcs.storage.files import atomic_write_json, read_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryConfig:
    """Settings of one repository.

    Attributes:
        version: Config schema version
        default_branch: Branch created by ``init``
        verify_hashes: Re-hash blobs on every read
        lock_timeout: Seconds to wait for the repository lock
    """

    version: int = CONFIG_VERSION
    default_branch: str = DEFAULT_BRANCH
    verify_hashes: bool = True
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_FIELD_TYPES = {
    "version": (int,),
    "default_branch": (str,),
    "verify_hashes": (bool,),
    "lock_timeout": (int, float),
}


def _validate(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown_keys = set(data) - set(_FIELD_TYPES)
    if unknown_keys:
        logger.warning("Unknown config keys (ignored): %s", ", ".join(sorted(unknown_keys)))

    values = {}
    for key, types in _FIELD_TYPES.items():
        if key not in data:
            continue
        value = data[key]
        # bool is an int subclass; don't let `true` pass as a version
        if isinstance(value, bool) and bool not in types:
            raise ConfigError(f"Config key '{key}' has invalid value {value!r}")
        if not isinstance(value, types):
            raise ConfigError(f"Config key '{key}' has invalid value {value!r}")
        values[key] = value

    version = values.get("version", CONFIG_VERSION)
    if version > CONFIG_VERSION:
        raise ConfigError(
            f"Repository config version {version} is newer than this version "
            f"of TinyVCS ({CONFIG_VERSION}). Please upgrade TinyVCS."
        )
    if "lock_timeout" in values:
        if values["lock_timeout"] < 0:
            raise ConfigError(f"lock_timeout must be >= 0, got {values['lock_timeout']}")
        values["lock_timeout"] = float(values["lock_timeout"])
    if "default_branch" in values and not values["default_branch"].strip():
        raise ConfigError("default_branch must not be empty")

    return values


def load_config(tinyvcs_dir: Path) -> RepositoryConfig:
    """Read the repository configuration.

    Raises:
        ConfigError: If the file is malformed or holds invalid values
    """
    config_path = Path(tinyvcs_dir) / CONFIG_FILE
    try:
        raw = read_bytes(config_path)
    except FileNotFoundError:
        return RepositoryConfig()

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Corrupted config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Corrupted config file {config_path}: expected a JSON object")

    return RepositoryConfig(**_validate(data))


def save_config(tinyvcs_dir: Path, config: RepositoryConfig) -> None:
    """Write the repository configuration atomically."""
    atomic_write_json(Path(tinyvcs_dir) / CONFIG_FILE, config.to_dict(), prefix=".tmp_config_")
