"""Content-addressable blob storage for TinyVCS.

Blobs are stored in ``.tinyvcs/blobs/`` as files named by the SHA-1 hash of
their content. The store is write-once: identical content is written only
the first time, and nothing is ever updated or deleted.
"""

import hashlib
import logging
import os
from pathlib import Path

from tinyvcs.constants import BLOBS_DIR, HASH_ALGORITHM, HASH_LENGTH
from tinyvcs.errors import DataIntegrityError
from tinyvcs.storage.files import atomic_write_bytes, ensure_dir, read_bytes

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdef")


class ObjectNotFoundError(DataIntegrityError):
    """Raised when a blob cannot be found in the object store."""


class ObjectCorruptedError(DataIntegrityError):
    """Raised when a blob's hash doesn't match its content."""


def compute_hash(content: bytes) -> str:
    """Compute the content hash of ``content``.

    Args:
        content: Binary data to hash

    Returns:
        Hex string of hash (40 characters for SHA-1)
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(content)
    return hasher.hexdigest()


def validate_hash(blob_hash: str) -> None:
    """Validate that a hash string is properly formatted.

    Raises:
        ValueError: If hash is invalid format
    """
    if not isinstance(blob_hash, str):
        raise ValueError(f"Hash must be string, got {type(blob_hash)}")

    if len(blob_hash) != HASH_LENGTH:
        raise ValueError(
            f"Hash must be {HASH_LENGTH} characters, got {len(blob_hash)}"
        )

    # Lowercase hex only
    if not set(blob_hash) <= _HEX_DIGITS:
        raise ValueError(f"Hash must be hexadecimal: {blob_hash!r}")


class ObjectStore:
    """Content-addressable storage for file blobs.

    Storage layout:
        .tinyvcs/blobs/<hash>      # Raw blob bytes

    Attributes:
        tinyvcs_dir: Path to the .tinyvcs directory
        blobs_dir: Path to the blobs directory
        verify_hashes: Whether :meth:`load` re-hashes content it reads

    Example:
        >>> store = ObjectStore(Path(".tinyvcs"))
        >>> blob_hash = store.store(b"hello\\n")
        >>> assert store.load(blob_hash) == b"hello\\n"
    """

    def __init__(self, tinyvcs_dir: Path, verify_hashes: bool = True) -> None:
        """Initialize the object store.

        Args:
            tinyvcs_dir: Path to .tinyvcs directory
            verify_hashes: Re-hash blobs on read to detect corruption

        Raises:
            ValueError: If tinyvcs_dir doesn't exist
        """
        self.tinyvcs_dir = Path(tinyvcs_dir)
        self.blobs_dir = self.tinyvcs_dir / BLOBS_DIR
        self.verify_hashes = verify_hashes

        if not self.tinyvcs_dir.exists():
            raise ValueError(f"TinyVCS directory not found: {tinyvcs_dir}")

    def store(self, content: bytes) -> str:
        """Write a blob to the object store.

        If a blob with the same hash already exists, returns the hash without
        writing. New blobs are written atomically (tmp file + rename).

        Args:
            content: Binary content to store

        Returns:
            SHA-1 hash of the content (40 hex characters)

        Raises:
            RepositoryIOError: If the write fails (permissions, disk full, ...)
        """
        blob_hash = compute_hash(content)

        if self.exists(blob_hash):
            return blob_hash

        ensure_dir(self.blobs_dir)
        atomic_write_bytes(self.path_for(blob_hash), content, prefix=".tmp_blob_")
        logger.debug("Stored blob %s (%d bytes)", blob_hash, len(content))
        return blob_hash

    def load(self, blob_hash: str) -> bytes:
        """Read a blob from the object store.

        Args:
            blob_hash: SHA-1 hash of the blob (40 hex characters)

        Returns:
            Binary content of the blob

        Raises:
            ObjectNotFoundError: If blob doesn't exist
            ObjectCorruptedError: If hash verification fails
            ValueError: If blob_hash is invalid format
        """
        validate_hash(blob_hash)
        blob_path = self.path_for(blob_hash)

        try:
            content = read_bytes(blob_path)
        except FileNotFoundError:
            raise ObjectNotFoundError(
                f"Blob not found: {blob_hash} (expected at {blob_path})"
            ) from None

        if self.verify_hashes:
            actual_hash = compute_hash(content)
            if actual_hash != blob_hash:
                raise ObjectCorruptedError(
                    f"Blob corrupted: expected {blob_hash}, got {actual_hash}"
                )

        return content

    def exists(self, blob_hash: str) -> bool:
        """Check if a blob exists in the store."""
        try:
            validate_hash(blob_hash)
        except ValueError:
            return False
        return self.path_for(blob_hash).is_file()

    def path_for(self, blob_hash: str) -> Path:
        """Get the filesystem path for a blob."""
        return self.blobs_dir / blob_hash

    def __iter__(self):
        """Iterate over the hashes of every stored blob."""
        if not self.blobs_dir.exists():
            return
        for entry in sorted(os.listdir(self.blobs_dir)):
            if len(entry) == HASH_LENGTH and not entry.startswith("."):
                yield entry
