"""Unit tests for ObjectStore."""

import hashlib
from pathlib import Path

import pytest

from tinyvcs.errors import RepositoryIOError
from tinyvcs.storage.object_store import (
    ObjectCorruptedError,
    ObjectNotFoundError,
    ObjectStore,
    compute_hash,
    validate_hash,
)


@pytest.fixture
def tinyvcs_dir(tmp_path: Path) -> Path:
    """Create a temporary .tinyvcs directory structure."""
    tinyvcs = tmp_path / ".tinyvcs"
    tinyvcs.mkdir()
    (tinyvcs / "blobs").mkdir()
    return tinyvcs


@pytest.fixture
def store(tinyvcs_dir: Path) -> ObjectStore:
    """Create an ObjectStore instance."""
    return ObjectStore(tinyvcs_dir)


class TestObjectStoreInit:
    """Test ObjectStore initialization."""

    def test_init_with_valid_dir(self, tinyvcs_dir: Path) -> None:
        store = ObjectStore(tinyvcs_dir)
        assert store.tinyvcs_dir == tinyvcs_dir
        assert store.blobs_dir == tinyvcs_dir / "blobs"
        assert store.verify_hashes is True

    def test_init_with_nonexistent_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            ObjectStore(tmp_path / "nonexistent")


class TestComputeHash:
    """Test content hashing."""

    def test_sha1_hex_digest(self) -> None:
        assert compute_hash(b"x") == hashlib.sha1(b"x").hexdigest()
        assert len(compute_hash(b"x")) == 40

    def test_empty_content(self) -> None:
        assert compute_hash(b"") == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_validate_hash_rejects_bad_input(self) -> None:
        with pytest.raises(ValueError, match="40 characters"):
            validate_hash("abc")
        with pytest.raises(ValueError, match="hexadecimal"):
            validate_hash("z" * 40)
        with pytest.raises(ValueError, match="string"):
            validate_hash(None)  # type: ignore[arg-type]


class TestStore:
    """Test blob writing."""

    def test_store_basic(self, store: ObjectStore) -> None:
        blob_hash = store.store(b"hello\n")

        assert len(blob_hash) == 40
        assert all(c in "0123456789abcdef" for c in blob_hash)
        assert store.exists(blob_hash)
        assert store.path_for(blob_hash).read_bytes() == b"hello\n"

    def test_identical_content_same_hash(self, store: ObjectStore) -> None:
        """Identical content is stored once and yields one hash."""
        hash1 = store.store(b"same bytes")
        hash2 = store.store(b"same bytes")

        assert hash1 == hash2
        assert list(store) == [hash1]

    def test_second_store_does_not_rewrite(self, store: ObjectStore) -> None:
        blob_hash = store.store(b"write once")
        blob_path = store.path_for(blob_hash)
        mtime_before = blob_path.stat().st_mtime_ns

        store.store(b"write once")

        assert blob_path.stat().st_mtime_ns == mtime_before

    def test_distinct_content_distinct_hashes(self, store: ObjectStore) -> None:
        corpus = [b"", b"a", b"b", b"ab", b"ba", b"a\n", b"\x00", b"\x00\x00"]
        hashes = [store.store(content) for content in corpus]

        assert len(set(hashes)) == len(corpus)
        assert sorted(store) == sorted(hashes)

    def test_store_creates_blobs_dir(self, tmp_path: Path) -> None:
        tinyvcs = tmp_path / ".tinyvcs"
        tinyvcs.mkdir()
        store = ObjectStore(tinyvcs)

        blob_hash = store.store(b"lazy dir")

        assert (tinyvcs / "blobs" / blob_hash).is_file()

    def test_no_temp_files_left(self, store: ObjectStore) -> None:
        store.store(b"one")
        store.store(b"two")

        leftovers = [p.name for p in store.blobs_dir.iterdir() if p.name.startswith(".")]
        assert leftovers == []

    def test_store_io_failure(self, tmp_path: Path) -> None:
        tinyvcs = tmp_path / ".tinyvcs"
        tinyvcs.mkdir()
        # A regular file where the blobs directory should be
        (tinyvcs / "blobs").write_text("not a directory")
        store = ObjectStore(tinyvcs)

        with pytest.raises(RepositoryIOError):
            store.store(b"data")


class TestLoad:
    """Test blob reading."""

    def test_load_roundtrip(self, store: ObjectStore) -> None:
        content = bytes(range(256)) * 4
        assert store.load(store.store(content)) == content

    def test_load_unknown_hash(self, store: ObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError, match="Blob not found"):
            store.load("0" * 40)

    def test_load_malformed_hash(self, store: ObjectStore) -> None:
        with pytest.raises(ValueError):
            store.load("not-a-hash")

    def test_load_detects_corruption(self, store: ObjectStore) -> None:
        blob_hash = store.store(b"original")
        store.path_for(blob_hash).write_bytes(b"tampered")

        with pytest.raises(ObjectCorruptedError, match="corrupted"):
            store.load(blob_hash)

    def test_load_without_verification(self, tinyvcs_dir: Path) -> None:
        store = ObjectStore(tinyvcs_dir, verify_hashes=False)
        blob_hash = store.store(b"original")
        store.path_for(blob_hash).write_bytes(b"tampered")

        assert store.load(blob_hash) == b"tampered"


class TestExists:
    """Test existence checks."""

    def test_exists_false_for_unknown(self, store: ObjectStore) -> None:
        assert not store.exists("f" * 40)

    def test_exists_false_for_malformed(self, store: ObjectStore) -> None:
        assert not store.exists("xyz")

    def test_iter_empty_store(self, tmp_path: Path) -> None:
        tinyvcs = tmp_path / ".tinyvcs"
        tinyvcs.mkdir()
        assert list(ObjectStore(tinyvcs)) == []
