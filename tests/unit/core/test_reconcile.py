"""Unit tests for status reconciliation."""

import itertools
from pathlib import Path

import pytest

from tinyvcs.core.status import DELETED, MODIFIED, reconcile, scan_working_tree
from tinyvcs.storage.object_store import compute_hash

H1 = "1" * 40
H2 = "2" * 40


class TestReconcile:
    """Test the path classification rules."""

    def test_all_empty(self) -> None:
        report = reconcile({}, {}, frozenset(), {})
        assert report.is_clean
        assert report.all_paths() == []
        assert report.branch == "main"

    def test_untracked(self) -> None:
        report = reconcile({"new.txt": H1}, {}, frozenset(), {})
        assert report.untracked == ["new.txt"]

    def test_staged(self) -> None:
        report = reconcile({"a.txt": H1}, {"a.txt": H1}, frozenset(), {})
        assert report.staged == ["a.txt"]
        assert report.untracked == []

    def test_clean_tracked_file(self) -> None:
        report = reconcile({"a.txt": H1}, {}, frozenset(), {"a.txt": H1})
        assert report.clean == ["a.txt"]
        assert report.is_clean

    def test_modified(self) -> None:
        report = reconcile({"a.txt": H2}, {}, frozenset(), {"a.txt": H1})
        assert report.modified == [("a.txt", MODIFIED)]

    def test_deleted(self) -> None:
        report = reconcile({}, {}, frozenset(), {"a.txt": H1})
        assert report.modified == [("a.txt", DELETED)]

    def test_removed(self) -> None:
        report = reconcile({}, {}, frozenset({"a.txt"}), {"a.txt": H1})
        assert report.removed == ["a.txt"]
        assert report.modified == []

    def test_restaged_modification_is_staged_only(self) -> None:
        report = reconcile({"a.txt": H2}, {"a.txt": H2}, frozenset(), {"a.txt": H1})
        assert report.staged == ["a.txt"]
        assert report.modified == []

    def test_removed_but_recreated_is_removed_only(self) -> None:
        report = reconcile({"a.txt": H2}, {}, frozenset({"a.txt"}), {"a.txt": H1})
        assert report.removed == ["a.txt"]
        assert report.untracked == []

    def test_buckets_sorted(self) -> None:
        report = reconcile({"b": H1, "a": H1, "c": H1}, {}, frozenset(), {})
        assert report.untracked == ["a", "b", "c"]

    def test_branch_copied(self) -> None:
        assert reconcile({}, {}, frozenset(), {}, branch="trunk").branch == "trunk"

    def test_total_partition(self) -> None:
        """Every combination of sources puts each path in exactly one bucket."""
        # For one path: working tree / tip each absent, H1 or H2; staged as
        # add(H1), add(H2), remove, or nothing.
        hash_choices = [None, H1, H2]
        staged_choices = [None, ("add", H1), ("add", H2), ("remove", None)]

        working, additions, removals, tip = {}, {}, set(), {}
        combos = list(itertools.product(hash_choices, staged_choices, hash_choices))
        for i, (work_hash, staged, tip_hash) in enumerate(combos):
            path = f"p{i:02d}"
            if work_hash:
                working[path] = work_hash
            if tip_hash:
                tip[path] = tip_hash
            if staged and staged[0] == "add":
                additions[path] = staged[1]
            elif staged:
                removals.add(path)

        report = reconcile(working, additions, frozenset(removals), tip)

        observed = set(working) | set(additions) | removals | set(tip)
        all_paths = report.all_paths()
        assert sorted(all_paths) == sorted(observed)
        assert len(all_paths) == len(set(all_paths))


class TestScanWorkingTree:
    """Test hashing the working tree."""

    def test_scan(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_bytes(b"x")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.txt").write_bytes(b"y")

        result = scan_working_tree(tmp_path)

        assert result == {"a.txt": compute_hash(b"x"), "sub/b.txt": compute_hash(b"y")}

    def test_skips_repository_dir(self, tmp_path: Path) -> None:
        (tmp_path / ".tinyvcs").mkdir()
        (tmp_path / ".tinyvcs" / "HEAD").write_text("{}")
        (tmp_path / "a.txt").write_bytes(b"x")

        assert list(scan_working_tree(tmp_path)) == ["a.txt"]

    def test_nested_tinyvcs_name_not_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "sub" / ".tinyvcs").mkdir(parents=True)
        (tmp_path / "sub" / ".tinyvcs" / "f").write_bytes(b"z")

        assert list(scan_working_tree(tmp_path)) == ["sub/.tinyvcs/f"]

    def test_ignore_patterns(self, tmp_path: Path) -> None:
        (tmp_path / "keep.py").write_bytes(b"1")
        (tmp_path / "drop.pyc").write_bytes(b"2")
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "out.txt").write_bytes(b"3")

        result = scan_working_tree(tmp_path, ["*.pyc", "build/"])

        assert list(result) == ["keep.py"]

    def test_broken_symlink_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_bytes(b"x")
        try:
            (tmp_path / "dangling").symlink_to(tmp_path / "missing")
        except OSError:
            pytest.skip("symlinks not permitted")

        assert list(scan_working_tree(tmp_path)) == ["a.txt"]
