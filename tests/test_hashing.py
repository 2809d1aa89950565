"""Tests for content hashing, tree signatures and hash-map diffs."""

from snapkeep.services.hashing import (
    diff_hashes,
    hash_bytes,
    hash_file,
    relative_key,
    tree_signature,
)


def test_hash_bytes_is_md5():
    assert hash_bytes(b"hello") == "5d41402abc4b2a76b9719d911017c592"


def test_hash_file_matches_hash_bytes(tmp_path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"\x00\x01payload")
    assert hash_file(path) == hash_bytes(b"\x00\x01payload")


def test_hash_file_missing_returns_none(tmp_path):
    assert hash_file(tmp_path / "nope") is None


def test_relative_key_uses_posix_separators(tmp_path):
    assert relative_key(tmp_path, tmp_path / "a" / "b.txt") == "a/b.txt"


def test_tree_signature_is_order_independent():
    first = tree_signature({"a.txt": "1", "b.txt": "2"}, ["x", "y"])
    second = tree_signature({"b.txt": "2", "a.txt": "1"}, ["y", "x"])
    assert first == second
    assert len(first) == 16


def test_tree_signature_sees_empty_dirs_and_content():
    base = tree_signature({"a.txt": "1"}, [])
    assert tree_signature({"a.txt": "1"}, ["empty"]) != base
    assert tree_signature({"a.txt": "2"}, []) != base


def test_diff_partitions_paths():
    old = {"a": "1", "b": "2", "c": "3"}
    new = {"a": "1", "b": "9", "d": "4"}

    diff = diff_hashes(old, new)

    assert diff.added == ["d"]
    assert diff.modified == ["b"]
    assert diff.deleted == ["c"]
    assert diff.changed == ["d", "b"]
    assert diff.total == 3
    assert not diff.is_empty


def test_diff_of_identical_maps_is_empty():
    diff = diff_hashes({"a": "1"}, {"a": "1"})
    assert diff.is_empty
    assert diff.total == 0
