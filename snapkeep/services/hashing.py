"""Content hashing, tree signatures and hash-map diffing."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from snapkeep.utils.logger import get_logger

logger = get_logger("snapshots.hashing")

CHUNK_SIZE = 1024 * 1024
SIGNATURE_LENGTH = 16
EMPTY_DIR_MARKER = "empty-dir"


def hash_bytes(data: bytes) -> str:
    """MD5 hex digest of data. Used for change detection, not security."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def hash_file(path: Path) -> str | None:
    """Stream file content through MD5; None if the file cannot be read."""
    digest = hashlib.md5(usedforsecurity=False)
    try:
        with path.open("rb") as fh:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        logger.debug("Failed to hash file", path=str(path), error=str(e))
        return None
    return digest.hexdigest()


def relative_key(root: Path, path: Path) -> str:
    """Relative path with POSIX separators, the key used in every hash map."""
    return path.relative_to(root).as_posix()


def tree_signature(file_hashes: Mapping[str, str], empty_dirs: Iterable[str]) -> str:
    """Digest of a whole tree state, independent of traversal order.

    Two trees with the same files, contents and empty directories always
    produce the same signature.
    """
    lines = [f"{path}:{file_hashes[path]}" for path in sorted(file_hashes)]
    lines.extend(f"{path}:{EMPTY_DIR_MARKER}" for path in sorted(empty_dirs))
    digest = hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()
    return digest[:SIGNATURE_LENGTH]


@dataclass
class HashDiff:
    """Paths classified by how they differ between two hash maps."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    @property
    def changed(self) -> list[str]:
        """Paths whose content must be (re)written: added then modified."""
        return [*self.added, *self.modified]


def diff_hashes(old: Mapping[str, str], new: Mapping[str, str]) -> HashDiff:
    """Compare two path->hash maps.

    added/modified follow the iteration order of ``new``; deleted follows the
    iteration order of ``old``.
    """
    result = HashDiff()
    for path, digest in new.items():
        if path not in old:
            result.added.append(path)
        elif old[path] != digest:
            result.modified.append(path)
    for path in old:
        if path not in new:
            result.deleted.append(path)
    return result
