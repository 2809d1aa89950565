"""Directory traversal that respects ignore rules."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from snapkeep.services.ignore import IgnoreRules
from snapkeep.utils.logger import get_logger

logger = get_logger("snapshots.walker")


@dataclass
class WalkResult:
    """Regular files and empty directories found under a root (absolute paths)."""

    files: list[Path] = field(default_factory=list)
    empty_dirs: list[Path] = field(default_factory=list)

    def absorb(self, other: WalkResult) -> None:
        self.files.extend(other.files)
        self.empty_dirs.extend(other.empty_dirs)


def _scan_sorted(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def walk_tree(root: Path, rules: IgnoreRules) -> WalkResult:
    """Walk root depth-first and return its files and empty directories.

    A directory (other than root) with no non-ignored entries is reported as
    empty. Entries that are neither regular files nor directories (symlinks,
    sockets) make their parent non-empty but are not collected. Unreadable
    directories are skipped.
    """
    return _walk(root, root, rules)


def _walk(root: Path, directory: Path, rules: IgnoreRules) -> WalkResult:
    try:
        entries = _scan_sorted(directory)
    except OSError as e:
        logger.debug("Skipping unreadable directory", path=str(directory), error=str(e))
        return WalkResult()

    result = WalkResult()
    has_children = False
    for entry in entries:
        path = Path(entry.path)
        if rules.matches(path.relative_to(root).as_posix()):
            continue
        has_children = True
        if entry.is_dir(follow_symlinks=False):
            result.absorb(_walk(root, path, rules))
        elif entry.is_file(follow_symlinks=False):
            result.files.append(path)

    if not has_children and directory != root:
        result.empty_dirs.append(directory)
    return result


def remove_empty_dirs(root: Path, rules: IgnoreRules) -> int:
    """Remove directories left empty below root, deepest first.

    Ignored subtrees are never entered, and root itself is kept. Returns the
    number of directories removed.
    """
    removed = 0
    try:
        entries = _scan_sorted(root)
    except OSError:
        return 0
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue
        path = Path(entry.path)
        removed += _remove_empty(root, path, rules)
    return removed


def _remove_empty(root: Path, directory: Path, rules: IgnoreRules) -> int:
    if rules.matches(directory.relative_to(root).as_posix()):
        return 0
    removed = 0
    try:
        entries = _scan_sorted(directory)
    except OSError:
        return 0
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            removed += _remove_empty(root, Path(entry.path), rules)
    try:
        if not any(directory.iterdir()):
            directory.rmdir()
            removed += 1
    except OSError as e:
        logger.debug("Failed to remove empty directory", path=str(directory), error=str(e))
    return removed


def directory_size(path: Path) -> int:
    """Total size in bytes of regular files below path; 0 when missing."""
    total = 0
    try:
        entries = _scan_sorted(path)
    except OSError:
        return 0
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                total += directory_size(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
        except OSError:
            continue
    return total
