"""Applies a stored snapshot back onto the workspace.

Restore never trusts the current workspace state: it hashes the live tree,
diffs it against the target's hash map and only touches paths that differ.
Running the same restore twice therefore changes nothing the second time.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from snapkeep.core.host import WorkspaceHost
from snapkeep.core.paths import StoragePaths
from snapkeep.services.chain import find_file_in_chain
from snapkeep.services.errors import PayloadMissingError
from snapkeep.services.hashing import diff_hashes, hash_file, relative_key
from snapkeep.services.ignore import IgnoreRules, load_ignore_patterns
from snapkeep.services.records import ChainedSnapshotRecord, LegacySnapshotRecord
from snapkeep.services.tree_walker import remove_empty_dirs, walk_tree
from snapkeep.utils.logger import snapshot_logger as logger


@dataclass
class RestoreResult:
    success: bool
    restored: int = 0
    deleted: int = 0
    skipped: int = 0
    error: str | None = None
    failed: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> RestoreResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "restored": self.restored,
            "deleted": self.deleted,
            "skipped": self.skipped,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.failed:
            data["failed"] = list(self.failed)
        return data


def hash_tree(root: Path, rules: IgnoreRules) -> tuple[dict[str, str], list[str]]:
    """Hash map (sorted by path) and sorted empty dirs of the tree under root."""
    walked = walk_tree(root, rules)
    hashes: dict[str, str] = {}
    for path in sorted(walked.files, key=lambda p: relative_key(root, p)):
        digest = hash_file(path)
        if digest is None:
            logger.warning("Skipping unreadable file", path=str(path))
            continue
        hashes[relative_key(root, path)] = digest
    empty_dirs = sorted(relative_key(root, d) for d in walked.empty_dirs)
    return hashes, empty_dirs


class RestoreEngine:
    """Rewrites a workspace to match a chained or legacy snapshot."""

    def __init__(self, paths: StoragePaths, host: WorkspaceHost):
        self.paths = paths
        self.host = host

    def verify_payloads(self, chain: Sequence[ChainedSnapshotRecord]) -> None:
        """Raise PayloadMissingError unless every chain payload exists."""
        for record in chain:
            if not self.paths.payload_path(record.payload_dir).is_dir():
                raise PayloadMissingError(record.id, record.payload_dir)

    def _delete_files(
        self, root: Path, relative_paths: Sequence[str], deleted: list[Path]
    ) -> None:
        for rel in relative_paths:
            target = root / rel
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Failed to delete file", path=rel, error=str(e))
                continue
            deleted.append(target)

    @staticmethod
    def _copy(source: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)

    @staticmethod
    def _make_dirs(root: Path, relative_dirs: Sequence[str]) -> None:
        for rel in relative_dirs:
            try:
                (root / rel).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning("Failed to recreate empty directory", path=rel, error=str(e))

    def _notify(self, modified: list[Path], deleted: list[Path]) -> None:
        try:
            self.host.refresh_documents(modified, deleted)
        except Exception as e:
            logger.warning("Failed to refresh documents", error=str(e))

    def restore_chain(
        self,
        root: Path,
        target: ChainedSnapshotRecord,
        chain: Sequence[ChainedSnapshotRecord],
        rules: IgnoreRules,
    ) -> RestoreResult:
        """Restore target, whose resolved chain (oldest first) is chain.

        Raises:
            PayloadMissingError: a payload of the chain is gone; nothing was
                touched.
        """
        self.verify_payloads(chain)

        current, _ = hash_tree(root, rules)
        target_hashes = target.file_hashes
        diff = diff_hashes(current, target_hashes)

        deleted: list[Path] = []
        self._delete_files(root, diff.deleted, deleted)
        remove_empty_dirs(root, rules)

        modified: list[Path] = []
        failed: list[str] = []
        for rel in diff.changed:
            source = find_file_in_chain(self.paths, chain, rel)
            if source is None:
                logger.warning(
                    "File missing from snapshot chain", path=rel, snapshot_id=target.id
                )
                failed.append(rel)
                continue
            if hash_file(source) != target_hashes[rel]:
                logger.warning(
                    "Snapshot copy does not match recorded hash",
                    path=rel,
                    snapshot_id=target.id,
                )
                failed.append(rel)
                continue
            dest = root / rel
            try:
                self._copy(source, dest)
            except OSError as e:
                logger.warning("Failed to restore file", path=rel, error=str(e))
                failed.append(rel)
                continue
            modified.append(dest)

        self._make_dirs(root, target.empty_dirs)
        self._notify(modified, deleted)

        result = RestoreResult(
            success=True,
            restored=len(modified),
            deleted=len(deleted),
            skipped=len(target_hashes) - len(diff.added) - len(diff.modified),
            failed=failed,
        )
        logger.info(
            "Restore finished",
            snapshot_id=target.id,
            chain_length=len(chain),
            restored=result.restored,
            deleted=result.deleted,
            skipped=result.skipped,
            failed=len(failed),
        )
        return result

    def restore_legacy(
        self,
        root: Path,
        record: LegacySnapshotRecord,
        custom_patterns: Iterable[str] = (),
    ) -> RestoreResult:
        """Restore a record without hash map by comparing its payload directly.

        Ignore files captured in the payload describe the tree being restored;
        custom_patterns are layered on top so user-excluded workspace files
        are neither deleted nor overwritten.

        Raises:
            PayloadMissingError: the payload directory is gone.
        """
        payload = self.paths.payload_path(record.payload_dir)
        if not payload.is_dir():
            raise PayloadMissingError(record.id, record.payload_dir)

        rules = load_ignore_patterns(payload, custom_patterns)
        backup = walk_tree(payload, rules)
        backup_files = {relative_key(payload, p): p for p in backup.files}
        workspace_files = {
            relative_key(root, p) for p in walk_tree(root, rules).files
        }

        deleted: list[Path] = []
        self._delete_files(
            root, sorted(workspace_files - backup_files.keys()), deleted
        )
        remove_empty_dirs(root, rules)

        modified: list[Path] = []
        failed: list[str] = []
        skipped = 0
        for rel in sorted(backup_files):
            source = backup_files[rel]
            dest = root / rel
            if rel in workspace_files:
                source_hash = hash_file(source)
                if source_hash is not None and source_hash == hash_file(dest):
                    skipped += 1
                    continue
            try:
                self._copy(source, dest)
            except OSError as e:
                logger.warning("Failed to restore file", path=rel, error=str(e))
                failed.append(rel)
                continue
            modified.append(dest)

        self._make_dirs(root, [relative_key(payload, d) for d in backup.empty_dirs])
        self._notify(modified, deleted)

        logger.info(
            "Legacy restore finished",
            snapshot_id=record.id,
            restored=len(modified),
            deleted=len(deleted),
            skipped=skipped,
        )
        return RestoreResult(
            success=True,
            restored=len(modified),
            deleted=len(deleted),
            skipped=skipped,
            failed=failed,
        )
