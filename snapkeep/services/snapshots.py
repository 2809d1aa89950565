"""Snapshot manager - the public facade of the snapshot engine.

The manager owns snapshot creation, restore, listing and every deletion
path. It never raises: structural problems become ``None``, ``False`` or a
failed RestoreResult, and are logged.

Snapshots of a session form a chain. The first one (or the first after a
legacy record) is a full copy of the workspace; every later one stores only
the files that changed since the previous snapshot, together with the
complete hash map of the tree. Restoring walks the chain back to its full
snapshot and picks each file from the newest payload that holds it.
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from snapkeep.config import settings as app_settings
from snapkeep.config.schema import SnapshotSettings
from snapkeep.core.host import StaticWorkspaceHost, WorkspaceHost
from snapkeep.core.paths import StoragePaths, check_session_id
from snapkeep.db.records import RecordStore, SqlRecordStore
from snapkeep.services.chain import resolve_chain
from snapkeep.services.errors import InvalidSessionError, SnapshotError
from snapkeep.services.hashing import diff_hashes, tree_signature
from snapkeep.services.ignore import load_ignore_patterns
from snapkeep.services.records import (
    ChainedSnapshotRecord,
    ChangeType,
    FileChange,
    LegacySnapshotRecord,
    RecordSet,
    SnapshotKind,
    SnapshotPhase,
    SnapshotRecord,
    describe,
    new_snapshot_id,
)
from snapkeep.services.restore import RestoreEngine, RestoreResult, hash_tree
from snapkeep.services.retention import (
    dependents_of,
    select_evictions,
    select_from_anchor,
)
from snapkeep.services.triggers import should_snapshot
from snapkeep.services.tree_walker import directory_size
from snapkeep.utils.logger import snapshot_logger as logger


@dataclass
class DeleteAllResult:
    success: bool
    deleted_count: int


@dataclass
class SessionSnapshotSummary:
    session_id: str
    title: str
    snapshot_count: int
    total_bytes: int
    created_at: int
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MigrationProgress:
    phase: str
    # Fraction of sessions copied, 0.0 - 1.0
    progress: float


def default_session_title(session_id: str) -> str:
    return f"Session {session_id[:8]}"


class SnapshotManager:
    """Creates, restores and removes workspace snapshots.

    Args:
        paths: storage locations of payloads; shared with the restore engine so
            update_base_path applies everywhere.
        store: persistent record store.
        host: supplies the workspace root and receives restore notifications.
        settings_source: returns the current snapshot policy. Called on every
            operation so configuration reloads apply immediately.
    """

    def __init__(
        self,
        paths: StoragePaths,
        store: RecordStore,
        host: WorkspaceHost,
        settings_source: Callable[[], SnapshotSettings] | None = None,
    ):
        self.paths = paths
        self.store = store
        self.host = host
        self._settings_source = settings_source or (
            lambda: app_settings.snapshot_settings
        )
        self.restore_engine = RestoreEngine(paths, host)

    # ------------------------------------------------------------------ helpers

    def _settings(self) -> SnapshotSettings:
        return self._settings_source()

    def _load(self, session_id: str) -> RecordSet:
        return RecordSet.parse(self.store.load_records(session_id), session_id)

    def _save(self, session_id: str, records: RecordSet) -> None:
        self.store.save_records(session_id, records.dump())

    def _remove_payload(self, payload_dir: str) -> None:
        path = self.paths.payload_path(payload_dir)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                "Failed to remove snapshot payload", path=str(path), error=str(e)
            )

    def _delete_records(
        self, session_id: str, records: RecordSet, to_delete: Sequence[SnapshotRecord]
    ) -> RecordSet:
        """Remove payloads and records of to_delete; return the remaining set."""
        ids = {r.id for r in to_delete}
        for record in to_delete:
            orphaned = [
                d.id for d in dependents_of(records.records, record.id) if d.id not in ids
            ]
            if orphaned:
                logger.warning(
                    "Snapshot chain broken by deletion",
                    session_id=session_id,
                    snapshot_id=record.id,
                    dependents=orphaned,
                )
            self._remove_payload(record.payload_dir)
        remaining = records.without(ids)
        self._save(session_id, remaining)
        return remaining

    def _apply_retention(self, session_id: str, max_snapshots: int) -> None:
        try:
            records = self._load(session_id)
            evictions = select_evictions(records.records, max_snapshots)
            if not evictions:
                return
            self._delete_records(session_id, records, evictions)
            logger.info(
                "Evicted old snapshots",
                session_id=session_id,
                evicted=len(evictions),
                max_snapshots=max_snapshots,
            )
        except Exception as e:
            logger.error(
                "Failed to apply snapshot retention",
                session_id=session_id,
                error=str(e),
                exc_info=True,
            )

    def _copy_into_payload(
        self, root: Path, payload: Path, relative_paths: Iterable[str]
    ) -> int:
        copied = 0
        for rel in relative_paths:
            dest = payload / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(root / rel, dest)
            except OSError as e:
                logger.warning("Failed to copy file into snapshot", path=rel, error=str(e))
                continue
            copied += 1
        return copied

    # ------------------------------------------------------------------ create

    def create_snapshot(
        self,
        session_id: str,
        sequence_anchor: int,
        label: str,
        phase: SnapshotPhase | str,
    ) -> ChainedSnapshotRecord | None:
        """Snapshot the workspace if the policy asks for it.

        Returns the new record, or None when skipped or on failure.
        """
        try:
            phase = SnapshotPhase(phase)
            check_session_id(session_id)
        except (ValueError, InvalidSessionError) as e:
            logger.warning("Rejected snapshot request", session_id=session_id, error=str(e))
            return None

        config = self._settings()
        if not should_snapshot(config, label, phase):
            logger.debug(
                "Snapshot not configured for event", label=label, phase=phase.value
            )
            return None

        root = self.host.workspace_root()
        if root is None:
            logger.warning("No workspace root, snapshot skipped", session_id=session_id)
            return None

        snapshot_id = new_snapshot_id()
        payload_dir = self.paths.payload_dir_for(session_id, snapshot_id)
        payload = self.paths.payload_path(payload_dir)
        try:
            rules = load_ignore_patterns(root, config.custom_ignore_patterns)
            hashes, empty_dirs = hash_tree(root, rules)
            signature = tree_signature(hashes, empty_dirs)

            records = self._load(session_id)
            last = records.last()
            payload.mkdir(parents=True)

            common: dict[str, Any] = {
                "id": snapshot_id,
                "session_id": session_id,
                "sequence_anchor": sequence_anchor,
                "phase": phase,
                "label": label,
                "description": describe(phase, label),
                "created_at": int(time.time() * 1000),
                "payload_dir": payload_dir,
                "signature": signature,
                "file_hashes": hashes,
                "empty_dirs": empty_dirs,
            }
            if isinstance(last, ChainedSnapshotRecord):
                diff = diff_hashes(last.file_hashes, hashes)
                # Grouped by kind: added, then modified, then deleted
                changes = [
                    FileChange(path=p, change_type=ChangeType.ADDED, hash=hashes[p])
                    for p in diff.added
                ]
                changes += [
                    FileChange(path=p, change_type=ChangeType.MODIFIED, hash=hashes[p])
                    for p in diff.modified
                ]
                changes += [
                    FileChange(path=p, change_type=ChangeType.DELETED)
                    for p in diff.deleted
                ]
                file_count = self._copy_into_payload(root, payload, diff.changed)
                record = ChainedSnapshotRecord(
                    **common,
                    kind=SnapshotKind.INCREMENTAL,
                    base_snapshot_id=last.id,
                    changes=changes,
                    file_count=file_count,
                )
            else:
                file_count = self._copy_into_payload(root, payload, hashes)
                for rel in empty_dirs:
                    (payload / rel).mkdir(parents=True, exist_ok=True)
                record = ChainedSnapshotRecord(
                    **common, kind=SnapshotKind.FULL, file_count=file_count
                )

            records.records.append(record)
            self._save(session_id, records)
        except Exception as e:
            logger.error(
                "Failed to create snapshot",
                session_id=session_id,
                label=label,
                error=str(e),
                exc_info=True,
            )
            shutil.rmtree(payload, ignore_errors=True)
            return None

        logger.info(
            "Snapshot created",
            session_id=session_id,
            snapshot_id=record.id,
            kind=record.kind.value,
            files=len(hashes),
            copied=record.file_count,
            changes=len(record.changes or []),
        )
        self._apply_retention(session_id, config.max_snapshots)
        return record

    # ------------------------------------------------------------------ restore

    def restore_snapshot(self, session_id: str, snapshot_id: str) -> RestoreResult:
        try:
            check_session_id(session_id)
        except InvalidSessionError as e:
            return RestoreResult.failure(str(e))

        root = self.host.workspace_root()
        if root is None:
            logger.warning("No workspace root, restore refused", session_id=session_id)
            return RestoreResult.failure("No workspace root")

        try:
            records = self._load(session_id)
        except Exception as e:
            logger.error(
                "Failed to load snapshot records", session_id=session_id, error=str(e)
            )
            return RestoreResult.failure(str(e))

        record = records.find(snapshot_id)
        if record is None:
            if records.find_malformed(snapshot_id) is not None:
                return RestoreResult.failure(f"Malformed snapshot record: {snapshot_id}")
            return RestoreResult.failure("Snapshot not found")

        try:
            self.host.cancel_pending_edits()
        except Exception as e:
            logger.warning("Failed to cancel pending edits", error=str(e))

        try:
            custom_patterns = self._settings().custom_ignore_patterns
            if isinstance(record, LegacySnapshotRecord):
                return self.restore_engine.restore_legacy(root, record, custom_patterns)
            chain = resolve_chain(records.by_id(), record)
            rules = load_ignore_patterns(root, custom_patterns)
            return self.restore_engine.restore_chain(root, record, chain, rules)
        except SnapshotError as e:
            logger.warning(
                "Restore refused", session_id=session_id, snapshot_id=snapshot_id, error=str(e)
            )
            return RestoreResult.failure(str(e))
        except Exception as e:
            logger.error(
                "Failed to restore snapshot",
                session_id=session_id,
                snapshot_id=snapshot_id,
                error=str(e),
                exc_info=True,
            )
            return RestoreResult.failure(str(e))

    # ------------------------------------------------------------------ listing

    def list_snapshots(self, session_id: str) -> list[SnapshotRecord]:
        try:
            check_session_id(session_id)
            return self._load(session_id).ordered()
        except Exception as e:
            logger.error("Failed to list snapshots", session_id=session_id, error=str(e))
            return []

    def list_sessions_with_snapshots(self) -> list[SessionSnapshotSummary]:
        summaries: list[SessionSnapshotSummary] = []
        try:
            session_ids = self.store.list_sessions()
        except Exception as e:
            logger.error("Failed to list sessions", error=str(e))
            return []

        for session_id in session_ids:
            try:
                records = self._load(session_id)
                if not len(records):
                    continue
                info = self.store.get_session_info(session_id)
                summaries.append(
                    SessionSnapshotSummary(
                        session_id=session_id,
                        title=(info.title if info else None)
                        or default_session_title(session_id),
                        snapshot_count=len(records),
                        total_bytes=sum(
                            directory_size(self.paths.payload_path(r.payload_dir))
                            for r in records.records
                        ),
                        created_at=info.created_at if info else 0,
                        updated_at=info.updated_at if info else 0,
                    )
                )
            except Exception as e:
                logger.warning(
                    "Skipping session in summary", session_id=session_id, error=str(e)
                )

        summaries.sort(key=lambda s: s.updated_at or 0, reverse=True)
        return summaries

    def set_session_title(self, session_id: str, title: str | None) -> str | None:
        """Store the display title of a session.

        A blank or null title clears the stored one. Returns the title listings
        will show, or None when it could not be stored.
        """
        clean = (title or "").strip() or None
        try:
            check_session_id(session_id)
            self.store.set_session_title(session_id, clean)
        except InvalidSessionError as e:
            logger.warning("Session title refused", session_id=session_id, error=str(e))
            return None
        except Exception as e:
            logger.error(
                "Failed to set session title", session_id=session_id, error=str(e)
            )
            return None
        return clean or default_session_title(session_id)

    # ------------------------------------------------------------------ deletion

    def delete_snapshot(self, session_id: str, snapshot_id: str) -> bool:
        try:
            check_session_id(session_id)
            records = self._load(session_id)
            record = records.find(snapshot_id)
            if record is not None:
                self._delete_records(session_id, records, [record])
                return True

            raw = records.find_malformed(snapshot_id)
            if raw is None:
                return False
            records.malformed.remove(raw)
            self._remove_payload(self.paths.payload_dir_for(session_id, snapshot_id))
            self._save(session_id, records)
            return True
        except Exception as e:
            logger.error(
                "Failed to delete snapshot",
                session_id=session_id,
                snapshot_id=snapshot_id,
                error=str(e),
            )
            return False

    def delete_snapshots_from(self, session_id: str, sequence_anchor: int) -> int:
        """Delete snapshots taken at or after sequence_anchor (e.g. on message edit)."""
        try:
            check_session_id(session_id)
            records = self._load(session_id)
            to_delete, _ = select_from_anchor(records.records, sequence_anchor)
            if not to_delete:
                return 0
            self._delete_records(session_id, records, to_delete)
            logger.info(
                "Deleted snapshots from anchor",
                session_id=session_id,
                sequence_anchor=sequence_anchor,
                deleted=len(to_delete),
            )
            return len(to_delete)
        except Exception as e:
            logger.error(
                "Failed to delete snapshots from anchor",
                session_id=session_id,
                error=str(e),
            )
            return 0

    def delete_all_snapshots(self, session_id: str) -> DeleteAllResult:
        try:
            check_session_id(session_id)
            records = self._load(session_id)
            deleted_count = len(records.records) + len(records.malformed)
            for record in records.records:
                self._remove_payload(record.payload_dir)
            shutil.rmtree(self.paths.session_dir(session_id), ignore_errors=True)
            self._save(session_id, RecordSet())
            return DeleteAllResult(success=True, deleted_count=deleted_count)
        except Exception as e:
            logger.error(
                "Failed to delete all snapshots", session_id=session_id, error=str(e)
            )
            return DeleteAllResult(success=False, deleted_count=0)

    def sweep_orphans(self, valid_session_ids: Iterable[str]) -> int:
        """Drop payloads and records of sessions outside valid_session_ids.

        Returns the number of sessions cleaned.
        """
        valid = set(valid_session_ids)
        cleaned: set[str] = set()

        snapshots_dir = self.paths.snapshots_dir
        if snapshots_dir.is_dir():
            for entry in sorted(snapshots_dir.iterdir()):
                if entry.name in valid or not entry.is_dir():
                    continue
                try:
                    shutil.rmtree(entry)
                    cleaned.add(entry.name)
                except OSError as e:
                    logger.warning(
                        "Failed to remove orphaned payloads", path=str(entry), error=str(e)
                    )

        try:
            for session_id in self.store.list_sessions():
                if session_id not in valid:
                    self.store.delete_session(session_id)
                    cleaned.add(session_id)
        except Exception as e:
            logger.error("Failed to sweep orphaned records", error=str(e))

        if cleaned:
            logger.info("Swept orphaned sessions", sessions=sorted(cleaned))
        return len(cleaned)

    # ------------------------------------------------------------------ storage

    def update_base_path(self, new_base: Path) -> None:
        self.paths.update_base_path(new_base)

    def migrate_to(
        self,
        new_base: Path,
        progress: Callable[[MigrationProgress], None] | None = None,
    ) -> bool:
        """Copy every session's payloads under new_base, then switch to it.

        The old data is left in place. On a copy failure the base path is not
        changed and False is returned.
        """
        old_dir = self.paths.snapshots_dir
        new_dir = StoragePaths(new_base).snapshots_dir
        if not old_dir.is_dir():
            self.update_base_path(new_base)
            return True

        try:
            new_dir.mkdir(parents=True, exist_ok=True)
            sessions = sorted(p for p in old_dir.iterdir() if p.is_dir())
            total = len(sessions)
            for done, session_dir in enumerate(sessions, start=1):
                shutil.copytree(
                    session_dir, new_dir / session_dir.name, dirs_exist_ok=True
                )
                if progress is not None:
                    progress(MigrationProgress("migrating_snapshots", done / total))
        except OSError as e:
            logger.error(
                "Snapshot migration failed", target=str(new_dir), error=str(e)
            )
            return False

        self.update_base_path(new_base)
        logger.info("Migrated snapshots", sessions=total, target=str(new_dir))
        return True


def build_snapshot_manager(
    workspace_root: Path | None,
    base_path: Path | None = None,
    store: RecordStore | None = None,
) -> SnapshotManager:
    """Manager with the default collaborators: SQLite records under base_path
    and a fixed workspace root."""
    paths = StoragePaths(base_path or app_settings.storage_base_path)
    paths.ensure()
    return SnapshotManager(
        paths=paths,
        store=store or SqlRecordStore(paths.database_path),
        host=StaticWorkspaceHost(workspace_root),
    )
