"""Tests for snapshot creation: full, incremental, gating and failures."""

import shutil
from pathlib import Path

from snapkeep.services.hashing import hash_bytes
from snapkeep.services.records import ChangeType, SnapshotKind, SnapshotPhase


def payload_files(manager, record) -> list[str]:
    payload = manager.paths.payload_path(record.payload_dir)
    return sorted(p.relative_to(payload).as_posix() for p in payload.rglob("*") if p.is_file())


def test_first_snapshot_is_full(manager, workspace, write):
    write(workspace, "a.txt", "1")
    write(workspace, "sub/b.txt", "2")
    (workspace / "empty").mkdir()

    record = manager.create_snapshot("s1", 0, "write_file", "before")

    assert record is not None
    assert record.kind is SnapshotKind.FULL
    assert record.base_snapshot_id is None
    assert record.changes is None
    assert record.file_count == 2
    assert record.phase is SnapshotPhase.BEFORE
    assert record.description == "Before: write_file"
    assert record.payload_dir == f"s1/{record.id}"
    assert record.file_hashes == {"a.txt": hash_bytes(b"1"), "sub/b.txt": hash_bytes(b"2")}
    assert record.empty_dirs == ["empty"]
    assert payload_files(manager, record) == ["a.txt", "sub/b.txt"]
    assert (manager.paths.payload_path(record.payload_dir) / "empty").is_dir()


def test_next_snapshot_is_incremental(manager, workspace, write):
    write(workspace, "a.txt", "1")
    write(workspace, "sub/b.txt", "2")
    first = manager.create_snapshot("s1", 0, "write_file", "before")

    write(workspace, "a.txt", "changed")
    write(workspace, "c.txt", "new")
    (workspace / "sub/b.txt").unlink()

    second = manager.create_snapshot("s1", 1, "write_file", "before")

    assert second.kind is SnapshotKind.INCREMENTAL
    assert second.base_snapshot_id == first.id
    assert [(c.path, c.change_type) for c in second.changes] == [
        ("c.txt", ChangeType.ADDED),
        ("a.txt", ChangeType.MODIFIED),
        ("sub/b.txt", ChangeType.DELETED),
    ]
    assert second.changes[0].hash == hash_bytes(b"new")
    assert second.changes[2].hash is None
    assert second.file_count == 2
    assert set(second.file_hashes) == {"a.txt", "c.txt"}
    assert payload_files(manager, second) == ["a.txt", "c.txt"]


def test_unchanged_tree_gives_empty_incremental(manager, workspace, write):
    write(workspace, "a.txt", "1")
    first = manager.create_snapshot("s1", 0, "write_file", "before")
    second = manager.create_snapshot("s1", 1, "write_file", "before")

    assert second.kind is SnapshotKind.INCREMENTAL
    assert second.changes == []
    assert second.file_count == 0
    assert second.signature == first.signature
    assert manager.paths.payload_path(second.payload_dir).is_dir()
    assert payload_files(manager, second) == []


def test_ignored_files_are_not_captured(manager, workspace, write):
    write(workspace, ".gitignore", "*.log\n")
    write(workspace, "app.py", "print()")
    write(workspace, "debug.log", "noise")
    write(workspace, "node_modules/lib/index.js", "x")

    record = manager.create_snapshot("s1", 0, "write_file", "before")

    assert set(record.file_hashes) == {".gitignore", "app.py"}


def test_custom_ignore_patterns_apply(manager, policy, workspace, write):
    policy.current = policy.current.model_copy(
        update={"custom_ignore_patterns": ["secrets/"]}
    )
    write(workspace, "secrets/key.pem", "k")
    write(workspace, "main.py", "x")

    record = manager.create_snapshot("s1", 0, "write_file", "before")

    assert set(record.file_hashes) == {"main.py"}


def test_unconfigured_event_is_skipped(manager, record_store, workspace, write):
    write(workspace, "a.txt", "1")

    assert manager.create_snapshot("s1", 0, "read_file", "before") is None
    assert manager.create_snapshot("s1", 0, "model_message", "before") is None
    assert manager.create_snapshot("s1", 0, "tool_batch", "after") is None
    assert record_store.load_records("s1") == []


def test_configured_events_create_snapshots(manager, workspace, write):
    write(workspace, "a.txt", "1")

    assert manager.create_snapshot("s1", 0, "user_message", "before") is not None
    assert manager.create_snapshot("s1", 1, "tool_batch", "before") is not None
    assert manager.create_snapshot("s1", 2, "delete_file", SnapshotPhase.BEFORE) is not None


def test_disabled_policy_skips_everything(manager, policy, workspace, write):
    policy.current = policy.current.model_copy(update={"enabled": False})
    write(workspace, "a.txt", "1")

    assert manager.create_snapshot("s1", 0, "write_file", "before") is None


def test_missing_workspace_root_returns_none(manager, host):
    host.root = None
    assert manager.create_snapshot("s1", 0, "write_file", "before") is None


def test_invalid_session_or_phase_returns_none(manager, workspace, write):
    write(workspace, "a.txt", "1")
    assert manager.create_snapshot("../escape", 0, "write_file", "before") is None
    assert manager.create_snapshot("s1", 0, "write_file", "during") is None


def test_copy_failure_skips_file(manager, workspace, write, monkeypatch):
    write(workspace, "good.txt", "ok")
    write(workspace, "bad.txt", "locked")
    real_copy = shutil.copy2

    def flaky_copy(src, dst, *args, **kwargs):
        if Path(src).name == "bad.txt":
            raise PermissionError("locked")
        return real_copy(src, dst, *args, **kwargs)

    monkeypatch.setattr(shutil, "copy2", flaky_copy)

    record = manager.create_snapshot("s1", 0, "write_file", "before")

    assert record is not None
    assert record.file_count == 1
    assert set(record.file_hashes) == {"bad.txt", "good.txt"}
    assert payload_files(manager, record) == ["good.txt"]


def test_store_failure_removes_partial_payload(manager, record_store, workspace, write, monkeypatch):
    write(workspace, "a.txt", "1")

    def broken_save(session_id, records):
        raise OSError("disk full")

    monkeypatch.setattr(record_store, "save_records", broken_save)

    assert manager.create_snapshot("s1", 0, "write_file", "before") is None
    assert list(manager.paths.session_dir("s1").iterdir()) == []


def test_legacy_last_record_forces_full_snapshot(manager, record_store, workspace, write):
    record_store.save_records(
        "s1",
        [
            {
                "id": "snap_1_legacy",
                "session_id": "s1",
                "sequence_anchor": 0,
                "phase": "before",
                "label": "write_file",
                "created_at": 1,
                "payload_dir": "s1/snap_1_legacy",
            }
        ],
    )
    write(workspace, "a.txt", "1")

    record = manager.create_snapshot("s1", 1, "write_file", "before")

    assert record.kind is SnapshotKind.FULL
    assert len(record_store.load_records("s1")) == 2
