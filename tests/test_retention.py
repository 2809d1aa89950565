"""Tests for snapshot eviction and the deletion operations."""

from snapkeep.services.records import SnapshotKind
from snapkeep.services.retention import dependents_of, select_evictions, select_from_anchor


def snapshot_ids(manager, session_id="s1"):
    return [r.id for r in manager.list_snapshots(session_id)]


def take(manager, workspace, write, count, session_id="s1", start=0):
    records = []
    for anchor in range(start, start + count):
        write(workspace, "counter.txt", str(anchor))
        records.append(manager.create_snapshot(session_id, anchor, "write_file", "before"))
    return records


def test_max_snapshots_evicts_oldest(manager, policy, workspace, write):
    policy.current = policy.current.model_copy(update={"max_snapshots": 2})

    records = take(manager, workspace, write, 4)

    assert snapshot_ids(manager) == [records[2].id, records[3].id]
    for evicted in records[:2]:
        assert not manager.paths.payload_path(evicted.payload_dir).exists()
    assert manager.paths.payload_path(records[3].payload_dir).is_dir()


def test_negative_max_means_unlimited(manager, policy, workspace, write):
    policy.current = policy.current.model_copy(update={"max_snapshots": -1})

    take(manager, workspace, write, 5)

    assert len(manager.list_snapshots("s1")) == 5


def test_eviction_of_base_breaks_restore_of_dependents(manager, policy, workspace, write):
    policy.current = policy.current.model_copy(update={"max_snapshots": 2})
    records = take(manager, workspace, write, 3)

    kept = manager.list_snapshots("s1")
    assert kept[0].kind is SnapshotKind.INCREMENTAL
    assert kept[0].base_snapshot_id == records[0].id

    result = manager.restore_snapshot("s1", records[1].id)

    assert not result.success
    assert records[0].id in result.error


def test_delete_snapshots_from_anchor_is_inclusive(manager, workspace, write):
    records = take(manager, workspace, write, 4)

    assert manager.delete_snapshots_from("s1", 2) == 2
    assert snapshot_ids(manager) == [records[0].id, records[1].id]
    assert not manager.paths.payload_path(records[2].payload_dir).exists()

    assert manager.delete_snapshots_from("s1", 10) == 0


def test_delete_single_snapshot(manager, workspace, write):
    records = take(manager, workspace, write, 2)

    assert manager.delete_snapshot("s1", records[1].id) is True
    assert snapshot_ids(manager) == [records[0].id]
    assert not manager.paths.payload_path(records[1].payload_dir).exists()

    assert manager.delete_snapshot("s1", records[1].id) is False
    assert manager.delete_snapshot("s1", "snap_unknown") is False


def test_delete_malformed_snapshot(manager, record_store, storage):
    record_store.save_records("s1", [{"id": "snap_bad", "kind": "mystery"}])
    (storage.session_dir("s1") / "snap_bad").mkdir(parents=True)

    assert manager.delete_snapshot("s1", "snap_bad") is True
    assert record_store.load_records("s1") == []
    assert not (storage.session_dir("s1") / "snap_bad").exists()


def test_delete_all_snapshots(manager, record_store, workspace, write):
    take(manager, workspace, write, 3)
    raw = record_store.load_records("s1")
    record_store.save_records("s1", raw + [{"id": "snap_bad"}])
    record_store.set_session_title("s1", "Refactor parser")

    result = manager.delete_all_snapshots("s1")

    assert result.success
    assert result.deleted_count == 4
    assert manager.list_snapshots("s1") == []
    assert record_store.load_records("s1") == []
    assert not manager.paths.session_dir("s1").exists()
    assert record_store.get_session_info("s1").title == "Refactor parser"


def test_delete_all_of_empty_session(manager):
    result = manager.delete_all_snapshots("never-used")
    assert result.success
    assert result.deleted_count == 0


def test_deletions_reject_invalid_session(manager):
    assert manager.delete_snapshot("..", "snap_x") is False
    assert manager.delete_snapshots_from("a/b", 0) == 0
    assert not manager.delete_all_snapshots("a/b").success


def test_selection_helpers(manager, workspace, write):
    records = take(manager, workspace, write, 3)

    assert select_evictions(records, 5) == []
    assert select_evictions(records, 1) == records[:2]
    assert select_evictions(records, 0) == records

    to_delete, to_keep = select_from_anchor(records, 1)
    assert to_delete == records[1:]
    assert to_keep == records[:1]

    assert dependents_of(records, records[0].id) == [records[1]]
    assert dependents_of(records, records[2].id) == []
