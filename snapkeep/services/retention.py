"""Selection of snapshots to remove."""

from __future__ import annotations

from collections.abc import Sequence

from snapkeep.services.records import ChainedSnapshotRecord, SnapshotRecord


def select_evictions(
    records: Sequence[SnapshotRecord], max_snapshots: int
) -> list[SnapshotRecord]:
    """Oldest records beyond max_snapshots. A negative cap means unlimited."""
    if max_snapshots < 0 or len(records) <= max_snapshots:
        return []
    ordered = sorted(records, key=lambda r: r.created_at)
    return ordered[: len(ordered) - max_snapshots]


def select_from_anchor(
    records: Sequence[SnapshotRecord], threshold: int
) -> tuple[list[SnapshotRecord], list[SnapshotRecord]]:
    """Split records into (sequence_anchor >= threshold, the rest)."""
    to_delete: list[SnapshotRecord] = []
    to_keep: list[SnapshotRecord] = []
    for record in records:
        (to_delete if record.sequence_anchor >= threshold else to_keep).append(record)
    return to_delete, to_keep


def dependents_of(
    records: Sequence[SnapshotRecord], snapshot_id: str
) -> list[ChainedSnapshotRecord]:
    """Incremental records whose base is snapshot_id."""
    return [
        r
        for r in records
        if isinstance(r, ChainedSnapshotRecord)
        and r.is_incremental
        and r.base_snapshot_id == snapshot_id
    ]
