"""Resolution of incremental snapshot chains."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from snapkeep.core.paths import StoragePaths
from snapkeep.services.errors import ChainBrokenError
from snapkeep.services.records import ChainedSnapshotRecord, SnapshotRecord


def resolve_chain(
    records_by_id: Mapping[str, SnapshotRecord], target: ChainedSnapshotRecord
) -> list[ChainedSnapshotRecord]:
    """Follow base links from target back to its full snapshot.

    Returns the chain oldest first, ending with target.

    Raises:
        ChainBrokenError: a link is missing, points to a legacy record, or
            loops back on itself.
    """
    chain: list[ChainedSnapshotRecord] = []
    seen: set[str] = set()
    current = target
    while True:
        if current.id in seen:
            raise ChainBrokenError(
                target.id, current.id, f"Cycle in snapshot chain at {current.id}"
            )
        seen.add(current.id)
        chain.append(current)
        if not current.is_incremental:
            break

        base_id = current.base_snapshot_id
        if not base_id:
            raise ChainBrokenError(
                target.id, None, f"Incremental snapshot {current.id} has no base"
            )
        base = records_by_id.get(base_id)
        if base is None:
            raise ChainBrokenError(
                target.id, base_id, f"Base snapshot {base_id} not found"
            )
        if not isinstance(base, ChainedSnapshotRecord):
            raise ChainBrokenError(
                target.id,
                base_id,
                f"Base snapshot {base_id} is a legacy record and cannot anchor a chain",
            )
        current = base

    chain.reverse()
    return chain


def find_file_in_chain(
    paths: StoragePaths,
    chain: Sequence[ChainedSnapshotRecord],
    relative_path: str,
) -> Path | None:
    """Payload copy of relative_path from the newest snapshot that stored it."""
    for record in reversed(chain):
        candidate = paths.payload_path(record.payload_dir) / relative_path
        if candidate.is_file():
            return candidate
    return None
