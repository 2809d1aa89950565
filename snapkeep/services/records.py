"""Snapshot record model.

Two record formats exist in stores:

- ChainedSnapshotRecord: carries the complete ``file_hashes`` map of the
  tree and, for incremental snapshots, the link to its base snapshot.
- LegacySnapshotRecord: older records without ``file_hashes``. Their payload
  is always a full copy of the tree and they are restored by comparing the
  payload directory with the workspace directly.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from snapkeep.services.errors import MalformedRecordError
from snapkeep.utils.logger import get_logger

logger = get_logger("snapshots.records")

_ID_ALPHABET = string.ascii_lowercase + string.digits


class SnapshotPhase(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class SnapshotKind(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class FileChange(BaseModel):
    path: str
    change_type: ChangeType
    hash: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_hash(self) -> FileChange:
        if self.change_type is ChangeType.DELETED:
            if self.hash is not None:
                raise ValueError(f"Deleted change for '{self.path}' carries a hash")
        elif not self.hash:
            raise ValueError(f"Change '{self.change_type.value}' for '{self.path}' has no hash")
        return self


class SnapshotRecordBase(BaseModel):
    id: str
    session_id: str
    sequence_anchor: int
    phase: SnapshotPhase
    label: str
    description: str | None = None
    created_at: int = Field(..., description="Epoch milliseconds")
    payload_dir: str
    file_count: int = 0
    signature: str = ""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def is_legacy(self) -> bool:
        return False


class LegacySnapshotRecord(SnapshotRecordBase):
    """Record written before per-snapshot hash maps existed."""

    @property
    def is_legacy(self) -> bool:
        return True


class ChainedSnapshotRecord(SnapshotRecordBase):
    kind: SnapshotKind
    base_snapshot_id: str | None = None
    changes: list[FileChange] | None = None
    file_hashes: dict[str, str]
    empty_dirs: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_kind(self) -> ChainedSnapshotRecord:
        if self.kind is SnapshotKind.INCREMENTAL:
            if not self.base_snapshot_id:
                raise ValueError("Incremental snapshot has no base_snapshot_id")
            if self.changes is None:
                raise ValueError("Incremental snapshot has no changes list")
        else:
            if self.base_snapshot_id is not None:
                raise ValueError("Full snapshot must not reference a base snapshot")
            if self.changes is not None:
                raise ValueError("Full snapshot must not carry a changes list")
        return self

    @property
    def is_incremental(self) -> bool:
        return self.kind is SnapshotKind.INCREMENTAL


SnapshotRecord = LegacySnapshotRecord | ChainedSnapshotRecord


def new_snapshot_id() -> str:
    """Time-based id with a random suffix, e.g. ``snap_1718000000000_k3x9qa``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"snap_{int(time.time() * 1000)}_{suffix}"


def describe(phase: SnapshotPhase, label: str) -> str:
    return f"{phase.value.capitalize()}: {label}"


def parse_record(data: Any) -> SnapshotRecord:
    """Build the record variant matching data.

    Raises:
        MalformedRecordError: data matches neither format.
    """
    if not isinstance(data, dict):
        raise MalformedRecordError([f"expected object, got {type(data).__name__}"])
    model: type[SnapshotRecordBase]
    if data.get("file_hashes") is not None:
        model = ChainedSnapshotRecord
    else:
        model = LegacySnapshotRecord
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(x) for x in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        ]
        raise MalformedRecordError(errors, snapshot_id=data.get("id")) from e


def dump_record(record: SnapshotRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", exclude_none=True)


@dataclass
class RecordSet:
    """Parsed records of one session plus raw entries that failed to parse.

    Malformed entries are written back untouched so a rewrite never destroys
    data it does not understand.
    """

    records: list[SnapshotRecord] = field(default_factory=list)
    malformed: list[Any] = field(default_factory=list)

    @classmethod
    def parse(cls, raw_records: list[Any], session_id: str) -> RecordSet:
        result = cls()
        for raw in raw_records:
            try:
                result.records.append(parse_record(raw))
            except MalformedRecordError as e:
                logger.warning(
                    "Skipping malformed snapshot record",
                    session_id=session_id,
                    snapshot_id=e.snapshot_id,
                    errors=e.errors,
                )
                result.malformed.append(raw)
        return result

    def ordered(self) -> list[SnapshotRecord]:
        """Records by created_at; ties keep store order."""
        return sorted(self.records, key=lambda r: r.created_at)

    def last(self) -> SnapshotRecord | None:
        ordered = self.ordered()
        return ordered[-1] if ordered else None

    def by_id(self) -> dict[str, SnapshotRecord]:
        return {record.id: record for record in self.records}

    def find(self, snapshot_id: str) -> SnapshotRecord | None:
        return next((r for r in self.records if r.id == snapshot_id), None)

    def find_malformed(self, snapshot_id: str) -> Any | None:
        return next(
            (
                raw
                for raw in self.malformed
                if isinstance(raw, dict) and raw.get("id") == snapshot_id
            ),
            None,
        )

    def without(self, snapshot_ids: set[str]) -> RecordSet:
        return RecordSet(
            records=[r for r in self.records if r.id not in snapshot_ids],
            malformed=list(self.malformed),
        )

    def dump(self) -> list[Any]:
        return [dump_record(r) for r in self.records] + list(self.malformed)

    def __len__(self) -> int:
        return len(self.records)
