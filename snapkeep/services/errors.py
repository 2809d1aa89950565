"""Errors raised inside the snapshot engine.

They never cross the SnapshotManager boundary; public operations convert them
into absent results or failure results.
"""

from __future__ import annotations


class SnapshotError(Exception):
    """Base class for structural snapshot failures."""


class ChainBrokenError(SnapshotError):
    """A base_snapshot_id link cannot be followed to a full snapshot."""

    def __init__(self, snapshot_id: str, missing_id: str | None, reason: str):
        self.snapshot_id = snapshot_id
        self.missing_id = missing_id
        super().__init__(reason)


class PayloadMissingError(SnapshotError):
    """A snapshot's payload directory no longer exists on disk."""

    def __init__(self, snapshot_id: str, payload_dir: str):
        self.snapshot_id = snapshot_id
        self.payload_dir = payload_dir
        super().__init__(f"Payload directory not found: {payload_dir}")


class MalformedRecordError(SnapshotError):
    """A stored record does not match any known record format."""

    def __init__(self, errors: list[str], snapshot_id: str | None = None):
        self.errors = errors
        self.snapshot_id = snapshot_id
        label = snapshot_id or "<unknown>"
        super().__init__(f"Malformed snapshot record {label}: {'; '.join(errors)}")


class InvalidSessionError(SnapshotError):
    """Session id cannot be used as a single path segment."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Invalid session id: {session_id!r}")
