"""API request/response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from snapkeep.services.records import SnapshotPhase


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "snapkeep"
    version: str
    workspace_root: str | None = None
    storage_path: str | None = None


class CreateSnapshotRequest(BaseModel):
    sequence_anchor: int = Field(..., description="Position in the session's event log")
    label: str = Field(..., description="Trigger name, e.g. a tool name or user_message")
    phase: SnapshotPhase = SnapshotPhase.BEFORE


class CreateSnapshotResponse(BaseModel):
    created: bool
    snapshot: dict[str, Any] | None = Field(
        None, description="Stored record; null when the event is not configured"
    )


class SnapshotsListResponse(BaseModel):
    session_id: str
    snapshots: list[dict[str, Any]]


class RestoreResponse(BaseModel):
    success: bool
    restored: int = 0
    deleted: int = 0
    skipped: int = 0
    error: str | None = None
    failed: list[str] = Field(default_factory=list)


class DeleteSnapshotsResponse(BaseModel):
    success: bool = True
    deleted_count: int


class SessionSummary(BaseModel):
    session_id: str
    title: str
    snapshot_count: int
    total_bytes: int
    created_at: int
    updated_at: int


class SessionsListResponse(BaseModel):
    sessions: list[SessionSummary]


class SweepRequest(BaseModel):
    valid_session_ids: list[str] = Field(
        ..., description="Sessions to keep; every other session is removed"
    )


class SweepResponse(BaseModel):
    cleaned: int


class ConfigResponse(BaseModel):
    config: dict[str, Any]
    snapshots: dict[str, Any] = Field(
        ..., description="Effective snapshot policy after validation and defaults"
    )


class ConfigUpdateRequest(BaseModel):
    config: dict[str, Any] = Field(
        ..., description="Partial config to merge; null values delete keys"
    )


class ConfigUpdateResponse(BaseModel):
    success: bool
    message: str
    config: dict[str, Any]
    snapshots: dict[str, Any]


class SessionTitleRequest(BaseModel):
    title: str | None = Field(
        ..., description="New session title; null restores the default title"
    )


class SessionTitleResponse(BaseModel):
    session_id: str
    title: str
