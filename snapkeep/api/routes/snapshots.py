"""Snapshot management API routes.

Provides endpoints to:
- List sessions that own snapshots and set their titles
- Create, list and restore snapshots of a session
- Delete one snapshot, every snapshot from an anchor on, or all of them
- Sweep payloads and records of sessions that no longer exist
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from snapkeep.api.deps import get_snapshot_manager
from snapkeep.api.schemas import (
    CreateSnapshotRequest,
    CreateSnapshotResponse,
    DeleteSnapshotsResponse,
    RestoreResponse,
    SessionsListResponse,
    SessionSummary,
    SessionTitleRequest,
    SessionTitleResponse,
    SnapshotsListResponse,
    SweepRequest,
    SweepResponse,
)
from snapkeep.services.records import dump_record
from snapkeep.services.snapshots import SnapshotManager
from snapkeep.utils.logger import api_logger

router = APIRouter(prefix="/api/sessions", tags=["snapshots"])


@router.get("", response_model=SessionsListResponse)
async def list_sessions(
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> SessionsListResponse:
    """Sessions with at least one snapshot, most recently updated first."""
    summaries = await asyncio.to_thread(manager.list_sessions_with_snapshots)
    return SessionsListResponse(
        sessions=[SessionSummary(**s.to_dict()) for s in summaries]
    )


@router.post("/sweep", response_model=SweepResponse)
async def sweep_orphans(
    request: SweepRequest,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> SweepResponse:
    cleaned = await asyncio.to_thread(manager.sweep_orphans, request.valid_session_ids)
    return SweepResponse(cleaned=cleaned)


@router.put("/{session_id}/title", response_model=SessionTitleResponse)
async def set_session_title(
    session_id: str,
    request: SessionTitleRequest,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> SessionTitleResponse:
    title = await asyncio.to_thread(manager.set_session_title, session_id, request.title)
    if title is None:
        raise HTTPException(status_code=400, detail="Could not set session title")
    return SessionTitleResponse(session_id=session_id, title=title)


@router.get("/{session_id}/snapshots", response_model=SnapshotsListResponse)
async def list_snapshots(
    session_id: str,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> SnapshotsListResponse:
    """Snapshots of a session in creation order."""
    records = await asyncio.to_thread(manager.list_snapshots, session_id)
    return SnapshotsListResponse(
        session_id=session_id, snapshots=[dump_record(r) for r in records]
    )


@router.post("/{session_id}/snapshots", response_model=CreateSnapshotResponse)
async def create_snapshot(
    session_id: str,
    request: CreateSnapshotRequest,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> CreateSnapshotResponse:
    """Snapshot the workspace for an event.

    Returns created=false when the event is not configured to snapshot or
    the snapshot could not be taken.
    """
    record = await asyncio.to_thread(
        manager.create_snapshot,
        session_id,
        request.sequence_anchor,
        request.label,
        request.phase,
    )
    if record is None:
        return CreateSnapshotResponse(created=False)
    api_logger.info(
        "Snapshot created via API", session_id=session_id, snapshot_id=record.id
    )
    return CreateSnapshotResponse(created=True, snapshot=dump_record(record))


@router.post(
    "/{session_id}/snapshots/{snapshot_id}/restore",
    response_model=RestoreResponse,
    responses={409: {"model": RestoreResponse}},
)
async def restore_snapshot(
    session_id: str,
    snapshot_id: str,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
):
    result = await asyncio.to_thread(manager.restore_snapshot, session_id, snapshot_id)
    body = RestoreResponse(**result.to_dict())
    if not result.success:
        api_logger.warning(
            "Restore failed",
            session_id=session_id,
            snapshot_id=snapshot_id,
            error=result.error,
        )
        return JSONResponse(status_code=409, content=body.model_dump())
    return body


@router.delete(
    "/{session_id}/snapshots/{snapshot_id}", response_model=DeleteSnapshotsResponse
)
async def delete_snapshot(
    session_id: str,
    snapshot_id: str,
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> DeleteSnapshotsResponse:
    deleted = await asyncio.to_thread(manager.delete_snapshot, session_id, snapshot_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Snapshot not found")
    return DeleteSnapshotsResponse(deleted_count=1)


@router.delete("/{session_id}/snapshots", response_model=DeleteSnapshotsResponse)
async def delete_snapshots(
    session_id: str,
    from_anchor: int | None = Query(  # noqa: B008
        None, description="Delete only snapshots with sequence_anchor >= from_anchor"
    ),
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> DeleteSnapshotsResponse:
    if from_anchor is not None:
        count = await asyncio.to_thread(
            manager.delete_snapshots_from, session_id, from_anchor
        )
        return DeleteSnapshotsResponse(deleted_count=count)

    result = await asyncio.to_thread(manager.delete_all_snapshots, session_id)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to delete snapshots")
    return DeleteSnapshotsResponse(deleted_count=result.deleted_count)
