from __future__ import annotations

from fastapi import APIRouter, Depends

from snapkeep import __version__
from snapkeep.api.deps import get_snapshot_manager
from snapkeep.api.schemas import HealthResponse
from snapkeep.services.snapshots import SnapshotManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    manager: SnapshotManager = Depends(get_snapshot_manager),  # noqa: B008
) -> HealthResponse:
    """Liveness check with the workspace and storage locations in use."""
    root = manager.host.workspace_root()
    return HealthResponse(
        version=__version__,
        workspace_root=str(root) if root else None,
        storage_path=str(manager.paths.base_path),
    )
