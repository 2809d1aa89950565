from __future__ import annotations

from pathlib import Path

from snapkeep.services.snapshots import SnapshotManager, build_snapshot_manager

_snapshot_manager: SnapshotManager | None = None
_workspace_root: Path | None = None


def set_workspace_root(root: Path | None) -> None:
    global _workspace_root
    _workspace_root = root


def set_snapshot_manager(manager: SnapshotManager | None) -> None:
    global _snapshot_manager
    _snapshot_manager = manager


def get_snapshot_manager() -> SnapshotManager:
    """Shared SnapshotManager; built from settings on first access."""
    global _snapshot_manager
    if _snapshot_manager is None:
        _snapshot_manager = build_snapshot_manager(_workspace_root)
    return _snapshot_manager


def dispose_snapshot_manager() -> None:
    """Release the record store of the shared manager (called on shutdown)."""
    global _snapshot_manager
    try:
        if _snapshot_manager is not None:
            _snapshot_manager.store.dispose()
    finally:
        _snapshot_manager = None
