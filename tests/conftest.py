"""Shared pytest fixtures for all tests."""

from pathlib import Path
from types import SimpleNamespace

import pytest

from snapkeep.config.schema import SnapshotSettings
from snapkeep.core.host import WorkspaceHost
from snapkeep.core.paths import StoragePaths
from snapkeep.db.records import MemoryRecordStore
from snapkeep.services.snapshots import SnapshotManager


class RecordingHost(WorkspaceHost):
    """Workspace host that remembers every notification it receives."""

    def __init__(self, root: Path | None):
        self.root = root
        self.cancel_calls = 0
        self.refreshes: list[tuple[list[Path], list[Path]]] = []

    def workspace_root(self) -> Path | None:
        return self.root

    def cancel_pending_edits(self) -> None:
        self.cancel_calls += 1

    def refresh_documents(self, modified, deleted) -> None:
        self.refreshes.append((list(modified), list(deleted)))


def _write(root: Path, relative: str, content: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def temp_global_dirs(monkeypatch, tmp_path_factory):
    """Keep config and data writes out of the real home directory."""
    config_dir = Path(tmp_path_factory.mktemp("global_config"))
    data_dir = Path(tmp_path_factory.mktemp("global_data"))
    monkeypatch.setenv("SNAPKEEP_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("SNAPKEEP_DATA_DIR", str(data_dir))
    return config_dir


@pytest.fixture
def write():
    """Helper writing a text file below a root, creating parents."""
    return _write


@pytest.fixture
def workspace(tmp_path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def storage(tmp_path) -> StoragePaths:
    paths = StoragePaths(tmp_path / "data")
    paths.ensure()
    return paths


@pytest.fixture
def policy():
    """Mutable holder for the snapshot policy the manager sees."""
    return SimpleNamespace(
        current=SnapshotSettings(
            before_tools=["write_file", "delete_file"],
            after_tools=[],
            message_snapshots={"before_messages": ["user"], "after_messages": []},
            max_snapshots=50,
        )
    )


@pytest.fixture
def host(workspace) -> RecordingHost:
    return RecordingHost(workspace)


@pytest.fixture
def record_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def manager(storage, record_store, host, policy) -> SnapshotManager:
    return SnapshotManager(
        paths=storage,
        store=record_store,
        host=host,
        settings_source=lambda: policy.current,
    )
