"""Locations of snapshot payloads and the record database.

Layout under the base path::

    <base>/snapkeep.sqlite
    <base>/snapshots/<session_id>/<snapshot_id>/<mirrored workspace paths>
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from snapkeep.config.constants import RECORDS_DB_NAME, SNAPSHOTS_DIR_NAME
from snapkeep.services.errors import InvalidSessionError
from snapkeep.utils.logger import get_logger

logger = get_logger("core.paths")


def check_session_id(session_id: str) -> str:
    """Return session_id if it is usable as one directory name.

    Raises:
        InvalidSessionError: empty, a dot name, or contains a separator.
    """
    if (
        not session_id
        or session_id in (".", "..")
        or "/" in session_id
        or "\\" in session_id
        or "\x00" in session_id
    ):
        raise InvalidSessionError(session_id)
    return session_id


@dataclass
class StoragePaths:
    """Storage root of the snapshot area. Reconfigurable at runtime."""

    base_path: Path

    def __post_init__(self) -> None:
        self.base_path = Path(self.base_path).expanduser().resolve()

    @property
    def snapshots_dir(self) -> Path:
        return self.base_path / SNAPSHOTS_DIR_NAME

    @property
    def database_path(self) -> Path:
        return self.base_path / RECORDS_DB_NAME

    def session_dir(self, session_id: str) -> Path:
        return self.snapshots_dir / check_session_id(session_id)

    @staticmethod
    def payload_dir_for(session_id: str, snapshot_id: str) -> str:
        return f"{check_session_id(session_id)}/{snapshot_id}"

    def payload_path(self, payload_dir: str) -> Path:
        return self.snapshots_dir / payload_dir

    def ensure(self) -> None:
        self.snapshots_dir.mkdir(parents=True, exist_ok=True)

    def update_base_path(self, new_base: Path) -> None:
        """Point at a new base path. Existing data is not moved."""
        old = self.base_path
        self.base_path = Path(new_base).expanduser().resolve()
        logger.info(
            "Storage base path updated", old=str(old), new=str(self.base_path)
        )
