"""Collaborators supplied by the editor hosting the snapshot engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from snapkeep.utils.logger import get_logger

logger = get_logger("core.host")


class WorkspaceHost(ABC):
    """The host environment the engine snapshots and restores into."""

    @abstractmethod
    def workspace_root(self) -> Path | None:
        """Absolute root of the open workspace, or None when nothing is open."""

    @abstractmethod
    def cancel_pending_edits(self) -> None:
        """Discard pending in-editor changes before files are rewritten."""

    @abstractmethod
    def refresh_documents(
        self, modified: Sequence[Path], deleted: Sequence[Path]
    ) -> None:
        """Reload open documents after a restore touched them."""


class StaticWorkspaceHost(WorkspaceHost):
    """Fixed workspace root with no editor attached; notifications are logged."""

    def __init__(self, root: Path | None):
        self.root = Path(root).expanduser().resolve() if root else None

    def workspace_root(self) -> Path | None:
        if self.root is None or not self.root.is_dir():
            return None
        return self.root

    def cancel_pending_edits(self) -> None:
        logger.debug("No pending edits to cancel")

    def refresh_documents(
        self, modified: Sequence[Path], deleted: Sequence[Path]
    ) -> None:
        logger.debug(
            "Documents changed on disk", modified=len(modified), deleted=len(deleted)
        )
