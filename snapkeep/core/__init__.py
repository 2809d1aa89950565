"""Core runtime objects - storage locations and host collaborators."""

from .host import StaticWorkspaceHost, WorkspaceHost
from .paths import StoragePaths, check_session_id

__all__ = ["StoragePaths", "StaticWorkspaceHost", "WorkspaceHost", "check_session_id"]
