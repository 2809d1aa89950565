"""Database package: engine/session management, ORM models and record stores."""

from .base import get_engine, get_session
from .models import BaseORM, SessionSnapshotsORM
from .records import MemoryRecordStore, RecordStore, SessionInfo, SqlRecordStore

__all__ = [
    "get_engine",
    "get_session",
    "BaseORM",
    "SessionSnapshotsORM",
    "RecordStore",
    "SqlRecordStore",
    "MemoryRecordStore",
    "SessionInfo",
]
