"""Persistent storage for per-session snapshot record lists.

The engine treats stored records as opaque JSON-compatible values; parsing
and validation happen in the snapshot manager.
"""

from __future__ import annotations

import copy
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from snapkeep.db.base import get_engine, get_session
from snapkeep.db.models import BaseORM, SessionSnapshotsORM
from snapkeep.utils.logger import get_logger

logger = get_logger("db.records")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionInfo:
    session_id: str
    title: str | None
    created_at: int
    updated_at: int


class RecordStore(ABC):
    """Contract for the store holding each session's snapshot records."""

    @abstractmethod
    def load_records(self, session_id: str) -> list[Any]:
        """Stored records of session_id, in insertion order; [] when none."""

    @abstractmethod
    def save_records(self, session_id: str, records: list[Any]) -> None:
        """Replace the stored records of session_id."""

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Ids of every session with a stored entry."""

    @abstractmethod
    def get_session_info(self, session_id: str) -> SessionInfo | None:
        pass

    @abstractmethod
    def set_session_title(self, session_id: str, title: str | None) -> None:
        pass

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """Forget session_id entirely. Unknown ids are ignored."""

    def dispose(self) -> None:
        """Release resources held by the store."""


class MemoryRecordStore(RecordStore):
    """Process-local store; contents are lost on exit."""

    def __init__(self) -> None:
        self._records: dict[str, list[Any]] = {}
        self._info: dict[str, SessionInfo] = {}

    def _touch(self, session_id: str) -> SessionInfo:
        now = _now_ms()
        info = self._info.get(session_id)
        if info is None:
            info = SessionInfo(session_id, None, now, now)
            self._info[session_id] = info
        else:
            info.updated_at = max(now, info.updated_at)
        return info

    def load_records(self, session_id: str) -> list[Any]:
        return copy.deepcopy(self._records.get(session_id, []))

    def save_records(self, session_id: str, records: list[Any]) -> None:
        self._records[session_id] = copy.deepcopy(list(records))
        self._touch(session_id)

    def list_sessions(self) -> list[str]:
        return list(self._info)

    def get_session_info(self, session_id: str) -> SessionInfo | None:
        info = self._info.get(session_id)
        return copy.copy(info) if info else None

    def set_session_title(self, session_id: str, title: str | None) -> None:
        self._touch(session_id).title = title
        self._records.setdefault(session_id, [])

    def delete_session(self, session_id: str) -> None:
        self._records.pop(session_id, None)
        self._info.pop(session_id, None)


class SqlRecordStore(RecordStore):
    """SQLite-backed store, one row per session."""

    def __init__(self, db_path: Path | None = None, engine: Engine | None = None):
        self._db_path = db_path
        self._engine: Engine | None = engine
        self._initialized = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine(self._db_path)
        return self._engine

    def _ensure_db(self) -> Engine:
        engine = self._get_engine()
        if not self._initialized:
            BaseORM.metadata.create_all(engine)
            self._initialized = True
        return engine

    def dispose(self) -> None:
        if self._engine is not None:
            try:
                self._engine.dispose()
            finally:
                self._engine = None
                self._initialized = False

    def load_records(self, session_id: str) -> list[Any]:
        engine = self._ensure_db()
        try:
            with get_session(engine) as session:
                row = session.get(SessionSnapshotsORM, session_id)
                if row is None or not row.records_json:
                    return []
                records = json.loads(row.records_json)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(
                "Failed to load snapshot records",
                session_id=session_id,
                error=str(e),
            )
            raise
        if not isinstance(records, list):
            logger.warning(
                "Stored records are not a list, ignoring", session_id=session_id
            )
            return []
        return records

    def save_records(self, session_id: str, records: list[Any]) -> None:
        engine = self._ensure_db()
        now = _now_ms()
        payload = json.dumps(list(records), ensure_ascii=False)
        try:
            with get_session(engine) as session:
                row = session.get(SessionSnapshotsORM, session_id)
                if row is None:
                    row = SessionSnapshotsORM(session_id=session_id, created_at=now)
                    session.add(row)
                row.records_json = payload
                row.record_count = len(records)
                row.updated_at = now
        except SQLAlchemyError as e:
            logger.error(
                "Failed to save snapshot records",
                session_id=session_id,
                error=str(e),
            )
            raise

    def list_sessions(self) -> list[str]:
        engine = self._ensure_db()
        with get_session(engine) as session:
            stmt = select(SessionSnapshotsORM.session_id).order_by(
                SessionSnapshotsORM.created_at
            )
            return list(session.execute(stmt).scalars())

    def get_session_info(self, session_id: str) -> SessionInfo | None:
        engine = self._ensure_db()
        with get_session(engine) as session:
            row = session.get(SessionSnapshotsORM, session_id)
            if row is None:
                return None
            return SessionInfo(
                session_id=row.session_id,
                title=row.title,
                created_at=row.created_at or 0,
                updated_at=row.updated_at or 0,
            )

    def set_session_title(self, session_id: str, title: str | None) -> None:
        engine = self._ensure_db()
        now = _now_ms()
        with get_session(engine) as session:
            row = session.get(SessionSnapshotsORM, session_id)
            if row is None:
                row = SessionSnapshotsORM(
                    session_id=session_id,
                    records_json="[]",
                    record_count=0,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            row.title = title

    def delete_session(self, session_id: str) -> None:
        engine = self._ensure_db()
        with get_session(engine) as session:
            row = session.get(SessionSnapshotsORM, session_id)
            if row is not None:
                session.delete(row)
