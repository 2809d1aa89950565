from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool


def get_engine(db_path: Path | None) -> Engine:
    """Create a SQLite engine for db_path, or a private in-memory one for None.

    check_same_thread is disabled because engine calls run in worker threads.
    """
    if db_path is None:
        return create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite+pysqlite:///{db_path}", connect_args={"check_same_thread": False}
    )


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Session bound to engine; committed on success, rolled back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
