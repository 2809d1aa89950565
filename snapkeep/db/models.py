from __future__ import annotations

import zlib

from sqlalchemy import BigInteger, Integer, LargeBinary, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class BaseORM(DeclarativeBase):
    pass


def compress_text(text: str) -> bytes:
    return zlib.compress(text.encode("utf-8"), level=6)


def decompress_text(data: bytes) -> str:
    return zlib.decompress(data).decode("utf-8")


class CompressedText(TypeDecorator):
    """Text column stored as zlib-compressed bytes.

    Record lists repeat the same paths and hashes in every snapshot, so they
    compress well.
    """

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bytes):
            return value
        return compress_text(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return decompress_text(value)


class SessionSnapshotsORM(BaseORM):
    """All snapshot records of one session, stored as a JSON array."""

    __tablename__ = "session_snapshots"

    session_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    records_json: Mapped[str] = mapped_column(CompressedText)
    record_count: Mapped[int] = mapped_column(Integer, default=0)
    # Epoch milliseconds
    created_at: Mapped[int] = mapped_column(BigInteger)
    updated_at: Mapped[int] = mapped_column(BigInteger)
