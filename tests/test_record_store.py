"""Tests for the record stores (SQLite and in-memory)."""

import pytest

from snapkeep.db.base import get_engine
from snapkeep.db.models import compress_text, decompress_text
from snapkeep.db.records import MemoryRecordStore, SqlRecordStore


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "sqlite":
        store = SqlRecordStore(tmp_path / "records.sqlite")
    else:
        store = MemoryRecordStore()
    yield store
    store.dispose()


RECORDS = [
    {"id": "snap_1_aaaaaa", "kind": "full", "file_hashes": {"ä.txt": "h"}},
    {"id": "snap_2_bbbbbb", "anything": [1, 2, {"nested": None}]},
]


def test_unknown_session_is_empty(store):
    assert store.load_records("missing") == []
    assert store.get_session_info("missing") is None
    assert store.list_sessions() == []


def test_save_and_load_round_trip(store):
    store.save_records("s1", RECORDS)
    assert store.load_records("s1") == RECORDS


def test_save_replaces_previous_list(store):
    store.save_records("s1", RECORDS)
    store.save_records("s1", RECORDS[:1])
    assert store.load_records("s1") == RECORDS[:1]


def test_loaded_records_are_independent_copies(store):
    store.save_records("s1", RECORDS)
    loaded = store.load_records("s1")
    loaded[0]["id"] = "mutated"
    assert store.load_records("s1")[0]["id"] == "snap_1_aaaaaa"


def test_session_info_and_title(store):
    store.save_records("s1", RECORDS)
    info = store.get_session_info("s1")
    assert info.title is None
    assert info.created_at > 0
    assert info.updated_at >= info.created_at

    store.set_session_title("s1", "Add caching")
    store.save_records("s1", [])

    info = store.get_session_info("s1")
    assert info.title == "Add caching"
    assert store.load_records("s1") == []


def test_title_without_records_creates_entry(store):
    store.set_session_title("s2", "Draft")
    assert store.list_sessions() == ["s2"]
    assert store.load_records("s2") == []


def test_delete_session(store):
    store.save_records("s1", RECORDS)
    store.save_records("s2", RECORDS)

    store.delete_session("s1")
    store.delete_session("never-existed")

    assert store.list_sessions() == ["s2"]
    assert store.load_records("s1") == []


def test_sql_store_persists_across_instances(tmp_path):
    db_path = tmp_path / "records.sqlite"
    with SqlRecordStore(db_path) as first:
        first.save_records("s1", RECORDS)
        first.set_session_title("s1", "Persisted")

    with SqlRecordStore(db_path) as second:
        assert second.load_records("s1") == RECORDS
        assert second.get_session_info("s1").title == "Persisted"


def test_sql_store_on_in_memory_engine():
    store = SqlRecordStore(engine=get_engine(None))
    store.save_records("s1", RECORDS)
    assert store.load_records("s1") == RECORDS
    store.dispose()


def test_compressed_text_round_trip():
    text = '{"path": "src/main.py"}' * 50
    blob = compress_text(text)
    assert len(blob) < len(text)
    assert decompress_text(blob) == text
