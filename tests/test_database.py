import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from casket.database.db import DBManager
from casket.database.schema import ensure_schema
from casket.exceptions import DatabaseError
from casket.models import CaptureMetadata, ProcessedRecord


def make_record(name="a.jpg", indexed_key="2023050110", captured=None, make=None, model=None, thumb=True):
    return ProcessedRecord(
        original_path=Path("/src") / name,
        data_dest_path=Path("/data/2023/05/01") / name,
        thumbnail_dest_path=Path("/thumbs/2023/05/01") / (Path(name).stem + ".jpg") if thumb else None,
        metadata=CaptureMetadata(captured_at=captured, camera_make=make, camera_model=model),
        indexed_key=indexed_key,
    )


def test_schema_is_idempotent(conn):
    ensure_schema(conn)
    ensure_schema(conn)

    cur = conn.cursor()
    cur.execute("SELECT version FROM schema_version")
    assert cur.fetchall() == [(1,)]
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='media_items'")
    assert cur.fetchone() is not None

def test_batch_insert_and_fields(store):
    captured = datetime(2023, 5, 1, 10, 0, 0, tzinfo=timezone(timedelta(hours=9)))
    rec = make_record(captured=captured, make="Canon", model="EOS R5")

    res = store.persist_batch([rec, make_record("clip.mov", "2022010203", thumb=False)])

    assert (res.inserted, res.ignored, res.errored) == (2, 0, 0)
    assert res.committed and not res.is_partial

    row = store.fetch_by_original_path("/src/a.jpg")
    assert row["data_path"] == str(Path("/data/2023/05/01/a.jpg"))
    assert row["thumbnail_path"] == str(Path("/thumbs/2023/05/01/a.jpg"))
    assert row["datetime_original"] == "2023-05-01T10:00:00+09:00"
    assert row["datetime_indexed"] == "2023050110"
    assert row["camera_make"] == "Canon"
    assert row["camera_model"] == "EOS R5"
    assert row["imported_at"]

    clip = store.fetch_by_original_path(Path("/src/clip.mov"))
    assert clip["thumbnail_path"] is None
    assert clip["datetime_original"] is None
    assert clip["camera_make"] is None
    assert clip["camera_model"] is None

def test_duplicate_original_path_is_ignored(store):
    first = store.persist_batch([make_record()])
    again = store.persist_batch([make_record(indexed_key="1999010100")])

    assert (first.inserted, first.ignored) == (1, 0)
    assert (again.inserted, again.ignored, again.errored) == (0, 1, 0)
    assert store.count() == 1
    # The original row is untouched
    assert store.fetch_by_original_path("/src/a.jpg")["datetime_indexed"] == "2023050110"

def test_duplicates_within_one_batch(store):
    res = store.persist_batch([make_record(), make_record()])
    assert (res.inserted, res.ignored) == (1, 1)
    assert store.count() == 1

def test_record_error_commits_the_rest(store):
    # A list cannot be bound as an SQL parameter
    bad = make_record("bad.jpg", indexed_key=["not", "a", "string"])

    res = store.persist_batch([make_record("ok.jpg"), bad])

    assert (res.inserted, res.ignored, res.errored) == (1, 0, 1)
    assert res.is_partial
    assert store.count() == 1
    assert store.fetch_by_original_path("/src/bad.jpg") is None

def test_record_error_rolls_back_when_strict(store):
    bad = make_record("bad.jpg", indexed_key=["x"])

    res = store.persist_batch([make_record("ok.jpg"), bad], rollback_on_error=True)

    assert not res.committed
    assert res.errored == 1
    assert not res.is_partial
    assert store.count() == 0

def test_undecodable_filename_is_a_record_error(store):
    # os.fsdecode(b"/src/bad\xff.jpg") on a UTF-8 filesystem
    bad = ProcessedRecord(
        original_path=Path("/src/bad\udcff.jpg"),
        data_dest_path=Path("/data/2023/05/01/bad\udcff.jpg"),
        thumbnail_dest_path=None,
        metadata=CaptureMetadata(),
        indexed_key="2023050110",
    )

    res = store.persist_batch([make_record("ok.jpg"), bad])

    assert (res.inserted, res.ignored, res.errored) == (1, 0, 1)
    assert res.is_partial
    assert not store.conn.in_transaction
    assert store.fetch_by_original_path("/src/ok.jpg") is not None

def test_undecodable_filename_rolls_back_when_strict(store):
    bad = make_record("bad\udcff.jpg")

    res = store.persist_batch([make_record("ok.jpg"), bad], rollback_on_error=True)

    assert not res.committed
    assert res.errored == 1
    assert store.count() == 0

def test_unexpected_failure_rolls_back_and_raises(store):
    class Exploding:
        original_path = Path("/src/boom.jpg")

        @property
        def metadata(self):
            raise RuntimeError("broken record")

    with pytest.raises(DatabaseError, match="broken record"):
        store.persist_batch([make_record("ok.jpg"), Exploding()])

    assert not store.conn.in_transaction
    assert store.count() == 0

def test_empty_batch(store):
    res = store.persist_batch([])
    assert (res.inserted, res.ignored, res.errored) == (0, 0, 0)

def test_db_manager_creates_schema_on_disk(tmp_path):
    db_path = tmp_path / "nested" / "casket.db"
    with DBManager(db_path) as conn:
        conn.execute("SELECT COUNT(*) FROM media_items").fetchone()
    assert db_path.exists()

    c = sqlite3.connect(db_path)
    try:
        assert c.execute("SELECT version FROM schema_version").fetchone() == (1,)
    finally:
        c.close()
