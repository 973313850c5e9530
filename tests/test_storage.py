import sqlite3

import pytest

from job_harvest.models import JobRecord
from job_harvest.storage import JobStore, StoreError, StoreInitError


def _sample_record(job_id: str = "1", posted_date: int = 1_700_000_000, title: str = "Scientist B") -> JobRecord:
    return JobRecord(
        id=job_id,
        title=title,
        department="NIC",
        location="All India",
        posted_date=posted_date,
        url=f"https://recruitment.nic.in/notice/{job_id}.pdf",
    )


def test_upsert_same_id_keeps_one_row_with_last_posted_date(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"

    with JobStore(db_path) as store:
        for posted_date in (100, 200, 300):
            store.upsert(_sample_record("abc", posted_date=posted_date))
        assert store.count_jobs() == 1
        assert store.get_job("abc").posted_date == 300


def test_upsert_fully_replaces_existing_row(tmp_path) -> None:
    with JobStore(tmp_path / "jobs.db") as store:
        store.upsert(_sample_record("abc", title="Old title"))
        store.upsert(_sample_record("abc", title="New title"))
        assert store.get_job("abc").title == "New title"


def test_rows_survive_reopen(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"
    with JobStore(db_path) as store:
        store.upsert(_sample_record("1"))
        store.upsert(_sample_record("2"))
        store.seal_and_close()

    with JobStore(db_path) as store:
        assert store.count_jobs() == 2
        assert store.get_job("missing") is None


def test_seal_leaves_single_file_in_delete_journal_mode(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"
    with JobStore(db_path) as store:
        store.upsert(_sample_record("1"))
        store.seal_and_close()

    assert db_path.exists()
    assert not (tmp_path / "jobs.db-wal").exists()
    assert not (tmp_path / "jobs.db-shm").exists()

    conn = sqlite3.connect(db_path)
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "delete"
    finally:
        conn.close()


def test_store_rejects_writes_after_seal(tmp_path) -> None:
    store = JobStore(tmp_path / "jobs.db")
    store.seal_and_close()

    with pytest.raises(StoreError):
        store.upsert(_sample_record("1"))
    with pytest.raises(StoreError):
        store.seal_and_close()


def test_corrupt_file_raises_store_init_error(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"
    db_path.write_bytes(b"this is definitely not a sqlite database file" * 100)

    with pytest.raises(StoreInitError):
        JobStore(db_path)


def test_open_creates_parent_directory(tmp_path) -> None:
    db_path = tmp_path / "nested" / "dir" / "jobs.db"
    with JobStore(db_path) as store:
        assert store.count_jobs() == 0
    assert db_path.exists()


def test_read_only_open_leaves_sealed_file_bytes_untouched(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"
    with JobStore(db_path) as store:
        store.upsert(_sample_record("1"))
        store.seal_and_close()
    sealed_bytes = db_path.read_bytes()

    with JobStore(db_path, read_only=True) as store:
        assert store.count_jobs() == 1
        assert store.get_job("1").title == "Scientist B"

    assert db_path.read_bytes() == sealed_bytes


def test_read_only_store_rejects_writes(tmp_path) -> None:
    db_path = tmp_path / "jobs.db"
    with JobStore(db_path) as store:
        store.seal_and_close()

    with JobStore(db_path, read_only=True) as store:
        with pytest.raises(StoreError):
            store.upsert(_sample_record("1"))
        with pytest.raises(StoreError):
            store.seal_and_close()


def test_read_only_open_of_missing_file_raises(tmp_path) -> None:
    with pytest.raises(StoreInitError):
        JobStore(tmp_path / "missing.db", read_only=True)
    assert not (tmp_path / "missing.db").exists()
