from __future__ import annotations

import logging
import sqlite3
from contextlib import AbstractContextManager
from pathlib import Path

from job_harvest.models import JobRecord

LOG = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class StoreInitError(StoreError):
    pass


class SealError(StoreError):
    pass


class JobStore(AbstractContextManager["JobStore"]):
    """Single-file SQLite table of job records keyed by id.

    Writes run in WAL mode; ``seal_and_close`` compacts the file and switches
    it back to rollback-journal mode so only the database file remains.
    ``read_only=True`` opens an existing file without touching its bytes, so a
    published checksum stays valid while the store is inspected.
    """

    def __init__(self, db_path: Path | str, *, read_only: bool = False):
        self.db_path = Path(db_path)
        self.read_only = read_only
        self._sealed = False
        try:
            if read_only:
                self.conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
            else:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self.conn = sqlite3.connect(self.db_path)
        except (OSError, sqlite3.Error) as exc:
            raise StoreInitError(f"cannot open {self.db_path}: {exc}") from exc

        self.conn.row_factory = sqlite3.Row
        try:
            if read_only:
                self.conn.execute("SELECT 1 FROM jobs LIMIT 1").fetchall()
            else:
                self._init_schema()
        except sqlite3.Error as exc:
            self.conn.close()
            raise StoreInitError(f"cannot initialise {self.db_path}: {exc}") from exc

    def _init_schema(self) -> None:
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    title TEXT,
                    department TEXT,
                    location TEXT,
                    posted_date INTEGER,
                    url TEXT
                )
                """
            )

    def _ensure_open(self) -> None:
        if self._sealed:
            raise StoreError(f"{self.db_path} is already sealed")

    def _ensure_writable(self) -> None:
        self._ensure_open()
        if self.read_only:
            raise StoreError(f"{self.db_path} is open read-only")

    def upsert(self, record: JobRecord) -> None:
        self._ensure_writable()
        try:
            with self.conn:
                self.conn.execute(
                    """
                    INSERT OR REPLACE INTO jobs (id, title, department, location, posted_date, url)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.title,
                        record.department,
                        record.location,
                        record.posted_date,
                        record.url,
                    ),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"failed to upsert job {record.id}: {exc}") from exc

    def get_job(self, job_id: str) -> JobRecord | None:
        self._ensure_open()
        row = self.conn.execute(
            """
            SELECT id, title, department, location, posted_date, url
            FROM jobs WHERE id = ?
            """,
            (job_id,),
        ).fetchone()
        if row is None:
            return None
        return JobRecord(
            id=row["id"],
            title=row["title"],
            department=row["department"],
            location=row["location"],
            posted_date=int(row["posted_date"]),
            url=row["url"],
        )

    def count_jobs(self) -> int:
        self._ensure_open()
        row = self.conn.execute("SELECT COUNT(*) AS c FROM jobs").fetchone()
        return int(row["c"]) if row else 0

    def seal_and_close(self) -> None:
        self._ensure_writable()
        LOG.info("optimizing database %s", self.db_path)
        try:
            self.conn.execute("VACUUM")
            row = self.conn.execute("PRAGMA journal_mode=DELETE").fetchone()
            if row is None or str(row[0]).casefold() != "delete":
                raise SealError(f"journal_mode switch on {self.db_path} returned {row[0] if row else None!r}")
            self.conn.close()
        except sqlite3.Error as exc:
            raise SealError(f"failed to seal {self.db_path}: {exc}") from exc
        self._sealed = True

    def close(self) -> None:
        if not self._sealed:
            self.conn.close()

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()
