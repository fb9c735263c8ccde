"""
Job record store (SQLite).

One table keyed by job id, with secondary indexes on status and due_date.
Every call opens its own connection, so each upsert/delete is atomic at
single-record granularity and durable once it returns.
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from .schema import JobRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for record store failures."""
    pass


class StorageUnavailable(StorageError):
    """Raised when the store cannot be opened or created."""
    pass


class StorageReadError(StorageError):
    """Raised when reading records fails."""
    pass


class StorageWriteError(StorageError):
    """Raised when an upsert or delete fails."""
    pass


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class JobStore:
    """SQLite-backed store for job records."""

    def __init__(self, db_path: str = None):
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskflow" / "taskflow.db")
        self.db_path = db_path
        self._ready = False

    def initialize(self) -> None:
        """Create the database file, table and indexes if they don't exist."""
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            with _connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS jobs (
                        id TEXT PRIMARY KEY,
                        title TEXT NOT NULL,
                        description TEXT DEFAULT '',
                        status TEXT NOT NULL,
                        priority TEXT NOT NULL,
                        due_date TEXT,
                        tags TEXT,  -- JSON list
                        updated_at TEXT
                    )
                """)
                conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_due_date ON jobs(due_date)")
                conn.commit()
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Cannot open job store at {self.db_path}: {e}")
            raise StorageUnavailable(f"Job store unavailable at {self.db_path}: {e}") from e
        self._ready = True
        logger.info(f"Job store ready at {self.db_path}")

    def _require_ready(self) -> None:
        if not self._ready:
            raise StorageUnavailable("Job store used before initialize()")

    def get_all(self) -> List[JobRecord]:
        """Return every stored job, in no particular order."""
        self._require_ready()
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute("SELECT * FROM jobs").fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error listing jobs: {e}")
            raise StorageReadError(f"Could not read jobs: {e}") from e
        return [self._row_to_job(row) for row in rows]

    def get(self, job_id: str) -> Optional[JobRecord]:
        """Retrieve a job by id."""
        self._require_ready()
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving job {job_id}: {e}")
            raise StorageReadError(f"Could not read job {job_id}: {e}") from e
        return self._row_to_job(row) if row else None

    def upsert(self, job: JobRecord) -> JobRecord:
        """Insert the job, or fully replace the stored job with the same id."""
        self._require_ready()
        data = job.to_dict()
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO jobs
                    (id, title, description, status, priority, due_date, tags, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    data["id"],
                    data["title"],
                    data["description"],
                    data["status"],
                    data["priority"],
                    data["due_date"],
                    json.dumps(data["tags"]),
                    data["updated_at"],
                ))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error saving job {job.id}: {e}")
            raise StorageWriteError(f"Could not save job {job.id}: {e}") from e
        logger.debug(f"Saved job {job.id} ({job.status})")
        return job

    def delete(self, job_id: str) -> None:
        """Delete a job. Deleting an unknown id is a no-op."""
        self._require_ready()
        try:
            with _connect(self.db_path) as conn:
                conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error deleting job {job_id}: {e}")
            raise StorageWriteError(f"Could not delete job {job_id}: {e}") from e
        logger.debug(f"Deleted job {job_id}")

    def _row_to_job(self, row: sqlite3.Row) -> JobRecord:
        """Convert a database row to a JobRecord."""
        data = dict(row)
        if data.get("tags"):
            try:
                data["tags"] = json.loads(data["tags"])
            except (json.JSONDecodeError, TypeError):
                data["tags"] = []
        else:
            data["tags"] = []
        return JobRecord.from_dict(data)
