"""
SQLite implementation of the persistence service.

Job records, status events, outputs and log lines each live in their own
table keyed by job_id. Status and log rows carry an autoincrement sequence
number which gives their stored order.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from typing import List, Optional

from jobserver import utils
from jobserver.domain import (
    JobFilter,
    JobLogEntry,
    JobOutput,
    JobRecord,
    JobSpec,
    JobStatusEvent,
    JobStatusType,
    OutputStream,
    Transform,
)
from jobserver.errors import NotFoundError

from .interface import PersistAPI

LOG = logging.getLogger(__name__)

SCHEMA_VERSION = "1"
DEFAULT_TIMEOUT = 5.0


class SqlitePersistAPI(PersistAPI):
    """
    SQLite-based persistence service.

    Each thread gets its own connection, so one instance can be shared by
    concurrent requests.
    """

    def __init__(self, db_path: str, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_db_dir()
        self._local = threading.local()
        self._conns: List[sqlite3.Connection] = []
        self._conns_lock = threading.Lock()
        self._init_schema()

    def _ensure_db_dir(self):
        """Create database directory if it doesn't exist."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _get_conn(self) -> sqlite3.Connection:
        """Get this thread's database connection, creating if needed."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self.db_path, timeout=self.timeout, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
            with self._conns_lock:
                self._conns.append(conn)
        return conn

    def _init_schema(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_conn()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL UNIQUE,
                input TEXT,
                output_parent TEXT,
                transform_json TEXT,
                pipeline_name TEXT,
                created_at TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS job_statuses (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL,
                type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                message TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS job_outputs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL,
                output TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS job_logs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL,
                output_stream TEXT NOT NULL,
                value BLOB
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_created_at "
            "ON jobs(created_at)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_input "
            "ON jobs(input)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_pipeline_name "
            "ON jobs(pipeline_name)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_job_statuses_job_id "
            "ON job_statuses(job_id)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_job_outputs_job_id "
            "ON job_outputs(job_id)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_job_logs_job_id "
            "ON job_logs(job_id)")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        cursor.execute(
            "INSERT OR IGNORE INTO metadata (key, value) VALUES (?, ?)",
            ("schema_version", SCHEMA_VERSION))

        conn.commit()

    def _record_to_row(self, record: JobRecord) -> tuple:
        """Convert JobRecord to database row tuple."""
        spec = record.spec
        return (
            record.job_id,
            record.input,
            record.output_parent,
            json.dumps(spec.transform.to_dict()) if spec.transform else None,
            spec.pipeline_name,
            utils.toTimestamp(record.created_at) if record.created_at else None,
        )

    def _row_to_record(self, row: sqlite3.Row) -> JobRecord:
        """Convert database row to JobRecord."""
        if row["transform_json"]:
            spec = JobSpec.of_transform(
                Transform.from_dict(json.loads(row["transform_json"])))
        else:
            spec = JobSpec.of_pipeline(row["pipeline_name"])
        return JobRecord(
            job_id=row["job_id"],
            spec=spec,
            input=row["input"],
            output_parent=row["output_parent"],
            created_at=utils.fromTimestamp(row["created_at"])
            if row["created_at"] else None,
        )

    def create_job_record(self, record: JobRecord) -> None:
        """Store a new job record. Existing records are never replaced."""
        conn = self._get_conn()
        conn.execute("""
            INSERT INTO jobs (
                job_id, input, output_parent, transform_json, pipeline_name,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
        """, self._record_to_row(record))
        conn.commit()
        LOG.debug("stored job record %s", record.job_id)

    def get_job_record(self, job_id: str) -> JobRecord:
        """Get a job record by id."""
        cursor = self._get_conn().cursor()
        cursor.execute("SELECT * FROM jobs WHERE job_id = ?", (job_id,))
        row = cursor.fetchone()

        if row is None:
            raise NotFoundError(job_id)

        return self._row_to_record(row)

    def list_job_records(
        self, job_filter: Optional[JobFilter] = None
    ) -> List[JobRecord]:
        """List job records, oldest first."""
        cursor = self._get_conn().cursor()

        query = "SELECT * FROM jobs WHERE 1=1"
        params = []

        if job_filter is not None and job_filter.input is not None:
            query += " AND input = ?"
            params.append(job_filter.input)

        if job_filter is not None and job_filter.pipeline_name is not None:
            query += " AND pipeline_name = ?"
            params.append(job_filter.pipeline_name)

        query += " ORDER BY created_at, seq"

        cursor.execute(query, params)
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def get_job_statuses(self, job_id: str) -> List[JobStatusEvent]:
        """Get status events in stored order."""
        cursor = self._get_conn().cursor()
        cursor.execute(
            "SELECT * FROM job_statuses WHERE job_id = ? ORDER BY seq",
            (job_id,))
        return [
            JobStatusEvent(
                job_id=row["job_id"],
                type=JobStatusType(row["type"]),
                timestamp=utils.fromTimestamp(row["timestamp"]),
                message=row["message"] or "",
            )
            for row in cursor.fetchall()
        ]

    def get_job_output(self, job_id: str) -> Optional[JobOutput]:
        """Get the most recently recorded output, if any."""
        cursor = self._get_conn().cursor()
        cursor.execute(
            "SELECT * FROM job_outputs WHERE job_id = ? "
            "ORDER BY seq DESC LIMIT 1",
            (job_id,))
        row = cursor.fetchone()

        if row is None:
            return None

        return JobOutput(job_id=row["job_id"], output=row["output"])

    def get_job_logs(self, job_id: str) -> List[JobLogEntry]:
        """Get every log entry in stored order."""
        cursor = self._get_conn().cursor()
        cursor.execute(
            "SELECT * FROM job_logs WHERE job_id = ? ORDER BY seq",
            (job_id,))
        return [
            JobLogEntry(
                job_id=row["job_id"],
                output_stream=OutputStream(row["output_stream"]),
                value=bytes(row["value"] or b""),
            )
            for row in cursor.fetchall()
        ]

    def create_job_status(self, event: JobStatusEvent) -> None:
        """Append a status event."""
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO job_statuses (job_id, type, timestamp, message) "
            "VALUES (?, ?, ?, ?)",
            (event.job_id, event.type.value,
             utils.toTimestamp(event.timestamp), event.message))
        conn.commit()

    def create_job_output(self, output: JobOutput) -> None:
        """Record the output of a job."""
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO job_outputs (job_id, output) VALUES (?, ?)",
            (output.job_id, output.output))
        conn.commit()

    def create_job_log(self, entry: JobLogEntry) -> None:
        """Append a log entry."""
        if entry.output_stream is OutputStream.ALL:
            raise ValueError("log entries must be tagged stdout or stderr")
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO job_logs (job_id, output_stream, value) "
            "VALUES (?, ?, ?)",
            (entry.job_id, entry.output_stream.value,
             sqlite3.Binary(entry.value)))
        conn.commit()

    def close(self) -> None:
        """Close every connection opened by this instance."""
        with self._conns_lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            conn.close()
        self._local = threading.local()
