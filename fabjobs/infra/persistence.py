"""
Persistence Adapter.

SQLite storage for job snapshots and device configuration records.
Implements the JobStore and DeviceStore protocols used by the engine and
the device registry. Each call opens its own connection, so the adapter can
be used from worker threads (asyncio.to_thread).

Does NOT contain business logic: whatever record the engine hands over is
written as-is.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional


logger = logging.getLogger(__name__)

# Columns of the device table; everything else in a config goes to settings
DEVICE_COLUMNS = ("port", "name")


def _now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


class PersistenceAdapter:
    """SQLite-based persistence for job and device records."""

    def __init__(self, db_path: str | Path):
        """
        Initialize persistence adapter.

        Args:
            db_path: Path to SQLite database file (parent directory is created)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with WAL mode enabled."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read-only database connections."""
        conn = self._get_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    uuid TEXT PRIMARY KEY,
                    device_id TEXT NOT NULL,
                    file_id TEXT,
                    state TEXT NOT NULL,
                    started_at INTEGER,
                    elapsed_ms INTEGER,
                    percent_complete REAL NOT NULL DEFAULT 0,
                    subscribers TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_device
                ON jobs (device_id)
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS devices (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    port TEXT NOT NULL,
                    name TEXT NOT NULL,
                    settings TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL
                )
            """)

    # =========================================================================
    # Job records
    # =========================================================================

    def find_job_record(self, job_uuid: str) -> Optional[dict]:
        """Get a job record by uuid, or None."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE uuid = ?", (job_uuid,)
            ).fetchone()
        return self._row_to_job(row) if row else None

    def upsert_job_record(self, record: Mapping[str, Any]) -> dict:
        """
        Insert or update a job snapshot keyed by uuid.

        Returns:
            The stored record
        """
        now = _now_iso()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO jobs (
                    uuid, device_id, file_id, state, started_at, elapsed_ms,
                    percent_complete, subscribers, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(uuid) DO UPDATE SET
                    device_id = excluded.device_id,
                    file_id = excluded.file_id,
                    state = excluded.state,
                    started_at = excluded.started_at,
                    elapsed_ms = excluded.elapsed_ms,
                    percent_complete = excluded.percent_complete,
                    subscribers = excluded.subscribers,
                    updated_at = excluded.updated_at
                """,
                (
                    record["uuid"],
                    record["device_id"],
                    record.get("file_id"),
                    record["state"],
                    record.get("started_at"),
                    record.get("elapsed_ms"),
                    record.get("percent_complete") or 0,
                    json.dumps(list(record.get("subscribers") or [])),
                    now,
                    now,
                ),
            )
        logger.debug(f"Job record {record['uuid']} stored as {record['state']}")
        return self.find_job_record(record["uuid"])

    def list_job_records(self, device_id: Optional[str] = None) -> list[dict]:
        """List job records, optionally for one device, oldest first."""
        with self._connection() as conn:
            if device_id is None:
                rows = conn.execute(
                    "SELECT * FROM jobs ORDER BY created_at ASC"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM jobs WHERE device_id = ? ORDER BY created_at ASC",
                    (device_id,),
                ).fetchall()
        return [self._row_to_job(row) for row in rows]

    def _row_to_job(self, row: sqlite3.Row) -> dict:
        return {
            "uuid": row["uuid"],
            "device_id": row["device_id"],
            "file_id": row["file_id"],
            "state": row["state"],
            "started_at": row["started_at"],
            "elapsed_ms": row["elapsed_ms"],
            "percent_complete": row["percent_complete"],
            "subscribers": json.loads(row["subscribers"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    # =========================================================================
    # Device records
    # =========================================================================

    def find_all_device_records(self) -> list[dict]:
        """All device configuration records in creation order."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM devices ORDER BY id ASC").fetchall()
        return [self._row_to_device(row) for row in rows]

    def create_device_record(self, config: Mapping[str, Any]) -> dict:
        """
        Persist a device configuration.

        Args:
            config: Flat configuration; port and name become columns, the
                numeric operating parameters are stored as settings JSON

        Returns:
            The stored record, including its generated id
        """
        settings = {k: v for k, v in config.items() if k not in DEVICE_COLUMNS and k != "id"}
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO devices (port, name, settings, created_at) VALUES (?, ?, ?, ?)",
                (
                    str(config.get("port", "null")),
                    str(config.get("name", "Default")),
                    json.dumps(settings),
                    _now_iso(),
                ),
            )
            device_row_id = cursor.lastrowid
            row = conn.execute(
                "SELECT * FROM devices WHERE id = ?", (device_row_id,)
            ).fetchone()
        logger.info(f"Device record {device_row_id} created for port {row['port']}")
        return self._row_to_device(row)

    def _row_to_device(self, row: sqlite3.Row) -> dict:
        record = json.loads(row["settings"])
        record.update({
            "id": row["id"],
            "port": row["port"],
            "name": row["name"],
            "created_at": row["created_at"],
        })
        return record
