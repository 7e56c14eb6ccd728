"""
quarry/storage/history_sink.py
SQLite-backed record sink for terminal tasks.

One row per task that reached COMPLETED or FAILED. The executor hands
records over as they happen; status surfaces read them back.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from quarry.core.context import TaskRecord
from quarry.exceptions import StorageError
from quarry.logging_config import get_logger

logger = get_logger(__name__)


class SQLiteHistorySink:
    """
    Persist TaskRecords to a single SQLite file.

    Example:
        >>> sink = SQLiteHistorySink("~/.quarry/history.db")
        >>> sink.record(TaskRecord(task_id="task_1", name="pickaxe", status="COMPLETED"))
        >>> sink.recent(5)
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        """
        Args:
            db_path: Database file, or ":memory:" for a throwaway store
        """
        if str(db_path) == ":memory:":
            self.db_path = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = str(path)
        self._connection: Optional[sqlite3.Connection] = None
        self.initialize()
        logger.debug(f"SQLiteHistorySink initialized with db_path: {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = sqlite3.connect(self.db_path)
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def initialize(self) -> None:
        """
        Create the table. Safe to call repeatedly.

        Raises:
            StorageError: If initialization fails
        """
        try:
            conn = self._get_connection()
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_history (
                    task_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    duration_seconds REAL NOT NULL,
                    recorded_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_history_recorded ON task_history(recorded_at)"
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="initialize") from e

    def record(self, record: TaskRecord) -> None:
        """
        Insert or replace the row for ``record.task_id``.

        Raises:
            StorageError: If the write fails
        """
        try:
            conn = self._get_connection()
            conn.execute(
                """
                INSERT OR REPLACE INTO task_history
                    (task_id, name, status, duration_seconds, recorded_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.task_id,
                    record.name,
                    record.status,
                    record.duration_seconds,
                    record.recorded_at.isoformat(),
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="record") from e

    def recent(self, limit: int = 10) -> List[TaskRecord]:
        """Most recent records first."""
        try:
            rows = self._get_connection().execute(
                "SELECT * FROM task_history ORDER BY recorded_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="recent") from e

        return [
            TaskRecord(
                task_id=row["task_id"],
                name=row["name"],
                status=row["status"],
                duration_seconds=row["duration_seconds"],
                recorded_at=datetime.fromisoformat(row["recorded_at"]),
            )
            for row in rows
        ]

    def get(self, task_id: str) -> Optional[TaskRecord]:
        try:
            row = self._get_connection().execute(
                "SELECT * FROM task_history WHERE task_id = ?",
                (task_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(str(e), operation="get") from e
        if row is None:
            return None
        return TaskRecord(
            task_id=row["task_id"],
            name=row["name"],
            status=row["status"],
            duration_seconds=row["duration_seconds"],
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
