from __future__ import annotations

import asyncio
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from .models import Checkpoint
from .store import StoreError, require_id


class SqliteCheckpointStore:
    """Local checkpoint store; blocking sqlite calls run off the event loop."""

    def __init__(self, db_file: Path):
        self._db_file = Path(db_file)
        self._db_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_file, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def _connection(self):
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open checkpoint database {self._db_file}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StoreError(f"Checkpoint database error: {exc}") from exc
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._lock, self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS checkpoints (
                    id TEXT PRIMARY KEY,
                    time TEXT NOT NULL,
                    project TEXT,
                    message TEXT,
                    registered INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_checkpoints_time
                ON checkpoints(time);
                """
            )
            conn.commit()

    # ---- Store contract ----

    async def find(self, day: date) -> list[Checkpoint]:
        return await asyncio.to_thread(self.list_checkpoints_for_date, day)

    async def insert(self, checkpoint: Checkpoint) -> Checkpoint:
        return await asyncio.to_thread(self.insert_checkpoint, checkpoint)

    async def update(self, checkpoint: Checkpoint) -> None:
        await asyncio.to_thread(self.update_checkpoint, checkpoint)

    async def delete(self, checkpoint: Checkpoint) -> None:
        await asyncio.to_thread(self.delete_checkpoint, checkpoint)

    async def distinct_dates(self) -> list[date]:
        return await asyncio.to_thread(self.list_distinct_dates)

    # ---- Blocking implementation ----

    def list_checkpoints_for_date(self, day: date) -> list[Checkpoint]:
        with self._lock, self._connection() as conn:
            rows = conn.execute(
                """
                SELECT id, time, project, message, registered
                FROM checkpoints
                WHERE substr(time, 1, 10) = ?
                ORDER BY time ASC
                """,
                (day.isoformat(),),
            ).fetchall()
        checkpoints = [self._row_to_checkpoint(row) for row in rows]
        # Text order breaks when rows carry different UTC offsets (DST changes).
        checkpoints.sort(key=lambda checkpoint: checkpoint.time)
        return checkpoints

    def insert_checkpoint(self, checkpoint: Checkpoint) -> Checkpoint:
        identifier = checkpoint.id or uuid.uuid4().hex
        with self._lock, self._connection() as conn:
            conn.execute(
                """
                INSERT INTO checkpoints(id, time, project, message, registered)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    identifier,
                    _serialize_time(checkpoint.time),
                    checkpoint.project,
                    checkpoint.message,
                    int(checkpoint.registered),
                ),
            )
            conn.commit()
        return replace(checkpoint, id=identifier)

    def update_checkpoint(self, checkpoint: Checkpoint) -> None:
        identifier = require_id(checkpoint)
        with self._lock, self._connection() as conn:
            cursor = conn.execute(
                """
                UPDATE checkpoints
                SET time = ?, project = ?, message = ?, registered = ?
                WHERE id = ?
                """,
                (
                    _serialize_time(checkpoint.time),
                    checkpoint.project,
                    checkpoint.message,
                    int(checkpoint.registered),
                    identifier,
                ),
            )
            conn.commit()
            updated = cursor.rowcount
        if updated == 0:
            raise StoreError(f"Checkpoint {identifier} does not exist.")

    def delete_checkpoint(self, checkpoint: Checkpoint) -> None:
        identifier = require_id(checkpoint)
        with self._lock, self._connection() as conn:
            conn.execute("DELETE FROM checkpoints WHERE id = ?", (identifier,))
            conn.commit()

    def list_distinct_dates(self) -> list[date]:
        with self._lock, self._connection() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT substr(time, 1, 10) AS day
                FROM checkpoints
                ORDER BY day ASC
                """
            ).fetchall()
        return [date.fromisoformat(str(row["day"])) for row in rows]

    @staticmethod
    def _row_to_checkpoint(row: sqlite3.Row) -> Checkpoint:
        return Checkpoint(
            id=str(row["id"]),
            time=datetime.fromisoformat(str(row["time"])).astimezone(),
            project=row["project"],
            message=row["message"],
            registered=bool(row["registered"]),
        )


def _serialize_time(value: datetime) -> str:
    # Stored in local time so the date prefix matches the user's calendar day.
    return value.astimezone().isoformat()
