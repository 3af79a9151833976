from __future__ import annotations

import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from tcheater.database import SqliteCheckpointStore
from tcheater.models import Checkpoint
from tcheater.store import CheckpointStore, StoreError


def _local(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 1, day, hour, minute).astimezone()


class DatabaseTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.db = SqliteCheckpointStore(Path(self._tmp_dir.name) / "checkpoints.sqlite3")

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()

    def test_implements_store_contract(self) -> None:
        self.assertIsInstance(self.db, CheckpointStore)

    async def test_insert_assigns_identifier(self) -> None:
        draft = Checkpoint(time=_local(5, 9), message="standup")
        stored = await self.db.insert(draft)
        self.assertIsNotNone(stored.id)
        self.assertIsNone(draft.id)
        self.assertEqual(stored.message, "standup")

    async def test_find_returns_only_that_day_in_order(self) -> None:
        await self.db.insert(Checkpoint(time=_local(5, 11)))
        await self.db.insert(Checkpoint(time=_local(5, 9)))
        await self.db.insert(Checkpoint(time=_local(6, 10)))

        monday = await self.db.find(date(2026, 1, 5))
        self.assertEqual([checkpoint.time.hour for checkpoint in monday], [9, 11])
        self.assertEqual(len(await self.db.find(date(2026, 1, 7))), 0)

    async def test_find_orders_by_instant_across_offsets(self) -> None:
        # 10:30+01:00 sorts after 10:00+00:00 as text but happens half an hour earlier.
        with self.db._connection() as conn:
            conn.executemany(
                "INSERT INTO checkpoints(id, time, registered) VALUES (?, ?, 0)",
                [("later", "2026-10-25T10:00:00+00:00"), ("earlier", "2026-10-25T10:30:00+01:00")],
            )
            conn.commit()

        found = await self.db.find(date(2026, 10, 25))
        self.assertEqual([checkpoint.id for checkpoint in found], ["earlier", "later"])

    async def test_update_replaces_fields(self) -> None:
        stored = await self.db.insert(Checkpoint(time=_local(5, 9)))
        stored.time = _local(5, 9, 15)
        stored.project = "4711"
        stored.message = "review"
        stored.registered = True
        await self.db.update(stored)

        [loaded] = await self.db.find(date(2026, 1, 5))
        self.assertEqual(loaded.id, stored.id)
        self.assertEqual(loaded.time, _local(5, 9, 15))
        self.assertEqual(loaded.project, "4711")
        self.assertEqual(loaded.message, "review")
        self.assertTrue(loaded.registered)

    async def test_update_requires_identifier(self) -> None:
        with self.assertRaises(StoreError):
            await self.db.update(Checkpoint(time=_local(5, 9)))
        with self.assertRaises(StoreError):
            await self.db.update(Checkpoint(id="missing", time=_local(5, 9)))

    async def test_delete(self) -> None:
        stored = await self.db.insert(Checkpoint(time=_local(5, 9)))
        await self.db.delete(stored)
        self.assertEqual(await self.db.find(date(2026, 1, 5)), [])
        with self.assertRaises(StoreError):
            await self.db.delete(Checkpoint(time=_local(5, 9)))

    async def test_distinct_dates(self) -> None:
        for day, hour in [(6, 9), (5, 9), (5, 12), (8, 10)]:
            await self.db.insert(Checkpoint(time=_local(day, hour)))
        self.assertEqual(
            await self.db.distinct_dates(),
            [date(2026, 1, 5), date(2026, 1, 6), date(2026, 1, 8)],
        )

    def test_data_survives_reopen(self) -> None:
        self.db.insert_checkpoint(Checkpoint(time=_local(5, 9), project="12"))
        reopened = SqliteCheckpointStore(Path(self._tmp_dir.name) / "checkpoints.sqlite3")
        [loaded] = reopened.list_checkpoints_for_date(date(2026, 1, 5))
        self.assertEqual(loaded.project, "12")


if __name__ == "__main__":
    unittest.main()
