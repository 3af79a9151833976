from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from rich.console import Console

from tcheater import __version__
from tcheater.app import TrackerShell, build_store, main
from tcheater.config import StoreSettings
from tcheater.database import SqliteCheckpointStore


class MainTests(unittest.TestCase):
    def test_version_flag(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.assertEqual(main(["--version"]), 0)
        self.assertEqual(buffer.getvalue().strip(), __version__)

    def test_invalid_config_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config = Path(tmp_dir) / "config.toml"
            config.write_text('[store]\nbackend = "postgres"\n', encoding="utf-8")
            with patch.dict(os.environ, {"TCHEATER_HOME": tmp_dir}), patch("sys.stderr", new_callable=io.StringIO):
                self.assertEqual(main(["--config", str(config)]), 1)

    def test_sqlite_backend_is_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = build_store(StoreSettings(path=Path(tmp_dir) / "db.sqlite3"))
            self.assertIsInstance(store, SqliteCheckpointStore)


class TrackerShellTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tracker = MagicMock()
        for name in (
            "append",
            "split",
            "delete",
            "shift_selected",
            "shift_next",
            "cycle_weeks",
            "toggle_registered",
            "annotate",
            "assign_project",
            "assign_task",
            "fetch_tasks",
            "reload",
        ):
            setattr(self.tracker, name, AsyncMock())
        self.tracker.fetch_tasks.return_value = []
        self.console = Console(file=io.StringIO(), width=100)
        self.shell = TrackerShell(self.tracker, console=self.console)

    async def test_commands_map_to_tracker(self) -> None:
        await self.shell.dispatch("a")
        await self.shell.dispatch("L")
        await self.shell.dispatch("h")
        await self.shell.dispatch("  m fixing the build ")
        await self.shell.dispatch("p 4711")
        await self.shell.dispatch("p")
        await self.shell.dispatch("t 2")

        self.tracker.append.assert_awaited_once()
        self.tracker.shift_next.assert_awaited_once_with(1)
        self.tracker.shift_selected.assert_awaited_once_with(-1)
        self.tracker.annotate.assert_awaited_once_with("fixing the build")
        self.assertEqual([call.args for call in self.tracker.assign_project.await_args_list], [("4711",), (None,)])
        self.tracker.assign_task.assert_awaited_once_with(2)

    async def test_navigation_is_local(self) -> None:
        await self.shell.dispatch("j")
        await self.shell.dispatch("n")
        self.tracker.select_next_day.assert_called_once_with()
        self.tracker.select_next_checkpoint.assert_called_once_with()

    async def test_dispatch_clears_previous_error(self) -> None:
        self.tracker.last_error = "Failed to load 2026-01-05: boom"
        await self.shell.dispatch("r")
        self.assertIsNone(self.tracker.last_error)
        self.tracker.toggle_registered.assert_awaited_once()

    async def test_unknown_and_empty_commands(self) -> None:
        await self.shell.dispatch("   ")
        await self.shell.dispatch("zz")
        self.assertIn("Unknown command", self.console.file.getvalue())
        self.tracker.append.assert_not_awaited()

    async def test_quit_stops_loop(self) -> None:
        self.shell.running = True
        await self.shell.dispatch("q")
        self.assertFalse(self.shell.running)

    async def test_run_reloads_and_stops_on_eof(self) -> None:
        with patch("tcheater.app.dashboard", return_value=""), patch.object(self.console, "input", side_effect=EOFError):
            await self.shell.run()
        self.tracker.reload.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
