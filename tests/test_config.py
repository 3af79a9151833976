from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from tcheater.config import (
    Config,
    ConfigError,
    Credentials,
    find_project,
    load_config,
    load_projects,
)
from tcheater.models import Project
from tcheater.paths import config_path, database_path, ensure_directories, log_path


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp_dir.name)
        self._env = patch.dict(os.environ, {"TCHEATER_HOME": str(self.root / "home")})
        self._env.start()

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp_dir.cleanup()

    def _write(self, name: str, content: str) -> Path:
        path = self.root / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_paths_follow_home_override(self) -> None:
        home = self.root / "home"
        self.assertEqual(config_path(), home / "config.toml")
        self.assertEqual(database_path(), home / "checkpoints.sqlite3")
        self.assertEqual(log_path(), home / "tcheater.log")
        ensure_directories()
        self.assertTrue(home.is_dir())

    def test_missing_file_gives_defaults(self) -> None:
        config = load_config(self.root / "absent.toml")
        self.assertEqual(config, Config())
        self.assertEqual(config.store.backend, "sqlite")
        self.assertEqual(config.store.path, database_path())
        self.assertIsNone(config.credentials)
        self.assertEqual(config.quantum_minutes, 15)

    def test_full_file(self) -> None:
        path = self._write(
            "config.toml",
            """
task_url_prefix = "https://tasks.example/task/"

[store]
backend = "firestore"
project_id = "my-gcp-project"
collection = "timesheet"

[auth]
login_url = "https://tasks.example/login"
username = "me"
password = "secret"
task_list_url = "https://tasks.example/list"

[tracker]
quantum_minutes = 30
""",
        )
        config = load_config(path)
        self.assertEqual(config.store.backend, "firestore")
        self.assertEqual(config.store.project_id, "my-gcp-project")
        self.assertEqual(config.store.database_id, "tcheater")
        self.assertEqual(config.store.collection, "timesheet")
        self.assertEqual(
            config.credentials,
            Credentials(
                login_url="https://tasks.example/login",
                username="me",
                password="secret",
                task_list_url="https://tasks.example/list",
            ),
        )
        self.assertEqual(config.task_url_prefix, "https://tasks.example/task/")
        self.assertEqual(config.quantum_minutes, 30)

    def test_sqlite_path_is_expanded(self) -> None:
        path = self._write("config.toml", '[store]\npath = "~/timesheet.sqlite3"\n')
        self.assertEqual(load_config(path).store.path, Path("~/timesheet.sqlite3").expanduser())

    def test_malformed_toml(self) -> None:
        path = self._write("config.toml", "[store\nbackend = ")
        with self.assertRaises(ConfigError):
            load_config(path)

    def test_unknown_backend(self) -> None:
        path = self._write("config.toml", '[store]\nbackend = "postgres"\n')
        with self.assertRaisesRegex(ConfigError, "postgres"):
            load_config(path)

    def test_incomplete_credentials(self) -> None:
        path = self._write("config.toml", '[auth]\nusername = "me"\n')
        with self.assertRaisesRegex(ConfigError, "login_url"):
            load_config(path)

    def test_quantum_bounds(self) -> None:
        for value in ("0", "61", "true", '"15"'):
            path = self._write("config.toml", f"[tracker]\nquantum_minutes = {value}\n")
            with self.assertRaises(ConfigError):
                load_config(path)

    def test_projects(self) -> None:
        path = self._write(
            "projects.toml",
            """
[[projects]]
id = "12"
name = "Backend"
color = 33

[[projects]]
id = 40
""",
        )
        projects = load_projects(path)
        self.assertEqual(projects, [Project(id="12", name="Backend", color=33), Project(id="40", name="40")])
        self.assertEqual(find_project(projects, "40").name, "40")
        self.assertIsNone(find_project(projects, "7"))
        self.assertIsNone(find_project(projects, None))
        self.assertEqual(load_projects(self.root / "absent.toml"), [])

    def test_project_color_out_of_range(self) -> None:
        path = self._write("projects.toml", '[[projects]]\nid = "1"\ncolor = 300\n')
        with self.assertRaises(ConfigError):
            load_projects(path)


if __name__ == "__main__":
    unittest.main()
