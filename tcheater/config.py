"""Configuration loading for tcheater.

Settings live in ``config.toml`` and the optional project catalogue in
``projects.toml``, both under :func:`tcheater.paths.data_directory`.
A missing ``config.toml`` is not an error: the tracker then runs against the
local SQLite store with no task-list credentials.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .models import Project
from .paths import config_path, database_path, projects_path
from .store import DEFAULT_COLLECTION, DEFAULT_DATABASE_ID
from .timeline import QUANTUM_MINUTES

STORE_BACKENDS = ("sqlite", "firestore")


class ConfigError(ValueError):
    """The configuration file exists but cannot be used."""


@dataclass(frozen=True)
class Credentials:
    login_url: str
    username: str
    password: str
    task_list_url: str | None = None


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "sqlite"
    path: Path = field(default_factory=database_path)
    project_id: str | None = None
    database_id: str = DEFAULT_DATABASE_ID
    collection: str = DEFAULT_COLLECTION


@dataclass(frozen=True)
class Config:
    store: StoreSettings = field(default_factory=StoreSettings)
    credentials: Credentials | None = None
    task_url_prefix: str | None = None
    quantum_minutes: int = QUANTUM_MINUTES


def load_config(path: Path | None = None) -> Config:
    path = Path(path) if path is not None else config_path()
    if not path.exists():
        return Config()
    raw = _read_toml(path)
    return Config(
        store=_parse_store(_table(raw, "store")),
        credentials=_parse_credentials(_table(raw, "auth")),
        task_url_prefix=_optional_str(raw, "task_url_prefix"),
        quantum_minutes=_parse_quantum(_table(raw, "tracker")),
    )


def load_projects(path: Path | None = None) -> list[Project]:
    path = Path(path) if path is not None else projects_path()
    if not path.exists():
        return []
    raw = _read_toml(path)
    entries = raw.get("projects", [])
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: 'projects' must be an array of tables.")

    projects: list[Project] = []
    for entry in entries:
        if not isinstance(entry, dict) or "id" not in entry:
            raise ConfigError(f"{path}: every project needs an 'id'.")
        color = entry.get("color")
        if color is not None and not (isinstance(color, int) and 0 <= color <= 255):
            raise ConfigError(f"{path}: project {entry['id']!r} has an invalid color {color!r}.")
        projects.append(
            Project(
                id=str(entry["id"]),
                name=str(entry.get("name", entry["id"])),
                color=color,
            )
        )
    return projects


def find_project(projects: Sequence[Project], project_id: str | None) -> Project | None:
    if project_id is None:
        return None
    for project in projects:
        if project.id == project_id:
            return project
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc


def _table(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table.")
    return value


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string.")
    return value.strip() or None


def _parse_store(raw: dict[str, Any]) -> StoreSettings:
    backend = _optional_str(raw, "backend") or "sqlite"
    if backend not in STORE_BACKENDS:
        raise ConfigError(f"Unsupported store backend {backend!r}; use one of {', '.join(STORE_BACKENDS)}.")
    path = _optional_str(raw, "path")
    return StoreSettings(
        backend=backend,
        path=Path(path).expanduser() if path else database_path(),
        project_id=_optional_str(raw, "project_id"),
        database_id=_optional_str(raw, "database_id") or DEFAULT_DATABASE_ID,
        collection=_optional_str(raw, "collection") or DEFAULT_COLLECTION,
    )


def _parse_credentials(raw: dict[str, Any]) -> Credentials | None:
    if not raw:
        return None
    missing = [key for key in ("login_url", "username", "password") if not _optional_str(raw, key)]
    if missing:
        raise ConfigError(f"[auth] is missing {', '.join(missing)}.")
    return Credentials(
        login_url=_optional_str(raw, "login_url") or "",
        username=_optional_str(raw, "username") or "",
        password=str(raw["password"]),
        task_list_url=_optional_str(raw, "task_list_url"),
    )


def _parse_quantum(raw: dict[str, Any]) -> int:
    value = raw.get("quantum_minutes", QUANTUM_MINUTES)
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 60:
        raise ConfigError("[tracker] quantum_minutes must be an integer between 1 and 60.")
    return value
