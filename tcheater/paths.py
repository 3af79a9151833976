from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = ".tcheater"
HOME_ENV_VAR = "TCHEATER_HOME"


def data_directory() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / APP_DIR_NAME


def config_path() -> Path:
    return data_directory() / "config.toml"


def projects_path() -> Path:
    return data_directory() / "projects.toml"


def database_path() -> Path:
    return data_directory() / "checkpoints.sqlite3"


def log_path() -> Path:
    return data_directory() / "tcheater.log"


def ensure_directories() -> None:
    data_directory().mkdir(parents=True, exist_ok=True)
