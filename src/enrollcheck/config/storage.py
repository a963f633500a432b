"""Location of the local SQL database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "enrollcheck"
DEFAULT_DB_FILENAME: Final[str] = "enrollcheck.db"
DATA_DIR_ENV: Final[str] = "ENROLLCHECK_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQL_ECHO_ENV: Final[str] = "ENROLLCHECK_SQL_ECHO"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def user_data_dir() -> Path:
    """Directory for local data: the env override, else the platform's user data dir."""

    override = os.getenv(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def sqlite_uri(data_dir: Path) -> str:
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{data_dir / DEFAULT_DB_FILENAME}"


def get_database_config() -> DatabaseConfig:
    uri = optional_env(DATABASE_URI_ENV, "") or sqlite_uri(user_data_dir())
    echo = optional_env(SQL_ECHO_ENV, "0").lower() in _TRUTHY
    return DatabaseConfig(uri=uri, echo=echo)
