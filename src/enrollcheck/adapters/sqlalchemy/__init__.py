"""SQLAlchemy adapter package for enrollcheck."""

from __future__ import annotations

from .engine import StartupError, configured_engine, is_started, shutdown, startup
from .mappings import TABLES, create_all_tables, metadata
from .store import SqlAlchemyRecordStore

__all__ = [
    "TABLES",
    "SqlAlchemyRecordStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
