from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from enrollcheck.adapters.sqlalchemy import SqlAlchemyRecordStore, shutdown, startup
from tests.support.store import InMemoryRecordStore, RecordingSleep

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENROLLCHECK_BACKEND",
        "ENROLLCHECK_LOG_LEVEL",
        "ENROLLCHECK_RETRY_ATTEMPTS",
        "ENROLLCHECK_RETRY_INITIAL_DELAY",
        "ENROLLCHECK_RETRY_BACKOFF",
        "ENROLLCHECK_DOCUMENTS_BUCKET",
        "ENROLLCHECK_SIGNED_URL_TTL",
        "ENROLLCHECK_SQL_ECHO",
        "ENROLLCHECK_DATA_DIR",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyRecordStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyRecordStore()
    finally:
        shutdown()
