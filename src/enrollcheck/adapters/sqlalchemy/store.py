"""``RecordStore`` over a SQL database through SQLAlchemy Core.

Each call runs in its own short transaction, matching the one-statement atomicity
of the HTTP store. Calls are synchronous underneath and run inline on the event loop, so calls gathered
by the domain execute one after another. A worker thread per call would lose the
per-thread connection that in-memory SQLite relies on.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import asc, desc, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, StatementError

from enrollcheck.domain.errors import (
    DuplicateRecordError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from enrollcheck.domain.ports.store import changed_fields

from .engine import session_factory
from .mappings import TABLES, new_id

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.orm import Session, sessionmaker

    from enrollcheck.domain.model.enums import EntityKind
    from enrollcheck.domain.ports.store import ListQuery, Record, RecordStore

log = getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    return "unique" in str(exc.orig).lower()


def _table(kind: EntityKind) -> Table:
    try:
        return TABLES[kind]
    except KeyError:
        raise StoreError(f"Unknown store kind {kind!r}", kind=kind) from None


def _checked_columns(table: Table, kind: EntityKind, payload: Mapping[str, object]) -> None:
    unknown = sorted(key for key in payload if key not in table.c)
    if unknown:
        raise StoreError(f"{kind}: unknown columns {', '.join(unknown)}", kind=kind)


class SqlAlchemyRecordStore:
    def __init__(self, sessions: sessionmaker[Session] | None = None) -> None:
        self._sessions = sessions or session_factory()

    async def get_one(self, kind: EntityKind, key: str) -> Record:
        table = _table(kind)
        with self._session(kind) as session:
            row = session.execute(select(table).where(table.c.id == key)).mappings().first()
        if row is None:
            raise NotFoundError(kind, key)
        return dict(row)

    async def get_list(self, kind: EntityKind, query: ListQuery) -> list[Record]:
        table = _table(kind)
        _checked_columns(table, kind, {**query.filter, query.sort.field: None})

        statement = select(table)
        for name, value in query.filter.items():
            column = table.c[name]
            statement = statement.where(column.is_(None) if value is None else column == value)
        direction = desc if query.sort.descending else asc
        statement = (
            statement.order_by(direction(table.c[query.sort.field]), asc(table.c.id))
            .limit(query.pagination.per_page)
            .offset(query.pagination.offset)
        )
        with self._session(kind) as session:
            rows = session.execute(statement).mappings().all()
        return [dict(row) for row in rows]

    async def create(self, kind: EntityKind, payload: Mapping[str, object]) -> Record:
        table = _table(kind)
        _checked_columns(table, kind, payload)
        values: dict[str, Any] = dict(payload)
        values["id"] = str(values.get("id") or new_id())

        with self._session(kind) as session:
            session.execute(insert(table).values(**values))
        log.debug("Created %s row %s", kind, values["id"])
        return await self.get_one(kind, values["id"])

    async def update(
        self,
        kind: EntityKind,
        key: str,
        payload: Mapping[str, object],
        previous: Mapping[str, object] | None = None,
    ) -> Record:
        table = _table(kind)
        changes = changed_fields(payload, previous)
        if not changes:
            log.debug("No changes for %s row %s; skipping write", kind, key)
            return await self.get_one(kind, key)
        _checked_columns(table, kind, changes)

        with self._session(kind) as session:
            result = session.execute(update(table).where(table.c.id == key).values(**changes))
            matched = result.rowcount  # pyright: ignore[reportAttributeAccessIssue]
        if not matched:
            raise NotFoundError(kind, key)
        return await self.get_one(kind, key)

    @contextmanager
    def _session(self, kind: EntityKind) -> Iterator[Session]:
        try:
            with self._sessions.begin() as session:
                yield session
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateRecordError(f"{kind}: {exc.orig}", kind=kind) from exc
            raise StoreError(f"{kind}: {exc.orig}", kind=kind) from exc
        except OperationalError as exc:
            log.warning("Database unavailable for %s: %s", kind, exc.orig)
            raise TransientStoreError(f"{kind}: {exc.orig}", kind=kind) from exc
        except StatementError as exc:
            raise StoreError(f"{kind}: {exc.orig}", kind=kind) from exc


if TYPE_CHECKING:
    _store_check: RecordStore = SqlAlchemyRecordStore()
