"""SQLAlchemy table metadata for the enrollment record store.

Rows are handled as plain mappings, so only Core tables are declared. Columns of the
three owned kinds are derived from their strict record types so the two cannot drift.
"""

from __future__ import annotations

import logging
import types
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any, Final, Union, get_args, get_origin

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    MetaData,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
)

from enrollcheck.domain.model import (
    AddressFields,
    EntityKind,
    PersonalDataFields,
    SchoolingFields,
    StrictRecord,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.types import TypeEngine

log = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | str | None, dialect: Dialect
    ) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class IsoDate(TypeDecorator[str]):
    """Calendar date stored natively, exchanged as an ISO ``YYYY-MM-DD`` string."""

    impl = Date
    cache_ok = True

    def process_bind_param(self, value: date | str | None, dialect: Dialect) -> date | None:
        _ = dialect
        if value is None or isinstance(value, date):
            return value
        return date.fromisoformat(value)

    def process_result_value(self, value: date | None, dialect: Dialect) -> str | None:
        _ = dialect
        return value.isoformat() if value is not None else None


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _column_type(annotation: Any) -> TypeEngine[Any]:
    members = get_args(annotation) if get_origin(annotation) in (Union, types.UnionType) else ()
    candidates = {member for member in members if member is not type(None)} or {annotation}
    if bool in candidates:
        return Boolean()
    if date in candidates:
        return IsoDate()
    if str in candidates:
        return String()
    return JSON()


def _record_columns(record_type: type[StrictRecord]) -> list[Column[Any]]:
    return [
        Column(name, _column_type(info.annotation), nullable=not info.is_required())
        for name, info in record_type.model_fields.items()
    ]


def _timestamps() -> list[Column[Any]]:
    return [
        Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
        Column("updated_at", UTCDateTime(), nullable=True, onupdate=utcnow),
    ]


def _owned_table(name: str, record_type: type[StrictRecord]) -> Table:
    # One row per owner; concurrent creators collide here and fall back to updating.
    return Table(
        name,
        metadata,
        Column("id", String(36), primary_key=True, default=new_id),
        Column("student_id", String(36), nullable=False),
        *_record_columns(record_type),
        *_timestamps(),
        UniqueConstraint("student_id"),
    )


enrollments_table = Table(
    EntityKind.ENROLLMENTS.value,
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("confirmed_personal_data", JSON, nullable=True),
    Column("confirmed_address_data", JSON, nullable=True),
    Column("confirmed_schooling_data", JSON, nullable=True),
    Column("student_id", String(36), nullable=True, index=True),
    Column("status", String, nullable=True),
    *_timestamps(),
)

students_table = Table(
    EntityKind.STUDENTS.value,
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("enrollment_id", String(36), nullable=False),
    *_timestamps(),
    UniqueConstraint("enrollment_id"),
)

personal_data_table = _owned_table(EntityKind.PERSONAL_DATA.value, PersonalDataFields)
addresses_table = _owned_table(EntityKind.ADDRESSES.value, AddressFields)
schooling_data_table = _owned_table(EntityKind.SCHOOLING_DATA.value, SchoolingFields)

document_extractions_table = Table(
    EntityKind.DOCUMENT_EXTRACTIONS.value,
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("enrollment_id", String(36), nullable=False, index=True),
    Column("file_name", String, nullable=False),
    Column("storage_path", String, nullable=True),
    Column("document_type", String, nullable=True),
    Column("status", String, nullable=True),
    Column("extracted_data", JSON, nullable=True),
    Column("uploaded_at", UTCDateTime(), nullable=False, default=utcnow),
)

TABLES: Final[dict[EntityKind, Table]] = {
    EntityKind.ENROLLMENTS: enrollments_table,
    EntityKind.STUDENTS: students_table,
    EntityKind.PERSONAL_DATA: personal_data_table,
    EntityKind.ADDRESSES: addresses_table,
    EntityKind.SCHOOLING_DATA: schooling_data_table,
    EntityKind.DOCUMENT_EXTRACTIONS: document_extractions_table,
}


def create_all_tables(engine: Engine) -> None:
    """Create database tables for every store kind."""

    log.info("Creating all tables")
    metadata.create_all(engine)
