"""Domain model: tagged ids, strict record types and views over store rows."""

from __future__ import annotations

from .entities import (
    ADDRESS_KEY,
    DOCUMENT_TYPE_LABELS,
    SCHOOLING_KEY,
    Aggregate,
    DocumentRecord,
    Enrollment,
    StudentIdentity,
)
from .enums import (
    OWNED_KINDS,
    OWNER_KEY,
    EntityKind,
    LinkageStatus,
    LocatorStrategy,
    SortOrder,
)
from .identifiers import EnrollmentId, PersonalDataId, RecordId, SeedId, StudentId
from .records import AddressFields, PersonalDataFields, SchoolingFields, StrictRecord

__all__ = [
    "ADDRESS_KEY",
    "DOCUMENT_TYPE_LABELS",
    "OWNED_KINDS",
    "OWNER_KEY",
    "SCHOOLING_KEY",
    "AddressFields",
    "Aggregate",
    "DocumentRecord",
    "Enrollment",
    "EnrollmentId",
    "EntityKind",
    "LinkageStatus",
    "LocatorStrategy",
    "PersonalDataFields",
    "PersonalDataId",
    "RecordId",
    "SchoolingFields",
    "SeedId",
    "SortOrder",
    "StrictRecord",
    "StudentId",
    "StudentIdentity",
]
