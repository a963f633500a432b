"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    """Store kinds (table / resource names) handled by the core."""

    ENROLLMENTS = "enrollments"
    STUDENTS = "students"
    PERSONAL_DATA = "personal_data"
    ADDRESSES = "addresses"
    SCHOOLING_DATA = "schooling_data"
    DOCUMENT_EXTRACTIONS = "document_extractions"


class SortOrder(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


class LinkageStatus(StrEnum):
    """Outcome of locating a student's document set."""

    LINKED = "linked"
    NO_LINKAGE = "no_linkage"


class LocatorStrategy(StrEnum):
    STUDENT_RECORD = "student_record"
    LATEST_ENROLLMENT = "latest_enrollment"
    BARE_REFERENCE = "bare_reference"


# Kinds owned by a StudentIdentity through the owner key.
OWNED_KINDS: tuple[EntityKind, ...] = (
    EntityKind.PERSONAL_DATA,
    EntityKind.ADDRESSES,
    EntityKind.SCHOOLING_DATA,
)

OWNER_KEY = "student_id"
