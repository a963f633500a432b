"""Idempotent creation of the canonical StudentIdentity for an enrollment."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from enrollcheck.domain.errors import DuplicateRecordError, StoreError
from enrollcheck.domain.model.entities import StudentIdentity
from enrollcheck.domain.model.enums import EntityKind
from enrollcheck.domain.ports.store import find_first

if TYPE_CHECKING:
    from enrollcheck.domain.model.identifiers import EnrollmentId, StudentId
    from enrollcheck.domain.ports.store import RecordStore

log = getLogger(__name__)


async def find_identity(store: RecordStore, enrollment_id: EnrollmentId) -> StudentIdentity | None:
    row = await find_first(store, EntityKind.STUDENTS, {"enrollment_id": enrollment_id.value})
    return StudentIdentity.from_record(row) if row is not None else None


async def resolve_identity(store: RecordStore, enrollment_id: EnrollmentId) -> StudentId:
    """Return the StudentIdentity for ``enrollment_id``, creating it on first use.

    Safe to call repeatedly: an existing identity is returned as is, and losing a
    creation race to a concurrent resolver re-reads the winner's row.
    """

    existing = await find_identity(store, enrollment_id)
    if existing is not None:
        log.debug("Student %s already exists for enrollment %s", existing.id, enrollment_id)
        return existing.id

    try:
        created = await store.create(EntityKind.STUDENTS, {"enrollment_id": enrollment_id.value})
    except DuplicateRecordError:
        log.info("Concurrent identity creation for enrollment %s; re-reading", enrollment_id)
        winner = await find_identity(store, enrollment_id)
        if winner is None:
            raise StoreError(
                f"students row for enrollment {enrollment_id} reported as duplicate "
                "but could not be read back",
                kind=EntityKind.STUDENTS,
            ) from None
        return winner.id

    identity = StudentIdentity.from_record(created)
    log.info("Created student %s for enrollment %s", identity.id, enrollment_id)
    return identity.id
