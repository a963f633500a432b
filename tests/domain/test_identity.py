from __future__ import annotations

import asyncio

import pytest

from enrollcheck.domain.errors import DuplicateRecordError, StoreError, TransientStoreError
from enrollcheck.domain.identity import resolve_identity
from enrollcheck.domain.model import EnrollmentId, EntityKind
from tests.support.store import InMemoryRecordStore


def test_creates_identity_on_first_use(memory_store: InMemoryRecordStore) -> None:
    student_id = asyncio.run(resolve_identity(memory_store, EnrollmentId("enr-1")))

    rows = memory_store.rows(EntityKind.STUDENTS)
    assert len(rows) == 1
    assert rows[0]["id"] == student_id.value
    assert rows[0]["enrollment_id"] == "enr-1"


def test_repeated_resolution_returns_same_identity(memory_store: InMemoryRecordStore) -> None:
    async def resolve_twice() -> tuple[str, str]:
        first = await resolve_identity(memory_store, EnrollmentId("enr-1"))
        second = await resolve_identity(memory_store, EnrollmentId("enr-1"))
        return first.value, second.value

    first, second = asyncio.run(resolve_twice())

    assert first == second
    assert len(memory_store.rows(EntityKind.STUDENTS)) == 1
    assert len(memory_store.writes("create")) == 1


def test_concurrent_resolvers_converge_on_one_identity() -> None:
    store = InMemoryRecordStore(interleave=True)

    async def race() -> list[str]:
        results = await asyncio.gather(
            resolve_identity(store, EnrollmentId("enr-1")),
            resolve_identity(store, EnrollmentId("enr-1")),
        )
        return [result.value for result in results]

    first, second = asyncio.run(race())

    assert first == second
    assert len(store.rows(EntityKind.STUDENTS)) == 1
    assert len(store.writes("create")) == 2


def test_outage_propagates_as_transient(memory_store: InMemoryRecordStore) -> None:
    memory_store.fail_next("get_list", EntityKind.STUDENTS, TransientStoreError("down"))

    with pytest.raises(TransientStoreError):
        asyncio.run(resolve_identity(memory_store, EnrollmentId("enr-1")))


def test_conflict_without_readable_winner_is_a_store_error(
    memory_store: InMemoryRecordStore,
) -> None:
    memory_store.fail_next("create", EntityKind.STUDENTS, DuplicateRecordError("conflict"))

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(resolve_identity(memory_store, EnrollmentId("enr-1")))

    assert type(excinfo.value) is StoreError
