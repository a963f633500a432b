from __future__ import annotations

import asyncio

import pytest

from enrollcheck.domain.errors import NotFoundError
from enrollcheck.domain.merge import load_aggregate, resolve_owner
from enrollcheck.domain.model import (
    ADDRESS_KEY,
    SCHOOLING_KEY,
    Aggregate,
    EntityKind,
    PersonalDataId,
    SeedId,
    StudentId,
)
from tests.support.store import InMemoryRecordStore


@pytest.fixture
def seeded_store(memory_store: InMemoryRecordStore) -> InMemoryRecordStore:
    memory_store.seed(
        EntityKind.PERSONAL_DATA,
        {"id": "pd-1", "student_id": "stu-1", "nome_completo": "Ana"},
    )
    memory_store.seed(
        EntityKind.SCHOOLING_DATA,
        {"id": "sch-1", "student_id": "stu-1", "nivel_ensino": "EJA"},
    )
    return memory_store


def test_missing_address_defaults_to_empty_structure(seeded_store: InMemoryRecordStore) -> None:
    aggregate = asyncio.run(load_aggregate(seeded_store, SeedId("pd-1")))

    assert aggregate.owner == StudentId("stu-1")
    assert aggregate.core_id == PersonalDataId("pd-1")
    assert aggregate.address == {}
    assert aggregate.schooling["nivel_ensino"] == "EJA"


def test_student_id_seed_falls_back_to_owner_lookup(seeded_store: InMemoryRecordStore) -> None:
    aggregate = asyncio.run(load_aggregate(seeded_store, SeedId("stu-1")))

    assert aggregate.core_id == PersonalDataId("pd-1")
    assert aggregate.owner == StudentId("stu-1")


def test_legacy_row_without_owner_uses_seed(memory_store: InMemoryRecordStore) -> None:
    memory_store.seed(EntityKind.PERSONAL_DATA, {"id": "stu-7", "nome_completo": "Bia"})
    memory_store.seed(EntityKind.ADDRESSES, {"id": "addr-1", "student_id": "stu-7", "cep": "1"})

    aggregate = asyncio.run(load_aggregate(memory_store, SeedId("stu-7")))

    assert aggregate.owner == StudentId("stu-7")
    assert aggregate.address["id"] == "addr-1"
    assert aggregate.schooling == {}


def test_unknown_seed_raises_not_found(memory_store: InMemoryRecordStore) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(load_aggregate(memory_store, SeedId("missing")))


@pytest.mark.parametrize("raw_owner", [None, "", "  "])
def test_resolve_owner_without_owner_key_uses_seed(raw_owner: str | None) -> None:
    assert resolve_owner({"student_id": raw_owner}, SeedId("seed-1")) == StudentId("seed-1")


def test_editor_record_shape(seeded_store: InMemoryRecordStore) -> None:
    aggregate = asyncio.run(load_aggregate(seeded_store, SeedId("pd-1")))

    record = aggregate.as_record()
    restored = Aggregate.from_record(record)

    assert record[ADDRESS_KEY] == {}
    assert record[SCHOOLING_KEY]["id"] == "sch-1"
    assert record["student_id"] == "stu-1"
    assert restored.owner == aggregate.owner
    assert restored.core == aggregate.core
    assert restored.schooling == aggregate.schooling
