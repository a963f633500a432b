from __future__ import annotations

import asyncio

import pytest

from enrollcheck import app
from enrollcheck.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, shutdown
from enrollcheck.config import Backend
from enrollcheck.domain.errors import PayloadValidationError
from enrollcheck.domain.model import EntityKind, LinkageStatus
from enrollcheck.domain.retry import BackoffPolicy
from tests.support.enrollments import SCHOOLING, SNAKE_ADDRESS, SNAKE_PERSONAL, enrollment_row
from tests.support.store import FakeUrlSigner, InMemoryRecordStore

SINGLE_ATTEMPT = BackoffPolicy(max_attempts=1)


def _seed_enrollment(store: SqlAlchemyRecordStore) -> None:
    asyncio.run(
        store.create(
            EntityKind.ENROLLMENTS,
            enrollment_row(personal=SNAKE_PERSONAL, address=SNAKE_ADDRESS, schooling=SCHOOLING),
        )
    )


def test_process_enrollment_writes_student_records(sql_store: SqlAlchemyRecordStore) -> None:
    _seed_enrollment(sql_store)

    result = asyncio.run(app.process_enrollment("enr-1", store=sql_store, policy=SINGLE_ATTEMPT))

    enrollment = asyncio.run(sql_store.get_one(EntityKind.ENROLLMENTS, "enr-1"))
    personal = asyncio.run(
        sql_store.get_one(EntityKind.PERSONAL_DATA, result.written[EntityKind.PERSONAL_DATA].value)
    )
    assert enrollment["student_id"] == result.student_id.value
    assert personal["nome_completo"] == "Ana Souza"
    assert personal["data_nascimento"] == "1990-04-12"
    assert set(result.written) == {
        EntityKind.PERSONAL_DATA,
        EntityKind.ADDRESSES,
        EntityKind.SCHOOLING_DATA,
    }
    assert result.attempts == 1


def test_process_enrollment_twice_keeps_one_row_per_kind(
    sql_store: SqlAlchemyRecordStore,
) -> None:
    _seed_enrollment(sql_store)

    first = asyncio.run(app.process_enrollment("enr-1", store=sql_store, policy=SINGLE_ATTEMPT))
    second = asyncio.run(app.process_enrollment("enr-1", store=sql_store, policy=SINGLE_ATTEMPT))

    assert first.student_id == second.student_id
    assert first.written == second.written
    assert not second.back_reference_updated


def test_load_then_save_student_round_trip(sql_store: SqlAlchemyRecordStore) -> None:
    _seed_enrollment(sql_store)
    result = asyncio.run(app.process_enrollment("enr-1", store=sql_store, policy=SINGLE_ATTEMPT))
    seed = result.written[EntityKind.PERSONAL_DATA].value

    loaded = asyncio.run(app.load_student(seed, store=sql_store))
    edited = loaded.as_record()
    edited["nome_completo"] = "Ana Maria Souza"
    edited["addresses"]["numero"] = "200"
    saved = asyncio.run(app.save_student(seed, edited, store=sql_store))

    assert saved.core["nome_completo"] == "Ana Maria Souza"
    assert saved.address["numero"] == "200"
    assert saved.address["id"] == loaded.address["id"]
    assert saved.owner == result.student_id


def test_student_id_is_accepted_as_seed(sql_store: SqlAlchemyRecordStore) -> None:
    _seed_enrollment(sql_store)
    result = asyncio.run(app.process_enrollment("enr-1", store=sql_store, policy=SINGLE_ATTEMPT))

    loaded = asyncio.run(app.load_student(result.student_id.value, store=sql_store))

    assert loaded.core_id == result.written[EntityKind.PERSONAL_DATA]


def test_edited_record_must_keep_its_id(memory_store: InMemoryRecordStore) -> None:
    memory_store.seed(
        EntityKind.PERSONAL_DATA, {"id": "pd-1", "student_id": "stu-1", "nome_completo": "Ana"}
    )
    previous = asyncio.run(app.load_student("pd-1", store=memory_store))

    with pytest.raises(PayloadValidationError):
        app.edited_aggregate({"id": "pd-2", "nome_completo": "Ana"}, previous)

    filled = app.edited_aggregate({"nome_completo": "Ana"}, previous)
    assert filled.core["id"] == "pd-1"
    assert filled.owner == previous.owner


def test_student_documents_through_enrollment_linkage(memory_store: InMemoryRecordStore) -> None:
    memory_store.seed(EntityKind.STUDENTS, {"id": "stu-1", "enrollment_id": "enr-1"})
    memory_store.seed(
        EntityKind.DOCUMENT_EXTRACTIONS,
        {
            "id": "doc-1",
            "enrollment_id": "enr-1",
            "file_name": "rg.pdf",
            "storage_path": "enr-1/rg.pdf",
            "uploaded_at": "2024-03-01T10:00:00+00:00",
        },
    )

    resolution = asyncio.run(app.student_documents("stu-1", store=memory_store))

    assert resolution.status is LinkageStatus.LINKED
    assert [document.file_name for document in resolution.documents] == ["rg.pdf"]


def test_sign_document_uses_given_signer(memory_store: InMemoryRecordStore) -> None:
    memory_store.seed(
        EntityKind.DOCUMENT_EXTRACTIONS,
        {"id": "doc-1", "enrollment_id": "enr-1", "file_name": "rg.pdf", "storage_path": "p/rg.pdf"},
    )
    resolution = asyncio.run(app.student_documents("enr-1", store=memory_store))
    signer = FakeUrlSigner()

    url = asyncio.run(app.sign_document(resolution.documents[0], signer=signer))

    assert url.endswith("p/rg.pdf?token=test")
    assert signer.paths == ["p/rg.pdf"]


def test_open_store_starts_sql_backend_on_demand() -> None:
    shutdown()

    async def scenario() -> object:
        async with app.open_store(Backend.SQLALCHEMY) as store:
            return store

    try:
        opened = asyncio.run(scenario())
        assert isinstance(opened, SqlAlchemyRecordStore)
        assert is_started()
    finally:
        shutdown()
