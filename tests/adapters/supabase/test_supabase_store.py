from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import httpx
import pytest

from enrollcheck.adapters.http_resilience import ResilienceConfig, ResilientClient
from enrollcheck.adapters.supabase import SupabaseRecordStore
from enrollcheck.domain.errors import (
    DuplicateRecordError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from enrollcheck.domain.model import EntityKind, SortOrder
from enrollcheck.domain.ports import ListQuery, Pagination, Sort
from tests.support.http import SERVICE_KEY, RecordedHandler, make_client_factory, supabase_config


@pytest.fixture
def handler() -> RecordedHandler:
    return RecordedHandler()


@pytest.fixture
def store(handler: RecordedHandler) -> SupabaseRecordStore:
    return SupabaseRecordStore(config=supabase_config(), client_factory=make_client_factory(handler))


def _run[T](store: SupabaseRecordStore, call: Callable[[], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with store:
            return await call()

    return asyncio.run(runner())


def test_get_one_queries_rest_endpoint(store: SupabaseRecordStore, handler: RecordedHandler) -> None:
    handler.responses.append(httpx.Response(200, json=[{"id": "enr-1", "status": "approved"}]))

    row = _run(store, lambda: store.get_one(EntityKind.ENROLLMENTS, "enr-1"))

    request = handler.last
    assert row == {"id": "enr-1", "status": "approved"}
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/enrollments"
    assert request.url.params["id"] == "eq.enr-1"
    assert request.url.params["limit"] == "1"
    assert request.headers["apikey"] == SERVICE_KEY
    assert request.headers["Authorization"] == f"Bearer {SERVICE_KEY}"


def test_get_one_empty_result_is_not_found(store: SupabaseRecordStore) -> None:
    with pytest.raises(NotFoundError):
        _run(store, lambda: store.get_one(EntityKind.STUDENTS, "missing"))


def test_get_list_renders_filters_order_and_page(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    query = ListQuery(
        filter={"enrollment_id": "enr-1", "student_id": None, "active": True},
        pagination=Pagination(page=3, per_page=100),
        sort=Sort(field="uploaded_at", order=SortOrder.DESC),
    )

    rows = _run(store, lambda: store.get_list(EntityKind.DOCUMENT_EXTRACTIONS, query))

    params = handler.last.url.params
    assert rows == []
    assert params["enrollment_id"] == "eq.enr-1"
    assert params["student_id"] == "is.null"
    assert params["active"] == "is.true"
    assert params["order"] == "uploaded_at.desc"
    assert params["limit"] == "100"
    assert params["offset"] == "200"


def test_create_asks_for_representation(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    handler.responses.append(httpx.Response(201, json=[{"id": "stu-1", "enrollment_id": "e"}]))

    row = _run(store, lambda: store.create(EntityKind.STUDENTS, {"enrollment_id": "e"}))

    request = handler.last
    assert row["id"] == "stu-1"
    assert request.method == "POST"
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == {"enrollment_id": "e"}


def test_create_without_returned_row_fails(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    handler.responses.append(httpx.Response(201, json=[]))

    with pytest.raises(StoreError, match="create returned no row"):
        _run(store, lambda: store.create(EntityKind.STUDENTS, {"enrollment_id": "e"}))


def test_update_sends_only_changed_fields(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    previous = {"id": "addr-1", "student_id": "stu-1", "cep": "1", "numero": "10"}
    handler.responses.append(httpx.Response(200, json=[{**previous, "cep": "2"}]))

    row = _run(
        store,
        lambda: store.update(
            EntityKind.ADDRESSES, "addr-1", {"student_id": "stu-1", "cep": "2"}, previous
        ),
    )

    request = handler.last
    assert row["cep"] == "2"
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.addr-1"
    assert json.loads(request.content) == {"cep": "2"}


def test_update_without_changes_sends_nothing(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    previous = {"id": "addr-1", "student_id": "stu-1", "cep": "1"}

    row = _run(
        store, lambda: store.update(EntityKind.ADDRESSES, "addr-1", {"cep": "1"}, previous)
    )

    assert row == previous
    assert handler.requests == []


def test_update_of_missing_row_is_not_found(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    handler.responses.append(httpx.Response(200, json=[]))

    with pytest.raises(NotFoundError):
        _run(store, lambda: store.update(EntityKind.ADDRESSES, "gone", {"cep": "2"}))


@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (404, {"message": "missing"}, NotFoundError),
        (409, {"code": "23505", "message": "duplicate key"}, DuplicateRecordError),
        (400, {"code": "23505", "message": "duplicate key"}, DuplicateRecordError),
        (429, {"message": "slow down"}, TransientStoreError),
        (503, {"message": "unavailable"}, TransientStoreError),
        (400, {"code": "22007", "message": "invalid date"}, StoreError),
    ],
)
def test_error_statuses_map_to_store_errors(
    store: SupabaseRecordStore,
    handler: RecordedHandler,
    status: int,
    body: dict[str, str],
    expected: type[StoreError],
) -> None:
    handler.responses.append(httpx.Response(status, json=body))

    with pytest.raises(StoreError) as excinfo:
        _run(store, lambda: store.create(EntityKind.STUDENTS, {"enrollment_id": "e"}))

    assert type(excinfo.value) is expected


def test_connection_failure_is_transient(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    handler.error = httpx.ConnectError("connection refused")

    with pytest.raises(TransientStoreError):
        _run(store, lambda: store.get_one(EntityKind.ENROLLMENTS, "enr-1"))


def test_unexpected_payload_is_store_error(
    store: SupabaseRecordStore, handler: RecordedHandler
) -> None:
    handler.responses.append(httpx.Response(200, json={"id": "enr-1"}))

    with pytest.raises(StoreError, match="unexpected response payload"):
        _run(store, lambda: store.get_one(EntityKind.ENROLLMENTS, "enr-1"))


def test_client_is_reused_and_closed(handler: RecordedHandler) -> None:
    created: list[ResilientClient] = []
    factory = make_client_factory(handler)

    def counting_factory(resilience: ResilienceConfig) -> ResilientClient:
        client = factory(resilience)
        created.append(client)
        return client

    store = SupabaseRecordStore(config=supabase_config(), client_factory=counting_factory)

    async def scenario() -> None:
        async with store:
            await store.get_list(EntityKind.STUDENTS, ListQuery())
            await store.get_list(EntityKind.STUDENTS, ListQuery())

    asyncio.run(scenario())

    assert len(created) == 1
    assert store._client is None
