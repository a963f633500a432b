"""Record store over the Supabase PostgREST API."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from enrollcheck.adapters.http_resilience import ResilientClient
from enrollcheck.config.supabase import SupabaseConfig, get_supabase_config
from enrollcheck.domain.errors import NotFoundError, StoreError, TransientStoreError
from enrollcheck.domain.ports.store import changed_fields

from .errors import raise_for_store_status
from .schema import RowList

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from enrollcheck.config.http_resilience import ResilienceConfig
    from enrollcheck.domain.model.enums import EntityKind
    from enrollcheck.domain.ports.store import ListQuery, Record, RecordStore

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


def default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def filter_value(value: object) -> str:
    """Render one equality filter in PostgREST operator syntax."""

    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    return f"eq.{value}"


def list_params(query: ListQuery) -> httpx.QueryParams:
    params: dict[str, str | int] = {
        key: filter_value(value) for key, value in query.filter.items()
    }
    direction = "desc" if query.sort.descending else "asc"
    params["order"] = f"{query.sort.field}.{direction}"
    params["limit"] = query.pagination.per_page
    params["offset"] = query.pagination.offset
    return httpx.QueryParams(params)


@dataclass(slots=True)
class SupabaseRecordStore:
    """``RecordStore`` speaking PostgREST: one HTTP call per store call."""

    config: SupabaseConfig = field(default_factory=get_supabase_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> SupabaseRecordStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_one(self, kind: EntityKind, key: str) -> Record:
        params = httpx.QueryParams({"id": filter_value(key), "limit": 1})
        rows = await self._rows("GET", kind, params=params, key=key)
        if not rows:
            raise NotFoundError(kind, key)
        return rows[0]

    async def get_list(self, kind: EntityKind, query: ListQuery) -> list[Record]:
        return await self._rows("GET", kind, params=list_params(query))

    async def create(self, kind: EntityKind, payload: Mapping[str, object]) -> Record:
        rows = await self._rows(
            "POST",
            kind,
            json=dict(payload),
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise StoreError(f"{kind}: create returned no row", kind=kind)
        log.debug("Created %s row %s", kind, rows[0].get("id"))
        return rows[0]

    async def update(
        self,
        kind: EntityKind,
        key: str,
        payload: Mapping[str, object],
        previous: Mapping[str, object] | None = None,
    ) -> Record:
        changes = changed_fields(payload, previous)
        if not changes:
            log.debug("No changes for %s row %s; skipping write", kind, key)
            if previous is not None:
                return {**previous, "id": previous.get("id", key)}
            return await self.get_one(kind, key)

        rows = await self._rows(
            "PATCH",
            kind,
            params=httpx.QueryParams({"id": filter_value(key)}),
            json=changes,
            headers={"Prefer": "return=representation"},
            key=key,
        )
        if not rows:
            raise NotFoundError(kind, key)
        return rows[0]

    async def _rows(
        self,
        method: str,
        kind: EntityKind,
        *,
        params: httpx.QueryParams | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
        key: str | None = None,
    ) -> list[Record]:
        client = self._ensure_client()
        request_headers = {**self.config.auth_headers(), **(headers or {})}
        url = f"{self.config.rest_url}{kind}"
        try:
            response = await client.request(
                method, url, params=params, json=json, headers=request_headers
            )
        except httpx.TransportError as exc:
            log.warning("Supabase %s %s failed: %s", method, kind, exc)
            raise TransientStoreError(f"{kind}: {exc}", kind=kind) from exc

        raise_for_store_status(response, kind, key)
        try:
            return RowList.validate_json(response.content)
        except ValidationError as exc:
            raise StoreError(f"{kind}: unexpected response payload", kind=kind) from exc

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client


if TYPE_CHECKING:
    _store_check: RecordStore = SupabaseRecordStore()
