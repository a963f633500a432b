"""Port for the generic record store the core reads and writes through."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from enrollcheck.domain.model.enums import SortOrder

if TYPE_CHECKING:
    from enrollcheck.domain.model.enums import EntityKind

type Record = dict[str, Any]


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int = 1
    per_page: int = 25

    def __post_init__(self) -> None:
        if self.page < 1 or self.per_page < 1:
            raise ValueError("page and per_page must be positive")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass(frozen=True, slots=True)
class Sort:
    field: str = "id"
    order: SortOrder = SortOrder.ASC

    @property
    def descending(self) -> bool:
        return self.order is SortOrder.DESC


@dataclass(frozen=True, slots=True)
class ListQuery:
    """Equality filter plus pagination and sort, as accepted by ``RecordStore.get_list``."""

    filter: Mapping[str, object] = field(default_factory=dict[str, object])
    pagination: Pagination = field(default_factory=Pagination)
    sort: Sort = field(default_factory=Sort)

    def next_page(self) -> ListQuery:
        return ListQuery(
            filter=self.filter,
            pagination=Pagination(
                page=self.pagination.page + 1, per_page=self.pagination.per_page
            ),
            sort=self.sort,
        )


@runtime_checkable
class RecordStore(Protocol):
    """Minimal CRUD surface of the underlying relational store.

    Every call is atomic on its own; nothing spans calls. Implementations raise
    ``NotFoundError`` for absent rows, ``DuplicateRecordError`` on uniqueness conflicts,
    ``TransientStoreError`` for retryable outages and ``StoreError`` otherwise.

    Implementations may complete a call without yielding to the event loop (the SQL
    store does), in which case calls gathered by a caller run one after another.
    """

    async def get_one(self, kind: EntityKind, key: str) -> Record: ...

    async def get_list(self, kind: EntityKind, query: ListQuery) -> list[Record]: ...

    async def create(self, kind: EntityKind, payload: Mapping[str, object]) -> Record: ...

    async def update(
        self,
        kind: EntityKind,
        key: str,
        payload: Mapping[str, object],
        previous: Mapping[str, object] | None = None,
    ) -> Record: ...


# Primary key and timestamps belong to the store.
MANAGED_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


def changed_fields(
    payload: Mapping[str, object],
    previous: Mapping[str, object] | None,
) -> dict[str, object]:
    """Return the subset of ``payload`` that differs from ``previous``.

    Without a previous state every field counts as changed. Store-managed fields are
    never part of an update payload.
    """

    changes: dict[str, object] = {}
    for key, value in payload.items():
        if key in MANAGED_FIELDS:
            continue
        if previous is not None and key in previous and previous[key] == value:
            continue
        changes[key] = value
    return changes


async def find_first(
    store: RecordStore,
    kind: EntityKind,
    filter_: Mapping[str, object],
    *,
    sort: Sort | None = None,
) -> Record | None:
    """Return the first row matching ``filter_`` or ``None``."""

    rows = await store.get_list(
        kind,
        ListQuery(
            filter=dict(filter_),
            pagination=Pagination(page=1, per_page=1),
            sort=sort or Sort(),
        ),
    )
    return rows[0] if rows else None
