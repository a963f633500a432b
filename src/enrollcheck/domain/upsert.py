"""Find-then-create-or-update for rows owned by a StudentIdentity."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from enrollcheck.domain.errors import DuplicateRecordError, OwnershipMismatchError
from enrollcheck.domain.model.enums import OWNER_KEY
from enrollcheck.domain.model.identifiers import RecordId
from enrollcheck.domain.ports.store import MANAGED_FIELDS, Sort, find_first

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enrollcheck.domain.model.enums import EntityKind
    from enrollcheck.domain.model.identifiers import StudentId
    from enrollcheck.domain.ports.store import Record, RecordStore

log = getLogger(__name__)


async def find_owned(store: RecordStore, kind: EntityKind, owner: StudentId) -> Record | None:
    """Return the current row of ``kind`` for ``owner`` (lowest id if several exist)."""

    return await find_first(store, kind, {OWNER_KEY: owner.value}, sort=Sort(field="id"))


def _check_owner(kind: EntityKind, row: Mapping[str, object], owner: StudentId) -> None:
    row_owner = row.get(OWNER_KEY)
    if row_owner is not None and str(row_owner) != owner.value:
        raise OwnershipMismatchError(
            f"{kind} row {row.get('id')!r} belongs to {row_owner!r}, not {owner}"
        )


async def upsert(
    store: RecordStore,
    kind: EntityKind,
    owner: StudentId,
    payload: Mapping[str, object],
    *,
    row_id: RecordId | None = None,
    previous: Mapping[str, object] | None = None,
) -> RecordId:
    """Write ``payload`` as the single ``kind`` row owned by ``owner``.

    With ``row_id`` the row is updated directly. Otherwise the owner's current row is
    looked up first and reused; a new row is created only when none exists. The lookup
    and the write are separate store calls, so two concurrent callers can both reach the
    create branch. If the store enforces one row per owner the loser gets a
    ``DuplicateRecordError`` and falls back to updating the winner's row.
    """

    body = {key: value for key, value in payload.items() if key not in MANAGED_FIELDS}
    body[OWNER_KEY] = owner.value

    if row_id is not None:
        if previous is not None:
            _check_owner(kind, previous, owner)
        updated = await store.update(kind, row_id.value, body, previous)
        return RecordId.coerce(updated.get("id", row_id.value))

    current = await find_owned(store, kind, owner)
    if current is not None:
        return await _update_found(store, kind, owner, current, body)

    try:
        created = await store.create(kind, body)
    except DuplicateRecordError:
        log.warning("Concurrent create of %s for %s; updating the existing row", kind, owner)
        current = await find_owned(store, kind, owner)
        if current is None:
            raise
        return await _update_found(store, kind, owner, current, body)

    log.debug("Created %s row %s for %s", kind, created.get("id"), owner)
    return RecordId.coerce(created["id"])


async def _update_found(
    store: RecordStore,
    kind: EntityKind,
    owner: StudentId,
    current: Record,
    body: Mapping[str, object],
) -> RecordId:
    _check_owner(kind, current, owner)
    row_id = RecordId.coerce(current["id"])
    await store.update(kind, row_id.value, body, current)
    log.debug("Updated %s row %s for %s", kind, row_id, owner)
    return row_id
