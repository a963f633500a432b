"""Read side: assemble one editable aggregate from the three owned kinds."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from enrollcheck.domain.errors import NotFoundError
from enrollcheck.domain.model.entities import Aggregate
from enrollcheck.domain.model.enums import OWNER_KEY, EntityKind
from enrollcheck.domain.model.identifiers import StudentId
from enrollcheck.domain.ports.store import find_first
from enrollcheck.domain.upsert import find_owned

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enrollcheck.domain.model.identifiers import SeedId
    from enrollcheck.domain.ports.store import Record, RecordStore

log = getLogger(__name__)


def resolve_owner(core: Mapping[str, object], seed: SeedId) -> StudentId:
    """Turn an ambiguous seed into the owner reference.

    A PersonalData row normally carries ``student_id``; legacy rows that do not were
    created with the StudentIdentity id as their own id, so the seed stands in.
    """

    raw = core.get(OWNER_KEY)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return StudentId(seed.value)
    return StudentId.coerce(raw)


async def fetch_core(store: RecordStore, seed: SeedId) -> Record:
    """Fetch the PersonalData row for ``seed``, read first as a row id, then as an owner."""

    try:
        return await store.get_one(EntityKind.PERSONAL_DATA, seed.value)
    except NotFoundError:
        log.debug("No personal_data row with id %s; trying it as a student id", seed)
        row = await find_first(store, EntityKind.PERSONAL_DATA, {OWNER_KEY: seed.value})
        if row is None:
            raise
        return row


async def load_aggregate(store: RecordStore, seed: SeedId) -> Aggregate:
    """Load the editable aggregate reachable from ``seed``.

    Missing address or schooling rows are normal before approval and come back as
    empty structures; a missing PersonalData row raises ``NotFoundError``.
    """

    core = await fetch_core(store, seed)
    owner = resolve_owner(core, seed)

    address, schooling = await asyncio.gather(
        find_owned(store, EntityKind.ADDRESSES, owner),
        find_owned(store, EntityKind.SCHOOLING_DATA, owner),
    )
    log.info(
        "Loaded student %s (address=%s, schooling=%s)",
        owner,
        address is not None,
        schooling is not None,
    )
    return Aggregate(
        core=dict(core),
        address=dict(address) if address is not None else {},
        schooling=dict(schooling) if schooling is not None else {},
        owner=owner,
    )
