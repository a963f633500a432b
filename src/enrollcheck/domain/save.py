"""Write side: split an edited aggregate back into per-kind writes."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from enrollcheck.domain.errors import PartialWriteError
from enrollcheck.domain.model.entities import NESTED_KEYS
from enrollcheck.domain.model.enums import OWNER_KEY, EntityKind
from enrollcheck.domain.ports.store import MANAGED_FIELDS
from enrollcheck.domain.upsert import upsert

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping

    from enrollcheck.domain.model.entities import Aggregate
    from enrollcheck.domain.ports.store import RecordStore

log = getLogger(__name__)


def has_editable_content(structure: Mapping[str, object] | None) -> bool:
    """True when at least one field other than the owner key is populated."""

    if not structure:
        return False
    return any(
        key != OWNER_KEY and value is not None and value != ""
        for key, value in structure.items()
    )


def core_payload(aggregate: Aggregate) -> dict[str, object]:
    """Core fields to write; an owner key present in the edit is pinned to the owner."""

    payload: dict[str, object] = {
        key: value
        for key, value in aggregate.core.items()
        if key not in NESTED_KEYS and key not in MANAGED_FIELDS
    }
    if OWNER_KEY in payload:
        payload[OWNER_KEY] = aggregate.owner.value
    return payload


async def save_aggregate(
    store: RecordStore,
    aggregate: Aggregate,
    previous: Aggregate | None = None,
) -> None:
    """Persist an edited aggregate.

    The PersonalData row is always updated (never created here). Each nested
    structure with content is updated by its own id when it has one, otherwise
    upserted by owner. All writes run concurrently; if any fails the others are left
    applied and ``PartialWriteError`` is raised, so resubmitting converges.
    """

    writes: list[Awaitable[object]] = [
        store.update(
            EntityKind.PERSONAL_DATA,
            aggregate.core_id.value,
            core_payload(aggregate),
            previous.core if previous is not None else None,
        )
    ]
    for kind in NESTED_KEYS.values():
        structure = aggregate.nested(kind)
        if not has_editable_content(structure):
            log.debug("Skipping empty %s for %s", kind, aggregate.owner)
            continue
        writes.append(
            upsert(
                store,
                kind,
                aggregate.owner,
                structure,
                row_id=aggregate.nested_id(kind),
                previous=previous.nested(kind) if previous is not None else None,
            )
        )

    log.info("Saving student %s: %s writes", aggregate.owner, len(writes))
    outcomes = await asyncio.gather(*writes, return_exceptions=True)
    failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
    if failures:
        for failure in failures:
            log.warning("Save of student %s: write failed: %r", aggregate.owner, failure)
        raise PartialWriteError(f"Saving student {aggregate.owner} failed", failures)
