"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from enrollcheck.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, startup
from enrollcheck.adapters.supabase import SupabaseRecordStore, SupabaseUrlSigner
from enrollcheck.config import Backend, get_backend, get_reconciliation_config
from enrollcheck.domain.documents import resolve_documents, signed_document_url
from enrollcheck.domain.errors import PayloadValidationError
from enrollcheck.domain.merge import load_aggregate
from enrollcheck.domain.model import Aggregate, EnrollmentId, SeedId
from enrollcheck.domain.reconciliation import ReconciliationPipeline
from enrollcheck.domain.save import save_aggregate

if TYPE_CHECKING:
    from enrollcheck.domain.documents import DocumentResolution
    from enrollcheck.domain.model import DocumentRecord
    from enrollcheck.domain.ports import RecordStore, UrlSigner
    from enrollcheck.domain.reconciliation import ReconciliationResult
    from enrollcheck.domain.retry import BackoffPolicy

log = getLogger(__name__)


@asynccontextmanager
async def open_store(backend: Backend | None = None) -> AsyncIterator[RecordStore]:
    """Yield the configured record store, releasing its resources afterwards."""

    selected = backend or get_backend()
    log.debug("Opening %s record store", selected)
    if selected is Backend.SUPABASE:
        async with SupabaseRecordStore() as store:
            yield store
        return
    if not is_started():
        startup()
    yield SqlAlchemyRecordStore()


async def _using_store[T](
    store: RecordStore | None,
    action: Callable[[RecordStore], Awaitable[T]],
) -> T:
    if store is not None:
        return await action(store)
    async with open_store() as opened:
        return await action(opened)


async def process_enrollment(
    enrollment_id: str,
    *,
    store: RecordStore | None = None,
    policy: BackoffPolicy | None = None,
) -> ReconciliationResult:
    """Reconcile one approved enrollment into its student records."""

    effective_policy = policy or get_reconciliation_config().policy()
    target = EnrollmentId.coerce(enrollment_id)

    async def run(opened: RecordStore) -> ReconciliationResult:
        pipeline = ReconciliationPipeline(store=opened, policy=effective_policy)
        return await pipeline.process(target)

    result = await _using_store(store, run)
    log.info(
        "Finished enrollment %s: student=%s, written=%s, skipped=%s, attempts=%s",
        result.enrollment_id,
        result.student_id,
        sorted(result.written),
        list(result.skipped),
        result.attempts,
    )
    return result


async def load_student(seed_id: str, *, store: RecordStore | None = None) -> Aggregate:
    seed = SeedId.coerce(seed_id)
    return await _using_store(store, lambda opened: load_aggregate(opened, seed))


def edited_aggregate(edited: Mapping[str, Any], previous: Aggregate) -> Aggregate:
    """Build the aggregate to save from an editor record, anchored to ``previous``."""

    aggregate = Aggregate.from_record(edited, owner=previous.owner)
    edited_id = aggregate.core.get("id")
    if edited_id is None:
        aggregate.core["id"] = previous.core_id.value
    elif str(edited_id) != previous.core_id.value:
        raise PayloadValidationError(
            f"Edited record id {edited_id!r} does not match {previous.core_id}"
        )
    return aggregate


async def save_student(
    seed_id: str,
    edited: Mapping[str, Any],
    *,
    store: RecordStore | None = None,
) -> Aggregate:
    """Save an edited student record and return it as re-read from the store."""

    seed = SeedId.coerce(seed_id)

    async def run(opened: RecordStore) -> Aggregate:
        previous = await load_aggregate(opened, seed)
        aggregate = edited_aggregate(edited, previous)
        await save_aggregate(opened, aggregate, previous)
        return await load_aggregate(opened, seed)

    return await _using_store(store, run)


async def student_documents(
    reference: str,
    *,
    store: RecordStore | None = None,
) -> DocumentResolution:
    return await _using_store(store, lambda opened: resolve_documents(opened, reference))


async def sign_document(document: DocumentRecord, *, signer: UrlSigner | None = None) -> str:
    return await signed_document_url(signer or SupabaseUrlSigner(), document)
