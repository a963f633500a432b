"""Document-set lookup for a student reference.

The link from a student to its scanned documents is the enrollment id, but not every
row shape carries it. The locator walks an ordered list of strategies and takes the
first key one of them produces:

1. the ``students`` row's ``enrollment_id``;
2. the newest enrollment back-linked to the reference;
3. the reference itself, for legacy rows keyed directly by it.

Strategy 3 is a guess. When only it applies and it finds nothing, the result is
reported as "no linkage" rather than as an empty document set.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from enrollcheck.domain.errors import PayloadValidationError, StoreError
from enrollcheck.domain.model.entities import DOCUMENT_TYPE_LABELS, DocumentRecord
from enrollcheck.domain.model.enums import (
    OWNER_KEY,
    EntityKind,
    LinkageStatus,
    LocatorStrategy,
    SortOrder,
)
from enrollcheck.domain.ports.store import ListQuery, Pagination, Sort, find_first

if TYPE_CHECKING:
    from collections.abc import Sequence

    from enrollcheck.domain.ports.signing import UrlSigner
    from enrollcheck.domain.ports.store import RecordStore

log = getLogger(__name__)

DOCUMENTS_PAGE_SIZE: Final[int] = 100

type KeyStrategy = Callable[[RecordStore, str], Awaitable[str | None]]


@dataclass(frozen=True, slots=True)
class DocumentResolution:
    status: LinkageStatus
    document_set_key: str | None = None
    strategy: LocatorStrategy | None = None
    documents: tuple[DocumentRecord, ...] = ()

    @property
    def linked(self) -> bool:
        return self.status is LinkageStatus.LINKED

    @property
    def empty(self) -> bool:
        """Linked, but the set holds no documents (a normal state)."""
        return self.linked and not self.documents


@dataclass(frozen=True, slots=True)
class DocumentGroup:
    category: str
    label: str
    documents: tuple[DocumentRecord, ...] = field(default_factory=tuple)


async def key_from_student_record(store: RecordStore, reference: str) -> str | None:
    row = await store.get_one(EntityKind.STUDENTS, reference)
    key = row.get("enrollment_id")
    return str(key) if key else None


async def key_from_latest_enrollment(store: RecordStore, reference: str) -> str | None:
    row = await find_first(
        store,
        EntityKind.ENROLLMENTS,
        {OWNER_KEY: reference},
        sort=Sort(field="created_at", order=SortOrder.DESC),
    )
    if row is None:
        return None
    return str(row["id"])


STRATEGIES: Final[tuple[tuple[LocatorStrategy, KeyStrategy], ...]] = (
    (LocatorStrategy.STUDENT_RECORD, key_from_student_record),
    (LocatorStrategy.LATEST_ENROLLMENT, key_from_latest_enrollment),
)


async def resolve_document_set_key(
    store: RecordStore,
    reference: str,
) -> tuple[str, LocatorStrategy] | None:
    """Return the first document-set key the ordered strategies produce."""

    if not reference.strip():
        return None
    for name, strategy in STRATEGIES:
        try:
            key = await strategy(store, reference)
        except StoreError as exc:
            log.warning("Document key strategy %s failed for %s: %s", name, reference, exc)
            continue
        if key:
            log.info("Document key for %s found via %s: %s", reference, name, key)
            return key, name
        log.debug("Document key strategy %s found nothing for %s", name, reference)
    return reference, LocatorStrategy.BARE_REFERENCE


async def list_documents(store: RecordStore, document_set_key: str) -> list[DocumentRecord]:
    """All documents in the set, newest upload first."""

    query = ListQuery(
        filter={"enrollment_id": document_set_key},
        pagination=Pagination(page=1, per_page=DOCUMENTS_PAGE_SIZE),
        sort=Sort(field="uploaded_at", order=SortOrder.DESC),
    )
    documents: list[DocumentRecord] = []
    while True:
        rows = await store.get_list(EntityKind.DOCUMENT_EXTRACTIONS, query)
        documents.extend(DocumentRecord.from_record(row) for row in rows)
        if len(rows) < query.pagination.per_page:
            return documents
        query = query.next_page()


async def resolve_documents(store: RecordStore, reference: str) -> DocumentResolution:
    """Locate and list the documents belonging to a student reference."""

    resolved = await resolve_document_set_key(store, reference)
    if resolved is None:
        log.warning("No document linkage for empty student reference")
        return DocumentResolution(status=LinkageStatus.NO_LINKAGE)

    key, strategy = resolved
    documents = await list_documents(store, key)
    if strategy is LocatorStrategy.BARE_REFERENCE and not documents:
        log.warning("No enrollment linkage found for student reference %s", reference)
        return DocumentResolution(status=LinkageStatus.NO_LINKAGE)

    return DocumentResolution(
        status=LinkageStatus.LINKED,
        document_set_key=key,
        strategy=strategy,
        documents=tuple(documents),
    )


def group_documents(documents: Sequence[DocumentRecord]) -> list[DocumentGroup]:
    """Group documents by category tag, keeping first-seen order."""

    grouped: dict[str, list[DocumentRecord]] = {}
    for document in documents:
        grouped.setdefault(document.document_type or "outros", []).append(document)
    return [
        DocumentGroup(
            category=category,
            label=DOCUMENT_TYPE_LABELS.get(category, category),
            documents=tuple(items),
        )
        for category, items in grouped.items()
    ]


async def signed_document_url(signer: UrlSigner, document: DocumentRecord) -> str:
    if not document.storage_path:
        raise PayloadValidationError(f"Document {document.id} has no storage path")
    return await signer.sign_url(document.storage_path)
