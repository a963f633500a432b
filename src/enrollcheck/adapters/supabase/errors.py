"""Translate PostgREST and Storage responses into domain store errors."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from enrollcheck.domain.errors import (
    DuplicateRecordError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)

from .schema import PostgrestError, StorageError

if TYPE_CHECKING:
    import httpx

log = getLogger(__name__)

TRANSIENT_STATUSES = frozenset({408, 429})
NOT_FOUND_STATUSES = frozenset({404, 406})
CONFLICT_STATUS = 409


def _describe(response: httpx.Response) -> PostgrestError:
    try:
        return PostgrestError.model_validate(response.json())
    except (ValueError, ValidationError):
        return PostgrestError(message=response.text or response.reason_phrase)


def _effective_status(response: httpx.Response) -> int:
    # Storage reports missing objects as HTTP 400 with the real status in the body.
    try:
        body = StorageError.model_validate(response.json())
    except (ValueError, ValidationError):
        return response.status_code
    if body.status_code is not None and str(body.status_code).isdigit():
        return int(body.status_code)
    return response.status_code


def raise_for_store_status(response: httpx.Response, kind: str, key: object = None) -> None:
    """Raise the store error matching a non-2xx response; do nothing otherwise."""

    if response.is_success:
        return

    status = _effective_status(response)
    error = _describe(response)
    detail = f"{kind}: HTTP {status} {error.message or ''}".strip()
    log.debug("Supabase error response for %s: %s (code=%s)", kind, status, error.code)

    if status in NOT_FOUND_STATUSES:
        raise NotFoundError(kind, key if key is not None else response.request.url.path)
    if status == CONFLICT_STATUS or error.is_unique_violation:
        raise DuplicateRecordError(detail, kind=kind)
    if status in TRANSIENT_STATUSES or status >= 500:  # noqa: PLR2004
        raise TransientStoreError(detail, kind=kind)
    raise StoreError(detail, kind=kind)
