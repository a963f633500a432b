"""Domain port definitions for adapters."""

from __future__ import annotations

from .signing import UrlSigner
from .store import (
    ListQuery,
    Pagination,
    Record,
    RecordStore,
    Sort,
    changed_fields,
    find_first,
)

__all__ = [
    "ListQuery",
    "Pagination",
    "Record",
    "RecordStore",
    "Sort",
    "UrlSigner",
    "changed_fields",
    "find_first",
]
