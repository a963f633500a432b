"""Reconciliation, merge/save and document lookup for enrollment verification."""

from __future__ import annotations

from .documents import DocumentResolution, group_documents, resolve_documents
from .identity import resolve_identity
from .merge import load_aggregate, resolve_owner
from .reconciliation import ReconciliationPipeline, ReconciliationResult, process_enrollment
from .remapping import remap
from .retry import BackoffPolicy
from .save import save_aggregate
from .upsert import upsert

__all__ = [
    "BackoffPolicy",
    "DocumentResolution",
    "ReconciliationPipeline",
    "ReconciliationResult",
    "group_documents",
    "load_aggregate",
    "process_enrollment",
    "remap",
    "resolve_documents",
    "resolve_identity",
    "resolve_owner",
    "save_aggregate",
    "upsert",
]
