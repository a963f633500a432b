"""Public interface for the Supabase adapter."""

from __future__ import annotations

from .client import SupabaseRecordStore, filter_value, list_params
from .errors import raise_for_store_status
from .schema import PostgrestError, SignedUrlResponse
from .storage import SupabaseUrlSigner

__all__ = [
    "PostgrestError",
    "SignedUrlResponse",
    "SupabaseRecordStore",
    "SupabaseUrlSigner",
    "filter_value",
    "list_params",
    "raise_for_store_status",
]
