"""Pydantic models describing PostgREST and Storage API payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

UNIQUE_VIOLATION = "23505"


class SupabaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PostgrestError(SupabaseBaseModel):
    code: str | None = None
    message: str | None = None
    details: str | None = None
    hint: str | None = None

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION


class StorageError(SupabaseBaseModel):
    status_code: int | str | None = Field(default=None, alias="statusCode")
    error: str | None = None
    message: str | None = None


class SignedUrlResponse(SupabaseBaseModel):
    signed_url: str = Field(alias="signedURL")


RowList = TypeAdapter(list[dict[str, Any]])
