"""Port for object-storage URL signing."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class UrlSigner(Protocol):
    """Turns a storage path into a short-lived URL the reviewer can open."""

    async def sign_url(self, path: str) -> str: ...


__all__ = ["UrlSigner"]
