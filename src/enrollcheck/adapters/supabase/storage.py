"""Signed download URLs from Supabase Storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from enrollcheck.config.supabase import SupabaseConfig, get_supabase_config
from enrollcheck.domain.errors import StoreError, TransientStoreError

from .client import ClientFactory, default_client_factory
from .errors import raise_for_store_status
from .schema import SignedUrlResponse

if TYPE_CHECKING:
    from enrollcheck.adapters.http_resilience import ResilientClient
    from enrollcheck.domain.ports.signing import UrlSigner

log = getLogger(__name__)

STORAGE_KIND = "storage"


@dataclass(slots=True)
class SupabaseUrlSigner:
    config: SupabaseConfig = field(default_factory=get_supabase_config)
    client_factory: ClientFactory = field(default=default_client_factory)

    async def sign_url(self, path: str) -> str:
        """Return an absolute, time-limited download URL for ``path`` in the bucket."""

        object_path = quote(path.lstrip("/"))
        url = f"{self.config.storage_url}object/sign/{self.config.documents_bucket}/{object_path}"
        async with self.client_factory(self.config.resilience) as client:
            response = await self._post(client, url)

        raise_for_store_status(response, STORAGE_KIND, path)
        try:
            signed = SignedUrlResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise StoreError("Unexpected signing response", kind=STORAGE_KIND) from exc

        log.debug("Signed %s for %ss", path, self.config.signed_url_ttl_seconds)
        return self.absolute(signed.signed_url)

    def absolute(self, signed_url: str) -> str:
        if signed_url.startswith(("http://", "https://")):
            return signed_url
        return f"{self.config.storage_url.rstrip('/')}/{signed_url.lstrip('/')}"

    async def _post(self, client: ResilientClient, url: str) -> httpx.Response:
        try:
            return await client.post(
                url,
                json={"expiresIn": self.config.signed_url_ttl_seconds},
                headers=self.config.auth_headers(),
            )
        except httpx.TransportError as exc:
            log.warning("Signing request failed: %s", exc)
            raise TransientStoreError(f"storage: {exc}", kind=STORAGE_KIND) from exc


if TYPE_CHECKING:
    _signer_check: UrlSigner = SupabaseUrlSigner()
