"""Supabase (PostgREST + Storage) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, optional_env, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_DOCUMENTS_BUCKET = "documents"
DEFAULT_SIGNED_URL_TTL_SECONDS = 3600
SUPABASE_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class SupabaseConfig:
    """Holds the project URL, service key and storage settings."""

    url: str
    service_role_key: str
    resilience: ResilienceConfig
    documents_bucket: str = DEFAULT_DOCUMENTS_BUCKET
    signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1/"

    @property
    def storage_url(self) -> str:
        return f"{self.url.rstrip('/')}/storage/v1/"

    def auth_headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }


def get_supabase_config(*, resilience: ResilienceConfig | None = None) -> SupabaseConfig:
    values = require_env_vars(("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"))
    ttl = env_int("ENROLLCHECK_SIGNED_URL_TTL", DEFAULT_SIGNED_URL_TTL_SECONDS)
    if ttl < 1:
        raise ConfigurationError("ENROLLCHECK_SIGNED_URL_TTL must be positive")
    return SupabaseConfig(
        url=values["SUPABASE_URL"],
        service_role_key=values["SUPABASE_SERVICE_ROLE_KEY"],
        documents_bucket=optional_env("ENROLLCHECK_DOCUMENTS_BUCKET", DEFAULT_DOCUMENTS_BUCKET),
        signed_url_ttl_seconds=ttl,
        resilience=resilience
        or ResilienceConfig(
            name="supabase",
            timeout_seconds=SUPABASE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
