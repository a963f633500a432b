"""Reconciliation retry and backend selection defaults."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from enrollcheck.domain.retry import BackoffPolicy

from .env import env_float, env_int, optional_env
from .errors import ConfigurationError

DEFAULT_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_INITIAL_DELAY = 1.0
DEFAULT_RETRY_BACKOFF = 2.0


class Backend(StrEnum):
    SQLALCHEMY = "sqlalchemy"
    SUPABASE = "supabase"


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    initial_delay_seconds: float = DEFAULT_RETRY_INITIAL_DELAY
    backoff_factor: float = DEFAULT_RETRY_BACKOFF

    def policy(self) -> BackoffPolicy:
        try:
            return BackoffPolicy(
                max_attempts=self.max_attempts,
                initial_delay_seconds=self.initial_delay_seconds,
                backoff_factor=self.backoff_factor,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid retry settings: {exc}") from exc


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        max_attempts=env_int("ENROLLCHECK_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS),
        initial_delay_seconds=env_float(
            "ENROLLCHECK_RETRY_INITIAL_DELAY", DEFAULT_RETRY_INITIAL_DELAY
        ),
        backoff_factor=env_float("ENROLLCHECK_RETRY_BACKOFF", DEFAULT_RETRY_BACKOFF),
    )


def get_backend() -> Backend:
    raw = optional_env("ENROLLCHECK_BACKEND", Backend.SQLALCHEMY.value).lower()
    try:
        return Backend(raw)
    except ValueError as exc:
        choices = ", ".join(member.value for member in Backend)
        raise ConfigurationError(
            f"ENROLLCHECK_BACKEND must be one of {choices}, got {raw!r}"
        ) from exc
