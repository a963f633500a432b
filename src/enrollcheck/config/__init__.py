"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, optional_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import (
    Backend,
    ReconciliationConfig,
    get_backend,
    get_reconciliation_config,
)
from .storage import DatabaseConfig, get_database_config, user_data_dir
from .supabase import SupabaseConfig, get_supabase_config

__all__ = [
    "Backend",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SupabaseConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_backend",
    "get_database_config",
    "get_reconciliation_config",
    "get_supabase_config",
    "optional_env",
    "require_env_vars",
    "user_data_dir",
]
