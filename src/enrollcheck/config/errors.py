"""Errors raised while loading enrollcheck settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but unusable (bad number, unknown backend or level)."""


class MissingConfigurationError(ConfigurationError):
    """Required settings such as the Supabase URL or service key are absent or blank."""
