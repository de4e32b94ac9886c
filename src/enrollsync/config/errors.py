"""Errors raised while reading enrollsync settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but unusable (bad number, inverted thresholds)."""


class MissingConfigurationError(ConfigurationError):
    """Required settings such as ``CONSERVATORY_API_URL`` are absent or blank."""
