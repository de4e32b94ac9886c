"""Application configuration helpers."""

from __future__ import annotations

from .backend import BackendConfig, get_backend_config
from .enrollment import (
    DeletionConfig,
    EnrollmentConfig,
    get_deletion_config,
    get_enrollment_config,
)
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_snapshot_database_config, get_storage_config

__all__ = [
    "BackendConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "DeletionConfig",
    "EnrollmentConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_backend_config",
    "get_deletion_config",
    "get_enrollment_config",
    "get_snapshot_database_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
