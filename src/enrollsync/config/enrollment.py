"""Dual-write and cascade-deletion tuning."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_DEPENDENT_WRITE_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 0.25
DEFAULT_BACKOFF_MAX_SECONDS = 2.0

DEFAULT_MEDIUM_RISK_THRESHOLD = 10
DEFAULT_HIGH_RISK_THRESHOLD = 100
DEFAULT_COUNT_TOLERANCE = 0


@dataclass(frozen=True, slots=True)
class EnrollmentConfig:
    dependent_write_attempts: int = DEFAULT_DEPENDENT_WRITE_ATTEMPTS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS

    def __post_init__(self) -> None:
        if self.dependent_write_attempts < 1:
            raise ConfigurationError("dependent_write_attempts must be at least 1")
        if self.backoff_base_seconds < 0 or self.backoff_max_seconds < 0:
            raise ConfigurationError("backoff durations must be non-negative")

    def backoff_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), doubling each time."""
        return min(self.backoff_base_seconds * (2 ** (attempt - 1)), self.backoff_max_seconds)


@dataclass(frozen=True, slots=True)
class DeletionConfig:
    medium_threshold: int = DEFAULT_MEDIUM_RISK_THRESHOLD
    high_threshold: int = DEFAULT_HIGH_RISK_THRESHOLD
    count_tolerance: int = DEFAULT_COUNT_TOLERANCE

    def __post_init__(self) -> None:
        if not 0 < self.medium_threshold <= self.high_threshold:
            raise ConfigurationError(
                "risk thresholds must satisfy 0 < medium_threshold <= high_threshold"
            )
        if self.count_tolerance < 0:
            raise ConfigurationError("count_tolerance must be non-negative")


def get_enrollment_config() -> EnrollmentConfig:
    return EnrollmentConfig(
        dependent_write_attempts=env_int(
            "ENROLLSYNC_DEPENDENT_WRITE_ATTEMPTS", DEFAULT_DEPENDENT_WRITE_ATTEMPTS
        ),
        backoff_base_seconds=env_float(
            "ENROLLSYNC_BACKOFF_BASE_SECONDS", DEFAULT_BACKOFF_BASE_SECONDS
        ),
        backoff_max_seconds=env_float(
            "ENROLLSYNC_BACKOFF_MAX_SECONDS", DEFAULT_BACKOFF_MAX_SECONDS
        ),
    )


def get_deletion_config() -> DeletionConfig:
    return DeletionConfig(
        medium_threshold=env_int("ENROLLSYNC_RISK_MEDIUM_THRESHOLD", DEFAULT_MEDIUM_RISK_THRESHOLD),
        high_threshold=env_int("ENROLLSYNC_RISK_HIGH_THRESHOLD", DEFAULT_HIGH_RISK_THRESHOLD),
        count_tolerance=env_int("ENROLLSYNC_COUNT_TOLERANCE", DEFAULT_COUNT_TOLERANCE),
    )
