from __future__ import annotations

import os

import pytest

from enrollsync.config import (
    ConfigurationError,
    DeletionConfig,
    EnrollmentConfig,
    MissingConfigurationError,
    RetryPolicy,
    get_backend_config,
    get_deletion_config,
    get_enrollment_config,
    require_env_var,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR"])

    assert "MISSING_VAR" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_backend_config_builds_auth_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONSERVATORY_API_URL", "https://conservatory.example/api")
    monkeypatch.setenv("CONSERVATORY_API_TOKEN", "secret")
    monkeypatch.setenv("CONSERVATORY_TENANT_ID", "tenant-a")

    config = get_backend_config()

    assert config.base_url == "https://conservatory.example/api/"
    headers = config.resilience.default_headers
    assert headers is not None
    assert headers["Authorization"] == "Bearer secret"
    assert headers["X-Tenant-ID"] == "tenant-a"
    assert config.resilience.ratelimit is not None


def test_backend_config_requires_url_and_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONSERVATORY_API_URL", raising=False)
    monkeypatch.setenv("CONSERVATORY_API_TOKEN", "secret")

    with pytest.raises(MissingConfigurationError) as exc:
        get_backend_config()

    assert "CONSERVATORY_API_URL" in str(exc.value)


def test_transport_retry_excludes_writes() -> None:
    policy = RetryPolicy()

    assert "GET" in policy.allowed_methods
    assert "PUT" not in policy.allowed_methods
    assert "POST" not in policy.allowed_methods
    assert "DELETE" not in policy.allowed_methods


def test_enrollment_config_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENROLLSYNC_DEPENDENT_WRITE_ATTEMPTS", "5")
    monkeypatch.setenv("ENROLLSYNC_BACKOFF_BASE_SECONDS", "0.1")

    config = get_enrollment_config()

    assert config.dependent_write_attempts == 5
    assert config.backoff_base_seconds == pytest.approx(0.1)


def test_enrollment_config_rejects_non_integer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENROLLSYNC_DEPENDENT_WRITE_ATTEMPTS", "many")

    with pytest.raises(ConfigurationError):
        get_enrollment_config()


def test_backoff_doubles_up_to_the_cap() -> None:
    config = EnrollmentConfig(backoff_base_seconds=0.5, backoff_max_seconds=1.5)

    assert [config.backoff_for(n) for n in (1, 2, 3, 4)] == [0.5, 1.0, 1.5, 1.5]


def test_enrollment_config_requires_an_attempt() -> None:
    with pytest.raises(ConfigurationError):
        EnrollmentConfig(dependent_write_attempts=0)


def test_deletion_config_defaults_and_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENROLLSYNC_RISK_MEDIUM_THRESHOLD",
        "ENROLLSYNC_RISK_HIGH_THRESHOLD",
        "ENROLLSYNC_COUNT_TOLERANCE",
    ):
        monkeypatch.delenv(name, raising=False)
    assert get_deletion_config() == DeletionConfig()

    monkeypatch.setenv("ENROLLSYNC_RISK_HIGH_THRESHOLD", "50")
    assert get_deletion_config().high_threshold == 50
    assert os.getenv("ENROLLSYNC_RISK_HIGH_THRESHOLD") == "50"


def test_deletion_config_rejects_inverted_thresholds() -> None:
    with pytest.raises(ConfigurationError):
        DeletionConfig(medium_threshold=20, high_threshold=10)
