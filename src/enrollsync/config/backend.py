"""Conservatory backend API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

BACKEND_TIMEOUT_SECONDS = 30.0
BACKEND_MAX_CALLS_PER_SECOND = 8


@dataclass(frozen=True)
class BackendConfig:
    """Holds conservatory API configuration values."""

    base_url: str
    api_token: str
    resilience: ResilienceConfig
    tenant_id: str | None = None


def _build_headers(api_token: str, tenant_id: str | None) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {api_token}",
        "Accept": "application/json",
    }
    if tenant_id is not None:
        headers["X-Tenant-ID"] = tenant_id
    return headers


def get_backend_config(*, resilience: ResilienceConfig | None = None) -> BackendConfig:
    values = require_env_vars(("CONSERVATORY_API_URL", "CONSERVATORY_API_TOKEN"))
    base_url = values["CONSERVATORY_API_URL"].rstrip("/") + "/"
    tenant_id = optional_env_var("CONSERVATORY_TENANT_ID")
    return BackendConfig(
        base_url=base_url,
        api_token=values["CONSERVATORY_API_TOKEN"],
        tenant_id=tenant_id,
        resilience=resilience
        or ResilienceConfig(
            name="conservatory",
            base_url=base_url,
            timeout_seconds=BACKEND_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=BACKEND_MAX_CALLS_PER_SECOND, per_seconds=1.0),
            default_headers=_build_headers(values["CONSERVATORY_API_TOKEN"], tenant_id),
        ),
    )
