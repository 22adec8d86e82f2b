"""Managed backend (REST tables + edge functions) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

BACKEND_TIMEOUT_SECONDS = 30.0
# Document analysis runs a model server-side and is much slower than table I/O.
ORACLE_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Holds the backend URL, its API key and per-surface client settings."""

    url: str
    api_key: str
    rest: ResilienceConfig
    functions: ResilienceConfig

    @property
    def auth_headers(self) -> dict[str, str]:
        return _auth_headers(self.api_key)


def _auth_headers(api_key: str) -> dict[str, str]:
    return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}


def get_backend_config() -> BackendConfig:
    values = require_env_vars(("IMPORTFLOW_BACKEND_URL", "IMPORTFLOW_BACKEND_KEY"))
    url = values["IMPORTFLOW_BACKEND_URL"].rstrip("/")
    api_key = values["IMPORTFLOW_BACKEND_KEY"]
    headers = _auth_headers(api_key)
    return BackendConfig(
        url=url,
        api_key=api_key,
        rest=ResilienceConfig(
            name="rest",
            base_url=f"{url}/rest/v1/",
            timeout_seconds=BACKEND_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers=headers,
        ),
        functions=ResilienceConfig(
            name="functions",
            base_url=f"{url}/functions/v1/",
            timeout_seconds=ORACLE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers=headers,
        ),
    )
