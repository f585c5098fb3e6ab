"""POS/ERP (ProHandel) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import ResilienceConfig

DEFAULT_PROHANDEL_AUTH_URL = "https://auth.prohandel.cloud/api/v4"
DEFAULT_PROHANDEL_API_URL = "https://linde.prohandel.de/api/v2"
PROHANDEL_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ProHandelConfig:
    api_key: str
    api_secret: str
    auth: ResilienceConfig
    api: ResilienceConfig


def get_prohandel_config() -> ProHandelConfig:
    values = require_env_vars(("PROHANDEL_API_KEY", "PROHANDEL_API_SECRET"))
    auth_url = optional_env_var("PROHANDEL_AUTH_URL", DEFAULT_PROHANDEL_AUTH_URL).rstrip("/")
    api_url = optional_env_var("PROHANDEL_API_URL", DEFAULT_PROHANDEL_API_URL).rstrip("/")
    return ProHandelConfig(
        api_key=values["PROHANDEL_API_KEY"],
        api_secret=values["PROHANDEL_API_SECRET"],
        auth=ResilienceConfig(
            name="prohandel-auth",
            base_url=f"{auth_url}/",
            timeout_seconds=PROHANDEL_TIMEOUT_SECONDS,
        ),
        api=ResilienceConfig(
            name="prohandel",
            base_url=f"{api_url}/",
            timeout_seconds=PROHANDEL_TIMEOUT_SECONDS,
            default_headers={"Content-Type": "application/json"},
        ),
    )
