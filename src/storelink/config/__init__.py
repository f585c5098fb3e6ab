"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .prohandel import ProHandelConfig, get_prohandel_config
from .shopify import ShopifyConfig, get_shopify_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ProHandelConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ShopifyConfig",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "get_database_config",
    "get_prohandel_config",
    "get_shopify_config",
    "get_storage_config",
    "get_sync_config",
    "optional_env_float",
    "optional_env_var",
    "require_env_vars",
]
