"""Synchronization defaults for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import optional_env_float, optional_env_var
from .errors import ConfigurationError

DEFAULT_POLL_INTERVAL = timedelta(minutes=15)
DEFAULT_LOOKBACK = timedelta(hours=2)
DEFAULT_SAFETY_MARGIN = timedelta(minutes=15)
DEFAULT_CUSTOMER_PAGE_SIZE = 250
DEFAULT_CURRENCY = "EUR"
DEFAULT_AUDIT_ACTOR = "SYSTEM"


@dataclass(frozen=True, slots=True)
class SyncConfig:
    poll_interval: timedelta = DEFAULT_POLL_INTERVAL
    lookback: timedelta = DEFAULT_LOOKBACK
    safety_margin: timedelta = DEFAULT_SAFETY_MARGIN
    customer_page_size: int = DEFAULT_CUSTOMER_PAGE_SIZE
    currency: str = DEFAULT_CURRENCY
    audit_actor: str = DEFAULT_AUDIT_ACTOR

    def __post_init__(self) -> None:
        if self.poll_interval <= timedelta(0):
            raise ConfigurationError("Poll interval must be positive")
        if self.lookback < self.poll_interval + self.safety_margin:
            raise ConfigurationError(
                f"Lookback {self.lookback} must be at least the poll interval "
                f"{self.poll_interval} plus a safety margin of {self.safety_margin}"
            )
        if self.customer_page_size <= 0:
            raise ConfigurationError("Customer page size must be positive")


def get_sync_config() -> SyncConfig:
    poll_minutes = optional_env_float(
        "STORELINK_POLL_INTERVAL_MINUTES", DEFAULT_POLL_INTERVAL.total_seconds() / 60
    )
    lookback_minutes = optional_env_float(
        "STORELINK_LOOKBACK_MINUTES", DEFAULT_LOOKBACK.total_seconds() / 60
    )
    return SyncConfig(
        poll_interval=timedelta(minutes=poll_minutes),
        lookback=timedelta(minutes=lookback_minutes),
        currency=optional_env_var("STORELINK_CURRENCY", DEFAULT_CURRENCY),
    )
