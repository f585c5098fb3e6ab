"""Storefront (Shopify Admin REST API) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_SHOPIFY_API_VERSION = "2024-10"
SHOPIFY_TIMEOUT_SECONDS = 10.0
SHOPIFY_PAGE_SIZE = 250


@dataclass(frozen=True, slots=True)
class ShopifyConfig:
    """Holds storefront API configuration values."""

    shop_url: str
    access_token: str
    resilience: ResilienceConfig
    api_version: str = DEFAULT_SHOPIFY_API_VERSION
    page_size: int = SHOPIFY_PAGE_SIZE

    @property
    def admin_base_url(self) -> str:
        return f"https://{self.shop_url}/admin/api/{self.api_version}/"


def _normalize_shop_url(value: str) -> str:
    shop = value.strip().removeprefix("https://").removeprefix("http://")
    return shop.rstrip("/")


def get_shopify_config(
    *, resilience: ResilienceConfig | None = None, page_size: int = SHOPIFY_PAGE_SIZE
) -> ShopifyConfig:
    values = require_env_vars(("SHOPIFY_SHOP_URL", "SHOPIFY_ACCESS_TOKEN"))
    shop_url = _normalize_shop_url(values["SHOPIFY_SHOP_URL"])
    api_version = optional_env_var("SHOPIFY_API_VERSION", DEFAULT_SHOPIFY_API_VERSION)
    return ShopifyConfig(
        shop_url=shop_url,
        access_token=values["SHOPIFY_ACCESS_TOKEN"],
        api_version=api_version,
        page_size=page_size,
        resilience=resilience
        or ResilienceConfig(
            name="shopify",
            base_url=f"https://{shop_url}/admin/api/{api_version}/",
            timeout_seconds=SHOPIFY_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers={"X-Shopify-Access-Token": values["SHOPIFY_ACCESS_TOKEN"]},
        ),
    )
