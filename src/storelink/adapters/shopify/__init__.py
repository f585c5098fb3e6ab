"""Public interface for the Shopify adapter."""

from __future__ import annotations

from .client import ShopifyClient, StorefrontAPIError
from .schema import CustomerPayload, OrderPayload
from .translator import parse_customer, parse_order

__all__ = [
    "CustomerPayload",
    "OrderPayload",
    "ShopifyClient",
    "StorefrontAPIError",
    "parse_customer",
    "parse_order",
]
