"""HTTP client for the Shopify Admin REST API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from storelink.adapters.http_resilience import ClientFactory, default_client_factory
from storelink.config import ShopifyConfig, get_shopify_config
from storelink.domain.errors import TransientExternalFailure
from storelink.domain.ports import CustomerPage, StorefrontGateway

from .schema import CustomersResponse, GiftCardResponse
from .translator import parse_customer

if TYPE_CHECKING:
    from decimal import Decimal

    from storelink.adapters.http_resilience import ResilientClient

log = getLogger(__name__)


class StorefrontAPIError(TransientExternalFailure):
    """Raised when a Shopify call fails at the transport, HTTP or payload level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, gateway="shopify", status_code=status_code)


def _page_info(url: str) -> str | None:
    return httpx.URL(url).params.get("page_info")


@dataclass(slots=True)
class ShopifyClient:
    config: ShopifyConfig = field(default_factory=get_shopify_config)
    client_factory: ClientFactory = field(default=default_client_factory)

    def list_customers(self, page_token: str | None = None) -> CustomerPage:
        return asyncio.run(self._list_customers_async(page_token))

    def create_gift_card(self, code: str, value: Decimal, note: str) -> str:
        return asyncio.run(self._create_gift_card_async(code, value, note))

    def disable_gift_card(self, gift_card_id: str) -> None:
        asyncio.run(self._disable_gift_card_async(gift_card_id))

    async def _list_customers_async(self, page_token: str | None) -> CustomerPage:
        params: dict[str, str | int] = {"limit": self.config.page_size}
        if page_token:
            params["page_info"] = page_token

        async with self.client_factory(self.config.resilience) as client:
            response = await self._request(client, "GET", "customers.json", params=params)

        payload = self._validate(CustomersResponse, response)
        next_link = response.links.get("next")
        next_token = _page_info(next_link["url"]) if next_link and "url" in next_link else None
        records = [parse_customer(customer) for customer in payload.customers]
        log.debug("Fetched %s Shopify customers (next page: %s)", len(records), bool(next_token))
        return CustomerPage(records=records, next_page_token=next_token)

    async def _create_gift_card_async(self, code: str, value: Decimal, note: str) -> str:
        body = {"gift_card": {"code": code, "initial_value": str(value), "note": note}}
        async with self.client_factory(self.config.resilience) as client:
            response = await self._request(client, "POST", "gift_cards.json", json=body)
        gift_card = self._validate(GiftCardResponse, response).gift_card
        log.info("Created Shopify gift card %s for code %s", gift_card.id, code)
        return gift_card.id

    async def _disable_gift_card_async(self, gift_card_id: str) -> None:
        body = {"gift_card": {"id": gift_card_id}}
        async with self.client_factory(self.config.resilience) as client:
            await self._request(
                client, "POST", f"gift_cards/{gift_card_id}/disable.json", json=body
            )
        log.info("Disabled Shopify gift card %s", gift_card_id)

    async def _request(
        self,
        client: ResilientClient,
        method: str,
        url: str,
        *,
        params: dict[str, str | int] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await client.request(method, url, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.error("Shopify %s %s failed with %s: %s", method, url, status, exc.response.text)
            raise StorefrontAPIError(
                f"Shopify {method} {url} returned {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise StorefrontAPIError(f"Shopify {method} {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _validate[TModel: CustomersResponse | GiftCardResponse](
        model: type[TModel], response: httpx.Response
    ) -> TModel:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise StorefrontAPIError(
                f"Unexpected Shopify response payload for {response.request.url}",
                status_code=response.status_code,
            ) from exc


if TYPE_CHECKING:
    _gateway_check: StorefrontGateway = ShopifyClient()
