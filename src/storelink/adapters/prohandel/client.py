"""HTTP client for the ProHandel POS/ERP API.

Every call runs against a bearer token obtained from the separate auth service.
Tokens are short-lived; ``authenticate`` is called at the start of every sync
run and the token is held only for that run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from storelink.adapters.http_resilience import ClientFactory, default_client_factory
from storelink.config import ProHandelConfig, get_prohandel_config
from storelink.domain.errors import TransientExternalFailure
from storelink.domain.ports import PosGateway, PosVoucherRef

from .schema import CreatedVoucherPayload, RedemptionPayload, TokenResponse, VoucherPayload
from .translator import parse_redemption, parse_voucher

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from decimal import Decimal

    from storelink.adapters.http_resilience import ResilientClient
    from storelink.config import ResilienceConfig
    from storelink.domain.ports import PosRedemption, PosVoucher

log = getLogger(__name__)

_VOUCHER_LIST = TypeAdapter(list[VoucherPayload])
_REDEMPTION_LIST = TypeAdapter(list[RedemptionPayload])


class PosAPIError(TransientExternalFailure):
    """Raised when a ProHandel call fails at the transport, HTTP or payload level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, gateway="prohandel", status_code=status_code)


class PosAuthError(PosAPIError):
    """Raised when the key/secret exchange does not yield a token."""


def format_since(value: datetime) -> str:
    """Render a timestamp the way the ``changed`` endpoints expect it (UTC, ``Z``)."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    rendered = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


@dataclass(slots=True)
class ProHandelClient:
    config: ProHandelConfig = field(default_factory=get_prohandel_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    _token: str | None = field(default=None, init=False, repr=False)

    def authenticate(self) -> str:
        self._token = asyncio.run(self._authenticate_async())
        return self._token

    def list_vouchers_changed_since(self, since: datetime) -> Sequence[PosVoucher]:
        payload = asyncio.run(self._get_json(f"voucher/changed/{format_since(since)}"))
        vouchers = self._validate_list(_VOUCHER_LIST, payload, "voucher/changed")
        log.info("ProHandel reported %s changed vouchers", len(vouchers))
        return [parse_voucher(voucher) for voucher in vouchers]

    def list_redemptions_changed_since(self, since: datetime) -> Sequence[PosRedemption]:
        payload = asyncio.run(self._get_json(f"voucher/redemption/changed/{format_since(since)}"))
        redemptions = self._validate_list(_REDEMPTION_LIST, payload, "voucher/redemption/changed")
        log.info("ProHandel reported %s changed redemptions", len(redemptions))
        return [parse_redemption(redemption) for redemption in redemptions]

    def create_voucher(self, code: str, value: Decimal, note: str) -> PosVoucherRef:
        body = {"internetCode": code, "value": str(value), "note": note}
        payload = asyncio.run(self._post_json("voucher", body))
        try:
            created = CreatedVoucherPayload.model_validate(payload)
        except ValidationError as exc:
            raise PosAPIError("Unexpected ProHandel voucher creation payload") from exc
        log.info("Created ProHandel voucher %s for code %s", created.number, code)
        return PosVoucherRef(pos_uuid=created.id, number=created.number)

    def book_redemption(self, pos_uuid: str, amount: Decimal, reference: str) -> None:
        body = {"voucherId": pos_uuid, "value": str(amount), "reference": reference}
        asyncio.run(self._post_json("voucher/redemption", body))
        log.info("Booked ProHandel redemption %s of %s on %s", reference, amount, pos_uuid)

    # ------------------------------------------------------------------

    async def _authenticate_async(self) -> str:
        body = {"apiKey": self.config.api_key, "secret": self.config.api_secret}
        async with self.client_factory(self.config.auth) as client:
            try:
                response = await client.post("token", json=body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                log.error("ProHandel authentication failed with %s", status)
                raise PosAuthError(
                    f"ProHandel authentication returned {status}", status_code=status
                ) from exc
            except httpx.HTTPError as exc:
                raise PosAuthError(f"ProHandel authentication failed: {exc}") from exc
        try:
            return TokenResponse.model_validate(response.json()).bearer
        except (ValueError, ValidationError) as exc:
            raise PosAuthError("ProHandel authentication returned no token") from exc

    async def _get_json(self, url: str) -> Any:
        response = await self._request("GET", url)
        return self._json(response)

    async def _post_json(self, url: str, body: dict[str, Any]) -> Any:
        response = await self._request("POST", url, json=body)
        if not response.content:
            return None
        return self._json(response)

    async def _request(
        self, method: str, url: str, *, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        if self._token is None:
            raise PosAuthError("ProHandel call attempted before authentication")
        headers = {"Authorization": f"Bearer {self._token}"}
        resilience: ResilienceConfig = self.config.api
        async with self.client_factory(resilience) as client:
            return await self._send(client, method, url, headers=headers, json=json)

    @staticmethod
    async def _send(
        client: ResilientClient,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: dict[str, Any] | None,
    ) -> httpx.Response:
        try:
            response = await client.request(method, url, headers=headers, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.error("ProHandel %s %s failed with %s", method, url, status)
            raise PosAPIError(
                f"ProHandel {method} {url} returned {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise PosAPIError(f"ProHandel {method} {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise PosAPIError(
                f"ProHandel returned a non-JSON body for {response.request.url}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _validate_list[TItem](
        adapter: TypeAdapter[list[TItem]], payload: Any, name: str
    ) -> list[TItem]:
        if payload is None:
            return []
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise PosAPIError(f"Unexpected ProHandel {name} payload") from exc


if TYPE_CHECKING:
    _gateway_check: PosGateway = ProHandelClient()
