"""Pydantic models describing ProHandel auth and voucher payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ProHandelBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TokenValue(ProHandelBaseModel):
    value: str
    expires_at: datetime | None = Field(default=None, alias="expiresAt")


class TokenEnvelope(ProHandelBaseModel):
    token: TokenValue


class TokenResponse(ProHandelBaseModel):
    """``POST {auth}/token`` answers with ``{"token": {"token": {"value": ...}}}``."""

    token: TokenEnvelope

    @property
    def bearer(self) -> str:
        return self.token.token.value


class VoucherPayload(ProHandelBaseModel):
    id: str
    number: int
    value: Decimal = Decimal("0.00")
    internet_code: str | None = Field(default=None, alias="internetCode")
    date: datetime | None = None
    expiry_date: datetime | None = Field(default=None, alias="expiryDate")

    _normalize_code = field_validator("internet_code", mode="before")(_blank_to_none)

    @field_validator("number", mode="before")
    @classmethod
    def _parse_number(cls, value: int | str) -> int:
        return int(value)


class RedemptionPayload(ProHandelBaseModel):
    """A redemption row; its ``id`` is the UUID of the redeemed voucher."""

    id: str
    voucher_redemption_date: datetime | None = Field(default=None, alias="voucherRedemptionDate")
    value: Decimal | None = None
    reference: str | None = None

    _normalize_reference = field_validator("reference", mode="before")(_blank_to_none)


class CreatedVoucherPayload(ProHandelBaseModel):
    id: str
    number: int


type VoucherPayloadInput = VoucherPayload | Mapping[str, object]
type RedemptionPayloadInput = RedemptionPayload | Mapping[str, object]
