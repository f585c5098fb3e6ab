"""Translate ProHandel payloads into POS records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storelink.domain.model import to_money
from storelink.domain.ports import PosRedemption, PosVoucher

from .schema import RedemptionPayload, VoucherPayload

if TYPE_CHECKING:
    from .schema import RedemptionPayloadInput, VoucherPayloadInput


def _as_utc(value: datetime | None) -> datetime | None:
    """ProHandel sends local timestamps without offset at times; those are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_voucher(payload: VoucherPayloadInput) -> PosVoucher:
    voucher = (
        payload if isinstance(payload, VoucherPayload) else VoucherPayload.model_validate(payload)
    )
    return PosVoucher(
        pos_uuid=voucher.id,
        number=voucher.number,
        value=to_money(voucher.value),
        internet_code=voucher.internet_code,
        issued_at=_as_utc(voucher.date),
        expires_at=_as_utc(voucher.expiry_date),
    )


def parse_redemption(payload: RedemptionPayloadInput) -> PosRedemption:
    redemption = (
        payload
        if isinstance(payload, RedemptionPayload)
        else RedemptionPayload.model_validate(payload)
    )
    return PosRedemption(
        pos_uuid=redemption.id,
        redeemed_at=_as_utc(redemption.voucher_redemption_date),
        amount=to_money(redemption.value) if redemption.value is not None else None,
        reference=redemption.reference,
    )
