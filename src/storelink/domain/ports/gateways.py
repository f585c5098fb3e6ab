"""Ports for the external systems and the records they hand to the core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from storelink.domain.model import CustomerSnapshot, CustomerSource

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from decimal import Decimal


@dataclass(slots=True, kw_only=True)
class SourceCustomer:
    """A customer as reported by an external system, already translated."""

    source: CustomerSource
    external_id: str
    email: str | None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    zip_code: str | None = None
    orders_count: int = 0
    total_spent: str = "0.00"
    last_order_id: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(slots=True)
class CustomerPage:
    records: Sequence[SourceCustomer]
    next_page_token: str | None = None


@dataclass(slots=True, kw_only=True)
class PosVoucher:
    """A voucher reported as changed by the POS."""

    pos_uuid: str
    number: int
    value: Decimal
    internet_code: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def storefront_code(self) -> str:
        return self.internet_code or str(self.number)


@dataclass(slots=True, kw_only=True)
class PosRedemption:
    """A redemption event reported by the POS, keyed by voucher UUID."""

    pos_uuid: str
    redeemed_at: datetime | None = None
    amount: Decimal | None = None
    # booking reference echoed back for redemptions this service booked itself
    reference: str | None = None


@dataclass(slots=True, frozen=True)
class PosVoucherRef:
    pos_uuid: str
    number: int


@dataclass(slots=True, kw_only=True)
class VoucherPurchase:
    """One purchased gift-card unit on a paid storefront order."""

    line_item_id: str
    unit_index: int
    value: Decimal
    title: str | None = None


@dataclass(slots=True, kw_only=True)
class GiftCardRedemption:
    """Amount paid on an order from an existing gift card."""

    transaction_id: str
    amount: Decimal
    gift_card_code: str | None = None
    gift_card_id: str | None = None
    processed_at: datetime | None = None


@dataclass(slots=True, kw_only=True)
class StorefrontOrder:
    order_id: str
    currency: str
    customer: CustomerSnapshot = field(default_factory=CustomerSnapshot)
    voucher_purchases: Sequence[VoucherPurchase] = ()
    gift_card_redemptions: Sequence[GiftCardRedemption] = ()
    paid_at: datetime | None = None


@runtime_checkable
class StorefrontGateway(Protocol):
    """Request/response port for the storefront platform."""

    def list_customers(self, page_token: str | None = None) -> CustomerPage: ...

    def create_gift_card(self, code: str, value: Decimal, note: str) -> str: ...

    def disable_gift_card(self, gift_card_id: str) -> None: ...


@runtime_checkable
class PosGateway(Protocol):
    """Request/response port for the POS/ERP backend.

    ``authenticate`` exchanges the configured key and secret for a short-lived
    bearer token used by the following calls; callers fetch a fresh token at the
    start of every sync run.
    """

    def authenticate(self) -> str: ...

    def list_vouchers_changed_since(self, since: datetime) -> Sequence[PosVoucher]: ...

    def list_redemptions_changed_since(self, since: datetime) -> Sequence[PosRedemption]: ...

    def create_voucher(self, code: str, value: Decimal, note: str) -> PosVoucherRef: ...

    def book_redemption(self, pos_uuid: str, amount: Decimal, reference: str) -> None: ...


__all__ = [
    "CustomerPage",
    "GiftCardRedemption",
    "PosGateway",
    "PosRedemption",
    "PosVoucher",
    "PosVoucherRef",
    "SourceCustomer",
    "StorefrontGateway",
    "StorefrontOrder",
    "VoucherPurchase",
]
