"""Pydantic models describing Shopify Admin REST and webhook payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

GIFT_CARD_GATEWAY = "gift_card"
_APPLIED_TRANSACTION_KINDS = frozenset({"sale", "capture"})


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _id_to_str(value: object) -> object:
    if isinstance(value, int):
        return str(value)
    return _blank_to_none(value)


class ShopifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AddressPayload(ShopifyBaseModel):
    address1: str | None = None
    city: str | None = None
    zip: str | None = None
    phone: str | None = None

    _normalize_blank = field_validator("address1", "city", "zip", "phone", mode="before")(
        _blank_to_none
    )


class CustomerPayload(ShopifyBaseModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    orders_count: int = 0
    total_spent: Decimal = Decimal("0.00")
    last_order_id: str | None = None
    tags: str = ""
    default_address: AddressPayload | None = None

    _normalize_ids = field_validator("id", "last_order_id", mode="before")(_id_to_str)
    _normalize_blank = field_validator("email", "first_name", "last_name", "phone", mode="before")(
        _blank_to_none
    )

    @field_validator("orders_count", mode="before")
    @classmethod
    def _parse_count(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def tag_list(self) -> tuple[str, ...]:
        return tuple(tag.strip() for tag in self.tags.split(",") if tag.strip())


class CustomersResponse(ShopifyBaseModel):
    customers: list[CustomerPayload]


class GiftCardPayload(ShopifyBaseModel):
    id: str
    code: str | None = None
    last_characters: str | None = None
    initial_value: Decimal | None = None
    balance: Decimal | None = None
    disabled_at: datetime | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class GiftCardResponse(ShopifyBaseModel):
    gift_card: GiftCardPayload


class OrderCustomerPayload(ShopifyBaseModel):
    id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class LineItemPayload(ShopifyBaseModel):
    id: str
    title: str | None = None
    quantity: int = 1
    price: Decimal
    gift_card: bool = False

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class ReceiptPayload(ShopifyBaseModel):
    gift_card_id: str | None = None
    gift_card_code: str | None = None

    _normalize_ids = field_validator("gift_card_id", "gift_card_code", mode="before")(_id_to_str)


class TransactionPayload(ShopifyBaseModel):
    id: str
    kind: str
    gateway: str | None = None
    status: str | None = None
    amount: Decimal
    processed_at: datetime | None = None
    receipt: ReceiptPayload = Field(default_factory=ReceiptPayload)

    _normalize_id = field_validator("id", mode="before")(_id_to_str)

    @field_validator("receipt", mode="before")
    @classmethod
    def _parse_receipt(cls, value: object) -> object:
        return value if isinstance(value, Mapping) else {}

    @property
    def is_gift_card_payment(self) -> bool:
        return (
            self.gateway == GIFT_CARD_GATEWAY
            and self.kind in _APPLIED_TRANSACTION_KINDS
            and self.status in (None, "success")
        )


class OrderPayload(ShopifyBaseModel):
    id: str
    currency: str = "EUR"
    email: str | None = None
    customer: OrderCustomerPayload | None = None
    line_items: list[LineItemPayload] = Field(default_factory=list[LineItemPayload])
    transactions: list[TransactionPayload] = Field(default_factory=list[TransactionPayload])
    processed_at: datetime | None = None
    created_at: datetime | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class ErrorResponse(ShopifyBaseModel):
    errors: object


type CustomerPayloadInput = CustomerPayload | Mapping[str, object]
type OrderPayloadInput = OrderPayload | Mapping[str, object]
