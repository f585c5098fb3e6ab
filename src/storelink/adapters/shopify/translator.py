"""Translate Shopify payloads into the records the reconcilers consume."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from storelink.domain.model import CustomerSnapshot, CustomerSource, normalize_email, to_money
from storelink.domain.ports import (
    GiftCardRedemption,
    SourceCustomer,
    StorefrontOrder,
    VoucherPurchase,
)

from .schema import CustomerPayload, OrderPayload

if TYPE_CHECKING:
    from .schema import CustomerPayloadInput, OrderPayloadInput


log = getLogger(__name__)


def _ensure_customer_payload(payload: CustomerPayloadInput) -> CustomerPayload:
    if isinstance(payload, CustomerPayload):
        return payload
    return CustomerPayload.model_validate(payload)


def _ensure_order_payload(payload: OrderPayloadInput) -> OrderPayload:
    if isinstance(payload, OrderPayload):
        return payload
    return OrderPayload.model_validate(payload)


def parse_customer(payload: CustomerPayloadInput) -> SourceCustomer:
    customer = _ensure_customer_payload(payload)
    address = customer.default_address
    return SourceCustomer(
        source=CustomerSource.SHOPIFY,
        external_id=customer.id,
        email=normalize_email(customer.email),
        first_name=customer.first_name,
        last_name=customer.last_name,
        phone=customer.phone or (address.phone if address else None),
        street=address.address1 if address else None,
        city=address.city if address else None,
        zip_code=address.zip if address else None,
        orders_count=customer.orders_count,
        total_spent=str(to_money(customer.total_spent)),
        last_order_id=customer.last_order_id,
        tags=customer.tag_list,
    )


def parse_order(payload: OrderPayloadInput) -> StorefrontOrder:
    """Extract gift-card purchases and gift-card payments from a paid order.

    A line item with ``quantity > 1`` yields one purchase per unit, each with
    its own ``unit_index``.
    """

    order = _ensure_order_payload(payload)

    purchases: list[VoucherPurchase] = []
    for item in order.line_items:
        if not item.gift_card:
            continue
        purchases.extend(
            VoucherPurchase(
                line_item_id=item.id,
                unit_index=unit_index,
                value=to_money(item.price),
                title=item.title,
            )
            for unit_index in range(max(item.quantity, 0))
        )

    redemptions: list[GiftCardRedemption] = []
    for transaction in order.transactions:
        if not transaction.is_gift_card_payment:
            continue
        if transaction.receipt.gift_card_id is None and transaction.receipt.gift_card_code is None:
            log.warning(
                "Gift card transaction %s of order %s names no gift card", transaction.id, order.id
            )
        redemptions.append(
            GiftCardRedemption(
                transaction_id=transaction.id,
                amount=to_money(transaction.amount),
                gift_card_code=transaction.receipt.gift_card_code,
                gift_card_id=transaction.receipt.gift_card_id,
                processed_at=transaction.processed_at,
            )
        )

    buyer = order.customer
    snapshot = CustomerSnapshot(
        storefront_id=buyer.id if buyer else None,
        email=normalize_email((buyer.email if buyer else None) or order.email),
        first_name=buyer.first_name if buyer else None,
        last_name=buyer.last_name if buyer else None,
    )

    return StorefrontOrder(
        order_id=order.id,
        currency=order.currency,
        customer=snapshot,
        voucher_purchases=purchases,
        gift_card_redemptions=redemptions,
        paid_at=order.processed_at or order.created_at,
    )
