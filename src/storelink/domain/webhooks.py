"""Route storefront webhook deliveries to the reconcilers.

Deliveries are at-least-once; every handler reached from here is idempotent.
Payload parsing is injected so the domain never sees the wire format.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .reconciliation import CustomerBatchStats, ReconciliationResult

if TYPE_CHECKING:
    from .ports import SourceCustomer, StorefrontOrder
    from .reconciliation import CustomerReconciler, OrderVoucherReconciler


log = getLogger(__name__)

type Payload = Mapping[str, Any]
type CustomerTranslator = Callable[[Payload], SourceCustomer]
type OrderTranslator = Callable[[Payload], StorefrontOrder]


class WebhookTopic(StrEnum):
    CUSTOMERS_CREATE = "customers/create"
    CUSTOMERS_UPDATE = "customers/update"
    ORDERS_PAID = "orders/paid"
    APP_UNINSTALLED = "app/uninstalled"


def normalize_topic(topic: str) -> str:
    """Accept both ``orders/paid`` and ``ORDERS_PAID`` spellings."""

    cleaned = topic.strip().lower()
    if "/" not in cleaned:
        cleaned = cleaned.replace("_", "/", 1)
    return cleaned


@dataclass(frozen=True, slots=True)
class WebhookDelivery:
    topic: str
    shop: str | None = None
    payload: Payload = field(default_factory=dict[str, Any])


@dataclass(slots=True)
class WebhookDispatcher:
    customers: CustomerReconciler
    orders: OrderVoucherReconciler
    translate_customer: CustomerTranslator
    translate_order: OrderTranslator

    def dispatch(self, delivery: WebhookDelivery) -> ReconciliationResult:
        topic = normalize_topic(delivery.topic)
        log.info("Webhook %s from %s", topic, delivery.shop or "unknown shop")

        match topic:
            case WebhookTopic.CUSTOMERS_CREATE | WebhookTopic.CUSTOMERS_UPDATE:
                source = self.translate_customer(delivery.payload)
                stats = CustomerBatchStats(processed=1)
                stats.record(self.customers.reconcile_one(source))
                return ReconciliationResult.from_stats(stats)
            case WebhookTopic.ORDERS_PAID:
                order = self.translate_order(delivery.payload)
                return ReconciliationResult.from_stats(self.orders.reconcile(order))
            case WebhookTopic.APP_UNINSTALLED:
                log.info("App uninstalled from %s", delivery.shop)
                return ReconciliationResult(success=True, counts={"acknowledged": 1})
            case _:
                log.info("Ignoring webhook topic %s", topic)
                return ReconciliationResult(success=True, counts={"skipped": 1})
