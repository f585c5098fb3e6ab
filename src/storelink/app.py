"""Application orchestration entry points.

Every operation here takes the identity store handle explicitly, builds the
gateways it needs from configuration unless they are passed in, and reports a
``ReconciliationResult``. Failures are logged and returned, never raised.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from storelink.adapters.prohandel import ProHandelClient
from storelink.adapters.shopify import ShopifyClient, parse_customer, parse_order
from storelink.config import get_shopify_config, get_sync_config
from storelink.domain.model import IntegrationTarget, SyncStatus, VoucherStatus, utcnow
from storelink.domain.ports import SourceCustomer, StorefrontOrder
from storelink.domain.reconciliation import (
    CustomerBatchStats,
    CustomerReconciler,
    OrderVoucherReconciler,
    ReconciliationResult,
    VoucherReconciler,
    VoucherSyncStats,
)
from storelink.domain.time_windows import compute_sync_window
from storelink.domain.webhooks import WebhookDispatcher

if TYPE_CHECKING:
    from datetime import timedelta

    from storelink.adapters.sqlalchemy import IdentityStore
    from storelink.config import SyncConfig
    from storelink.domain.ports import PosGateway, StorefrontGateway
    from storelink.domain.time_windows import Clock
    from storelink.domain.webhooks import WebhookDelivery


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreSummary:
    synced_customers: int
    pending_customers: int
    total_vouchers: int
    active_vouchers: int

    def to_dict(self) -> dict[str, int]:
        return {
            "synced_customers": self.synced_customers,
            "pending_customers": self.pending_customers,
            "total_vouchers": self.total_vouchers,
            "active_vouchers": self.active_vouchers,
        }


def _as_source_customer(event: SourceCustomer | Mapping[str, Any]) -> SourceCustomer:
    if isinstance(event, SourceCustomer):
        return event
    return parse_customer(event)


def _as_order(order: StorefrontOrder | Mapping[str, Any]) -> StorefrontOrder:
    if isinstance(order, StorefrontOrder):
        return order
    return parse_order(order)


def _customer_reconciler(store: IdentityStore, sync_config: SyncConfig) -> CustomerReconciler:
    return CustomerReconciler(store.unit_of_work, audit_actor=sync_config.audit_actor)


def reconcile_customer_event(
    event: SourceCustomer | Mapping[str, Any],
    *,
    store: IdentityStore,
    sync_config: SyncConfig | None = None,
) -> ReconciliationResult:
    """Reconcile one storefront customer create/update event."""

    try:
        config = sync_config or get_sync_config()
        source = _as_source_customer(event)
        log.info("Reconciling %s customer %s", source.source, source.external_id)
        outcome = _customer_reconciler(store, config).reconcile_one(source)
    except Exception as exc:
        log.exception("Customer event reconciliation failed")
        return ReconciliationResult.failed(exc)

    stats = CustomerBatchStats(processed=1)
    stats.record(outcome)
    return ReconciliationResult.from_stats(stats)


def reconcile_customer_batch(
    *,
    store: IdentityStore,
    storefront: StorefrontGateway | None = None,
    sync_config: SyncConfig | None = None,
    max_pages: int | None = None,
) -> ReconciliationResult:
    """Walk all storefront customers page by page and reconcile each one."""

    stats = CustomerBatchStats()
    try:
        config = sync_config or get_sync_config()
        gateway = storefront or ShopifyClient(
            config=get_shopify_config(page_size=config.customer_page_size)
        )
        reconciler = _customer_reconciler(store, config)
        reconciler.max_pages = max_pages
        log.info("Starting customer batch sync: max_pages=%s", max_pages)
        reconciler.reconcile_batch(gateway.list_customers, stats=stats)
    except Exception as exc:
        log.exception("Customer batch aborted after %s pages", stats.pages)
        return ReconciliationResult.failed(exc, counts=_counts(stats))

    log.info(
        "Finished customer batch sync: processed=%s created=%s updated=%s errors=%s",
        stats.processed,
        stats.created,
        stats.updated,
        stats.errors,
    )
    return ReconciliationResult.from_stats(stats)


def reconcile_voucher_issuance_and_redemption(
    *,
    store: IdentityStore,
    pos: PosGateway | None = None,
    storefront: StorefrontGateway | None = None,
    sync_config: SyncConfig | None = None,
    lookback: timedelta | None = None,
    clock: Clock = utcnow,
) -> ReconciliationResult:
    """Run one POS poll cycle: import new vouchers, then apply redemptions."""

    stats = VoucherSyncStats()
    try:
        config = sync_config or get_sync_config()
        if lookback is not None:
            config = replace(config, lookback=lookback)
        window = compute_sync_window(config.lookback, clock=clock)
        reconciler = VoucherReconciler(
            store.unit_of_work,
            pos or ProHandelClient(),
            storefront or ShopifyClient(),
            currency=config.currency,
            clock=clock,
        )
        log.info(
            "Starting voucher sync: since=%s until=%s",
            window.since.isoformat(),
            window.until.isoformat(),
        )
        reconciler.run(window, stats=stats)
    except Exception as exc:
        log.exception("Voucher sync aborted")
        return ReconciliationResult.failed(exc, counts=_counts(stats))
    return ReconciliationResult.from_stats(stats)


def reconcile_order_vouchers(
    order: StorefrontOrder | Mapping[str, Any],
    *,
    store: IdentityStore,
    pos: PosGateway | None = None,
    storefront: StorefrontGateway | None = None,
) -> ReconciliationResult:
    """Apply the gift-card purchases and payments of one paid order.

    Without a POS gateway nothing is mirrored to the POS; without a storefront
    gateway purchased vouchers get their gift card on a later POS cycle.
    """

    try:
        parsed = _as_order(order)
        stats = OrderVoucherReconciler(
            store.unit_of_work, pos=pos, storefront=storefront
        ).reconcile(parsed)
    except Exception as exc:
        log.exception("Order voucher reconciliation failed")
        return ReconciliationResult.failed(exc)
    return ReconciliationResult.from_stats(stats)


def handle_webhook(
    delivery: WebhookDelivery,
    *,
    store: IdentityStore,
    pos: PosGateway | None = None,
    storefront: StorefrontGateway | None = None,
    sync_config: SyncConfig | None = None,
) -> ReconciliationResult:
    """Dispatch one storefront webhook delivery to its reconciler."""

    try:
        config = sync_config or get_sync_config()
        dispatcher = WebhookDispatcher(
            customers=_customer_reconciler(store, config),
            orders=OrderVoucherReconciler(store.unit_of_work, pos=pos, storefront=storefront),
            translate_customer=parse_customer,
            translate_order=parse_order,
        )
        return dispatcher.dispatch(delivery)
    except Exception as exc:
        log.exception("Webhook %s failed", delivery.topic)
        return ReconciliationResult.failed(exc)


def summarize_store(*, store: IdentityStore) -> StoreSummary:
    """Count synced and pending storefront customers and active vouchers."""

    with store.unit_of_work() as uow:
        customers = uow.repositories.customers
        vouchers = uow.repositories.vouchers
        return StoreSummary(
            synced_customers=customers.count_by_sync_status(
                IntegrationTarget.SHOPIFY, SyncStatus.SYNCED
            ),
            pending_customers=customers.count_by_sync_status(
                IntegrationTarget.SHOPIFY, SyncStatus.PENDING
            ),
            total_vouchers=vouchers.count(),
            active_vouchers=vouchers.count(VoucherStatus.ACTIVE),
        )


def _counts(stats: CustomerBatchStats | VoucherSyncStats) -> dict[str, int]:
    return dict(ReconciliationResult.from_stats(stats).counts)
