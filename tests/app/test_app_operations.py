from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

import pytest  # noqa: TC002

from storelink import app as app_module
from storelink.app import (
    handle_webhook,
    reconcile_customer_batch,
    reconcile_customer_event,
    reconcile_order_vouchers,
    reconcile_voucher_issuance_and_redemption,
    summarize_store,
)
from storelink.config import SyncConfig
from storelink.domain.ports import CustomerPage
from storelink.domain.reconciliation import purchase_code
from storelink.domain.webhooks import WebhookDelivery
from tests.helpers.records import (
    NOW,
    fixed_clock,
    make_customer,
    make_order,
    make_pos_redemption,
    make_pos_voucher,
    purchase,
)

if TYPE_CHECKING:
    from storelink.adapters.sqlalchemy import IdentityStore
    from tests.helpers.gateways import FakePos, FakeStorefront


def test_customer_event_from_raw_payload(store: IdentityStore, sync_config: SyncConfig) -> None:
    payload = {"id": 77, "email": "Ada@Example.com", "first_name": "Ada"}

    created = reconcile_customer_event(payload, store=store, sync_config=sync_config)
    repeated = reconcile_customer_event(payload, store=store, sync_config=sync_config)

    assert created.success
    assert created.counts["created"] == 1
    assert repeated.counts["updated"] == 1
    assert summarize_store(store=store).synced_customers == 1


def test_customer_event_failure_is_reported_not_raised(
    store: IdentityStore, sync_config: SyncConfig
) -> None:
    result = reconcile_customer_event({"email": "a@b.com"}, store=store, sync_config=sync_config)

    assert not result.success
    assert result.error
    assert result.to_dict()["success"] is False


def test_customer_batch_reports_counts(
    store: IdentityStore, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    storefront.pages = [
        [make_customer("a@b.com", "1"), make_customer(None, "2")],
        [make_customer("c@d.com", "3")],
    ]

    result = reconcile_customer_batch(store=store, storefront=storefront, sync_config=sync_config)

    assert result.success
    assert result.counts["pages"] == 2
    assert result.counts["processed"] == 3
    assert result.counts["created"] == 2
    assert result.counts["skipped"] == 1


def test_customer_batch_page_failure_keeps_partial_counts(
    store: IdentityStore, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    storefront.pages = [[make_customer("a@b.com", "1")], [make_customer("c@d.com", "3")]]
    storefront.fail_on_page = 1

    result = reconcile_customer_batch(store=store, storefront=storefront, sync_config=sync_config)

    assert not result.success
    assert "page 1 unavailable" in (result.error or "")
    assert result.counts["pages"] == 1
    assert result.counts["created"] == 1
    assert summarize_store(store=store).synced_customers == 1


def test_customer_batch_respects_max_pages(
    store: IdentityStore, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    storefront.pages = [[make_customer("a@b.com", "1")], [make_customer("c@d.com", "3")]]

    result = reconcile_customer_batch(
        store=store, storefront=storefront, sync_config=sync_config, max_pages=1
    )

    assert result.counts["pages"] == 1
    assert storefront.page_requests == [None]


def test_customer_batch_default_client_uses_configured_page_size(
    store: IdentityStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    class _Client:
        def __init__(self, *, config: Any) -> None:
            captured["config"] = config

        def list_customers(self, page_token: str | None = None) -> CustomerPage:
            return CustomerPage(records=[], next_page_token=None)

    monkeypatch.setattr(app_module, "get_shopify_config", lambda **kwargs: kwargs)
    monkeypatch.setattr(app_module, "ShopifyClient", _Client)

    result = reconcile_customer_batch(store=store, sync_config=SyncConfig(customer_page_size=50))

    assert result.success
    assert captured["config"] == {"page_size": 50}


def test_voucher_cycle_imports_and_redeems(
    store: IdentityStore, pos: FakePos, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    pos.vouchers = [make_pos_voucher(1001, "uuid-1", "50.00")]

    first = reconcile_voucher_issuance_and_redemption(
        store=store, pos=pos, storefront=storefront, sync_config=sync_config, clock=fixed_clock
    )
    pos.redemptions = [make_pos_redemption("uuid-1")]
    second = reconcile_voucher_issuance_and_redemption(
        store=store, pos=pos, storefront=storefront, sync_config=sync_config, clock=fixed_clock
    )

    assert first.success
    assert first.counts["created"] == 1
    assert first.counts["gift_cards_created"] == 1
    assert second.counts["already_known"] == 1
    assert second.counts["redeemed"] == 1
    assert storefront.disabled == ["gc-1001"]
    assert pos.queried_since == [NOW - sync_config.lookback] * 2

    summary = summarize_store(store=store)
    assert summary.total_vouchers == 1
    assert summary.active_vouchers == 0


def test_voucher_cycle_uses_explicit_lookback(
    store: IdentityStore, pos: FakePos, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    reconcile_voucher_issuance_and_redemption(
        store=store,
        pos=pos,
        storefront=storefront,
        sync_config=sync_config,
        lookback=timedelta(hours=6),
        clock=fixed_clock,
    )

    assert pos.queried_since == [NOW - timedelta(hours=6)]


def test_voucher_cycle_rejects_lookback_shorter_than_interval_plus_margin(
    store: IdentityStore, pos: FakePos, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    result = reconcile_voucher_issuance_and_redemption(
        store=store,
        pos=pos,
        storefront=storefront,
        sync_config=sync_config,
        lookback=timedelta(minutes=1),
        clock=fixed_clock,
    )

    assert not result.success
    assert "Lookback" in (result.error or "")
    assert pos.queried_since == []
    assert pos.authentications == 0


def test_voucher_cycle_auth_failure_is_reported(
    store: IdentityStore, pos: FakePos, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    pos.fail_auth = True

    result = reconcile_voucher_issuance_and_redemption(
        store=store, pos=pos, storefront=storefront, sync_config=sync_config, clock=fixed_clock
    )

    assert not result.success
    assert "token exchange refused" in (result.error or "")
    assert result.counts["fetched"] == 0
    assert summarize_store(store=store).total_vouchers == 0


def test_order_vouchers_without_pos_only_update_the_store(store: IdentityStore) -> None:
    order = make_order(purchases=[purchase("li-1", "25.00", 0), purchase("li-1", "25.00", 1)])

    result = reconcile_order_vouchers(order, store=store)

    assert result.success
    assert result.counts["vouchers_created"] == 2
    assert result.counts["pos_mirrored"] == 0
    assert summarize_store(store=store).active_vouchers == 2


def test_order_vouchers_with_storefront_create_gift_cards(
    store: IdentityStore, storefront: FakeStorefront
) -> None:
    order = make_order("5001", purchases=[purchase("li-1", "25.00")])
    code = purchase_code("5001", "li-1", 0)

    result = reconcile_order_vouchers(order, store=store, storefront=storefront)

    assert result.success
    assert result.counts["gift_cards_created"] == 1
    assert code in storefront.created


def test_webhook_order_is_mirrored_to_pos_and_storefront(
    store: IdentityStore, pos: FakePos, storefront: FakeStorefront, sync_config: SyncConfig
) -> None:
    delivery = WebhookDelivery(
        topic="orders/paid",
        shop="shop.example",
        payload={
            "id": 5001,
            "currency": "EUR",
            "email": "a@b.com",
            "line_items": [{"id": 11, "quantity": 1, "price": "25.00", "gift_card": True}],
            "transactions": [],
        },
    )

    result = handle_webhook(
        delivery, store=store, pos=pos, storefront=storefront, sync_config=sync_config
    )
    replay = handle_webhook(
        delivery, store=store, pos=pos, storefront=storefront, sync_config=sync_config
    )

    assert result.counts["vouchers_created"] == 1
    assert result.counts["pos_mirrored"] == 1
    assert result.counts["gift_cards_created"] == 1
    assert replay.counts["already_issued"] == 1
    assert len(pos.created) == 1
    assert len(storefront.created) == 1


def test_webhook_with_bad_payload_is_reported(
    store: IdentityStore, sync_config: SyncConfig
) -> None:
    delivery = WebhookDelivery(topic="orders/paid", payload={"line_items": "nope"})

    result = handle_webhook(delivery, store=store, sync_config=sync_config)

    assert not result.success


def test_summarize_empty_store(store: IdentityStore) -> None:
    assert summarize_store(store=store).to_dict() == {
        "synced_customers": 0,
        "pending_customers": 0,
        "total_vouchers": 0,
        "active_vouchers": 0,
    }
