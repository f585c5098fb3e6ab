from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from storelink.domain.model import (
    ApplicationSource,
    VoucherOrigin,
    VoucherRecord,
    VoucherStatus,
)
from storelink.domain.reconciliation import (
    OrderVoucherReconciler,
    application_reference,
    purchase_code,
)
from tests.helpers.records import NOW, fixed_clock, gift_card_payment, make_order, purchase

if TYPE_CHECKING:
    from storelink.adapters.sqlalchemy import IdentityStore
    from tests.helpers.gateways import FakePos, FakeStorefront


def _reconciler(
    store: IdentityStore,
    pos: FakePos | None = None,
    storefront: FakeStorefront | None = None,
) -> OrderVoucherReconciler:
    return OrderVoucherReconciler(
        store.unit_of_work, pos=pos, storefront=storefront, clock=fixed_clock
    )


def _add_voucher(
    store: IdentityStore,
    code: str = "GIFT-50",
    value: str = "50.00",
    *,
    pos_uuid: str | None = None,
    gift_card_id: str | None = None,
) -> None:
    with store.unit_of_work() as uow:
        uow.repositories.vouchers.add(
            VoucherRecord(
                storefront_code=code,
                storefront_gift_card_id=gift_card_id,
                pos_uuid=pos_uuid,
                value=Decimal(value),
                initial_value=Decimal(value),
                origin=VoucherOrigin.PROHANDEL_IMPORT,
            )
        )
        uow.commit()


def _voucher(store: IdentityStore, code: str = "GIFT-50") -> VoucherRecord:
    with store.unit_of_work() as uow:
        voucher = uow.repositories.vouchers.find_by_keys(storefront_code=code)
    assert voucher is not None
    return voucher


def test_purchase_code_is_stable_and_unit_specific() -> None:
    first = purchase_code("5001", "li-1", 0)

    assert first == purchase_code("5001", "li-1", 0)
    assert first.startswith("SL-")
    assert len(first) == len("SL-") + 12
    assert first == first.upper()
    assert first != purchase_code("5001", "li-1", 1)
    assert first != purchase_code("5002", "li-1", 0)


def test_purchased_gift_card_creates_voucher_with_buyer_snapshot(store: IdentityStore) -> None:
    stats = _reconciler(store).reconcile(make_order("5001", purchases=[purchase("li-1", "25.00")]))

    assert stats.purchases == 1
    assert stats.vouchers_created == 1
    voucher = _voucher(store, purchase_code("5001", "li-1", 0))
    assert voucher.status is VoucherStatus.ACTIVE
    assert voucher.origin is VoucherOrigin.SHOPIFY_ORDER
    assert voucher.initial_value == Decimal("25.00")
    assert voucher.storefront_order_id == "5001"
    assert voucher.issued_at == NOW
    assert voucher.customer.email == "a@b.com"
    assert voucher.customer.storefront_id == "77"
    assert voucher.customer.first_name == "Ada"


def test_redelivered_purchase_issues_no_second_voucher(store: IdentityStore) -> None:
    order = make_order(
        "5001", purchases=[purchase("li-1", "25.00", 0), purchase("li-1", "25.00", 1)]
    )
    reconciler = _reconciler(store)

    reconciler.reconcile(order)
    stats = reconciler.reconcile(order)

    assert stats.vouchers_created == 0
    assert stats.already_issued == 2
    with store.unit_of_work() as uow:
        assert uow.repositories.vouchers.count() == 2


def test_purchase_is_mirrored_into_pos(store: IdentityStore, pos: FakePos) -> None:
    order = make_order("5001", purchases=[purchase("li-1", "25.00", 0), purchase("li-2", "10.00")])

    stats = _reconciler(store, pos).reconcile(order)

    assert stats.pos_mirrored == 2
    assert pos.authentications == 1
    code = purchase_code("5001", "li-1", 0)
    assert pos.created[0] == (code, Decimal("25.00"), "Shopify order 5001")
    voucher = _voucher(store, code)
    assert voucher.pos_uuid == "pos-9001"
    assert voucher.pos_number == 9001


def test_failed_pos_mirror_is_retried_on_redelivery(store: IdentityStore, pos: FakePos) -> None:
    order = make_order("5001", purchases=[purchase("li-1", "25.00")])
    code = purchase_code("5001", "li-1", 0)
    pos.fail_create = True

    stats = _reconciler(store, pos).reconcile(order)

    assert stats.vouchers_created == 1
    assert stats.pos_mirror_failures == 1
    assert stats.errors == 0
    assert _voucher(store, code).pos_uuid is None

    pos.fail_create = False
    retry = _reconciler(store, pos).reconcile(order)

    assert retry.already_issued == 1
    assert retry.pos_mirrored == 1
    assert _voucher(store, code).pos_uuid == "pos-9001"


def test_purchased_voucher_gets_gift_card_usable_in_later_order(
    store: IdentityStore, storefront: FakeStorefront
) -> None:
    code = purchase_code("5001", "li-1", 0)

    stats = _reconciler(store, storefront=storefront).reconcile(
        make_order("5001", purchases=[purchase("li-1", "25.00")])
    )

    assert stats.gift_cards_created == 1
    assert storefront.created[code] == (Decimal("25.00"), "Shopify order 5001")
    assert _voucher(store, code).storefront_gift_card_id == f"gc-{code}"

    payment = gift_card_payment(code, "10.00", gift_card_id=f"gc-{code}")
    later = _reconciler(store, storefront=storefront).reconcile(
        make_order("6001", redemptions=[payment])
    )

    assert later.redemptions_applied == 1
    voucher = _voucher(store, code)
    assert voucher.status is VoucherStatus.PARTIAL
    assert voucher.balance == Decimal("15.00")


def test_failed_gift_card_creation_is_retried_on_redelivery(
    store: IdentityStore, storefront: FakeStorefront
) -> None:
    order = make_order("5001", purchases=[purchase("li-1", "25.00")])
    code = purchase_code("5001", "li-1", 0)
    storefront.fail_create = True

    stats = _reconciler(store, storefront=storefront).reconcile(order)

    assert stats.vouchers_created == 1
    assert stats.gift_card_failures == 1
    assert stats.errors == 0
    assert _voucher(store, code).storefront_gift_card_id is None

    storefront.fail_create = False
    retry = _reconciler(store, storefront=storefront).reconcile(order)

    assert retry.already_issued == 1
    assert retry.gift_cards_created == 1
    assert _voucher(store, code).storefront_gift_card_id == f"gc-{code}"


def test_partial_payment_then_replay_is_applied_once(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00")
    order = make_order("5001", redemptions=[gift_card_payment("GIFT-50", "20.00")])
    reconciler = _reconciler(store)

    first = reconciler.reconcile(order)
    voucher = _voucher(store)
    assert first.redemptions_applied == 1
    assert voucher.status is VoucherStatus.PARTIAL
    assert voucher.redeemed_amount == Decimal("20.00")
    assert voucher.balance == Decimal("30.00")

    replay = reconciler.reconcile(order)

    assert replay.redemptions_applied == 0
    assert replay.duplicates == 1
    assert _voucher(store).redeemed_amount == Decimal("20.00")
    with store.unit_of_work() as uow:
        assert uow.repositories.applications.exists(
            voucher_id=voucher.id,
            source=ApplicationSource.SHOPIFY_ORDER,
            reference=application_reference("5001", "t1"),
        )


def test_payments_consuming_balance_redeem_voucher(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00")
    reconciler = _reconciler(store)

    reconciler.reconcile(make_order("5001", redemptions=[gift_card_payment("GIFT-50", "20.00")]))
    reconciler.reconcile(make_order("5002", redemptions=[gift_card_payment("GIFT-50", "30.00")]))

    voucher = _voucher(store)
    assert voucher.status is VoucherStatus.REDEEMED
    assert voucher.redeemed_amount == Decimal("50.00")
    assert voucher.redeemed_at == NOW


def test_overpayment_is_clamped_to_initial_value(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00")

    stats = _reconciler(store).reconcile(
        make_order("5001", redemptions=[gift_card_payment("GIFT-50", "80.00")])
    )

    assert stats.clamped == 1
    assert stats.redemptions_applied == 1
    assert stats.errors == 0
    voucher = _voucher(store)
    assert voucher.status is VoucherStatus.REDEEMED
    assert voucher.redeemed_amount == voucher.initial_value


def test_payment_on_redeemed_voucher_is_rejected(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00")
    reconciler = _reconciler(store)
    reconciler.reconcile(make_order("5001", redemptions=[gift_card_payment("GIFT-50", "50.00")]))

    stats = reconciler.reconcile(
        make_order("5002", redemptions=[gift_card_payment("GIFT-50", "5.00")])
    )

    assert stats.rejected == 1
    voucher = _voucher(store)
    assert voucher.status is VoucherStatus.REDEEMED
    assert voucher.redeemed_amount == Decimal("50.00")


def test_redeemed_amount_never_exceeds_initial_value(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00")
    reconciler = _reconciler(store)
    amounts = ["15.00", "15.00", "15.00", "15.00", "15.00"]

    for index, amount in enumerate(amounts):
        order = make_order(
            f"60{index}",
            redemptions=[gift_card_payment("GIFT-50", amount, transaction_id=f"t{index}")],
        )
        reconciler.reconcile(order)
        reconciler.reconcile(order)
        voucher = _voucher(store)
        assert voucher.redeemed_amount <= voucher.initial_value

    assert _voucher(store).status is VoucherStatus.REDEEMED


def test_payment_resolved_by_gift_card_id(store: IdentityStore) -> None:
    _add_voucher(store, "GIFT-50", "50.00", gift_card_id="gc-7")
    payment = gift_card_payment("", "10.00", gift_card_id="gc-7")

    stats = _reconciler(store).reconcile(make_order("5001", redemptions=[payment]))

    assert stats.redemptions_applied == 1
    assert _voucher(store).redeemed_amount == Decimal("10.00")


def test_payment_for_unknown_gift_card_is_counted(store: IdentityStore) -> None:
    stats = _reconciler(store).reconcile(
        make_order("5001", redemptions=[gift_card_payment("NOPE", "10.00")])
    )

    assert stats.unmatched == 1
    assert stats.redemptions_applied == 0


def test_applied_payment_is_booked_in_pos(store: IdentityStore, pos: FakePos) -> None:
    _add_voucher(store, "GIFT-50", "50.00", pos_uuid="uuid-1")
    order = make_order("5001", redemptions=[gift_card_payment("GIFT-50", "20.00")])

    _reconciler(store, pos).reconcile(order)
    replay = _reconciler(store, pos).reconcile(order)

    assert pos.booked == [("uuid-1", Decimal("20.00"), "5001:t1")]
    assert replay.pos_mirrored == 0


def test_pos_booking_failure_keeps_store_update(store: IdentityStore, pos: FakePos) -> None:
    _add_voucher(store, "GIFT-50", "50.00", pos_uuid="uuid-1")
    pos.fail_book = True

    stats = _reconciler(store, pos).reconcile(
        make_order("5001", redemptions=[gift_card_payment("GIFT-50", "20.00")])
    )

    assert stats.pos_mirror_failures == 1
    assert stats.redemptions_applied == 1
    assert _voucher(store).redeemed_amount == Decimal("20.00")
