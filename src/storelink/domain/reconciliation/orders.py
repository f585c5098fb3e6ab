"""Storefront order to store and POS voucher reconciliation.

A paid order can carry gift-card purchases (new vouchers) and gift-card
payments (redemptions of existing vouchers). Both are applied idempotently:
purchased vouchers get a code derived from ``(order, line item, unit)`` and
every applied payment leaves a ledger entry keyed by ``order:transaction``.
Creating the storefront gift card and mirroring into the POS are best-effort and
never roll back the store.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from storelink.domain.errors import ConstraintViolation, TransientExternalFailure
from storelink.domain.model import (
    ApplicationSource,
    VoucherApplication,
    VoucherOrigin,
    VoucherRecord,
    VoucherStatus,
    ZERO,
    utcnow,
)

from .contracts import OrderVoucherStats

if TYPE_CHECKING:
    from decimal import Decimal

    from storelink.domain.ports import (
        GiftCardRedemption,
        PosGateway,
        StorefrontGateway,
        StorefrontOrder,
        UnitOfWorkFactory,
        VoucherApplicationRepository,
        VoucherPurchase,
        VoucherRepository,
    )
    from storelink.domain.time_windows import Clock


log = getLogger(__name__)

PURCHASE_CODE_PREFIX = "SL-"


def purchase_code(order_id: str, line_item_id: str, unit_index: int) -> str:
    """Stable voucher code for one purchased unit; redelivery yields the same code."""

    digest = hashlib.sha1(f"{order_id}:{line_item_id}:{unit_index}".encode()).hexdigest()
    return PURCHASE_CODE_PREFIX + digest[:12].upper()


def order_gift_card_note(order_id: str) -> str:
    return f"Shopify order {order_id}"


def application_reference(order_id: str, transaction_id: str) -> str:
    return f"{order_id}:{transaction_id}"


@dataclass(slots=True)
class OrderVoucherReconciler:
    uow_factory: UnitOfWorkFactory
    pos: PosGateway | None = None
    storefront: StorefrontGateway | None = None
    clock: Clock = utcnow
    _pos_session: bool = field(default=False, init=False, repr=False)

    def reconcile(self, order: StorefrontOrder) -> OrderVoucherStats:
        stats = OrderVoucherStats()
        self._pos_session = False

        for purchase in order.voucher_purchases:
            stats.purchases += 1
            try:
                self._issue(order, purchase, stats)
            except Exception:  # noqa: BLE001 - keep processing the order
                stats.errors += 1
                log.exception(
                    "Failed to issue voucher for order %s line %s",
                    order.order_id,
                    purchase.line_item_id,
                )

        for redemption in order.gift_card_redemptions:
            stats.redemptions += 1
            try:
                self._redeem(order, redemption, stats)
            except Exception:  # noqa: BLE001 - keep processing the order
                stats.errors += 1
                log.exception(
                    "Failed to apply gift card payment %s of order %s",
                    redemption.transaction_id,
                    order.order_id,
                )

        log.info(
            "Order %s done: purchases=%s created=%s gift_cards=%s redemptions=%s applied=%s "
            "duplicates=%s clamped=%s errors=%s",
            order.order_id,
            stats.purchases,
            stats.vouchers_created,
            stats.gift_cards_created,
            stats.redemptions,
            stats.redemptions_applied,
            stats.duplicates,
            stats.clamped,
            stats.errors,
        )
        return stats

    # --- purchases ----------------------------------------------------

    def _issue(
        self, order: StorefrontOrder, purchase: VoucherPurchase, stats: OrderVoucherStats
    ) -> None:
        code = purchase_code(order.order_id, purchase.line_item_id, purchase.unit_index)
        with self.uow_factory() as uow:
            vouchers = uow.repositories.vouchers
            voucher = vouchers.find_by_keys(storefront_code=code)
            if voucher is None:
                voucher = VoucherRecord(
                    storefront_code=code,
                    storefront_order_id=order.order_id,
                    value=purchase.value,
                    initial_value=purchase.value,
                    currency=order.currency,
                    status=VoucherStatus.ACTIVE,
                    origin=VoucherOrigin.SHOPIFY_ORDER,
                    customer=order.customer,
                    issued_at=order.paid_at or self.clock(),
                )
                vouchers.add(voucher)
                try:
                    uow.commit()
                except ConstraintViolation:
                    stats.already_issued += 1
                    log.info("Voucher %s was issued concurrently", code)
                    return
                stats.vouchers_created += 1
                log.info("Issued voucher %s for order %s", code, order.order_id)
            else:
                stats.already_issued += 1
            needs_gift_card = voucher.storefront_gift_card_id is None and not voucher.is_terminal
            needs_mirror = voucher.pos_uuid is None and not voucher.is_terminal
            value = voucher.initial_value
            balance = voucher.balance

        if needs_gift_card:
            self._bind_gift_card(code, balance, order, stats)
        if needs_mirror:
            self._mirror_voucher(code, value, order, stats)

    def _bind_gift_card(
        self, code: str, value: Decimal, order: StorefrontOrder, stats: OrderVoucherStats
    ) -> None:
        if self.storefront is None:
            return
        try:
            gift_card_id = self.storefront.create_gift_card(
                code, value, order_gift_card_note(order.order_id)
            )
        except TransientExternalFailure as exc:
            stats.gift_card_failures += 1
            log.warning("Gift card for voucher %s not created: %s", code, exc)
            return

        with self.uow_factory() as uow:
            voucher = uow.repositories.vouchers.find_by_keys(storefront_code=code)
            if voucher is None:
                log.error("Voucher %s disappeared before its gift card could be bound", code)
                stats.errors += 1
                return
            voucher.bind_storefront_gift_card(gift_card_id)
            uow.commit()
        stats.gift_cards_created += 1

    def _mirror_voucher(
        self, code: str, value: Decimal, order: StorefrontOrder, stats: OrderVoucherStats
    ) -> None:
        if self.pos is None:
            return
        try:
            self._ensure_pos_session()
            ref = self.pos.create_voucher(code, value, order_gift_card_note(order.order_id))
        except TransientExternalFailure as exc:
            stats.pos_mirror_failures += 1
            log.warning("Voucher %s not created in POS: %s", code, exc)
            return

        with self.uow_factory() as uow:
            voucher = uow.repositories.vouchers.find_by_keys(storefront_code=code)
            if voucher is None:
                log.error("Voucher %s disappeared before its POS ids could be bound", code)
                stats.errors += 1
                return
            voucher.bind_pos(pos_uuid=ref.pos_uuid, pos_number=ref.number)
            uow.commit()
        stats.pos_mirrored += 1

    # --- redemptions --------------------------------------------------

    def _redeem(
        self, order: StorefrontOrder, redemption: GiftCardRedemption, stats: OrderVoucherStats
    ) -> None:
        reference = application_reference(order.order_id, redemption.transaction_id)
        with self.uow_factory() as uow:
            voucher = _find_redeemed_voucher(uow.repositories.vouchers, redemption)
            if voucher is None:
                stats.unmatched += 1
                log.warning(
                    "Gift card payment %s matches no known voucher (code %s, id %s)",
                    reference,
                    redemption.gift_card_code,
                    redemption.gift_card_id,
                )
                return

            if _already_applied(uow.repositories.applications, voucher, reference):
                stats.duplicates += 1
                log.info(
                    "Gift card payment %s already applied to %s", reference, voucher.storefront_code
                )
                return

            if voucher.is_terminal:
                stats.rejected += 1
                log.warning(
                    "Gift card payment %s on voucher %s which is already %s",
                    reference,
                    voucher.storefront_code,
                    voucher.status,
                )
                return

            outcome = voucher.apply_redemption(
                redemption.amount, at=redemption.processed_at or self.clock()
            )
            if outcome.clamped:
                stats.clamped += 1
                log.error(
                    "Payment %s of %s exceeds the balance of voucher %s; applied %s",
                    reference,
                    outcome.requested,
                    voucher.storefront_code,
                    outcome.applied,
                )
            uow.repositories.applications.add(
                VoucherApplication(
                    voucher_id=voucher.id,
                    source=ApplicationSource.SHOPIFY_ORDER,
                    reference=reference,
                    amount=outcome.applied,
                    applied_at=redemption.processed_at or self.clock(),
                )
            )
            try:
                uow.commit()
            except ConstraintViolation:
                stats.duplicates += 1
                log.info("Gift card payment %s was applied concurrently", reference)
                return
            stats.redemptions_applied += 1
            pos_uuid = voucher.pos_uuid
            applied = outcome.applied

        if pos_uuid is not None and applied > ZERO:
            self._mirror_redemption(pos_uuid, applied, reference, stats)

    def _mirror_redemption(
        self, pos_uuid: str, amount: Decimal, reference: str, stats: OrderVoucherStats
    ) -> None:
        if self.pos is None:
            return
        try:
            self._ensure_pos_session()
            self.pos.book_redemption(pos_uuid, amount, reference)
        except TransientExternalFailure as exc:
            stats.pos_mirror_failures += 1
            log.warning("Redemption %s not booked in POS: %s", reference, exc)
            return
        stats.pos_mirrored += 1

    def _ensure_pos_session(self) -> None:
        if self.pos is None or self._pos_session:
            return
        self.pos.authenticate()
        self._pos_session = True


def _find_redeemed_voucher(
    vouchers: VoucherRepository, redemption: GiftCardRedemption
) -> VoucherRecord | None:
    voucher = None
    if redemption.gift_card_code:
        voucher = vouchers.find_by_keys(storefront_code=redemption.gift_card_code.strip())
    if voucher is None and redemption.gift_card_id:
        voucher = vouchers.get_by_storefront_gift_card_id(redemption.gift_card_id)
    return voucher


def _already_applied(
    applications: VoucherApplicationRepository, voucher: VoucherRecord, reference: str
) -> bool:
    return applications.exists(
        voucher_id=voucher.id, source=ApplicationSource.SHOPIFY_ORDER, reference=reference
    )
