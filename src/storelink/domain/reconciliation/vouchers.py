"""POS to storefront voucher reconciliation.

Each run authenticates against the POS, asks for vouchers and redemptions
changed inside the sync window and brings the store and the storefront in line:

- unknown POS vouchers become ``active`` records plus a storefront gift card
- known vouchers still without a gift card get one, whatever their origin
- POS redemptions mark the record ``redeemed`` and disable the gift card

The record is the source of truth; storefront calls are best-effort and a
failed one is retried when the POS reports the voucher again.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from storelink.domain.errors import ConstraintViolation, TransientExternalFailure
from storelink.domain.model import (
    ApplicationSource,
    VoucherOrigin,
    VoucherRecord,
    VoucherStatus,
    utcnow,
)

from .contracts import (
    ConflictEntityResolution,
    NewEntityResolution,
    VoucherSyncStats,
)
from .orders import order_gift_card_note
from .resolve import resolve_voucher

if TYPE_CHECKING:
    from decimal import Decimal
    from uuid import UUID

    from storelink.domain.ports import (
        PosGateway,
        PosRedemption,
        PosVoucher,
        StorefrontGateway,
        UnitOfWorkFactory,
    )
    from storelink.domain.time_windows import Clock, SyncWindow


log = getLogger(__name__)


def gift_card_note(pos_number: int) -> str:
    return f"ProHandel Import: {pos_number}"


def _gift_card_note_for(voucher: VoucherRecord, pos_number: int) -> str:
    if voucher.origin == VoucherOrigin.SHOPIFY_ORDER and voucher.storefront_order_id:
        return order_gift_card_note(voucher.storefront_order_id)
    return gift_card_note(pos_number)


@dataclass(slots=True)
class VoucherReconciler:
    uow_factory: UnitOfWorkFactory
    pos: PosGateway
    storefront: StorefrontGateway
    currency: str = "EUR"
    clock: Clock = utcnow

    def run(
        self, window: SyncWindow, *, stats: VoucherSyncStats | None = None
    ) -> VoucherSyncStats:
        """Reconcile issuance, then redemption, for ``window``.

        Authentication or window fetch failures propagate and abort the run;
        failures of single vouchers are counted and logged. Counts gathered
        before an abort remain in ``stats`` when the caller passed one.
        """

        stats = stats if stats is not None else VoucherSyncStats()
        self.pos.authenticate()
        log.info("Polling POS vouchers changed since %s", window.since.isoformat())

        changed = self.pos.list_vouchers_changed_since(window.since)
        stats.fetched = len(changed)
        for pos_voucher in changed:
            try:
                self._import_voucher(pos_voucher, stats)
            except Exception:  # noqa: BLE001 - keep processing the window
                stats.errors += 1
                log.exception("Failed to import POS voucher %s", pos_voucher.pos_uuid)

        redemptions = self.pos.list_redemptions_changed_since(window.since)
        stats.redemptions_fetched = len(redemptions)
        for redemption in redemptions:
            try:
                self._apply_redemption(redemption, stats)
            except Exception:  # noqa: BLE001 - keep processing the window
                stats.errors += 1
                log.exception("Failed to apply POS redemption for %s", redemption.pos_uuid)

        log.info(
            "Voucher run done: fetched=%s created=%s gift_cards=%s gift_card_failures=%s "
            "redeemed=%s already_redeemed=%s unmatched=%s errors=%s",
            stats.fetched,
            stats.created,
            stats.gift_cards_created,
            stats.gift_card_failures,
            stats.redeemed,
            stats.already_redeemed,
            stats.unmatched,
            stats.errors,
        )
        return stats

    # --- issuance -----------------------------------------------------

    def _import_voucher(self, pos_voucher: PosVoucher, stats: VoucherSyncStats) -> None:
        code = pos_voucher.storefront_code
        needs_gift_card = False
        with self.uow_factory() as uow:
            vouchers = uow.repositories.vouchers
            resolution = resolve_voucher(
                vouchers,
                pos_uuid=pos_voucher.pos_uuid,
                pos_number=pos_voucher.number,
                storefront_code=code,
            )
            if isinstance(resolution, ConflictEntityResolution):
                stats.errors += 1
                log.error(
                    "POS voucher %s (number %s) matches %s distinct records; skipping",
                    pos_voucher.pos_uuid,
                    pos_voucher.number,
                    len(resolution.candidates),
                )
                return

            if isinstance(resolution, NewEntityResolution):
                voucher = VoucherRecord(
                    storefront_code=code,
                    pos_uuid=pos_voucher.pos_uuid,
                    pos_number=pos_voucher.number,
                    value=pos_voucher.value,
                    initial_value=pos_voucher.value,
                    currency=self.currency,
                    status=VoucherStatus.ACTIVE,
                    origin=VoucherOrigin.PROHANDEL_IMPORT,
                    issued_at=pos_voucher.issued_at or self.clock(),
                    expires_at=pos_voucher.expires_at,
                )
                vouchers.add(voucher)
                try:
                    uow.commit()
                except ConstraintViolation:
                    stats.already_known += 1
                    log.info("POS voucher %s was imported concurrently", pos_voucher.pos_uuid)
                    return
                stats.created += 1
                log.info("Imported POS voucher %s as %s", pos_voucher.number, code)
                voucher_id = voucher.id
                needs_gift_card = True
                value = voucher.balance
                note = gift_card_note(pos_voucher.number)
            else:
                voucher = resolution.target
                voucher_id = voucher.id
                code = voucher.storefront_code
                if voucher.pos_uuid is None or voucher.pos_number is None:
                    voucher.bind_pos(
                        pos_uuid=voucher.pos_uuid or pos_voucher.pos_uuid,
                        pos_number=(
                            voucher.pos_number
                            if voucher.pos_number is not None
                            else pos_voucher.number
                        ),
                    )
                    uow.commit()
                    stats.linked += 1
                else:
                    stats.already_known += 1
                needs_gift_card = (
                    voucher.storefront_gift_card_id is None and not voucher.is_terminal
                )
                value = voucher.balance
                note = _gift_card_note_for(voucher, pos_voucher.number)

        if needs_gift_card:
            self._issue_gift_card(voucher_id, code, value, note, stats)

    def _issue_gift_card(
        self, voucher_id: UUID, code: str, value: Decimal, note: str, stats: VoucherSyncStats
    ) -> None:
        try:
            gift_card_id = self.storefront.create_gift_card(code, value, note)
        except TransientExternalFailure as exc:
            stats.gift_card_failures += 1
            log.warning("Gift card for voucher %s not created: %s", code, exc)
            return

        with self.uow_factory() as uow:
            voucher = uow.repositories.vouchers.find_by_keys(storefront_code=code)
            if voucher is None or voucher.id != voucher_id:
                log.error("Voucher %s disappeared before its gift card could be bound", code)
                stats.errors += 1
                return
            voucher.bind_storefront_gift_card(gift_card_id)
            uow.commit()
        stats.gift_cards_created += 1

    # --- redemption ---------------------------------------------------

    def _apply_redemption(self, redemption: PosRedemption, stats: VoucherSyncStats) -> None:
        gift_card_id: str | None = None
        with self.uow_factory() as uow:
            voucher = uow.repositories.vouchers.find_by_keys(pos_uuid=redemption.pos_uuid)
            if voucher is None:
                stats.unmatched += 1
                log.warning("POS redemption for unknown voucher %s", redemption.pos_uuid)
                return

            if redemption.reference and uow.repositories.applications.exists(
                voucher_id=voucher.id,
                source=ApplicationSource.SHOPIFY_ORDER,
                reference=redemption.reference,
            ):
                stats.echoes += 1
                log.debug("Redemption %s was booked from a storefront order", redemption.reference)
                return

            if voucher.status == VoucherStatus.REDEEMED:
                stats.already_redeemed += 1
                return
            if voucher.is_terminal:
                stats.rejected += 1
                log.warning(
                    "POS redeemed voucher %s which is already %s",
                    voucher.storefront_code,
                    voucher.status,
                )
                return

            voucher.mark_redeemed(at=redemption.redeemed_at or self.clock())
            uow.commit()
            gift_card_id = voucher.storefront_gift_card_id
            code = voucher.storefront_code

        stats.redeemed += 1
        log.info("Voucher %s redeemed in POS", code)
        if gift_card_id is None:
            return
        try:
            self.storefront.disable_gift_card(gift_card_id)
        except TransientExternalFailure as exc:
            stats.disable_failures += 1
            log.warning("Could not disable gift card %s for %s: %s", gift_card_id, code, exc)
