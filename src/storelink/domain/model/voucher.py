"""Gift voucher records and their monotone status machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from storelink.domain.errors import DataIntegrityAnomaly, InvalidTransition
from storelink.domain.model.entity import Entity, utcnow
from storelink.domain.model.enums import ApplicationSource, VoucherOrigin, VoucherStatus
from storelink.domain.model.primitives import ZERO, CustomerSnapshot, to_money

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal
    from uuid import UUID

_STATUS_RANK: Final[dict[VoucherStatus, int]] = {
    VoucherStatus.ACTIVE: 0,
    VoucherStatus.PARTIAL: 1,
    VoucherStatus.REDEEMED: 2,
    VoucherStatus.CANCELLED: 2,
    VoucherStatus.EXPIRED: 2,
}

TERMINAL_STATUSES: Final[frozenset[VoucherStatus]] = frozenset(
    {VoucherStatus.REDEEMED, VoucherStatus.CANCELLED, VoucherStatus.EXPIRED}
)


def can_transition(current: VoucherStatus, new: VoucherStatus) -> bool:
    """Return whether ``current -> new`` moves forward.

    ``partial -> partial`` is allowed (a further partial redemption); every
    other same-rank or lower-rank move is a regression.
    """

    if current == VoucherStatus.PARTIAL and new == VoucherStatus.PARTIAL:
        return True
    return _STATUS_RANK[new] > _STATUS_RANK[current]


@dataclass(frozen=True, slots=True)
class RedemptionOutcome:
    requested: Decimal
    applied: Decimal
    status: VoucherStatus

    @property
    def clamped(self) -> bool:
        return self.applied < self.requested


@dataclass(eq=False, kw_only=True)
class VoucherRecord(Entity):
    """One gift voucher, known to the storefront, the POS, or both.

    ``initial_value`` and ``value`` never change after creation; the remaining
    balance is derived from ``redeemed_amount``.
    """

    storefront_code: str
    storefront_gift_card_id: str | None = None
    storefront_order_id: str | None = None
    pos_number: int | None = None
    pos_uuid: str | None = None

    value: Decimal
    initial_value: Decimal
    currency: str = "EUR"

    status: VoucherStatus = VoucherStatus.ACTIVE
    origin: VoucherOrigin = VoucherOrigin.PROHANDEL_IMPORT
    customer: CustomerSnapshot = field(default_factory=CustomerSnapshot)

    issued_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None
    redeemed_at: datetime | None = None
    redeemed_amount: Decimal = ZERO

    def __post_init__(self) -> None:
        if not self.storefront_code or not self.storefront_code.strip():
            raise ValueError("VoucherRecord requires a storefront code")
        self.storefront_code = self.storefront_code.strip()
        self.value = to_money(self.value)
        self.initial_value = to_money(self.initial_value)
        self.redeemed_amount = to_money(self.redeemed_amount)
        if self.initial_value < ZERO:
            raise ValueError("Voucher value must not be negative")
        if self.redeemed_amount > self.initial_value:
            raise DataIntegrityAnomaly(
                f"Voucher {self.storefront_code} redeemed {self.redeemed_amount} "
                f"of {self.initial_value}"
            )

    @property
    def balance(self) -> Decimal:
        return self.initial_value - self.redeemed_amount

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(self, status: VoucherStatus, *, at: datetime | None = None) -> None:
        if not can_transition(self.status, status):
            raise InvalidTransition(
                f"Voucher {self.storefront_code} cannot move from {self.status} to {status}"
            )
        self.status = status
        if status == VoucherStatus.REDEEMED and self.redeemed_at is None:
            self.redeemed_at = at or utcnow()

    def mark_redeemed(self, *, at: datetime | None = None) -> None:
        """Full redemption confirmed by the POS; consumes the remaining balance."""

        self.transition_to(VoucherStatus.REDEEMED, at=at)
        self.redeemed_amount = self.initial_value

    def apply_redemption(self, amount: Decimal, *, at: datetime | None = None) -> RedemptionOutcome:
        """Consume ``amount`` from the balance, clamping at the initial value.

        Raises ``InvalidTransition`` if the voucher is already terminal.
        """

        requested = to_money(amount)
        if requested <= ZERO:
            raise ValueError(f"Redemption amount must be positive, got {requested}")
        if self.is_terminal:
            raise InvalidTransition(
                f"Voucher {self.storefront_code} is {self.status}; cannot redeem {requested}"
            )
        applied = min(requested, self.balance)
        new_status = (
            VoucherStatus.REDEEMED
            if self.redeemed_amount + applied >= self.initial_value
            else VoucherStatus.PARTIAL
        )
        self.transition_to(new_status, at=at)
        self.redeemed_amount += applied
        return RedemptionOutcome(requested=requested, applied=applied, status=new_status)

    def bind_storefront_gift_card(self, gift_card_id: str) -> None:
        self.storefront_gift_card_id = gift_card_id

    def bind_pos(self, *, pos_uuid: str | None, pos_number: int | None) -> None:
        if pos_uuid is not None:
            self.pos_uuid = pos_uuid
        if pos_number is not None:
            self.pos_number = pos_number


@dataclass(eq=False, kw_only=True)
class VoucherApplication(Entity):
    """Ledger entry keyed by ``(voucher_id, source, reference)``.

    One entry exists per applied order transaction; its presence is what makes a
    redelivered order a no-op.
    """

    voucher_id: UUID
    source: ApplicationSource
    reference: str
    amount: Decimal
    applied_at: datetime = field(default_factory=utcnow)
