"""Value primitives."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Final

CENT: Final[Decimal] = Decimal("0.01")
ZERO: Final[Decimal] = Decimal("0.00")


def to_money(value: object) -> Decimal:
    """Coerce ints, floats, strings or decimals into a cent-quantized ``Decimal``."""

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, int | str):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid monetary amount: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported monetary type: {type(value).__name__}")
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_email(value: str | None) -> str | None:
    """Case-fold and trim an email; blank values become ``None``."""

    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized or None


@dataclass(frozen=True, slots=True)
class CustomerSnapshot:
    """Point-in-time copy of the buyer attached to a purchased voucher."""

    storefront_id: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def __composite_values__(self) -> tuple[str | None, str | None, str | None, str | None]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.storefront_id, self.email, self.first_name, self.last_name)
