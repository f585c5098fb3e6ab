"""Public domain model surface."""

from __future__ import annotations

from storelink.domain.model.customer import (
    PROFILE_FIELDS,
    AuditEntry,
    CustomerRecord,
    IntegrationRecord,
)
from storelink.domain.model.entity import Entity, new_id, utcnow
from storelink.domain.model.enums import (
    ApplicationSource,
    CustomerSource,
    CustomerStatus,
    IntegrationTarget,
    SyncStatus,
    VerificationStatus,
    VoucherOrigin,
    VoucherStatus,
)
from storelink.domain.model.primitives import (
    CENT,
    ZERO,
    CustomerSnapshot,
    normalize_email,
    to_money,
)
from storelink.domain.model.voucher import (
    TERMINAL_STATUSES,
    RedemptionOutcome,
    VoucherApplication,
    VoucherRecord,
    can_transition,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # customers
    "PROFILE_FIELDS",
    "AuditEntry",
    "CustomerRecord",
    "IntegrationRecord",
    # vouchers
    "TERMINAL_STATUSES",
    "RedemptionOutcome",
    "VoucherApplication",
    "VoucherRecord",
    "can_transition",
    # enums
    "ApplicationSource",
    "CustomerSource",
    "CustomerStatus",
    "IntegrationTarget",
    "SyncStatus",
    "VerificationStatus",
    "VoucherOrigin",
    "VoucherStatus",
    # primitives
    "CENT",
    "ZERO",
    "CustomerSnapshot",
    "normalize_email",
    "to_money",
]
