"""Reconciliation of inbound customers, vouchers and orders against the store."""

from __future__ import annotations

from .contracts import (
    ConflictEntityResolution,
    CustomerBatchStats,
    CustomerOutcome,
    EntityResolution,
    MatchKind,
    NewEntityResolution,
    OrderVoucherStats,
    ReconciliationResult,
    ResolutionStatus,
    ResolvedEntityResolution,
    VoucherSyncStats,
)
from .customers import (
    IDENTIFIER_CONFLICT_ACTION,
    CustomerReconciler,
    created_action,
    enriched_action,
)
from .orders import (
    OrderVoucherReconciler,
    application_reference,
    order_gift_card_note,
    purchase_code,
)
from .resolve import resolve_customer, resolve_voucher
from .vouchers import VoucherReconciler, gift_card_note

__all__ = [
    "IDENTIFIER_CONFLICT_ACTION",
    "ConflictEntityResolution",
    "CustomerBatchStats",
    "CustomerOutcome",
    "CustomerReconciler",
    "EntityResolution",
    "MatchKind",
    "NewEntityResolution",
    "OrderVoucherReconciler",
    "OrderVoucherStats",
    "ReconciliationResult",
    "ResolutionStatus",
    "ResolvedEntityResolution",
    "VoucherReconciler",
    "VoucherSyncStats",
    "application_reference",
    "created_action",
    "enriched_action",
    "gift_card_note",
    "order_gift_card_note",
    "purchase_code",
    "resolve_customer",
    "resolve_voucher",
]
