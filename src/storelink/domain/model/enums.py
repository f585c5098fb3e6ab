"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class IntegrationTarget(StrEnum):
    """External systems a customer record carries an integration sub-record for."""

    SHOPIFY = "shopify"
    PROHANDEL = "prohandel"


class CustomerSource(StrEnum):
    SHOPIFY = "shopify"
    PROHANDEL = "prohandel"
    MANUAL = "manual"


class SyncStatus(StrEnum):
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"
    MANUAL_REVIEW = "manual_review"


class CustomerStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class VerificationStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    DECLINED = "declined"
    RESUBMISSION_REQUESTED = "resubmission_requested"


class VoucherStatus(StrEnum):
    ACTIVE = "active"
    PARTIAL = "partial"
    REDEEMED = "redeemed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class VoucherOrigin(StrEnum):
    PROHANDEL_IMPORT = "prohandel_import"
    SHOPIFY_ORDER = "shopify_order"


class ApplicationSource(StrEnum):
    """Where a voucher balance change was observed."""

    SHOPIFY_ORDER = "shopify_order"
    PROHANDEL_REDEMPTION = "prohandel_redemption"
