"""Canonical customer record with per-system integration sub-records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storelink.domain.errors import IdentifierConflict
from storelink.domain.model.entity import Entity, utcnow
from storelink.domain.model.enums import (
    CustomerSource,
    CustomerStatus,
    IntegrationTarget,
    SyncStatus,
    VerificationStatus,
)
from storelink.domain.model.primitives import normalize_email

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

PROFILE_FIELDS = ("first_name", "last_name", "phone", "street", "city", "zip_code")


@dataclass(eq=False, kw_only=True)
class AuditEntry(Entity):
    """One append-only line of a customer's audit trail."""

    customer_id: UUID | None = None
    action: str
    performed_by: str
    performed_at: datetime = field(default_factory=utcnow)
    details: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(eq=False, kw_only=True)
class IntegrationRecord(Entity):
    """Sync state of one customer in one external system.

    ``sync_status`` moves between pending/synced/error/manual_review and each
    target's record changes independently of the others.
    """

    customer_id: UUID | None = None
    target: IntegrationTarget
    external_id: str | None = None
    sync_status: SyncStatus = SyncStatus.PENDING
    last_sync_date: datetime | None = None
    sync_error: str | None = None

    # storefront figures, owned by the external system
    orders_count: int = 0
    total_spent: str = "0.00"
    last_order_id: str | None = None
    tags: list[str] = field(default_factory=list[str])

    # POS figures
    customer_number: int | None = None

    def mark_synced(self, at: datetime | None = None) -> None:
        self.sync_status = SyncStatus.SYNCED
        self.sync_error = None
        self.last_sync_date = at or utcnow()

    def mark_error(self, message: str, at: datetime | None = None) -> None:
        self.sync_status = SyncStatus.ERROR
        self.sync_error = message
        self.last_sync_date = at or utcnow()

    def mark_manual_review(self, reason: str, at: datetime | None = None) -> None:
        self.sync_status = SyncStatus.MANUAL_REVIEW
        self.sync_error = reason
        self.last_sync_date = at or utcnow()


@dataclass(eq=False, kw_only=True)
class CustomerRecord(Entity):
    """The internal customer entity; email is the primary natural key."""

    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    zip_code: str | None = None

    source: CustomerSource = CustomerSource.MANUAL
    status: CustomerStatus = CustomerStatus.ACTIVE
    verification_status: VerificationStatus = VerificationStatus.PENDING

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    _integrations: list[IntegrationRecord] = field(
        default_factory=list["IntegrationRecord"], repr=False, init=False
    )
    _audit_trail: list[AuditEntry] = field(
        default_factory=list["AuditEntry"], repr=False, init=False
    )

    def __post_init__(self) -> None:
        email = normalize_email(self.email)
        if email is None:
            raise ValueError("CustomerRecord requires an email")
        self.email = email

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def integrations(self) -> tuple[IntegrationRecord, ...]:
        return tuple(self._integrations)

    @property
    def audit_trail(self) -> tuple[AuditEntry, ...]:
        return tuple(self._audit_trail)

    def integration(self, target: IntegrationTarget) -> IntegrationRecord | None:
        for record in self._integrations:
            if record.target == target:
                return record
        return None

    def ensure_integration(self, target: IntegrationTarget) -> IntegrationRecord:
        record = self.integration(target)
        if record is None:
            record = IntegrationRecord(customer_id=self.id, target=target)
            self._integrations.append(record)
        return record

    def external_id(self, target: IntegrationTarget) -> str | None:
        record = self.integration(target)
        return record.external_id if record is not None else None

    def bind_external_id(
        self,
        target: IntegrationTarget,
        external_id: str,
        *,
        override: bool = False,
    ) -> IntegrationRecord:
        """Bind an external identifier; rebinding needs ``override=True``."""

        record = self.ensure_integration(target)
        if record.external_id not in (None, external_id) and not override:
            raise IdentifierConflict(
                f"{self.email} is bound to {target} id {record.external_id}, not {external_id}",
                target=str(target),
                external_id=external_id,
            )
        record.external_id = external_id
        return record

    def fill_profile(self, **values: str | None) -> list[str]:
        """Copy profile values into fields that are still empty.

        Populated fields are never overwritten. Returns the names of the fields
        that were filled.
        """

        filled: list[str] = []
        for name, value in values.items():
            if name not in PROFILE_FIELDS:
                raise ValueError(f"Unknown profile field: {name}")
            if not value or getattr(self, name):
                continue
            setattr(self, name, value)
            filled.append(name)
        return filled

    def record_audit(
        self,
        action: str,
        *,
        performed_by: str,
        details: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            customer_id=self.id,
            action=action,
            performed_by=performed_by,
            performed_at=at or utcnow(),
            details=dict(details or {}),
        )
        self._audit_trail.append(entry)
        return entry

    def touch(self, at: datetime | None = None) -> None:
        self.updated_at = at or utcnow()
