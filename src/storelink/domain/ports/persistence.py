"""Ports for persisting customer and voucher records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from storelink.domain.model import (
    ApplicationSource,
    CustomerRecord,
    IntegrationTarget,
    SyncStatus,
    VoucherApplication,
    VoucherRecord,
    VoucherStatus,
)

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class CustomerRepository(Repository[CustomerRecord], Protocol):
    """Persistence contract for customer records."""

    def get_by_email(self, email: str) -> CustomerRecord | None: ...

    def get_by_external_id(
        self, target: IntegrationTarget, external_id: str
    ) -> CustomerRecord | None: ...

    def count_by_sync_status(self, target: IntegrationTarget, status: SyncStatus) -> int: ...


@runtime_checkable
class VoucherRepository(Repository[VoucherRecord], Protocol):
    """Persistence contract for voucher records."""

    def find_by_keys(
        self,
        *,
        pos_uuid: str | None = None,
        pos_number: int | None = None,
        storefront_code: str | None = None,
    ) -> VoucherRecord | None: ...

    def get_by_storefront_gift_card_id(self, gift_card_id: str) -> VoucherRecord | None: ...

    def count(self, status: VoucherStatus | None = None) -> int: ...


@runtime_checkable
class VoucherApplicationRepository(Repository[VoucherApplication], Protocol):
    """Ledger of applied balance changes."""

    def exists(self, *, voucher_id: UUID, source: ApplicationSource, reference: str) -> bool: ...
