"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select

from storelink.adapters.sqlalchemy.mappings import (
    customer_integration_table,
    customer_table,
    voucher_application_table,
    voucher_table,
)
from storelink.domain.model import (
    ApplicationSource,
    CustomerRecord,
    IntegrationTarget,
    SyncStatus,
    VoucherApplication,
    VoucherRecord,
    VoucherStatus,
    normalize_email,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.orm import Session


class SqlAlchemyCustomerRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CustomerRecord) -> None:
        self.session.add(entity)

    def get_by_email(self, email: str) -> CustomerRecord | None:
        normalized = normalize_email(email)
        if normalized is None:
            return None
        stmt = select(CustomerRecord).where(customer_table.c.email == normalized)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_external_id(
        self, target: IntegrationTarget, external_id: str
    ) -> CustomerRecord | None:
        stmt = (
            select(CustomerRecord)
            .join(
                customer_integration_table,
                customer_integration_table.c.customer_id == customer_table.c.id,
            )
            .where(customer_integration_table.c.target == target)
            .where(customer_integration_table.c.external_id == external_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def count_by_sync_status(self, target: IntegrationTarget, status: SyncStatus) -> int:
        stmt = (
            select(func.count())
            .select_from(customer_integration_table)
            .where(customer_integration_table.c.target == target)
            .where(customer_integration_table.c.sync_status == status)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyVoucherRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: VoucherRecord) -> None:
        self.session.add(entity)

    def find_by_keys(
        self,
        *,
        pos_uuid: str | None = None,
        pos_number: int | None = None,
        storefront_code: str | None = None,
    ) -> VoucherRecord | None:
        """Return the first record matching any of the given keys."""

        conditions: list[Any] = []
        if pos_uuid:
            conditions.append(voucher_table.c.pos_uuid == pos_uuid)
        if pos_number is not None:
            conditions.append(voucher_table.c.pos_number == pos_number)
        if storefront_code:
            conditions.append(voucher_table.c.storefront_code == storefront_code.strip())
        if not conditions:
            return None
        stmt = select(VoucherRecord).where(or_(*conditions)).limit(1)
        return self.session.execute(stmt).scalars().first()

    def get_by_storefront_gift_card_id(self, gift_card_id: str) -> VoucherRecord | None:
        stmt = (
            select(VoucherRecord)
            .where(voucher_table.c.storefront_gift_card_id == gift_card_id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def count(self, status: VoucherStatus | None = None) -> int:
        stmt = select(func.count()).select_from(voucher_table)
        if status is not None:
            stmt = stmt.where(voucher_table.c.status == status)
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyVoucherApplicationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: VoucherApplication) -> None:
        self.session.add(entity)

    def exists(self, *, voucher_id: uuid.UUID, source: ApplicationSource, reference: str) -> bool:
        stmt = (
            select(voucher_application_table.c.id)
            .where(voucher_application_table.c.voucher_id == voucher_id)
            .where(voucher_application_table.c.source == source)
            .where(voucher_application_table.c.reference == reference)
        )
        return self.session.execute(stmt).first() is not None
