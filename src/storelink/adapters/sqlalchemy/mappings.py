"""SQLAlchemy mapping metadata for the storelink domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite, configure_mappers, relationship

from storelink.domain.model import (
    ApplicationSource,
    AuditEntry,
    CustomerRecord,
    CustomerSnapshot,
    CustomerSource,
    CustomerStatus,
    IntegrationRecord,
    IntegrationTarget,
    SyncStatus,
    VerificationStatus,
    VoucherApplication,
    VoucherOrigin,
    VoucherRecord,
    VoucherStatus,
    to_money,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class MoneyType(TypeDecorator[Decimal]):
    """Cent-quantized ``Decimal`` stored as text so no backend rounds it."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(to_money(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return to_money(value)


class TagListType(TypeDecorator[list[str]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Customers -------------------------------------------------------------------

customer_table = Table(
    "customer",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("email", String(320), nullable=False),
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("street", String, nullable=True),
    Column("city", String, nullable=True),
    Column("zip_code", String, nullable=True),
    Column("source", Enum(CustomerSource, native_enum=False), nullable=False),
    Column("status", Enum(CustomerStatus, native_enum=False), nullable=False),
    Column(
        "verification_status",
        Enum(VerificationStatus, native_enum=False),
        nullable=False,
    ),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("email", name="uq_customer_email"),
)

customer_integration_table = Table(
    "customer_integration",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("customer_id", UUIDColumnType, ForeignKey("customer.id"), nullable=False),
    Column("target", Enum(IntegrationTarget, native_enum=False), nullable=False),
    Column("external_id", String, nullable=True),
    Column("sync_status", Enum(SyncStatus, native_enum=False), nullable=False),
    Column("last_sync_date", UTCDateTime(), nullable=True),
    Column("sync_error", Text, nullable=True),
    Column("orders_count", Integer, nullable=False, default=0),
    Column("total_spent", String(32), nullable=False, default="0.00"),
    Column("last_order_id", String, nullable=True),
    Column("tags", TagListType(), nullable=False, default=list),
    Column("customer_number", Integer, nullable=True),
    UniqueConstraint("customer_id", "target", name="uq_customer_integration_customer_target"),
    UniqueConstraint("target", "external_id", name="uq_customer_integration_target_external"),
)

customer_audit_entry_table = Table(
    "customer_audit_entry",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("customer_id", UUIDColumnType, ForeignKey("customer.id"), nullable=False),
    Column("action", String(64), nullable=False),
    Column("performed_by", String, nullable=False),
    Column("performed_at", UTCDateTime(), nullable=False),
    Column("details", JSON, nullable=False, default=dict),
    Index("ix_customer_audit_entry_customer", "customer_id", "performed_at"),
)

# Vouchers --------------------------------------------------------------------

voucher_table = Table(
    "voucher",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("storefront_code", String, nullable=False),
    Column("storefront_gift_card_id", String, nullable=True),
    Column("storefront_order_id", String, nullable=True),
    Column("pos_number", Integer, nullable=True),
    Column("pos_uuid", String, nullable=True),
    Column("value", MoneyType(), nullable=False),
    Column("initial_value", MoneyType(), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", Enum(VoucherStatus, native_enum=False), nullable=False),
    Column("origin", Enum(VoucherOrigin, native_enum=False), nullable=False),
    Column("customer_storefront_id", String, nullable=True),
    Column("customer_email", String, nullable=True),
    Column("customer_first_name", String, nullable=True),
    Column("customer_last_name", String, nullable=True),
    Column("issued_at", UTCDateTime(), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=True),
    Column("redeemed_at", UTCDateTime(), nullable=True),
    Column("redeemed_amount", MoneyType(), nullable=False),
    UniqueConstraint("storefront_code", name="uq_voucher_storefront_code"),
    UniqueConstraint("pos_uuid", name="uq_voucher_pos_uuid"),
    UniqueConstraint("pos_number", name="uq_voucher_pos_number"),
    Index("ix_voucher_storefront_gift_card_id", "storefront_gift_card_id"),
)

voucher_application_table = Table(
    "voucher_application",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("voucher_id", UUIDColumnType, ForeignKey("voucher.id"), nullable=False),
    Column("source", Enum(ApplicationSource, native_enum=False), nullable=False),
    Column("reference", String, nullable=False),
    Column("amount", MoneyType(), nullable=False),
    Column("applied_at", UTCDateTime(), nullable=False),
    UniqueConstraint(
        "voucher_id", "source", "reference", name="uq_voucher_application_reference"
    ),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        CustomerRecord,
        customer_table,
        properties={
            "_integrations": relationship(
                IntegrationRecord,
                cascade="all, delete-orphan",
                lazy="selectin",
                order_by=customer_integration_table.c.target,
            ),
            "_audit_trail": relationship(
                AuditEntry,
                cascade="all, delete-orphan",
                lazy="selectin",
                order_by=customer_audit_entry_table.c.performed_at,
            ),
        },
    )

    mapper_registry.map_imperatively(IntegrationRecord, customer_integration_table)
    mapper_registry.map_imperatively(AuditEntry, customer_audit_entry_table)

    mapper_registry.map_imperatively(
        VoucherRecord,
        voucher_table,
        properties={
            "customer": composite(
                CustomerSnapshot,
                voucher_table.c.customer_storefront_id,
                voucher_table.c.customer_email,
                voucher_table.c.customer_first_name,
                voucher_table.c.customer_last_name,
            ),
        },
    )

    mapper_registry.map_imperatively(VoucherApplication, voucher_application_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
