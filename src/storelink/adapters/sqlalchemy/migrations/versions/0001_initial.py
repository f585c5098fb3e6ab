"""Create customer and voucher tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customer",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("street", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("zip_code", sa.String(), nullable=True),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("verification_status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_customer"),
        sa.UniqueConstraint("email", name="uq_customer_email"),
    )

    op.create_table(
        "customer_integration",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("target", sa.String(length=16), nullable=False),
        sa.Column("external_id", sa.String(), nullable=True),
        sa.Column("sync_status", sa.String(length=16), nullable=False),
        sa.Column("last_sync_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_error", sa.Text(), nullable=True),
        sa.Column("orders_count", sa.Integer(), nullable=False),
        sa.Column("total_spent", sa.String(length=32), nullable=False),
        sa.Column("last_order_id", sa.String(), nullable=True),
        sa.Column("tags", sa.Text(), nullable=False),
        sa.Column("customer_number", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customer.id"],
            name="fk_customer_integration_customer_id_customer",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_customer_integration"),
        sa.UniqueConstraint(
            "customer_id", "target", name="uq_customer_integration_customer_target"
        ),
        sa.UniqueConstraint(
            "target", "external_id", name="uq_customer_integration_target_external"
        ),
    )

    op.create_table(
        "customer_audit_entry",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("performed_by", sa.String(), nullable=False),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customer.id"],
            name="fk_customer_audit_entry_customer_id_customer",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_customer_audit_entry"),
    )
    op.create_index(
        "ix_customer_audit_entry_customer",
        "customer_audit_entry",
        ["customer_id", "performed_at"],
    )

    op.create_table(
        "voucher",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("storefront_code", sa.String(), nullable=False),
        sa.Column("storefront_gift_card_id", sa.String(), nullable=True),
        sa.Column("storefront_order_id", sa.String(), nullable=True),
        sa.Column("pos_number", sa.Integer(), nullable=True),
        sa.Column("pos_uuid", sa.String(), nullable=True),
        sa.Column("value", sa.String(length=32), nullable=False),
        sa.Column("initial_value", sa.String(length=32), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("origin", sa.String(length=32), nullable=False),
        sa.Column("customer_storefront_id", sa.String(), nullable=True),
        sa.Column("customer_email", sa.String(), nullable=True),
        sa.Column("customer_first_name", sa.String(), nullable=True),
        sa.Column("customer_last_name", sa.String(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_amount", sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_voucher"),
        sa.UniqueConstraint("storefront_code", name="uq_voucher_storefront_code"),
        sa.UniqueConstraint("pos_uuid", name="uq_voucher_pos_uuid"),
        sa.UniqueConstraint("pos_number", name="uq_voucher_pos_number"),
    )
    op.create_index(
        "ix_voucher_storefront_gift_card_id",
        "voucher",
        ["storefront_gift_card_id"],
    )

    op.create_table(
        "voucher_application",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("voucher_id", sa.Uuid(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("reference", sa.String(), nullable=False),
        sa.Column("amount", sa.String(length=32), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["voucher_id"],
            ["voucher.id"],
            name="fk_voucher_application_voucher_id_voucher",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_voucher_application"),
        sa.UniqueConstraint(
            "voucher_id", "source", "reference", name="uq_voucher_application_reference"
        ),
    )


def downgrade() -> None:
    op.drop_table("voucher_application")
    op.drop_index("ix_voucher_storefront_gift_card_id", table_name="voucher")
    op.drop_table("voucher")
    op.drop_index("ix_customer_audit_entry_customer", table_name="customer_audit_entry")
    op.drop_table("customer_audit_entry")
    op.drop_table("customer_integration")
    op.drop_table("customer")
