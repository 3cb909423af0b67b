"""initial ledger schema

Revision ID: 0001_initial_ledger
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_ledger"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None

MONEY = sa.Numeric(12, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False, server_default=""),
        sa.Column("role", sa.String(), nullable=False, server_default="worker"),
        sa.Column("business_id", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_business_id", "users", ["business_id"])

    op.create_table(
        "otps",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("otp_hash", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_otps_email", "otps", ["email"])
    op.create_index("ix_otps_expires_at", "otps", ["expires_at"])

    op.create_table(
        "daily_customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("bottle_type", sa.String(), nullable=False, server_default="20L"),
        sa.Column("price_per_bottle", MONEY, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("business_id", sa.String(), nullable=False),
        sa.Column("total_billed", MONEY, nullable=False, server_default="0"),
        sa.Column("total_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("pending_balance", MONEY, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_daily_customers_name", "daily_customers", ["name"])
    op.create_index(
        "ix_daily_customers_business_active", "daily_customers", ["business_id", "is_active"]
    )

    op.create_table(
        "daily_deliveries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "customer_id",
            sa.Integer(),
            sa.ForeignKey("daily_customers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("delivered", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("quantity_delivered", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("amount_billed", MONEY, nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("delivered_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("business_id", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("customer_id", "delivery_date", name="uq_delivery_customer_day"),
    )
    op.create_index(
        "ix_daily_deliveries_business_date", "daily_deliveries", ["business_id", "delivery_date"]
    )

    op.create_table(
        "bulk_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False, server_default="other"),
        sa.Column("delivery_dates", sa.JSON(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("bottle_type", sa.String(), nullable=False, server_default="20L"),
        sa.Column("price_per_bottle", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("paid_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("pending_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("business_id", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bulk_orders_payment_status", "bulk_orders", ["payment_status"])
    op.create_index(
        "ix_bulk_orders_business_created", "bulk_orders", ["business_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("bulk_orders")
    op.drop_table("daily_deliveries")
    op.drop_table("daily_customers")
    op.drop_table("otps")
    op.drop_table("users")
