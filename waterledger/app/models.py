"""Database models for the delivery ledger.

Every business record carries ``business_id`` so that queries can be scoped
to the caller's tenant. Money columns are fixed-point decimals; the derived
columns (``pending_balance`` on customers and ``total_amount``,
``pending_amount`` and ``payment_status`` on bulk orders) are written only
through :mod:`waterledger.app.domain.ledger`.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from .domain.enums import BottleType, EventType, PaymentStatus, Role

Base = declarative_base()

Money = Numeric(12, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Operator account created on first OTP login."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default=Role.WORKER.value)
    business_id = Column(String, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class OTP(Base):
    """Hashed one-time password awaiting verification."""

    __tablename__ = "otps"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, index=True)
    otp_hash = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DailyCustomer(Base):
    """Recurring subscriber with running ledger totals."""

    __tablename__ = "daily_customers"
    __table_args__ = (Index("ix_daily_customers_business_active", "business_id", "is_active"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    address = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    bottle_type = Column(String, nullable=False, default=BottleType.L20.value)
    price_per_bottle = Column(Money, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    business_id = Column(String, nullable=False)
    total_billed = Column(Money, nullable=False, default=0)
    total_paid = Column(Money, nullable=False, default=0)
    pending_balance = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class DailyDelivery(Base):
    """One delivery row per customer per calendar day."""

    __tablename__ = "daily_deliveries"
    __table_args__ = (
        UniqueConstraint("customer_id", "delivery_date", name="uq_delivery_customer_day"),
        Index("ix_daily_deliveries_business_date", "business_id", "delivery_date"),
    )

    id = Column(Integer, primary_key=True)
    customer_id = Column(
        Integer, ForeignKey("daily_customers.id", ondelete="CASCADE"), nullable=False
    )
    delivery_date = Column(Date, nullable=False)
    delivered = Column(Boolean, nullable=False, default=True)
    quantity_delivered = Column(Integer, nullable=False, default=1)
    amount_billed = Column(Money, nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_amount = Column(Money, nullable=False, default=0)
    delivered_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    business_id = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class BulkOrder(Base):
    """One-off order for an event, settled independently of customers."""

    __tablename__ = "bulk_orders"
    __table_args__ = (Index("ix_bulk_orders_business_created", "business_id", "created_at"),)

    id = Column(Integer, primary_key=True)
    customer_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=False)
    event_type = Column(String, nullable=False, default=EventType.OTHER.value)
    delivery_dates = Column(JSON, nullable=False, default=list)
    quantity = Column(Integer, nullable=False)
    bottle_type = Column(String, nullable=False, default=BottleType.L20.value)
    price_per_bottle = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False, default=0)
    paid_amount = Column(Money, nullable=False, default=0)
    pending_amount = Column(Money, nullable=False, default=0)
    payment_status = Column(
        String, nullable=False, default=PaymentStatus.PENDING.value, index=True
    )
    business_id = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


__all__ = ["Base", "BulkOrder", "DailyCustomer", "DailyDelivery", "OTP", "User", "utcnow"]
