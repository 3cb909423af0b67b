"""Domain models and helpers."""

from .enums import BottleType, EventType, OPEN_PAYMENT_STATUSES, PaymentStatus, Role
from .ledger import (
    adjust_customer,
    calendar_day,
    delivery_amount,
    payment_status,
    refresh_bulk_order,
    refresh_customer_balance,
    to_money,
)

__all__ = [
    "BottleType",
    "EventType",
    "OPEN_PAYMENT_STATUSES",
    "PaymentStatus",
    "Role",
    "adjust_customer",
    "calendar_day",
    "delivery_amount",
    "payment_status",
    "refresh_bulk_order",
    "refresh_customer_balance",
    "to_money",
]
