"""Enumerations shared by models, schemas and repositories."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles a signed-in user may hold within a business."""

    ADMIN = "admin"
    WORKER = "worker"


class BottleType(str, Enum):
    """Bottle sizes offered to customers."""

    L20 = "20L"
    L10 = "10L"
    L5 = "5L"
    L2 = "2L"
    L1 = "1L"


class EventType(str, Enum):
    """Kind of event a bulk order is placed for."""

    WEDDING = "wedding"
    FESTIVAL = "festival"
    CORPORATE = "corporate"
    PARTY = "party"
    OTHER = "other"


class PaymentStatus(str, Enum):
    """Settlement state of a bulk order."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


OPEN_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIAL)
