# schemas.py

"""Pydantic models for API payloads and responses.

Payloads and responses use camelCase on the wire; Python code sees the
snake_case field names.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .domain.enums import BottleType, EventType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, as plain JSON values."""

        return self.model_dump(exclude_unset=True, mode="json")


# Auth


class SendOtpPayload(CamelModel):
    email: EmailStr


class VerifyOtpPayload(CamelModel):
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6)
    name: Optional[str] = None
    phone: Optional[str] = None


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    phone: str
    role: str
    business_id: str


# Customers


class CustomerIn(CamelModel):
    """Input schema for creating a daily customer."""

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    bottle_type: BottleType = BottleType.L20
    price_per_bottle: Decimal = Field(ge=0)
    is_active: bool = True


class CustomerPatch(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    bottle_type: Optional[BottleType] = None
    price_per_bottle: Optional[Decimal] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class CustomerOut(CamelModel):
    """Customer representation including ledger totals."""

    id: int
    name: str
    address: str
    phone: str
    bottle_type: str
    price_per_bottle: float
    is_active: bool
    business_id: str
    total_billed: float
    total_paid: float
    pending_balance: float
    created_at: datetime
    updated_at: datetime


# Deliveries


class DeliveryIn(CamelModel):
    customer_id: int
    quantity_delivered: int = 1
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    is_paid: bool = False
    paid_amount: Optional[Decimal] = None


class DeliveryPatch(CamelModel):
    """Editable delivery fields; amounts are derived, never sent."""

    quantity_delivered: Optional[int] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None


class PaymentIn(CamelModel):
    paid_amount: Decimal


class MarkDeliveryIn(CamelModel):
    customer_id: int
    delivered: bool
    quantity: Optional[int] = None
    delivery_date: Optional[str] = None


class DeliveryOut(CamelModel):
    id: int
    customer_id: int
    delivery_date: date
    delivered: bool
    quantity_delivered: int
    amount_billed: float
    is_paid: bool
    paid_amount: float
    delivered_by: Optional[int] = None
    business_id: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# Bulk orders


class BulkOrderIn(CamelModel):
    customer_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    event_type: EventType = EventType.OTHER
    delivery_dates: list[str] = Field(min_length=1)
    quantity: int = Field(ge=1)
    bottle_type: BottleType = BottleType.L20
    price_per_bottle: Decimal = Field(ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class BulkOrderPatch(CamelModel):
    customer_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    event_type: Optional[EventType] = None
    delivery_dates: Optional[list[str]] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    bottle_type: Optional[BottleType] = None
    price_per_bottle: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BulkOrderOut(CamelModel):
    id: int
    customer_name: str
    phone: str
    address: str
    event_type: str
    delivery_dates: list[str]
    quantity: int
    bottle_type: str
    price_per_bottle: float
    total_amount: float
    paid_amount: float
    pending_amount: float
    payment_status: str
    business_id: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


def dump(schema: type[CamelModel], obj: Any) -> dict[str, Any]:
    """Serialize an ORM row through ``schema`` with camelCase keys."""

    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


def delivery_row(delivery: Any, customer: Any, deliverer_name: Optional[str]) -> dict[str, Any]:
    """Delivery with the customer and deliverer details shown in lists."""

    return {
        **dump(DeliveryOut, delivery),
        "customerName": customer.name,
        "customerPhone": customer.phone,
        "bottleType": customer.bottle_type,
        "deliveredByName": deliverer_name,
    }
