#!/usr/bin/env python3
"""Seed demo data: two users, ten customers, a month of deliveries and bulk orders.

Deliveries and payments go through the same ledger functions the API uses,
so customer totals come out consistent with the delivery rows. Pass
``--reset`` to purge existing ledger data before seeding.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
from datetime import timedelta

from dotenv import load_dotenv
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from waterledger.app.auth import Caller
from waterledger.app.db import create_schema, get_engine, get_sessionmaker
from waterledger.app.domain.enums import Role
from waterledger.app.domain.ledger import local_today
from waterledger.app.models import OTP, BulkOrder, DailyCustomer, DailyDelivery, User
from waterledger.app.repos_sqlalchemy import (
    bulk_orders_repo_sql,
    customers_repo_sql,
    deliveries_repo_sql,
)

USERS = [
    ("admin@waterdelivery.com", "Admin User", "9876543210", Role.ADMIN),
    ("worker@waterdelivery.com", "Delivery Worker", "9876543211", Role.WORKER),
]

CUSTOMERS = [
    ("Rajesh Kumar", "123 MG Road, Bangalore", "9876501234", "20L", 50, True),
    ("Priya Sharma", "456 Brigade Road, Bangalore", "9876501235", "20L", 50, True),
    ("Amit Patel", "789 Indiranagar, Bangalore", "9876501236", "10L", 30, True),
    ("Sneha Reddy", "321 Koramangala, Bangalore", "9876501237", "20L", 50, True),
    ("Vikram Singh", "654 Whitefield, Bangalore", "9876501238", "20L", 50, True),
    ("Anita Desai", "987 Jayanagar, Bangalore", "9876501239", "10L", 30, True),
    ("Rahul Mehta", "147 HSR Layout, Bangalore", "9876501240", "20L", 50, True),
    ("Kavita Nair", "258 Malleshwaram, Bangalore", "9876501241", "20L", 50, False),
    ("Suresh Iyer", "369 BTM Layout, Bangalore", "9876501242", "10L", 30, True),
    ("Deepa Krishnan", "741 Electronic City, Bangalore", "9876501243", "20L", 50, True),
]

# (name, phone, address, event, day offsets, quantity, price, paid)
BULK_ORDERS = [
    (
        "Ramesh Wedding Hall", "9876600001", "Palace Grounds, Bangalore",
        "wedding", [5], 100, 45, 2250,
    ),
    (
        "Tech Corp Annual Meet", "9876600002", "KTPO Convention Center, Bangalore",
        "corporate", [10], 50, 45, 2250,
    ),
    (
        "Ganesh Festival Committee", "9876600003", "Basavanagudi, Bangalore",
        "festival", [-2, -1], 75, 45, 3375,
    ),
    (
        "Birthday Party - Sharma Residence", "9876600004", "JP Nagar, Bangalore",
        "party", [3], 20, 50, 0,
    ),
]


async def _reset(session: AsyncSession) -> None:
    """Remove every ledger row and user."""

    for model in (DailyDelivery, BulkOrder, DailyCustomer, OTP, User):
        await session.execute(delete(model))
    await session.commit()


async def _seed(session: AsyncSession, days: int, rng: random.Random) -> dict[str, object]:
    settings = get_settings()
    business_id = settings.default_business_id
    tz = settings.default_tz

    users = []
    for email, name, phone, role in USERS:
        user = User(email=email, name=name, phone=phone, role=role.value, business_id=business_id)
        session.add(user)
        users.append(user)
    await session.commit()
    admin, worker = users
    as_worker = Caller(user_id=worker.id, business_id=business_id, role=Role.WORKER)
    as_admin = Caller(user_id=admin.id, business_id=business_id, role=Role.ADMIN)

    customers = []
    for name, address, phone, bottle, price, active in CUSTOMERS:
        customers.append(
            await customers_repo_sql.create(
                session,
                business_id,
                {
                    "name": name,
                    "address": address,
                    "phone": phone,
                    "bottle_type": bottle,
                    "price_per_bottle": price,
                    "is_active": active,
                },
            )
        )

    today = local_today(tz)
    recorded = 0
    for offset in range(days):
        day = today - timedelta(days=offset)
        # A customer gets at most one delivery per day.
        for customer in rng.sample(customers, rng.randint(3, 7)):
            quantity = 2 if rng.random() > 0.7 else 1
            paid = rng.random() > 0.3
            amount = customer.price_per_bottle * quantity
            await deliveries_repo_sql.record_delivery(
                session,
                as_worker,
                customer_id=customer.id,
                quantity=quantity,
                tz=tz,
                delivery_date=day,
                is_paid=paid,
                paid_amount=amount if paid else None,
            )
            recorded += 1

    orders = []
    for name, phone, address, event, offsets, quantity, price, paid in BULK_ORDERS:
        order = await bulk_orders_repo_sql.create(
            session,
            as_admin,
            {
                "customer_name": name,
                "phone": phone,
                "address": address,
                "event_type": event,
                "delivery_dates": [today + timedelta(days=d) for d in offsets],
                "quantity": quantity,
                "price_per_bottle": price,
                "paid_amount": paid,
            },
            tz=tz,
        )
        orders.append({"id": order.id, "status": order.payment_status})

    return {
        "users": [u.email for u in users],
        "customers": len(customers),
        "deliveries": recorded,
        "bulk_orders": orders,
    }


async def main(reset: bool, days: int, seed: int | None) -> None:
    await create_schema()
    async with get_sessionmaker()() as session:
        if reset:
            await _reset(session)
        data = await _seed(session, days, random.Random(seed))
    await get_engine().dispose()
    print(json.dumps(data))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo ledger data")
    parser.add_argument(
        "--reset", action="store_true", help="Purge existing data before seeding"
    )
    parser.add_argument("--days", type=int, default=30, help="Days of delivery history")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()
    load_dotenv()
    asyncio.run(main(args.reset, args.days, args.seed))
