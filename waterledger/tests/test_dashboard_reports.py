import csv
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO

import pytest

from waterledger.app.domain.ledger import local_today, month_start
from waterledger.app.errors import ValidationError
from waterledger.app.repos_sqlalchemy import (
    bulk_orders_repo_sql,
    customers_repo_sql,
    dashboard_repo_sql,
    deliveries_repo_sql,
    reports_repo_sql,
)
from waterledger.app.repos_sqlalchemy.dashboard_repo_sql import MONTH_NAMES

BUSINESS = "default-business"
TZ = "Asia/Kolkata"


async def _seed(session, admin, worker):
    today = local_today(TZ)
    rajesh = await customers_repo_sql.create(
        session,
        BUSINESS,
        {"name": "Rajesh", "address": "MG Road", "phone": "9876501234", "price_per_bottle": 50},
    )
    amit = await customers_repo_sql.create(
        session,
        BUSINESS,
        {
            "name": "Amit",
            "address": "Indiranagar",
            "phone": "9876501236",
            "bottle_type": "10L",
            "price_per_bottle": 30,
        },
    )
    await customers_repo_sql.create(
        session,
        BUSINESS,
        {
            "name": "Kavita",
            "address": "Malleshwaram",
            "phone": "9876501241",
            "price_per_bottle": 50,
            "is_active": False,
        },
    )
    delivery, _ = await deliveries_repo_sql.record_delivery(
        session, worker, customer_id=rajesh.id, quantity=2, tz=TZ, delivery_date=today
    )
    await deliveries_repo_sql.record_payment(session, worker, delivery.id, 40)
    await deliveries_repo_sql.record_delivery(
        session, worker, customer_id=amit.id, quantity=1, tz=TZ, delivery_date=today
    )
    await bulk_orders_repo_sql.create(
        session,
        admin,
        {
            "customer_name": "Ramesh Wedding Hall",
            "phone": "9876600001",
            "address": "Palace Grounds",
            "event_type": "wedding",
            "delivery_dates": [today + timedelta(days=5)],
            "quantity": 100,
            "price_per_bottle": 45,
            "paid_amount": 2250,
        },
        tz=TZ,
    )
    return rajesh, amit


@pytest.mark.anyio
async def test_kpis(session, admin, worker):
    await _seed(session, admin, worker)
    kpis = await dashboard_repo_sql.kpis(session, BUSINESS, TZ)

    assert kpis["todayTotal"] == Decimal("130.00")
    assert kpis["todayQuantity"] == 3
    assert kpis["monthlyIncome"] == Decimal("4630.00")
    assert kpis["threeMonthIncome"] == Decimal("4630.00")
    assert kpis["sixMonthIncome"] == Decimal("4630.00")
    assert kpis["yearlyIncome"] == Decimal("4630.00")
    # 60 + 30 outstanding on customers, 2250 on the partial bulk order.
    assert kpis["pendingPayments"] == Decimal("2340.00")
    assert kpis["activeCustomers"] == 2
    assert kpis["totalCustomers"] == 3


@pytest.mark.anyio
async def test_revenue_trend_groups_by_day(session, admin, worker):
    rajesh, _ = await _seed(session, admin, worker)
    today = local_today(TZ)
    await deliveries_repo_sql.mark_delivery(
        session,
        worker,
        customer_id=rajesh.id,
        delivered=True,
        tz=TZ,
        delivery_date=today - timedelta(days=3),
    )
    await deliveries_repo_sql.mark_delivery(
        session,
        worker,
        customer_id=rajesh.id,
        delivered=True,
        tz=TZ,
        delivery_date=today - timedelta(days=40),
    )

    trend = await dashboard_repo_sql.revenue_trend(session, BUSINESS, TZ, days=30)
    assert trend == [
        {
            "date": (today - timedelta(days=3)).isoformat(),
            "amount": Decimal("50.00"),
            "quantity": 1,
        },
        {"date": today.isoformat(), "amount": Decimal("130.00"), "quantity": 3},
    ]


@pytest.mark.anyio
async def test_monthly_comparison_includes_bulk_orders(session, admin, worker):
    rajesh, _ = await _seed(session, admin, worker)
    earlier = month_start(local_today(TZ), 2)
    await deliveries_repo_sql.mark_delivery(
        session, worker, customer_id=rajesh.id, delivered=True, tz=TZ, delivery_date=earlier
    )

    months = await dashboard_repo_sql.monthly_comparison(session, BUSINESS, TZ)
    assert len(months) == 2
    first, current = months
    assert first["month"] == f"{MONTH_NAMES[earlier.month - 1]} {earlier.year}"
    assert first["deliveries"] == Decimal("50.00")
    assert first["bulkOrders"] == Decimal("0.00")
    assert current["deliveries"] == Decimal("130.00")
    assert current["bulkOrders"] == Decimal("4500.00")
    assert current["total"] == Decimal("4630.00")


@pytest.mark.anyio
async def test_today_customers_status(session, admin, worker):
    rajesh, amit = await _seed(session, admin, worker)
    await deliveries_repo_sql.mark_delivery(
        session, worker, customer_id=amit.id, delivered=False, tz=TZ
    )
    rows = await deliveries_repo_sql.today_customers(session, BUSINESS, TZ)
    by_name = {r["name"]: r for r in rows}
    assert set(by_name) == {"Rajesh", "Amit"}
    assert by_name["Rajesh"]["deliveredToday"] is True
    assert by_name["Rajesh"]["quantityDelivered"] == 2
    assert by_name["Amit"]["deliveredToday"] is False
    assert by_name["Amit"]["amountBilled"] == Decimal("0.00")

    today = await deliveries_repo_sql.list_today(session, BUSINESS, TZ)
    assert today["totalAmount"] == Decimal("100.00")
    assert today["totalQuantity"] == 2


@pytest.mark.anyio
async def test_reports_totals(session, admin, worker):
    await _seed(session, admin, worker)

    rows, totals = await reports_repo_sql.customer_payments(session, BUSINESS, tz=TZ)
    assert [r["name"] for r in rows] == ["Amit", "Kavita", "Rajesh"]
    assert totals == {
        "totalBilled": Decimal("130.00"),
        "totalPaid": Decimal("40.00"),
        "totalPending": Decimal("90.00"),
    }

    rows, totals = await reports_repo_sql.bulk_orders(session, BUSINESS, tz=TZ)
    assert rows[0]["createdBy"] == admin.name
    assert totals["totalOrders"] == 1
    assert totals["totalPending"] == Decimal("2250.00")

    today = local_today(TZ).isoformat()
    rows, totals = await reports_repo_sql.delivery_summary(
        session, BUSINESS, tz=TZ, start_date=today, end_date=today
    )
    assert totals == {
        "totalDeliveries": 2,
        "totalQuantity": 3,
        "totalBilled": Decimal("130.00"),
        "totalPaid": Decimal("40.00"),
    }
    assert {r["deliveredBy"] for r in rows} == {worker.name}


@pytest.mark.anyio
async def test_export_csv(session, admin, worker):
    await _seed(session, admin, worker)

    filename, content = await reports_repo_sql.export_csv(session, BUSINESS, "deliveries", tz=TZ)
    assert filename.startswith("deliveries_") and filename.endswith(".csv")
    rows = list(csv.reader(StringIO(content)))
    assert rows[0][:3] == ["Customer Name", "Phone", "Delivery Date"]
    assert len(rows) == 3

    filename, content = await reports_repo_sql.export_csv(session, BUSINESS, "bulk-orders", tz=TZ)
    assert filename.startswith("bulk_orders_")
    rows = list(csv.reader(StringIO(content)))
    assert rows[1][0] == "Ramesh Wedding Hall"
    assert rows[1][9] == "partial"

    _, content = await reports_repo_sql.export_csv(session, BUSINESS, "customers", tz=TZ)
    rows = list(csv.reader(StringIO(content)))
    assert rows[0][-1] == "Status"
    assert sorted(r[-1] for r in rows[1:]) == ["Active", "Active", "Inactive"]

    with pytest.raises(ValidationError, match="required"):
        await reports_repo_sql.export_csv(session, BUSINESS, None, tz=TZ)
    with pytest.raises(ValidationError, match="Invalid report type"):
        await reports_repo_sql.export_csv(session, BUSINESS, "invoices", tz=TZ)


@pytest.mark.anyio
async def test_bulk_export_labels_orders_with_local_creation_day(session, admin):
    order = await bulk_orders_repo_sql.create(
        session,
        admin,
        {
            "customer_name": "Late Night Party",
            "phone": "9876600003",
            "address": "Koramangala",
            "event_type": "party",
            "delivery_dates": ["2024-03-06"],
            "quantity": 10,
            "price_per_bottle": 45,
        },
        tz=TZ,
    )
    # 20:00 UTC is already the next morning in India.
    order.created_at = datetime(2024, 3, 5, 20, tzinfo=timezone.utc)
    await session.commit()

    _, content = await reports_repo_sql.export_csv(
        session, BUSINESS, "bulk-orders", tz=TZ, start_date="2024-03-06", end_date="2024-03-06"
    )
    rows = list(csv.reader(StringIO(content)))
    assert len(rows) == 2
    assert rows[1][0] == "Late Night Party"
    assert rows[1][10] == "2024-03-06"
