from datetime import date
from decimal import Decimal

import pytest

from waterledger.app.errors import ConflictError, NotFoundError, ValidationError
from waterledger.app.repos_sqlalchemy import customers_repo_sql, deliveries_repo_sql

BUSINESS = "default-business"
TZ = "Asia/Kolkata"


async def _customer(Session, price=50, **extra):
    async with Session() as session:
        data = {
            "name": extra.pop("name", "Rajesh Kumar"),
            "address": "123 MG Road",
            "phone": "9876501234",
            "price_per_bottle": price,
            **extra,
        }
        return await customers_repo_sql.create(session, BUSINESS, data)


async def _reload(Session, customer_id):
    async with Session() as session:
        return await customers_repo_sql.get(session, BUSINESS, customer_id)


@pytest.mark.anyio
async def test_record_and_pay_delivery(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ, delivery_date="2024-03-05"
        )
    assert delivery.amount_billed == Decimal("100.00")
    assert delivery.delivery_date == date(2024, 3, 5)

    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("100.00")
    assert stored.pending_balance == Decimal("100.00")

    async with sessionmaker() as session:
        paid = await deliveries_repo_sql.record_payment(session, worker, delivery.id, 100)
    assert paid.is_paid is True

    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_paid == Decimal("100.00")
    assert stored.pending_balance == Decimal("0.00")


@pytest.mark.anyio
async def test_payment_corrections_apply_the_difference(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ
        )
        await deliveries_repo_sql.record_payment(session, worker, delivery.id, 80)
        updated = await deliveries_repo_sql.record_payment(session, worker, delivery.id, 30)
    assert updated.is_paid is False

    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_paid == Decimal("30.00")
    assert stored.pending_balance == Decimal("70.00")


@pytest.mark.anyio
async def test_paid_at_creation_counts_towards_total_paid(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session,
            worker,
            customer_id=customer.id,
            quantity=1,
            tz=TZ,
            is_paid=True,
            paid_amount=50,
        )
    assert delivery.is_paid is True
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_paid == Decimal("50.00")
    assert stored.pending_balance == Decimal("0.00")


@pytest.mark.anyio
async def test_quantity_update_rebills_at_current_price(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ
        )
        await customers_repo_sql.update(session, BUSINESS, customer.id, {"price_per_bottle": 60})
        updated = await deliveries_repo_sql.update_delivery(
            session, worker, delivery.id, tz=TZ, quantity=3
        )
    assert updated.amount_billed == Decimal("180.00")

    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("180.00")
    assert stored.pending_balance == Decimal("180.00")


@pytest.mark.anyio
async def test_second_delivery_for_same_day_is_rejected(sessionmaker, worker):
    customer = await _customer(sessionmaker)
    async with sessionmaker() as session:
        await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="2024-03-05"
        )
    async with sessionmaker() as session:
        with pytest.raises(ConflictError, match="already exists"):
            await deliveries_repo_sql.record_delivery(
                session,
                worker,
                customer_id=customer.id,
                quantity=1,
                tz=TZ,
                delivery_date="2024-03-05",
            )

    async with sessionmaker() as session:
        rows = await deliveries_repo_sql.list_deliveries(session, BUSINESS, tz=TZ)
    assert len(rows) == 1
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("50.00")


@pytest.mark.anyio
async def test_moving_a_delivery_onto_a_taken_day_conflicts(sessionmaker, worker):
    customer = await _customer(sessionmaker)
    async with sessionmaker() as session:
        await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="2024-03-05"
        )
        other, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="2024-03-06"
        )
    async with sessionmaker() as session:
        with pytest.raises(ConflictError):
            await deliveries_repo_sql.update_delivery(
                session, worker, other.id, tz=TZ, delivery_date="2024-03-05"
            )


@pytest.mark.anyio
async def test_invalid_inputs(sessionmaker, worker):
    customer = await _customer(sessionmaker)
    async with sessionmaker() as session:
        with pytest.raises(ValidationError):
            await deliveries_repo_sql.record_delivery(
                session, worker, customer_id=customer.id, quantity=0, tz=TZ
            )
        with pytest.raises(NotFoundError, match="Customer not found"):
            await deliveries_repo_sql.record_delivery(
                session, worker, customer_id=9999, quantity=1, tz=TZ
            )
        with pytest.raises(ValidationError):
            await deliveries_repo_sql.record_delivery(
                session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="05/03"
            )
        with pytest.raises(NotFoundError, match="Delivery not found"):
            await deliveries_repo_sql.record_payment(session, worker, 9999, 10)


@pytest.mark.anyio
async def test_mark_delivery_is_idempotent(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    for _ in range(2):
        async with sessionmaker() as session:
            result = await deliveries_repo_sql.mark_delivery(
                session,
                worker,
                customer_id=customer.id,
                delivered=True,
                quantity=2,
                tz=TZ,
                delivery_date="2024-03-05",
            )
        assert result.amount_billed == Decimal("100.00")

    async with sessionmaker() as session:
        rows = await deliveries_repo_sql.list_deliveries(session, BUSINESS, tz=TZ)
    assert len(rows) == 1
    assert rows[0][0].quantity_delivered == 2
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("100.00")


@pytest.mark.anyio
async def test_unmark_restores_total_billed(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="2024-03-04"
        )
        await deliveries_repo_sql.mark_delivery(
            session,
            worker,
            customer_id=customer.id,
            delivered=True,
            tz=TZ,
            delivery_date="2024-03-05",
        )
        result = await deliveries_repo_sql.mark_delivery(
            session,
            worker,
            customer_id=customer.id,
            delivered=False,
            tz=TZ,
            delivery_date="2024-03-05",
        )
    assert result.delivered is False
    assert result.quantity_delivered == 0
    assert result.amount_billed == Decimal("0.00")

    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("50.00")

    async with sessionmaker() as session:
        row = await deliveries_repo_sql.find_for_day(
            session, BUSINESS, customer.id, date(2024, 3, 5)
        )
    assert row is not None and row.delivered is False


@pytest.mark.anyio
async def test_monthly_matrix_for_leap_february(sessionmaker, worker):
    first = await _customer(sessionmaker, name="Amit Patel", price=30)
    second = await _customer(sessionmaker, name="Priya Sharma", price=50)
    await _customer(sessionmaker, name="Kavita Nair", is_active=False)
    async with sessionmaker() as session:
        await deliveries_repo_sql.mark_delivery(
            session, worker, customer_id=first.id, delivered=True, tz=TZ, delivery_date="2024-02-10"
        )
        await deliveries_repo_sql.mark_delivery(
            session, worker, customer_id=first.id, delivered=False, tz=TZ, delivery_date="2024-02-11"
        )
        await deliveries_repo_sql.mark_delivery(
            session, worker, customer_id=second.id, delivered=True, tz=TZ, delivery_date="2024-03-01"
        )
        rows = await deliveries_repo_sql.monthly_matrix(session, BUSINESS, "2024-02")

    assert [r["customerName"] for r in rows] == ["Amit Patel", "Priya Sharma"]
    amit, priya = rows
    assert len(amit["dailyStatus"]) == 29
    assert amit["dailyStatus"][9]["delivered"] is True
    assert amit["dailyStatus"][9]["amount"] == Decimal("30.00")
    assert amit["dailyStatus"][10]["delivered"] is False
    assert amit["dailyStatus"][0]["delivered"] is None
    assert all(cell["delivered"] is None for cell in priya["dailyStatus"])


@pytest.mark.anyio
async def test_monthly_matrix_requires_month(session):
    with pytest.raises(ValidationError, match="required"):
        await deliveries_repo_sql.monthly_matrix(session, BUSINESS, None)
    with pytest.raises(ValidationError, match="YYYY-MM"):
        await deliveries_repo_sql.monthly_matrix(session, BUSINESS, "2024/02")


@pytest.mark.anyio
async def test_resync_reports_and_repairs_drift(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ, delivery_date="2024-03-05"
        )
    async with sessionmaker() as session:
        broken = await customers_repo_sql.get(session, BUSINESS, customer.id)
        broken.total_billed = Decimal("70")
        await session.commit()

    async with sessionmaker() as session:
        result = await customers_repo_sql.resync(session, BUSINESS, customer.id)
    assert result["totalBilled"] == Decimal("100.00")
    assert result["pendingBalance"] == Decimal("100.00")
    assert result["drift"]["totalBilled"] == Decimal("-30.00")
    assert result["drift"]["totalPaid"] == Decimal("0.00")


def _run_before_customer_lock(monkeypatch, writer):
    """Run ``writer`` once, just before the next customer lock is taken."""

    real_get = customers_repo_sql.get
    pending = [writer]

    async def get(session, business_id, customer_id, *, lock=False):
        if lock and pending:
            await pending.pop()()
        return await real_get(session, business_id, customer_id, lock=lock)

    monkeypatch.setattr(customers_repo_sql, "get", get)


@pytest.mark.anyio
async def test_concurrent_payments_keep_totals_in_step(sessionmaker, worker, monkeypatch):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ
        )

    async def other_payment():
        async with sessionmaker() as other:
            await deliveries_repo_sql.record_payment(other, worker, delivery.id, 50)

    _run_before_customer_lock(monkeypatch, other_payment)
    async with sessionmaker() as session:
        paid = await deliveries_repo_sql.record_payment(session, worker, delivery.id, 80)
    assert paid.paid_amount == Decimal("80.00")

    monkeypatch.undo()
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_paid == Decimal("80.00")
    assert stored.pending_balance == Decimal("20.00")


@pytest.mark.anyio
async def test_concurrent_quantity_updates_keep_totals_in_step(sessionmaker, worker, monkeypatch):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=2, tz=TZ
        )

    async def other_update():
        async with sessionmaker() as other:
            await deliveries_repo_sql.update_delivery(other, worker, delivery.id, tz=TZ, quantity=3)

    _run_before_customer_lock(monkeypatch, other_update)
    async with sessionmaker() as session:
        updated = await deliveries_repo_sql.update_delivery(
            session, worker, delivery.id, tz=TZ, quantity=4
        )
    assert updated.amount_billed == Decimal("200.00")

    monkeypatch.undo()
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("200.00")


@pytest.mark.anyio
async def test_mark_insert_over_existing_day_conflicts(sessionmaker, worker, monkeypatch):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        await deliveries_repo_sql.mark_delivery(
            session, worker, customer_id=customer.id, delivered=True, tz=TZ, delivery_date="2024-03-05"
        )

    async def missing(*args, **kwargs):
        return None

    monkeypatch.setattr(deliveries_repo_sql, "find_for_day", missing)
    async with sessionmaker() as session:
        with pytest.raises(ConflictError, match="already exists"):
            await deliveries_repo_sql.mark_delivery(
                session,
                worker,
                customer_id=customer.id,
                delivered=True,
                quantity=3,
                tz=TZ,
                delivery_date="2024-03-05",
            )
    monkeypatch.undo()

    async with sessionmaker() as session:
        rows = await deliveries_repo_sql.list_deliveries(session, BUSINESS, tz=TZ)
    assert len(rows) == 1
    assert rows[0][0].quantity_delivered == 1
    stored = await _reload(sessionmaker, customer.id)
    assert stored.total_billed == Decimal("50.00")


@pytest.mark.anyio
async def test_remark_with_larger_quantity_reopens_payment(sessionmaker, worker):
    customer = await _customer(sessionmaker, price=50)
    async with sessionmaker() as session:
        delivery, _ = await deliveries_repo_sql.record_delivery(
            session, worker, customer_id=customer.id, quantity=1, tz=TZ, delivery_date="2024-03-05"
        )
        paid = await deliveries_repo_sql.record_payment(session, worker, delivery.id, 50)
        assert paid.is_paid is True
        await deliveries_repo_sql.mark_delivery(
            session,
            worker,
            customer_id=customer.id,
            delivered=True,
            quantity=2,
            tz=TZ,
            delivery_date="2024-03-05",
        )

    async with sessionmaker() as session:
        row = await deliveries_repo_sql.find_for_day(
            session, BUSINESS, customer.id, date(2024, 3, 5)
        )
    assert row.amount_billed == Decimal("100.00")
    assert row.is_paid is False
    stored = await _reload(sessionmaker, customer.id)
    assert stored.pending_balance == Decimal("50.00")
