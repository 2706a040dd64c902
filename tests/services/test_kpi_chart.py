from datetime import date, datetime
from decimal import Decimal

import pytest

from app.models import PaymentStatus
from app.schemas.charts import ChartRequest, ChartType
from app.services.charts.kpi import KPI_METRICS, KPIChartStrategy, kpi_value, previous_period


def _request(start: date, end: date, **kwargs) -> ChartRequest:
    return ChartRequest(chart_type=ChartType.KPI, start=start, end=end, **kwargs)


def test_previous_period_has_equal_length_and_ends_the_day_before() -> None:
    assert previous_period(date(2024, 1, 11), date(2024, 1, 20)) == (date(2024, 1, 1), date(2024, 1, 10))
    assert previous_period(date(2024, 3, 1), date(2024, 3, 1)) == (date(2024, 2, 29), date(2024, 2, 29))


@pytest.mark.parametrize(
    ("current", "previous", "change", "change_percentage", "trend"),
    [
        ("150", "100", 50.0, 50.0, "up"),
        ("80", "100", -20.0, -20.0, "down"),
        ("50", "0", 50.0, 100.0, "up"),
        ("0", "0", 0.0, 0.0, "stable"),
        ("-10", "0", -10.0, 0.0, "down"),
        ("1", "3", -2.0, -66.67, "down"),
    ],
)
def test_kpi_value(current: str, previous: str, change: float, change_percentage: float, trend: str) -> None:
    value = kpi_value(Decimal(current), Decimal(previous))

    assert value.change == change
    assert value.change_percentage == change_percentage
    assert value.trend == trend


def test_period_over_period_totals(session, data, fixed_now) -> None:
    sales = data.category("Sales")
    acme = data.customer("Acme")
    globex = data.customer("Globex")
    data.revenue("100.00", datetime(2024, 2, 3), category=sales, customer=acme)
    data.revenue("200.00", datetime(2024, 2, 20), category=sales, customer=globex)
    data.expense("50.00", datetime(2024, 2, 21), category=sales)
    data.revenue("200.00", datetime(2024, 1, 15), category=sales, customer=acme)

    result = KPIChartStrategy(clock=lambda: fixed_now).execute(
        _request(date(2024, 2, 1), date(2024, 2, 29)), session
    )

    assert set(result.metrics) == set(KPI_METRICS)
    revenue = result.metrics["revenue"]
    assert (revenue.current, revenue.previous, revenue.change) == (300.0, 200.0, 100.0)
    assert revenue.change_percentage == 50.0
    assert revenue.trend == "up"
    assert result.metrics["expense"].current == 50.0
    assert result.metrics["profit"].current == 250.0
    assert result.metrics["transactions"].current == 3.0
    assert result.metrics["avgTicket"].current == 116.67
    assert result.metrics["customers"].current == 2.0
    assert result.metrics["customers"].previous == 1.0
    assert result.period.current.start == date(2024, 2, 1)
    assert result.period.previous.start == date(2024, 1, 3)
    assert result.period.previous.end == date(2024, 1, 31)


def test_balances_are_measured_as_of_now(session, data, fixed_now) -> None:
    sales = data.category("Sales")
    data.revenue(
        "100.00",
        datetime(2024, 3, 1),
        category=sales,
        status=PaymentStatus.OVERDUE,
        due_date=date(2024, 3, 10),
    )
    # Due on the as-of day: no longer pending by noon, and PENDING is never overdue here.
    data.revenue(
        "40.00",
        datetime(2024, 3, 2),
        category=sales,
        status=PaymentStatus.PENDING,
        due_date=date(2024, 3, 15),
    )
    data.expense(
        "25.00",
        datetime(2024, 3, 3),
        category=sales,
        status=PaymentStatus.PENDING,
        due_date=date(2024, 3, 20),
    )
    # Booked after "now"; not part of the balance snapshot.
    data.revenue(
        "60.00",
        datetime(2024, 3, 20),
        category=sales,
        status=PaymentStatus.PENDING,
        due_date=date(2024, 4, 1),
    )
    # Settled, so never outstanding.
    data.revenue(
        "70.00",
        datetime(2024, 3, 4),
        category=sales,
        status=PaymentStatus.OVERDUE,
        due_date=date(2024, 3, 5),
        paid_at=datetime(2024, 3, 6),
    )

    result = KPIChartStrategy(clock=lambda: fixed_now).execute(
        _request(date(2024, 3, 1), date(2024, 3, 31)), session
    )

    metrics = result.metrics
    assert metrics["overdueReceivables"].current == 100.0
    assert metrics["overdueReceivables"].previous == 0.0
    assert metrics["overdueReceivables"].change_percentage == 100.0
    assert metrics["pendingReceivables"].current == 0.0
    assert metrics["pendingPayables"].current == 25.0
    assert metrics["overduePayables"].current == 0.0
    assert metrics["revenue"].current == 270.0


def test_past_period_balances_use_period_end(session, data, fixed_now) -> None:
    sales = data.category("Sales")
    data.revenue(
        "90.00",
        datetime(2024, 1, 10),
        category=sales,
        status=PaymentStatus.PENDING,
        due_date=date(2024, 2, 10),
    )

    result = KPIChartStrategy(clock=lambda: fixed_now).execute(
        _request(date(2024, 1, 1), date(2024, 1, 31)), session
    )

    # As of Jan 31 the receivable was not yet due.
    assert result.metrics["pendingReceivables"].current == 90.0
    assert result.metrics["pendingReceivables"].previous == 0.0


def test_overdue_item_due_on_the_last_day_of_a_past_period(session, data, fixed_now) -> None:
    sales = data.category("Sales")
    data.revenue(
        "55.00",
        datetime(2024, 1, 5),
        category=sales,
        status=PaymentStatus.OVERDUE,
        due_date=date(2024, 1, 31),
    )

    result = KPIChartStrategy(clock=lambda: fixed_now).execute(
        _request(date(2024, 1, 1), date(2024, 1, 31)), session
    )

    assert result.metrics["overdueReceivables"].current == 55.0
    assert result.metrics["pendingReceivables"].current == 0.0
