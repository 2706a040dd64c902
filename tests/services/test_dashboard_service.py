from datetime import date, datetime
from unittest.mock import create_autospec

import pytest
from sqlalchemy.orm import Session

from app.core.cache import InMemoryCache
from app.core.config import CacheSettings
from app.core.errors import ValidationError
from app.models import PaymentStatus
from app.schemas.charts import ChartRequest, ChartType
from app.schemas.dashboard import SummaryQuery
from app.services.charts.kpi import KPIChartStrategy
from app.services.dashboard_service import DashboardService

MARCH = {"start": date(2024, 3, 1), "end": date(2024, 3, 31)}


@pytest.fixture()
def receivables(data):
    """Open items around the fixed "today" of 2024-03-15."""

    sales = data.category("Sales")
    rent = data.category("Rent")
    north = data.customer("Northwind", region="North")
    south = data.customer("Southpaw", region="South")
    data.revenue(
        "100.00", datetime(2024, 3, 1), category=sales, customer=north,
        status=PaymentStatus.OVERDUE, due_date=date(2024, 3, 10),
    )
    data.revenue(
        "40.00", datetime(2024, 3, 2), category=sales, customer=south,
        status=PaymentStatus.PENDING, due_date=date(2024, 3, 15),
    )
    data.expense(
        "25.00", datetime(2024, 3, 3), category=rent,
        status=PaymentStatus.PENDING, due_date=date(2024, 3, 20),
    )
    data.revenue(
        "60.00", datetime(2024, 3, 20), category=sales, customer=north,
        status=PaymentStatus.PENDING, due_date=date(2024, 4, 1),
    )
    data.expense(
        "15.50", datetime(2024, 3, 4), category=rent,
        status=PaymentStatus.PENDING, due_date=date(2024, 3, 12),
    )
    data.expense("9.99", datetime(2024, 3, 5), category=rent)
    return sales, rent


def _service(fixed_now, **kwargs) -> DashboardService:
    return DashboardService(clock=lambda: fixed_now, **kwargs)


def test_summary_totals(session, receivables, fixed_now) -> None:
    summary = _service(fixed_now).get_summary(SummaryQuery(**MARCH), session)

    assert summary.total_revenue == 200.0
    assert summary.total_expense == 50.49
    assert summary.liquid_profit == 149.51
    assert summary.overdue_accounts.receivable == 140.0
    assert summary.overdue_accounts.payable == 15.5
    assert summary.overdue_accounts.total == 155.5
    assert summary.upcoming_accounts.receivable == 60.0
    assert summary.upcoming_accounts.payable == 25.0
    assert summary.upcoming_accounts.total == 85.0
    assert summary.metadata.period.start == date(2024, 3, 1)
    assert summary.metadata.generated_at == fixed_now


def test_profit_identity_holds(session, receivables, fixed_now) -> None:
    summary = _service(fixed_now).get_summary(SummaryQuery(**MARCH), session)

    assert round(summary.total_revenue - summary.total_expense, 2) == summary.liquid_profit


def test_pending_item_due_today_is_overdue_once_the_day_has_started(session, receivables, fixed_now) -> None:
    """The 40.00 receivable due on 2024-03-15 is past due at noon that day."""

    summary = _service(fixed_now).get_summary(SummaryQuery(**MARCH), session)
    kpi = KPIChartStrategy(clock=lambda: fixed_now).execute(
        ChartRequest(chart_type=ChartType.KPI, **MARCH), session
    )

    assert summary.overdue_accounts.receivable == 140.0
    assert summary.upcoming_accounts.receivable == 60.0
    assert kpi.metrics["pendingReceivables"].current == 0.0
    assert kpi.metrics["overdueReceivables"].current == 100.0


def test_item_due_today_at_midnight_is_not_yet_overdue(session, receivables) -> None:
    midnight = datetime(2024, 3, 15)

    summary = _service(midnight).get_summary(SummaryQuery(**MARCH), session)
    kpi = KPIChartStrategy(clock=lambda: midnight).execute(
        ChartRequest(chart_type=ChartType.KPI, **MARCH), session
    )

    assert summary.overdue_accounts.receivable == 100.0
    assert summary.upcoming_accounts.receivable == 60.0
    assert kpi.metrics["pendingReceivables"].current == 40.0


def test_filters_apply_to_every_figure(session, receivables, fixed_now) -> None:
    sales, _ = receivables
    service = _service(fixed_now)

    by_region = service.get_summary(SummaryQuery(region="North", **MARCH), session)
    by_category = service.get_summary(SummaryQuery(category_id=sales.id, **MARCH), session)

    assert by_region.total_revenue == 160.0
    assert by_region.total_expense == 0.0
    assert by_region.overdue_accounts.total == 100.0
    assert by_category.total_expense == 0.0
    assert by_category.upcoming_accounts.payable == 0.0


def test_empty_period(session, fixed_now) -> None:
    summary = _service(fixed_now).get_summary(SummaryQuery(**MARCH), session)

    assert summary.total_revenue == 0.0
    assert summary.liquid_profit == 0.0
    assert summary.overdue_accounts.total == 0.0


def test_inverted_range_is_rejected(session, fixed_now) -> None:
    with pytest.raises(ValidationError):
        _service(fixed_now).get_summary(SummaryQuery(start=date(2024, 3, 31), end=date(2024, 3, 1)), session)


def test_cached_summary_skips_the_database(session, receivables, fixed_now) -> None:
    service = _service(fixed_now, cache=InMemoryCache())
    first = service.get_summary(SummaryQuery(**MARCH), session)

    untouched = create_autospec(Session, instance=True)
    second = service.get_summary(SummaryQuery(**MARCH), untouched)

    assert second == first
    untouched.execute.assert_not_called()


@pytest.mark.parametrize(
    ("ttl", "expected_ttl", "header"),
    [
        (300, 60, "private, max-age=60, stale-while-revalidate=30"),
        (30, 30, "private, max-age=30, stale-while-revalidate=15"),
        (5, 10, "private, max-age=10, stale-while-revalidate=5"),
    ],
)
def test_cache_ttl_is_clamped(ttl: int, expected_ttl: int, header: str) -> None:
    service = DashboardService(cache_settings=CacheSettings(ttl_seconds=ttl))

    assert service.cache_ttl == expected_ttl
    assert service.get_cache_control_header() == header


def test_cache_control_when_disabled() -> None:
    service = DashboardService(cache_settings=CacheSettings(enabled=False))

    assert service.get_cache_control_header() == "private, no-store"


def test_cache_key_lists_every_filter() -> None:
    key = DashboardService.build_cache_key(SummaryQuery(region="North", **MARCH))

    assert key == "dashboard:summary:2024-03-01:2024-03-31:cat|all:prod|all:cust|all:region|North"
