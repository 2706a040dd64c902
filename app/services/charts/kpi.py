"""Period-over-period key performance indicators."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.models import PaymentStatus, Transaction, TransactionType
from app.schemas.charts import (
    ChartMetadata,
    ChartRequest,
    ChartType,
    KPIChartResponse,
    KPIPeriod,
    KPIValue,
    PeriodRange,
)

from .base import ChartStrategy, as_decimal, round_money
from .dimensions import (
    amount_when,
    date_window,
    dimension_filters,
    due_after,
    due_before,
    metric_expression,
    transaction_filters,
)

KPI_METRICS = (
    "revenue",
    "expense",
    "profit",
    "transactions",
    "avgTicket",
    "customers",
    "products",
    "overdueReceivables",
    "overduePayables",
    "pendingReceivables",
    "pendingPayables",
)


def previous_period(start: date, end: date) -> tuple[date, date]:
    """Return the period of equal length ending the day before ``start``."""

    previous_end = start - timedelta(days=1)
    return previous_end - (end - start), previous_end


def kpi_value(current: Decimal, previous: Decimal) -> KPIValue:
    change = current - previous
    if previous != 0:
        change_percentage = change / previous * 100
    else:
        change_percentage = Decimal(100) if current > 0 else Decimal(0)
    if change > 0:
        trend = "up"
    elif change < 0:
        trend = "down"
    else:
        trend = "stable"
    return KPIValue(
        current=float(round_money(current)),
        previous=float(round_money(previous)),
        change=float(round_money(change)),
        change_percentage=float(round_money(change_percentage)),
        trend=trend,
    )


@dataclass(frozen=True)
class _Balances:
    overdue_receivables: Decimal
    overdue_payables: Decimal
    pending_receivables: Decimal
    pending_payables: Decimal


class KPIChartStrategy(ChartStrategy):
    """Fixed menu of indicators compared with the immediately preceding period.

    Receivable/payable balances are snapshots as of ``min(now, period end)``:
    overdue means status OVERDUE, unpaid and ``due_date < as_of``; pending means
    status PENDING, unpaid and ``due_date >= as_of``, with a due date read as
    midnight of that day.
    """

    chart_type = ChartType.KPI
    response_model = KPIChartResponse
    metadata = ChartMetadata(
        name="KPI",
        supported_metrics=["all"],
        supported_group_by=[],
        supports_pagination=False,
    )

    def __init__(self, *, strict_metrics: bool = False, clock: Callable[[], datetime] = datetime.now) -> None:
        super().__init__(strict_metrics=strict_metrics)
        self._clock = clock

    def execute(self, request: ChartRequest, session: Session) -> KPIChartResponse:
        previous_start, previous_end = previous_period(request.start, request.end)
        current = self._snapshot(session, request, request.start, request.end)
        previous = self._snapshot(session, request, previous_start, previous_end)
        return KPIChartResponse(
            metrics={name: kpi_value(current[name], previous[name]) for name in KPI_METRICS},
            period=KPIPeriod(
                current=PeriodRange(start=request.start, end=request.end),
                previous=PeriodRange(start=previous_start, end=previous_end),
            ),
        )

    def _snapshot(
        self, session: Session, request: ChartRequest, start: date, end: date
    ) -> dict[str, Decimal]:
        stmt = select(
            metric_expression("revenue").label("revenue"),
            metric_expression("expense").label("expense"),
            func.count(Transaction.id).label("transactions"),
            func.avg(Transaction.amount).label("avg_ticket"),
            func.count(func.distinct(Transaction.customer_id)).label("customers"),
            func.count(func.distinct(Transaction.product_id)).label("products"),
        ).where(*transaction_filters(request, start, end))
        totals = session.execute(stmt).one()

        revenue = as_decimal(totals.revenue)
        expense = as_decimal(totals.expense)
        balances = self._balances(session, request, end)
        return {
            "revenue": revenue,
            "expense": expense,
            "profit": revenue - expense,
            "transactions": as_decimal(totals.transactions),
            "avgTicket": as_decimal(totals.avg_ticket),
            "customers": as_decimal(totals.customers),
            "products": as_decimal(totals.products),
            "overdueReceivables": balances.overdue_receivables,
            "overduePayables": balances.overdue_payables,
            "pendingReceivables": balances.pending_receivables,
            "pendingPayables": balances.pending_payables,
        }

    def _balances(self, session: Session, request: ChartRequest, end: date) -> _Balances:
        _, period_end = date_window(end, end)
        as_of = min(self._clock(), period_end)
        unpaid = Transaction.paid_at.is_(None)
        overdue = and_(
            Transaction.payment_status == PaymentStatus.OVERDUE, unpaid, due_before(as_of)
        )
        pending = and_(
            Transaction.payment_status == PaymentStatus.PENDING, unpaid, due_after(as_of, inclusive=True)
        )

        receivable = Transaction.type == TransactionType.REVENUE
        payable = Transaction.type == TransactionType.EXPENSE
        stmt = select(
            func.sum(amount_when(and_(overdue, receivable))).label("overdue_receivables"),
            func.sum(amount_when(and_(overdue, payable))).label("overdue_payables"),
            func.sum(amount_when(and_(pending, receivable))).label("pending_receivables"),
            func.sum(amount_when(and_(pending, payable))).label("pending_payables"),
        ).where(Transaction.occurred_at <= as_of, *dimension_filters(request))
        row = session.execute(stmt).one()
        return _Balances(
            overdue_receivables=as_decimal(row.overdue_receivables),
            overdue_payables=as_decimal(row.overdue_payables),
            pending_receivables=as_decimal(row.pending_receivables),
            pending_payables=as_decimal(row.pending_payables),
        )
