"""Totals for the dashboard summary cards."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.core.cache import CacheStore, NullCache, safe_get, safe_set
from app.core.config import CacheSettings
from app.core.errors import ValidationError
from app.core.log import get_logger, timeit
from app.models import PaymentStatus, Transaction, TransactionType
from app.schemas.charts import PeriodRange
from app.schemas.dashboard import AccountsBreakdown, DashboardSummary, SummaryMetadata, SummaryQuery
from app.services.charts.base import as_decimal, round_money
from app.services.charts.dimensions import amount_when, due_after, due_before, transaction_filters

LOGGER = get_logger(__name__)

MIN_TTL = 10
MAX_TTL = 60


def _breakdown(receivable: Decimal, payable: Decimal) -> AccountsBreakdown:
    receivable = round_money(receivable)
    payable = round_money(payable)
    return AccountsBreakdown(
        receivable=float(receivable),
        payable=float(payable),
        total=float(round_money(receivable + payable)),
    )


class DashboardService:
    """Revenue, expense and overdue/upcoming balances for one period.

    Due dates count as midnight of that day and are compared with ``now``.
    Overdue: ``due_date < now`` and either OVERDUE, or PENDING and unpaid.
    Upcoming: ``due_date > now``, PENDING and unpaid. An unpaid PENDING item
    due today is overdue once the day has started.
    """

    def __init__(
        self,
        *,
        cache: CacheStore | None = None,
        cache_settings: CacheSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cache_settings = cache_settings or CacheSettings()
        self.cache: CacheStore = cache if cache is not None and self.cache_settings.enabled else NullCache()
        self._clock = clock

    @property
    def cache_ttl(self) -> int:
        return max(MIN_TTL, min(MAX_TTL, self.cache_settings.ttl_seconds))

    def get_cache_control_header(self) -> str:
        if not self.cache_settings.enabled:
            return "private, no-store"
        ttl = self.cache_ttl
        return f"private, max-age={ttl}, stale-while-revalidate={max(5, round(ttl / 2))}"

    @staticmethod
    def build_cache_key(query: SummaryQuery) -> str:
        return ":".join(
            [
                "dashboard:summary",
                query.start.isoformat(),
                query.end.isoformat(),
                f"cat|{query.category_id or 'all'}",
                f"prod|{query.product_id or 'all'}",
                f"cust|{query.customer_id or 'all'}",
                f"region|{query.region or 'all'}",
            ]
        )

    def get_summary(self, query: SummaryQuery, session: Session) -> DashboardSummary:
        if query.start > query.end:
            raise ValidationError(["Start date must be before or equal to end date"])

        cache_key = self.build_cache_key(query)
        cached = safe_get(self.cache, cache_key)
        if cached is not None:
            LOGGER.debug("Dashboard summary cache hit", extra={"cache_key": cache_key})
            return DashboardSummary.model_validate_json(cached)

        now = self._clock()
        unpaid_pending = and_(
            Transaction.payment_status == PaymentStatus.PENDING, Transaction.paid_at.is_(None)
        )
        overdue = and_(
            Transaction.due_date.is_not(None),
            due_before(now),
            or_(Transaction.payment_status == PaymentStatus.OVERDUE, unpaid_pending),
        )
        upcoming = and_(due_after(now), unpaid_pending)
        revenue = Transaction.type == TransactionType.REVENUE
        expense = Transaction.type == TransactionType.EXPENSE

        stmt = select(
            func.sum(amount_when(revenue)).label("revenue"),
            func.sum(amount_when(expense)).label("expense"),
            func.sum(amount_when(and_(overdue, revenue))).label("overdue_receivable"),
            func.sum(amount_when(and_(overdue, expense))).label("overdue_payable"),
            func.sum(amount_when(and_(upcoming, revenue))).label("upcoming_receivable"),
            func.sum(amount_when(and_(upcoming, expense))).label("upcoming_payable"),
        ).where(*transaction_filters(query, query.start, query.end))

        with timeit("Dashboard summary", logger=LOGGER, track_db_calls=True, session=session):
            row = session.execute(stmt).one()

        total_revenue = round_money(as_decimal(row.revenue))
        total_expense = round_money(as_decimal(row.expense))
        summary = DashboardSummary(
            total_revenue=float(total_revenue),
            total_expense=float(total_expense),
            liquid_profit=float(round_money(total_revenue - total_expense)),
            overdue_accounts=_breakdown(as_decimal(row.overdue_receivable), as_decimal(row.overdue_payable)),
            upcoming_accounts=_breakdown(as_decimal(row.upcoming_receivable), as_decimal(row.upcoming_payable)),
            metadata=SummaryMetadata(
                period=PeriodRange(start=query.start, end=query.end),
                generated_at=now,
            ),
        )

        safe_set(self.cache, cache_key, summary.model_dump_json(by_alias=True), self.cache_ttl)
        return summary
