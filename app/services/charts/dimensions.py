"""Single lookup table mapping logical metrics and groupings to SQL.

Every chart strategy resolves ``metric`` and ``groupBy``/``dimension`` through
this module so the supported vocabulary cannot drift between chart types.

Time groupings aggregate per calendar day in SQL (``DATE(occurred_at)`` is
available on both MySQL and SQLite) and are folded into week/month/quarter/year
buckets in Python. All metrics are sums or counts, so folding daily rows is
exact.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Iterator

from sqlalchemy import Date, Select, case, func, select
from sqlalchemy.sql import ColumnElement

from app.core.errors import ValidationError
from app.core.log import get_logger
from app.models import Category, Customer, PaymentStatus, Product, Transaction, TransactionType
from app.schemas.charts import DimensionFilters

LOGGER = get_logger(__name__)

METRICS = ("revenue", "expense", "profit", "quantity", "count")
TIME_GRANULARITIES = ("day", "week", "month", "quarter", "year")
DIMENSIONS = ("category", "product", "customer", "region", "type", "status")
UNKNOWN_LABEL = "Unknown"

TYPE_LABELS = {
    TransactionType.REVENUE: "Revenue",
    TransactionType.EXPENSE: "Expense",
}
STATUS_LABELS = {
    PaymentStatus.PENDING: "Pending",
    PaymentStatus.PAID: "Paid",
    PaymentStatus.OVERDUE: "Overdue",
    PaymentStatus.CANCELLED: "Cancelled",
}


def _signed_amount() -> ColumnElement[Any]:
    return case((Transaction.type == TransactionType.REVENUE, Transaction.amount), else_=-Transaction.amount)


def amount_when(condition: ColumnElement[bool]) -> ColumnElement[Any]:
    """``amount`` for rows matching ``condition``, 0 otherwise; meant to be summed."""

    return case((condition, Transaction.amount), else_=0)


def due_before(instant: datetime) -> ColumnElement[bool]:
    """``due_date`` read as midnight of that day, strictly earlier than ``instant``."""

    day = instant.date()
    if instant > datetime.combine(day, time.min):
        return Transaction.due_date <= day
    return Transaction.due_date < day


def due_after(instant: datetime, *, inclusive: bool = False) -> ColumnElement[bool]:
    """``due_date`` read as midnight of that day, later than (or equal to) ``instant``."""

    day = instant.date()
    if inclusive and instant == datetime.combine(day, time.min):
        return Transaction.due_date >= day
    return Transaction.due_date > day


def _amount_of(kind: TransactionType) -> ColumnElement[Any]:
    return amount_when(Transaction.type == kind)


_METRIC_BUILDERS = {
    "revenue": lambda: func.sum(_amount_of(TransactionType.REVENUE)),
    "expense": lambda: func.sum(_amount_of(TransactionType.EXPENSE)),
    "profit": lambda: func.sum(_signed_amount()),
    "quantity": lambda: func.sum(Transaction.quantity),
    "count": lambda: func.count(Transaction.id),
}


def metric_expression(metric: str | None, *, strict: bool = False) -> ColumnElement[Any]:
    """Return the aggregate expression for ``metric``.

    Unknown metrics fall back to ``revenue`` unless ``strict`` is set, in which
    case a :class:`ValidationError` is raised.
    """

    builder = _METRIC_BUILDERS.get(metric or "revenue")
    if builder is None:
        if strict:
            raise ValidationError([f"Unsupported metric '{metric}'"])
        LOGGER.warning("Unknown metric %r, falling back to revenue", metric)
        builder = _METRIC_BUILDERS["revenue"]
    return builder()


@dataclass(frozen=True)
class Grouping:
    """How to group and label rows for one logical grouping key."""

    key: str
    group_column: ColumnElement[Any]
    label_column: ColumnElement[Any]
    joins: frozenset[str] = frozenset()
    granularity: str | None = None

    @property
    def is_time(self) -> bool:
        return self.granularity is not None


def day_column() -> ColumnElement[Any]:
    return func.date(Transaction.occurred_at, type_=Date)


def resolve_grouping(key: str) -> Grouping:
    if key in TIME_GRANULARITIES:
        column = day_column()
        return Grouping(key=key, group_column=column, label_column=column, granularity=key)
    if key == "category":
        return Grouping(key, Transaction.category_id, Category.name, frozenset({"category"}))
    if key == "product":
        return Grouping(key, Transaction.product_id, Product.name, frozenset({"product"}))
    if key == "customer":
        return Grouping(key, Transaction.customer_id, Customer.name, frozenset({"customer"}))
    if key == "region":
        return Grouping(key, Customer.region, Customer.region, frozenset({"customer"}))
    if key == "type":
        return Grouping(key, Transaction.type, Transaction.type)
    if key == "status":
        return Grouping(key, Transaction.payment_status, Transaction.payment_status)
    raise ValidationError([f"Unsupported grouping '{key}'"])


_JOIN_TARGETS = {
    "category": (Category, lambda: Transaction.category_id == Category.id),
    "product": (Product, lambda: Transaction.product_id == Product.id),
    "customer": (Customer, lambda: Transaction.customer_id == Customer.id),
}


def apply_joins(stmt: Select, needed: Iterable[str]) -> Select:
    """Outer-join each named lookup table (category/product/customer) exactly once."""

    needed = set(needed)
    for name in ("category", "product", "customer"):
        if name in needed:
            target, on_clause = _JOIN_TARGETS[name]
            stmt = stmt.outerjoin(target, on_clause())
    return stmt


def date_window(start: date, end: date) -> tuple[datetime, datetime]:
    """Inclusive bounds: ``start`` at midnight through the last microsecond of ``end``."""

    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def dimension_filters(filters: DimensionFilters) -> list[ColumnElement[Any]]:
    clauses: list[ColumnElement[Any]] = []
    if filters.category_id:
        clauses.append(Transaction.category_id == filters.category_id)
    if filters.product_id:
        clauses.append(Transaction.product_id == filters.product_id)
    if filters.customer_id:
        clauses.append(Transaction.customer_id == filters.customer_id)
    if filters.region:
        clauses.append(
            Transaction.customer_id.in_(select(Customer.id).where(Customer.region == filters.region))
        )
    return clauses


def transaction_filters(filters: DimensionFilters, start: date, end: date) -> list[ColumnElement[Any]]:
    """Date window plus the optional dimension filters."""

    lower, upper = date_window(start, end)
    return [
        Transaction.occurred_at >= lower,
        Transaction.occurred_at <= upper,
        *dimension_filters(filters),
    ]


def group_key(value: Any) -> Any:
    """Normalise a grouping value so NULL and empty strings share one bucket."""

    return None if value is None or value == "" else value


def display_label(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN_LABEL
    if isinstance(value, TransactionType):
        return TYPE_LABELS[value]
    if isinstance(value, PaymentStatus):
        return STATUS_LABELS[value]
    return str(value)


# -- time buckets ----------------------------------------------------------


def bucket_start(day: date, granularity: str) -> date:
    if granularity == "day":
        return day
    if granularity == "week":
        return day - timedelta(days=day.weekday())
    if granularity == "month":
        return day.replace(day=1)
    if granularity == "quarter":
        return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
    if granularity == "year":
        return date(day.year, 1, 1)
    raise ValueError(f"Unknown granularity {granularity!r}")


def _add_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def next_bucket(bucket: date, granularity: str) -> date:
    if granularity == "day":
        return bucket + timedelta(days=1)
    if granularity == "week":
        return bucket + timedelta(days=7)
    if granularity == "month":
        return _add_months(bucket, 1)
    if granularity == "quarter":
        return _add_months(bucket, 3)
    if granularity == "year":
        return date(bucket.year + 1, 1, 1)
    raise ValueError(f"Unknown granularity {granularity!r}")


def iter_buckets(start: date, end: date, granularity: str) -> Iterator[date]:
    """Yield every bucket start touching ``[start, end]``, in order."""

    current = bucket_start(start, granularity)
    while current <= end:
        yield current
        current = next_bucket(current, granularity)


def bucket_label(bucket: date, granularity: str) -> str:
    """Human-facing axis label for a bucket (bar chart categories)."""

    if granularity == "week":
        iso_year, iso_week, _ = bucket.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity == "month":
        return bucket.strftime("%Y-%m")
    if granularity == "quarter":
        return f"{bucket.year}-Q{(bucket.month - 1) // 3 + 1}"
    if granularity == "year":
        return str(bucket.year)
    return bucket.isoformat()
