"""Shared contract and helpers for chart strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, ClassVar, Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.models import Transaction
from app.schemas.charts import ChartMetadata, ChartRequest, ChartResponse, ChartType

from .dimensions import Grouping, apply_joins, transaction_filters

PALETTE = (
    "#3B82F6",  # blue
    "#10B981",  # green
    "#F59E0B",  # amber
    "#EF4444",  # red
    "#8B5CF6",  # violet
    "#EC4899",  # pink
    "#14B8A6",  # teal
    "#F97316",  # orange
    "#6366F1",  # indigo
    "#84CC16",  # lime
)
OTHERS_COLOR = "#9CA3AF"
CENT = Decimal("0.01")


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Decimal | int | float) -> Decimal:
    """Round half away from zero to cents."""

    return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(value: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return Decimal("0.00")
    return (value / total * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def average(values: Sequence[Decimal]) -> Decimal:
    return sum(values, Decimal("0")) / len(values) if values else Decimal("0")


class ChartStrategy(ABC):
    """One algorithm mapping a :class:`ChartRequest` to a typed chart response.

    Strategies are stateless; the orchestrator owns one instance per chart type.
    ``validate`` must not touch the database.
    """

    chart_type: ClassVar[ChartType]
    response_model: ClassVar[type[ChartResponse]]
    metadata: ClassVar[ChartMetadata]

    def __init__(self, *, strict_metrics: bool = False) -> None:
        self.strict_metrics = strict_metrics

    @property
    def name(self) -> str:
        return type(self).__name__

    def can_handle(self, request: ChartRequest) -> bool:
        return request.chart_type == self.chart_type

    def validate(self, request: ChartRequest) -> list[str]:
        return []

    @abstractmethod
    def execute(self, request: ChartRequest, session: Session) -> ChartResponse:
        """Run the aggregation queries and shape the response."""

    def _select(self, request: ChartRequest, *columns: Any, groupings: Sequence[Grouping] = ()) -> Select:
        stmt = select(*columns).select_from(Transaction)
        stmt = apply_joins(stmt, (name for grouping in groupings for name in grouping.joins))
        return stmt.where(*transaction_filters(request, request.start, request.end))

    @staticmethod
    def _grouping_error(request_value: str | None, allowed: Sequence[str], field: str) -> list[str]:
        if request_value is not None and request_value not in allowed:
            return [f"Invalid {field} '{request_value}'; expected one of: {', '.join(allowed)}"]
        return []
