"""Share-of-total slices for pie charts."""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy.orm import Session

from app.schemas.charts import (
    ChartMetadata,
    ChartRequest,
    ChartType,
    PieChartResponse,
    PieMetadata,
    PieSlice,
)

from .base import OTHERS_COLOR, ChartStrategy, as_decimal, color_for, percentage
from .dimensions import DIMENSIONS, METRICS, display_label, group_key, metric_expression, resolve_grouping

OTHERS_LABEL = "Outros"
MAX_TOP_N = 20


def collapse_top_n(
    values: list[tuple[str, Decimal]], top_n: int | None
) -> list[tuple[str, Decimal]]:
    """Keep the ``top_n`` largest entries and merge the rest into one "Outros" entry.

    ``values`` must already be sorted by value, descending.
    """

    if not top_n or top_n >= len(values):
        return list(values)
    kept = list(values[:top_n])
    remainder = sum((amount for _, amount in values[top_n:]), Decimal("0"))
    kept.append((OTHERS_LABEL, remainder))
    return kept


class PieChartStrategy(ChartStrategy):
    chart_type = ChartType.PIE
    response_model = PieChartResponse
    metadata = ChartMetadata(
        name="Pie Chart",
        supported_metrics=list(METRICS),
        supported_group_by=list(DIMENSIONS),
        supports_pagination=False,
    )

    @staticmethod
    def _grouping_key(request: ChartRequest) -> str:
        return request.dimension or request.group_by or "category"

    def validate(self, request: ChartRequest) -> list[str]:
        errors = self._grouping_error(self._grouping_key(request), DIMENSIONS, "dimension for pie chart")
        if request.top_n is not None:
            if request.top_n > MAX_TOP_N:
                errors.append(f"topN cannot exceed {MAX_TOP_N} for pie charts")
            elif request.top_n < 1:
                errors.append("topN must be a positive integer")
        return errors

    def execute(self, request: ChartRequest, session: Session) -> PieChartResponse:
        grouping = resolve_grouping(self._grouping_key(request))
        value = metric_expression(request.metric, strict=self.strict_metrics)
        stmt = self._select(
            request,
            grouping.group_column.label("key"),
            grouping.label_column.label("label"),
            value.label("value"),
            groupings=[grouping],
        ).group_by(grouping.group_column, grouping.label_column)

        # Keyed by the grouping column, not the display name.
        amounts: dict[object, Decimal] = defaultdict(Decimal)
        labels: dict[object, str] = {}
        for row in session.execute(stmt).all():
            key = group_key(row.key)
            amounts[key] += as_decimal(row.value)
            labels.setdefault(key, display_label(row.label))

        ranked = sorted(
            ((labels[key], amount) for key, amount in amounts.items()),
            key=lambda item: (-item[1], item[0]),
        )
        collapsed = collapse_top_n(ranked, request.top_n)
        # Percentages are computed against the post-collapse total.
        total = sum((amount for _, amount in collapsed), Decimal("0"))

        others_index = len(collapsed) - 1 if collapsed != ranked else None
        slices = [
            PieSlice(
                label=label,
                value=float(amount),
                percentage=float(percentage(amount, total)),
                color=OTHERS_COLOR if index == others_index else color_for(index),
            )
            for index, (label, amount) in enumerate(collapsed)
        ]
        return PieChartResponse(slices=slices, metadata=PieMetadata(total=float(total)))
