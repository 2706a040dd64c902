"""Query-string parsing for the chart, summary and options endpoints.

Parsers collect every problem before raising so a single 400 response lists
all of them.
"""
from __future__ import annotations

from datetime import date
from typing import Mapping

from starlette.datastructures import QueryParams

from app.core.errors import ValidationError
from app.schemas.charts import ChartRequest, ChartType
from app.schemas.dashboard import SummaryQuery
from app.schemas.options import OptionsQuery

ParamsMapping = Mapping[str, str] | QueryParams

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def extract_text(params: ParamsMapping, key: str) -> str | None:
    value = params.get(key)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def extract_int(params: ParamsMapping, key: str, errors: list[str]) -> int | None:
    value = extract_text(params, key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        errors.append(f"{key} must be an integer")
        return None


def extract_bool(params: ParamsMapping, key: str, errors: list[str], *, default: bool = False) -> bool:
    value = extract_text(params, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    errors.append(f"{key} must be a boolean")
    return default


def extract_period(params: ParamsMapping, errors: list[str]) -> tuple[date | None, date | None]:
    bounds: list[date | None] = []
    for key in ("start", "end"):
        raw = extract_text(params, key)
        parsed = parse_iso_date(raw)
        if raw is None:
            errors.append(f"{key} date is required")
        elif parsed is None:
            errors.append(f"Invalid {key} date")
        bounds.append(parsed)
    return bounds[0], bounds[1]


def _filters(params: ParamsMapping) -> dict[str, str | None]:
    return {
        "category_id": extract_text(params, "categoryId"),
        "product_id": extract_text(params, "productId"),
        "customer_id": extract_text(params, "customerId"),
        "region": extract_text(params, "region"),
    }


def chart_request_from_params(chart_type: ChartType, params: ParamsMapping) -> ChartRequest:
    errors: list[str] = []
    start, end = extract_period(params, errors)
    top_n = extract_int(params, "topN", errors)
    limit = extract_int(params, "limit", errors)
    if errors:
        raise ValidationError(errors)
    return ChartRequest(
        chart_type=chart_type,
        start=start,
        end=end,
        metric=extract_text(params, "metric") or "revenue",
        group_by=extract_text(params, "groupBy"),
        dimension=extract_text(params, "dimension"),
        top_n=top_n,
        cursor=extract_text(params, "cursor"),
        limit=limit,
        **_filters(params),
    )


def summary_query_from_params(params: ParamsMapping) -> SummaryQuery:
    errors: list[str] = []
    start, end = extract_period(params, errors)
    if errors:
        raise ValidationError(errors)
    return SummaryQuery(start=start, end=end, **_filters(params))


def options_query_from_params(params: ParamsMapping) -> OptionsQuery:
    errors: list[str] = []
    limit = extract_int(params, "limit", errors)
    include_inactive = extract_bool(params, "includeInactive", errors)
    if errors:
        raise ValidationError(errors)
    return OptionsQuery(
        q=extract_text(params, "q"),
        limit=20 if limit is None else limit,
        cursor=extract_text(params, "cursor"),
        include_inactive=include_inactive,
        category_id=extract_text(params, "categoryId"),
        region=extract_text(params, "region"),
    )
