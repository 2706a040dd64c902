"""Chart orchestrator: strategy dispatch, validation and cache-aside."""
from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Callable, Iterable, Mapping

from sqlalchemy.orm import Session

from app.core.cache import CacheStore, NullCache, safe_get, safe_set
from app.core.config import CacheSettings, ChartSettings
from app.core.errors import NotFoundError, ValidationError
from app.core.log import get_logger, log_context, timeit
from app.schemas.charts import (
    ChartMetadata,
    ChartRequest,
    ChartResponse,
    ChartType,
    ChartTypeInfo,
)

from .bar import BarChartStrategy
from .base import ChartStrategy
from .dimensions import METRICS
from .kpi import KPIChartStrategy
from .line import LineChartStrategy
from .pie import PieChartStrategy
from .table import TableChartStrategy

LOGGER = get_logger(__name__)

CHART_TYPE_LABELS = {
    ChartType.LINE: "Line chart",
    ChartType.BAR: "Bar chart",
    ChartType.PIE: "Pie chart",
    ChartType.TABLE: "Table",
    ChartType.KPI: "Indicators (KPI)",
}
KPI_TTL_CAP = 30
TABLE_TTL_CAP = 60


class StrategyRegistry:
    """Immutable chart-type to strategy table built once at startup."""

    def __init__(self, strategies: Iterable[ChartStrategy]) -> None:
        table: dict[ChartType, ChartStrategy] = {}
        for strategy in strategies:
            if strategy.chart_type in table:
                raise ValueError(f"Duplicate strategy for chart type {strategy.chart_type.value}")
            table[strategy.chart_type] = strategy
        self._strategies: Mapping[ChartType, ChartStrategy] = table

    def get(self, chart_type: ChartType) -> ChartStrategy | None:
        return self._strategies.get(chart_type)

    def chart_types(self) -> list[ChartType]:
        return list(self._strategies)

    def __contains__(self, chart_type: object) -> bool:
        return chart_type in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


def default_registry(
    *, strict_metrics: bool = False, clock: Callable[[], datetime] = datetime.now
) -> StrategyRegistry:
    return StrategyRegistry(
        [
            LineChartStrategy(strict_metrics=strict_metrics),
            BarChartStrategy(strict_metrics=strict_metrics),
            PieChartStrategy(strict_metrics=strict_metrics),
            TableChartStrategy(strict_metrics=strict_metrics),
            KPIChartStrategy(strict_metrics=strict_metrics, clock=clock),
        ]
    )


def build_cache_key(request: ChartRequest) -> str:
    """``chart:<type>:k1:v1|k2:v2`` over the defined fields, sorted by name."""

    fields = request.model_dump(mode="json", by_alias=True, exclude_none=True)
    serialized = "|".join(f"{key}:{fields[key]}" for key in sorted(fields))
    return f"chart:{request.chart_type.value}:{serialized}"


class ChartService:
    """Single entry point the HTTP layer calls for chart data."""

    def __init__(
        self,
        registry: StrategyRegistry,
        *,
        cache: CacheStore | None = None,
        cache_settings: CacheSettings | None = None,
        chart_settings: ChartSettings | None = None,
    ) -> None:
        self.registry = registry
        self.cache_settings = cache_settings or CacheSettings()
        self.chart_settings = chart_settings or ChartSettings()
        self.cache: CacheStore = cache if cache is not None and self.cache_settings.enabled else NullCache()

    # -- validation ---------------------------------------------------------

    def validate_params(self, request: ChartRequest) -> list[str]:
        errors: list[str] = []
        start, end = request.start, request.end
        if start > end:
            errors.append("Start date must be before or equal to end date")
        elif (end - start).days > self.chart_settings.max_range_days:
            errors.append(f"Date range cannot exceed {self.chart_settings.max_range_days} days")

        if self.chart_settings.strict_metrics and request.metric not in METRICS:
            if request.chart_type != ChartType.KPI:
                errors.append(f"Unsupported metric '{request.metric}'")

        strategy = self.registry.get(request.chart_type)
        if strategy is None:
            errors.append(f"Unsupported chart type: {request.chart_type.value}")
        else:
            errors.extend(strategy.validate(request))
        return errors

    # -- data ---------------------------------------------------------------

    def _strategy_for(self, chart_type: ChartType) -> ChartStrategy:
        strategy = self.registry.get(chart_type)
        if strategy is None:
            raise NotFoundError(f"Chart type '{chart_type.value}'")
        return strategy

    def get_chart_data(self, request: ChartRequest, session: Session) -> ChartResponse:
        errors = self.validate_params(request)
        if errors:
            LOGGER.info("Rejected %s chart request: %s", request.chart_type.value, "; ".join(errors))
            raise ValidationError(errors)

        strategy = self._strategy_for(request.chart_type)
        if not strategy.can_handle(request):
            raise ValidationError([f"{strategy.name} cannot handle {request.chart_type.value} requests"])

        cache_key = build_cache_key(request)
        cached = safe_get(self.cache, cache_key)
        if cached is not None:
            LOGGER.debug("Chart cache hit", extra={"cache_key": cache_key})
            return strategy.response_model.model_validate_json(cached)

        with log_context.bound(chart_type=request.chart_type.value):
            try:
                with timeit(
                    f"{strategy.name} execution",
                    logger=LOGGER,
                    track_db_calls=True,
                    session=session,
                ):
                    result = strategy.execute(request, session)
            except ValidationError:
                raise
            except Exception:
                LOGGER.exception(
                    "Error generating chart data",
                    extra={"params": request.model_dump(mode="json", exclude_none=True)},
                )
                raise

        ttl = self.cache_ttl(request.chart_type)
        if safe_set(self.cache, cache_key, result.model_dump_json(by_alias=True), ttl):
            LOGGER.debug("Chart cache populated", extra={"cache_key": cache_key, "ttl": ttl})
        return result

    # -- caching metadata ---------------------------------------------------

    def cache_ttl(self, chart_type: ChartType) -> int:
        ttl = self.cache_settings.ttl_seconds
        if chart_type == ChartType.KPI:
            return min(KPI_TTL_CAP, ttl)
        if chart_type == ChartType.TABLE:
            return min(TABLE_TTL_CAP, ttl)
        return ttl

    def get_cache_control_header(self, chart_type: ChartType) -> str:
        if not self.cache_settings.enabled:
            return "private, no-store"
        return f"private, max-age={self.cache_ttl(chart_type)}"

    @staticmethod
    def etag_for(request: ChartRequest) -> str:
        digest = hashlib.md5(build_cache_key(request).encode("utf-8")).hexdigest()
        return f'"{digest}"'

    # -- catalogue ----------------------------------------------------------

    def available_chart_types(self) -> list[ChartType]:
        return self.registry.chart_types()

    def get_strategy_metadata(self, chart_type: ChartType) -> ChartMetadata:
        return self._strategy_for(chart_type).metadata

    @staticmethod
    def chart_type_label(chart_type: ChartType) -> str:
        return CHART_TYPE_LABELS.get(chart_type, chart_type.value)

    def describe_chart_types(self) -> list[ChartTypeInfo]:
        return [
            ChartTypeInfo(
                value=chart_type,
                label=self.chart_type_label(chart_type),
                metadata=self.get_strategy_metadata(chart_type),
            )
            for chart_type in self.available_chart_types()
        ]
