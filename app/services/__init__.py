"""Service layer entrypoints for chart, summary and option lookups."""

from .charts import ChartService, StrategyRegistry, default_registry
from .dashboard_service import DashboardService
from .options_service import OptionsService

__all__ = [
    "ChartService",
    "DashboardService",
    "OptionsService",
    "StrategyRegistry",
    "default_registry",
]
