"""Chart aggregation layer: resolver, strategies and the orchestrating service."""

from .base import ChartStrategy
from .service import ChartService, StrategyRegistry, build_cache_key, default_registry

__all__ = [
    "ChartService",
    "ChartStrategy",
    "StrategyRegistry",
    "build_cache_key",
    "default_registry",
]
