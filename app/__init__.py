"""Chart aggregation API for the financial dashboard."""

from .core import get_logger, get_settings

__all__ = ["get_logger", "get_settings"]
