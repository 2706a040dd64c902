"""FastAPI routers for the charts API."""

from .charts import router as charts_router
from .dashboard import router as dashboard_router
from .health import router as health_router
from .options import router as options_router

__all__ = [
    "charts_router",
    "dashboard_router",
    "health_router",
    "options_router",
]
