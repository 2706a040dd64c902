"""Database engine factories."""
from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from app.core.config import get_settings
from app.core.log import get_logger

LOGGER = get_logger(__name__)


def create_sync_engine(url: str | None = None, **kwargs) -> Engine:
    """Create a synchronous SQLAlchemy engine using configured defaults."""

    settings = get_settings()
    resolved_url = url or settings.database.sqlalchemy_url

    options = dict(kwargs)
    options.setdefault("echo", settings.sqlalchemy_echo)
    if not resolved_url.startswith("sqlite"):
        options.setdefault("pool_pre_ping", True)
        options.setdefault("pool_recycle", 1800)

    LOGGER.debug(
        "Creating SQLAlchemy engine",
        extra={"url": url or settings.database.masked_url, "options": options},
    )
    return create_engine(resolved_url, future=True, **options)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide engine built from settings."""

    return create_sync_engine()
