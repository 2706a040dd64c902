"""Environment-driven configuration for the charts API."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSY = {"0", "false", "False", "no", "off"}


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the transactional database."""

    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.driver.startswith("sqlite"):
            return f"{self.driver}:///{self.name}"
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.driver.startswith("sqlite"):
            return self.sqlalchemy_url
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(slots=True)
class CacheSettings:
    """Cache-aside behaviour shared by chart and summary responses."""

    enabled: bool = True
    ttl_seconds: int = 300
    max_entries: int = 1024


@dataclass(slots=True)
class ChartSettings:
    """Validation knobs for chart requests."""

    max_range_days: int = 365
    strict_metrics: bool = False


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    cache: CacheSettings
    charts: ChartSettings
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    log_dir: str | None = "logs"
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _get_flag(name: str, default: str) -> bool:
            return _get_env(name, default) not in _FALSY

        db = DatabaseSettings(
            driver=_get_env("DB_DRIVER", "mysql+pymysql"),
            host=_get_env("DB_HOST", "127.0.0.1"),
            port=int(_get_env("DB_PORT", "3306")),
            user=_get_env("DB_USER", "finance"),
            password=_get_env("DB_PASSWORD", "finance"),
            name=_get_env("DB_NAME", "finance"),
        )
        cache = CacheSettings(
            enabled=_get_flag("FEATURE_CACHE_ENABLED", "1"),
            ttl_seconds=max(int(_get_env("CACHE_TTL", "300")), 0),
            max_entries=max(int(_get_env("CACHE_MAX_ENTRIES", "1024")), 1),
        )
        charts = ChartSettings(
            max_range_days=int(_get_env("CHART_MAX_RANGE_DAYS", "365")),
            strict_metrics=_get_flag("CHART_STRICT_METRICS", "0"),
        )
        prefix = "/" + _get_env("API_PREFIX", "/api/v1").strip("/")
        return cls(
            database=db,
            cache=cache,
            charts=charts,
            api_prefix="" if prefix == "/" else prefix,
            log_level=_get_env("LOG_LEVEL", "INFO"),
            log_dir=_get_env("LOG_DIR", "logs") or None,
            sqlalchemy_echo=_get_flag("SQLALCHEMY_ECHO", "0"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .log import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "database": settings.database.masked_url,
            "cache": {
                "enabled": settings.cache.enabled,
                "ttl": settings.cache.ttl_seconds,
                "max_entries": settings.cache.max_entries,
            },
            "charts": {
                "max_range_days": settings.charts.max_range_days,
                "strict_metrics": settings.charts.strict_metrics,
            },
            "api_prefix": settings.api_prefix,
        },
    )
    return settings
