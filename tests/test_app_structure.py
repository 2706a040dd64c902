from fastapi import FastAPI

from app.core.config import DatabaseSettings, Settings, get_settings
from app.main import create_app


def test_create_app_registers_routes(settings) -> None:
    app = create_app(settings)
    assert isinstance(app, FastAPI)
    paths = {route.path for route in app.routes}
    assert {
        "/api/v1/charts/types",
        "/api/v1/charts/{chart_type}",
        "/api/v1/charts/{chart_type}/metadata",
        "/api/v1/dashboard/summary",
        "/api/v1/options/{entity}",
        "/healthz",
        "/livez",
        "/readyz",
    } <= paths


def test_types_route_is_declared_before_the_chart_route(settings) -> None:
    app = create_app(settings)
    paths = [route.path for route in app.routes]
    assert paths.index("/api/v1/charts/types") < paths.index("/api/v1/charts/{chart_type}")


def test_get_settings_uses_default_configuration(monkeypatch) -> None:
    for name in (
        "DB_DRIVER",
        "DB_HOST",
        "DB_PORT",
        "DB_USER",
        "DB_PASSWORD",
        "DB_NAME",
        "SQLALCHEMY_ECHO",
        "FEATURE_CACHE_ENABLED",
        "CACHE_TTL",
        "CHART_MAX_RANGE_DAYS",
        "CHART_STRICT_METRICS",
        "API_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.database.host == "127.0.0.1"
    assert settings.database.port == 3306
    assert settings.database.user == "finance"
    assert settings.database.name == "finance"
    assert settings.sqlalchemy_echo is False
    assert settings.cache.enabled is True
    assert settings.cache.ttl_seconds == 300
    assert settings.charts.max_range_days == 365
    assert settings.charts.strict_metrics is False
    assert settings.api_prefix == "/api/v1"


def test_settings_read_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("FEATURE_CACHE_ENABLED", "false")
    monkeypatch.setenv("CACHE_TTL", "45")
    monkeypatch.setenv("CHART_STRICT_METRICS", "1")
    monkeypatch.setenv("API_PREFIX", "charts-api/")
    monkeypatch.setenv("DB_DRIVER", "sqlite")
    monkeypatch.setenv("DB_NAME", "demo.db")

    settings = Settings.from_env()

    assert settings.cache.enabled is False
    assert settings.cache.ttl_seconds == 45
    assert settings.charts.strict_metrics is True
    assert settings.api_prefix == "/charts-api"
    assert settings.database.sqlalchemy_url == "sqlite:///demo.db"


def test_masked_url_hides_password() -> None:
    database = DatabaseSettings(
        driver="mysql+pymysql", host="db", port=3306, user="finance", password="secret", name="finance"
    )

    assert database.sqlalchemy_url == "mysql+pymysql://finance:secret@db:3306/finance"
    assert database.masked_url == "mysql+pymysql://finance:***@db:3306/finance"
