"""Shared fixtures: an in-memory SQLite schema plus a small data builder."""
from __future__ import annotations

import os

# Keep test runs from writing log files before the app modules are imported.
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Iterator  # noqa: E402
from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config import CacheSettings, ChartSettings, DatabaseSettings, Settings  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    Category,
    Customer,
    PaymentStatus,
    Product,
    Transaction,
    TransactionType,
)
from app.web.dependencies import get_db_session  # noqa: E402

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)


class DataBuilder:
    """Insert catalog rows and transactions with sensible defaults."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._sequence = count(1)

    def category(self, name: str, *, is_active: bool = True) -> Category:
        category = Category(code=f"C{next(self._sequence):03d}", name=name, is_active=is_active)
        self.session.add(category)
        self.session.flush()
        return category

    def product(
        self,
        name: str,
        category: Category,
        *,
        unit_price: str = "10.00",
        is_active: bool = True,
    ) -> Product:
        product = Product(
            code=f"P{next(self._sequence):03d}",
            name=name,
            category_id=category.id,
            unit_price=Decimal(unit_price),
            is_active=is_active,
        )
        self.session.add(product)
        self.session.flush()
        return product

    def customer(self, name: str, *, region: str | None = None, is_active: bool = True) -> Customer:
        customer = Customer(
            name=name,
            document=f"DOC{next(self._sequence):05d}",
            region=region,
            is_active=is_active,
        )
        self.session.add(customer)
        self.session.flush()
        return customer

    def transaction(
        self,
        kind: TransactionType,
        amount: str,
        occurred_at: datetime,
        *,
        category: Category,
        product: Product | None = None,
        customer: Customer | None = None,
        quantity: int = 1,
        status: PaymentStatus = PaymentStatus.PAID,
        due_date: date | None = None,
        paid_at: datetime | None = None,
    ) -> Transaction:
        transaction = Transaction(
            type=kind,
            amount=Decimal(amount),
            occurred_at=occurred_at,
            category_id=category.id,
            product_id=product.id if product else None,
            customer_id=customer.id if customer else None,
            quantity=quantity,
            payment_status=status,
            due_date=due_date,
            paid_at=paid_at,
        )
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def revenue(self, amount: str, occurred_at: datetime, **kwargs) -> Transaction:
        return self.transaction(TransactionType.REVENUE, amount, occurred_at, **kwargs)

    def expense(self, amount: str, occurred_at: datetime, **kwargs) -> Transaction:
        return self.transaction(TransactionType.EXPENSE, amount, occurred_at, **kwargs)

    def commit(self) -> None:
        self.session.commit()


def make_settings(*, cache: CacheSettings | None = None, charts: ChartSettings | None = None) -> Settings:
    return Settings(
        database=DatabaseSettings(
            driver="sqlite", host="", port=0, user="", password="", name=":memory:"
        ),
        cache=cache or CacheSettings(),
        charts=charts or ChartSettings(),
        log_level="WARNING",
        log_dir=None,
    )


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def data(session: Session) -> DataBuilder:
    return DataBuilder(session)


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def settings_factory():
    return make_settings


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def api(session: Session, settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings, clock=lambda: FIXED_NOW)

    def _override_session() -> Iterator[Session]:
        yield session

    app.dependency_overrides[get_db_session] = _override_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
