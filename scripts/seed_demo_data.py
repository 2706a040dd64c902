#!/usr/bin/env python3
"""Create the schema and load a small deterministic demo dataset."""
from __future__ import annotations

import argparse
import random
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy.orm import Session  # noqa: E402

from app.core.config import get_settings  # noqa: E402
from app.core.log import get_logger, init_logging, log_context, timeit  # noqa: E402
from app.db.engine import get_engine  # noqa: E402
from app.db.session import session_scope  # noqa: E402
from app.models import (  # noqa: E402
    Base,
    Category,
    Customer,
    PaymentStatus,
    Product,
    Transaction,
    TransactionType,
)

logger = get_logger(__name__)

CATEGORIES = [
    ("REV-SVC", "Services", TransactionType.REVENUE),
    ("REV-PRD", "Product Sales", TransactionType.REVENUE),
    ("REV-SUB", "Subscriptions", TransactionType.REVENUE),
    ("EXP-PAY", "Payroll", TransactionType.EXPENSE),
    ("EXP-RNT", "Rent", TransactionType.EXPENSE),
    ("EXP-MKT", "Marketing", TransactionType.EXPENSE),
    ("EXP-SUP", "Suppliers", TransactionType.EXPENSE),
]
PRODUCTS = {
    "REV-SVC": [("Consulting Hour", "150.00"), ("Implementation", "4800.00")],
    "REV-PRD": [("Analytics Kit", "899.00"), ("Sensor Pack", "249.90")],
    "REV-SUB": [("Basic Plan", "49.00"), ("Pro Plan", "129.00")],
    "EXP-SUP": [("Cloud Hosting", "1200.00"), ("Office Supplies", "85.50")],
}
CUSTOMERS = [
    ("Acme Industrial", "Southeast"),
    ("Northwind Traders", "South"),
    ("Globex Logistics", "Southeast"),
    ("Initech Software", "Northeast"),
    ("Umbrella Health", "Midwest"),
    ("Stark Retail", "North"),
    ("Wayne Foods", "South"),
    ("Tyrell Energy", "Northeast"),
]


def parse_args() -> argparse.Namespace:
    today = date.today()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--months", type=int, default=6, help="How many months of history to generate")
    parser.add_argument("--per-day", type=int, default=4, help="Transactions generated per day")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")
    parser.add_argument("--today", type=date.fromisoformat, default=today, help="Reference date (YYYY-MM-DD)")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate every table first")
    return parser.parse_args()


def build_catalog(session: Session) -> tuple[list[Category], dict[str, list[Product]], list[Customer]]:
    categories = [Category(code=code, name=name) for code, name, _ in CATEGORIES]
    session.add_all(categories)
    session.flush()

    by_code = {category.code: category for category in categories}
    products: dict[str, list[Product]] = {}
    for code, items in PRODUCTS.items():
        products[code] = [
            Product(
                code=f"{code}-{index:02d}",
                name=name,
                category_id=by_code[code].id,
                unit_price=Decimal(price),
            )
            for index, (name, price) in enumerate(items, start=1)
        ]
        session.add_all(products[code])

    customers = [
        Customer(name=name, document=f"{index:014d}", region=region)
        for index, (name, region) in enumerate(CUSTOMERS, start=1)
    ]
    session.add_all(customers)
    session.flush()
    return categories, products, customers


def payment_state(occurred: date, today: date, rng: random.Random) -> tuple[PaymentStatus, date, datetime | None]:
    """Pick a payment status consistent with the due date relative to ``today``."""

    due = occurred + timedelta(days=rng.choice((7, 15, 30)))
    if due < today:
        if rng.random() < 0.85:
            paid_on = min(due, today - timedelta(days=1))
            return PaymentStatus.PAID, due, datetime.combine(paid_on, datetime.min.time())
        return PaymentStatus.OVERDUE, due, None
    if rng.random() < 0.03:
        return PaymentStatus.CANCELLED, due, None
    return PaymentStatus.PENDING, due, None


def generate_transactions(
    session: Session,
    categories: list[Category],
    products: dict[str, list[Product]],
    customers: list[Customer],
    *,
    start: date,
    today: date,
    per_day: int,
    rng: random.Random,
) -> int:
    kinds = {code: kind for code, _, kind in CATEGORIES}
    created = 0
    day = start
    with timeit("Generate demo transactions", logger=logger, unit="transactions") as timer:
        while day <= today:
            for _ in range(per_day):
                category = rng.choice(categories)
                kind = kinds[category.code]
                product = rng.choice(products[category.code]) if category.code in products else None
                quantity = rng.randint(1, 5) if product else 1
                base = product.unit_price * quantity if product else Decimal(rng.randint(300, 9000))
                amount = (base * Decimal(str(rng.uniform(0.9, 1.1)))).quantize(Decimal("0.01"))
                status, due, paid_at = payment_state(day, today, rng)
                occurred_at = datetime.combine(day, datetime.min.time()) + timedelta(
                    hours=rng.randint(8, 18), minutes=rng.randint(0, 59)
                )
                session.add(
                    Transaction(
                        type=kind,
                        category_id=category.id,
                        product_id=product.id if product else None,
                        customer_id=rng.choice(customers).id if kind == TransactionType.REVENUE else None,
                        amount=amount,
                        quantity=quantity,
                        occurred_at=occurred_at,
                        due_date=due,
                        paid_at=paid_at,
                        payment_status=status,
                        document_number=f"DOC-{created + 1:06d}",
                    )
                )
                created += 1
            timer.add(per_day)
            day += timedelta(days=1)
        session.flush()
    return created


def main() -> None:
    args = parse_args()
    rng = random.Random(args.seed)
    settings = get_settings()
    engine = get_engine()

    logger.info("Seeding demo data into %s", settings.database.masked_url)
    if args.reset:
        logger.warning("Dropping existing tables")
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    start = args.today - timedelta(days=30 * args.months)
    with session_scope(engine) as session:
        categories, products, customers = build_catalog(session)
        created = generate_transactions(
            session,
            categories,
            products,
            customers,
            start=start,
            today=args.today,
            per_day=args.per_day,
            rng=rng,
        )

    logger.info(
        "Seeded %s categories, %s customers and %s transactions (%s to %s)",
        len(categories),
        len(customers),
        f"{created:,}",
        start.isoformat(),
        args.today.isoformat(),
    )


if __name__ == "__main__":
    init_logging(app_name="seed-demo")
    log_context.bind(job="seed_demo_data")
    main()
