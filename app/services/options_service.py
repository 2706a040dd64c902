"""Keyset-paginated lookups backing the filter dropdowns."""
from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import Select, String, and_, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement

from app.core.cursor import Cursor, decode_cursor, encode_cursor
from app.core.errors import InvalidCursor, NotFoundError, ValidationError
from app.core.log import get_logger
from app.models import Category, Customer, Product
from app.schemas.options import OptionEntity, OptionItem, OptionsQuery, OptionsResponse

LOGGER = get_logger(__name__)

MAX_LIMIT = 100
MAX_QUERY_LENGTH = 100


def _contains(column: ColumnElement[Any], term: str) -> ColumnElement[bool]:
    return func.lower(column, type_=String).contains(term.lower(), autoescape=True)


def _after(cursor: Cursor | None, name: ColumnElement[Any], key: ColumnElement[Any]) -> list[ColumnElement[bool]]:
    """Rows strictly after ``cursor`` in ``(name, key)`` order."""

    if cursor is None:
        return []
    if cursor.sort_value is None:
        return [key > cursor.id]
    return [or_(name > cursor.sort_value, and_(name == cursor.sort_value, key > cursor.id))]


class OptionsService:
    """Dropdown options for categories, products, customers and regions.

    Pages are ordered by ``(name, id)``; the next cursor carries the last
    item's id and label so the following page starts strictly after it.
    """

    def get_options(self, entity: OptionEntity | str, query: OptionsQuery, session: Session) -> OptionsResponse:
        try:
            entity = OptionEntity(entity)
        except ValueError:
            raise NotFoundError(f"Options entity '{entity}'") from None

        self._validate(query)
        cursor = self._decode(query.cursor)
        if entity is OptionEntity.REGIONS:
            return self._regions(session, query, cursor)

        loaders = {
            OptionEntity.CATEGORIES: self._category_filters,
            OptionEntity.PRODUCTS: self._product_filters,
            OptionEntity.CUSTOMERS: self._customer_filters,
        }
        model, filters = loaders[entity](query)
        stmt = (
            self._select(entity)
            .where(*filters, *_after(cursor, model.name, model.id))
            .order_by(model.name, model.id)
            .limit(query.limit + 1)
        )
        rows = session.execute(stmt).all()
        total = session.execute(select(func.count(model.id)).where(*filters)).scalar_one()

        has_more = len(rows) > query.limit
        items = [self._to_item(entity, row) for row in rows[: query.limit]]
        LOGGER.debug("Loaded %d %s options (has_more=%s)", len(items), entity.value, has_more)
        return OptionsResponse(
            items=items,
            has_more=has_more,
            next_cursor=self._next_cursor(items, has_more),
            total=total,
        )

    # -- validation ---------------------------------------------------------

    @staticmethod
    def _validate(query: OptionsQuery) -> None:
        errors: list[str] = []
        if not 1 <= query.limit <= MAX_LIMIT:
            errors.append(f"Limit must be between 1 and {MAX_LIMIT}")
        if query.q is not None and not 1 <= len(query.q) <= MAX_QUERY_LENGTH:
            errors.append(f"Search term must be between 1 and {MAX_QUERY_LENGTH} characters")
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def _decode(token: str | None) -> Cursor | None:
        if not token:
            return None
        try:
            return decode_cursor(token)
        except InvalidCursor as exc:
            raise ValidationError(["Malformed cursor provided"], detail="Invalid cursor") from exc

    # -- per entity ---------------------------------------------------------

    @staticmethod
    def _category_filters(query: OptionsQuery) -> tuple[type[Category], list[ColumnElement[bool]]]:
        filters: list[ColumnElement[bool]] = []
        if not query.include_inactive:
            filters.append(Category.is_active.is_(True))
        if query.q:
            filters.append(or_(_contains(Category.name, query.q), _contains(Category.code, query.q)))
        return Category, filters

    @staticmethod
    def _product_filters(query: OptionsQuery) -> tuple[type[Product], list[ColumnElement[bool]]]:
        filters: list[ColumnElement[bool]] = []
        if not query.include_inactive:
            filters.append(Product.is_active.is_(True))
        if query.category_id:
            filters.append(Product.category_id == query.category_id)
        if query.q:
            filters.append(or_(_contains(Product.name, query.q), _contains(Product.code, query.q)))
        return Product, filters

    @staticmethod
    def _customer_filters(query: OptionsQuery) -> tuple[type[Customer], list[ColumnElement[bool]]]:
        filters: list[ColumnElement[bool]] = []
        if not query.include_inactive:
            filters.append(Customer.is_active.is_(True))
        if query.region:
            filters.append(Customer.region == query.region)
        if query.q:
            filters.append(or_(_contains(Customer.name, query.q), _contains(Customer.document, query.q)))
        return Customer, filters

    @staticmethod
    def _select(entity: OptionEntity) -> Select:
        if entity is OptionEntity.CATEGORIES:
            return select(Category.id, Category.name, Category.code)
        if entity is OptionEntity.PRODUCTS:
            return (
                select(
                    Product.id,
                    Product.name,
                    Product.code,
                    Product.category_id,
                    Category.name.label("category_name"),
                )
                .select_from(Product)
                .outerjoin(Category, Product.category_id == Category.id)
            )
        return select(Customer.id, Customer.name, Customer.document, Customer.region)

    @staticmethod
    def _to_item(entity: OptionEntity, row: Any) -> OptionItem:
        if entity is OptionEntity.CATEGORIES:
            metadata: dict[str, Any] = {"code": row.code}
        elif entity is OptionEntity.PRODUCTS:
            metadata = {
                "code": row.code,
                "categoryId": row.category_id,
                "categoryName": row.category_name,
            }
        else:
            metadata = {"document": row.document, "region": row.region}
        return OptionItem(id=row.id, label=row.name, value=row.id, metadata=metadata)

    def _regions(self, session: Session, query: OptionsQuery, cursor: Cursor | None) -> OptionsResponse:
        filters: list[ColumnElement[bool]] = [Customer.region.is_not(None), Customer.region != ""]
        if not query.include_inactive:
            filters.append(Customer.is_active.is_(True))
        if query.q:
            filters.append(_contains(Customer.region, query.q))

        # Regions are their own id, so only the sort value matters.
        paging: list[ColumnElement[bool]] = []
        if cursor is not None:
            paging.append(Customer.region > (cursor.sort_value or cursor.id))

        stmt = (
            select(Customer.region, func.count(Customer.id).label("customer_count"))
            .where(*filters, *paging)
            .group_by(Customer.region)
            .order_by(Customer.region)
            .limit(query.limit + 1)
        )
        rows = session.execute(stmt).all()
        total = session.execute(
            select(func.count(func.distinct(Customer.region))).where(*filters)
        ).scalar_one()

        has_more = len(rows) > query.limit
        items = [
            OptionItem(
                id=row.region,
                label=row.region,
                value=row.region,
                metadata={"customerCount": row.customer_count},
            )
            for row in rows[: query.limit]
        ]
        return OptionsResponse(
            items=items,
            has_more=has_more,
            next_cursor=self._next_cursor(items, has_more),
            total=total,
        )

    @staticmethod
    def _next_cursor(items: Sequence[OptionItem], has_more: bool) -> str | None:
        if not has_more or not items:
            return None
        last = items[-1]
        return encode_cursor(Cursor(id=last.id, sort_value=last.label))
