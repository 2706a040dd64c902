"""Schemas for the filter option lookups (categories, products, customers, regions)."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import ConfigDict

from .charts import CamelModel


class OptionEntity(str, Enum):
    CATEGORIES = "categories"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    REGIONS = "regions"


class OptionsQuery(CamelModel):
    model_config = ConfigDict(frozen=True)

    q: str | None = None
    limit: int = 20
    cursor: str | None = None
    include_inactive: bool = False
    category_id: str | None = None
    region: str | None = None


class OptionItem(CamelModel):
    id: str
    label: str
    value: str
    metadata: dict[str, Any] | None = None


class OptionsResponse(CamelModel):
    items: list[OptionItem]
    next_cursor: str | None = None
    has_more: bool
    total: int
