# backend/shopdesk/services/catalog_service.py
"""
Catalog Service

Category and product management on top of a CatalogStore, plus the
client-side helpers the inventory screen uses on an already fetched list
(filtering, stock bands, summary figures).

RULES:
- Category names are unique case-insensitively (checked here, enforced by the store index)
- A category with products cannot be deleted, only deactivated
- Products referenced by sales are retired via is_active, never hard-deleted
"""
from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from typing import Iterable, Literal

from ..validation import ConflictError, ValidationError
from .stores import (
    CatalogStore,
    CategoryRecord,
    LedgerStore,
    ProductFilter,
    ProductRecord,
    RecordNotFound,
)


STOCK_FILTERS = ("all", "out_of_stock", "low_stock", "in_stock")
StockFilter = Literal["all", "out_of_stock", "low_stock", "in_stock"]

DEFAULT_LOW_STOCK_THRESHOLD = 10

SKU_SUFFIX_LENGTH = 6
_SKU_ALPHABET = string.ascii_uppercase + string.digits


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(catalog: CatalogStore, *, active_only: bool = False) -> list[CategoryRecord]:
    return catalog.list_categories(active_only=active_only)


def _require_category(catalog: CatalogStore, category_id: int) -> CategoryRecord:
    category = catalog.get_category(category_id)
    if category is None:
        raise RecordNotFound("Category not found", details={"category_id": category_id})
    return category


def _ensure_unique_name(catalog: CatalogStore, name: str, *, exclude_id: int | None = None) -> None:
    lowered = name.strip().lower()
    for existing in catalog.list_categories():
        if existing.id != exclude_id and existing.name.lower() == lowered:
            raise ConflictError("A category with this name already exists")


def create_category(catalog: CatalogStore, patch: dict) -> CategoryRecord:
    """patch is already validated (see validation.enforce_rules_category)."""
    _ensure_unique_name(catalog, patch["name"])
    fields = {"is_active": True, **patch}
    return catalog.create_category(fields)


def update_category(catalog: CatalogStore, category_id: int, patch: dict) -> CategoryRecord:
    _require_category(catalog, category_id)
    if "name" in patch:
        _ensure_unique_name(catalog, patch["name"], exclude_id=category_id)
    return catalog.update_category(category_id, patch)


def set_category_active(catalog: CatalogStore, category_id: int, is_active: bool) -> CategoryRecord:
    _require_category(catalog, category_id)
    return catalog.update_category(category_id, {"is_active": bool(is_active)})


def delete_category(catalog: CatalogStore, category_id: int) -> None:
    category = _require_category(catalog, category_id)
    product_count = catalog.count_products(category_id)
    if product_count:
        raise ConflictError(
            f'Cannot delete "{category.name}" because it contains products. '
            "Move or delete the products in this category first."
        )
    catalog.delete_category(category_id)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def generate_sku(category: CategoryRecord) -> str:
    """First three letters of the category name plus a random suffix, e.g. SKI4K7Q2Z."""
    prefix = "".join(ch for ch in category.name.upper() if ch.isalnum())[:3] or "SKU"
    suffix = "".join(secrets.choice(_SKU_ALPHABET) for _ in range(SKU_SUFFIX_LENGTH))
    return f"{prefix}{suffix}"


def list_products(
    catalog: CatalogStore,
    *,
    category_id: int | None = None,
    active_only: bool = False,
) -> list[ProductRecord]:
    return catalog.list_products(ProductFilter(category_id=category_id, active_only=active_only))


def list_sellable_products(catalog: CatalogStore, category_id: int) -> list[ProductRecord]:
    """Products offered in the sale flow: active, in stock, in the chosen category."""
    return catalog.list_products(
        ProductFilter(category_id=category_id, active_only=True, quantity_greater_than=0)
    )


def get_product(catalog: CatalogStore, product_id: int) -> ProductRecord:
    product = catalog.get_product(product_id)
    if product is None:
        raise RecordNotFound("Product not found", details={"product_id": product_id})
    return product


def create_product(catalog: CatalogStore, patch: dict, *, auto_sku: bool = False) -> ProductRecord:
    """
    Create a product from a validated patch.

    Raises:
        ValidationError: category does not exist
        ConstraintViolation: duplicate SKU (raised by the store)
    """
    category = catalog.get_category(patch["category_id"])
    if category is None:
        raise ValidationError("Category is required")

    fields = {"is_active": True, "min_stock_level": DEFAULT_LOW_STOCK_THRESHOLD, "quantity": 0, **patch}
    if auto_sku and not fields.get("sku"):
        fields["sku"] = generate_sku(category)
    return catalog.create_product(fields)


def update_product(catalog: CatalogStore, product_id: int, patch: dict) -> ProductRecord:
    get_product(catalog, product_id)
    if patch.get("category_id") is not None and catalog.get_category(patch["category_id"]) is None:
        raise ValidationError("Category is required")
    return catalog.update_product(product_id, patch)


def deactivate_product(catalog: CatalogStore, product_id: int) -> ProductRecord:
    get_product(catalog, product_id)
    return catalog.update_product(product_id, {"is_active": False})


def delete_product(catalog: CatalogStore, ledger: LedgerStore, product_id: int) -> None:
    get_product(catalog, product_id)
    if ledger.count_sales(product_id=product_id):
        raise ConflictError("Product has recorded sales; deactivate it instead")
    catalog.delete_product(product_id)


# ---------------------------------------------------------------------------
# Inventory screen helpers (operate on fetched lists, no store calls)
# ---------------------------------------------------------------------------

def stock_band(quantity: int, *, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> str:
    if quantity <= 0:
        return "out_of_stock"
    if quantity <= low_stock_threshold:
        return "low_stock"
    return "in_stock"


def filter_products(
    products: Iterable[ProductRecord],
    *,
    search: str | None = None,
    category_id: int | None = None,
    stock: str = "all",
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> list[ProductRecord]:
    if stock not in STOCK_FILTERS:
        raise ValidationError(f"stock must be one of: {', '.join(STOCK_FILTERS)}")

    needle = (search or "").strip().lower()
    result = []
    for product in products:
        if needle:
            haystack = (product.name, product.sku or "", product.description or "")
            if not any(needle in value.lower() for value in haystack):
                continue
        if category_id is not None and product.category_id != category_id:
            continue
        if stock != "all" and stock_band(product.quantity, low_stock_threshold=low_stock_threshold) != stock:
            continue
        result.append(product)
    return result


@dataclass(frozen=True)
class InventorySummary:
    product_count: int
    total_value_cents: int
    low_stock_count: int
    out_of_stock_count: int

    def to_dict(self) -> dict:
        return {
            "product_count": self.product_count,
            "total_value_cents": self.total_value_cents,
            "low_stock_count": self.low_stock_count,
            "out_of_stock_count": self.out_of_stock_count,
        }


def inventory_summary(
    products: Iterable[ProductRecord],
    *,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> InventorySummary:
    products = list(products)
    bands = [stock_band(p.quantity, low_stock_threshold=low_stock_threshold) for p in products]
    return InventorySummary(
        product_count=len(products),
        total_value_cents=sum(p.price_cents * p.quantity for p in products),
        low_stock_count=bands.count("low_stock"),
        out_of_stock_count=bands.count("out_of_stock"),
    )
