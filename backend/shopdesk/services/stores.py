# Overview: Store contracts for the catalog (products, categories) and the sales ledger.

"""
Catalog and Ledger store contracts.

Both stores sit behind network calls that can fail. Services receive a
store instance explicitly; they never reach for a module-level client.
Records crossing the boundary are frozen dataclasses so a value read
from a store cannot be mutated in place and written back by accident.

Failure taxonomy raised by every implementation:
    StoreUnavailable    connectivity loss or timeout (retryable)
    ConstraintViolation unique / foreign-key / check constraint rejected the write
    RecordNotFound      the addressed row does not exist
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from ..time_utils import to_utc_z


class StoreError(Exception):
    """Base class for failures reported by a Catalog or Ledger store."""

    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StoreUnavailable(StoreError):
    """Network/connectivity failure or timeout. Safe to retry."""

    retryable = True


class ConstraintViolation(StoreError):
    """The store rejected a write (duplicate SKU, dangling reference, negative stock)."""


class RecordNotFound(StoreError):
    """The addressed record does not exist."""


# Inventory saga markers carried on each sale record
INVENTORY_PENDING = "pending"
INVENTORY_APPLIED = "applied"


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = to_utc_z(self.created_at)
        data["updated_at"] = to_utc_z(self.updated_at)
        return data


@dataclass(frozen=True)
class ProductRecord:
    id: int
    name: str
    category_id: int
    price_cents: int
    quantity: int
    sku: Optional[str] = None
    description: Optional[str] = None
    cost_price_cents: Optional[int] = None
    min_stock_level: int = 10
    image_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = to_utc_z(self.created_at)
        data["updated_at"] = to_utc_z(self.updated_at)
        return data


@dataclass(frozen=True)
class NewSale:
    """A sale as handed to the ledger for insertion (no id yet)."""
    product_id: int
    quantity_sold: int
    unit_price_cents: int
    subtotal_cents: int
    surcharge_cents: int
    total_cents: int
    discount_cents: int
    final_cents: int
    payment_method: str
    payment_status: str
    sale_date: datetime
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    inventory_status: str = INVENTORY_PENDING


@dataclass(frozen=True)
class SaleRecord:
    id: int
    product_id: int
    quantity_sold: int
    unit_price_cents: int
    subtotal_cents: int
    surcharge_cents: int
    total_cents: int
    discount_cents: int
    final_cents: int
    payment_method: str
    payment_status: str
    sale_date: datetime
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    inventory_status: str = INVENTORY_PENDING
    product_name: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["sale_date"] = to_utc_z(self.sale_date)
        data["created_at"] = to_utc_z(self.created_at)
        return data


@dataclass(frozen=True)
class ProductFilter:
    category_id: Optional[int] = None
    active_only: bool = False
    quantity_greater_than: Optional[int] = None


@dataclass(frozen=True)
class SaleFilter:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    inventory_status: Optional[str] = None
    product_id: Optional[int] = None


@runtime_checkable
class CatalogStore(Protocol):
    """Products and categories."""

    def list_products(self, filter: ProductFilter | None = None) -> list[ProductRecord]:
        """Products ordered by name."""
        ...

    def get_product(self, product_id: int) -> ProductRecord | None:
        ...

    def create_product(self, fields: dict[str, Any]) -> ProductRecord:
        ...

    def update_product(self, product_id: int, fields: dict[str, Any]) -> ProductRecord:
        ...

    def update_product_quantity(self, product_id: int, new_quantity: int) -> None:
        """Overwrite on-hand quantity. Raises RecordNotFound / ConstraintViolation."""
        ...

    def delete_product(self, product_id: int) -> None:
        ...

    def list_categories(self, active_only: bool = False) -> list[CategoryRecord]:
        """Categories ordered by name."""
        ...

    def get_category(self, category_id: int) -> CategoryRecord | None:
        ...

    def create_category(self, fields: dict[str, Any]) -> CategoryRecord:
        ...

    def update_category(self, category_id: int, fields: dict[str, Any]) -> CategoryRecord:
        ...

    def delete_category(self, category_id: int) -> None:
        ...

    def count_products(self, category_id: int) -> int:
        """Number of products (active or not) referencing a category."""
        ...

    def ping(self) -> dict:
        """Cheap connectivity check; returns row counts."""
        ...


@runtime_checkable
class LedgerStore(Protocol):
    """Append-only sale records (plus the inventory saga marker)."""

    def insert_sale(self, sale: NewSale) -> SaleRecord:
        ...

    def get_sale(self, sale_id: int) -> SaleRecord | None:
        ...

    def list_sales(self, filter: SaleFilter | None = None) -> list[SaleRecord]:
        """Sales newest first, with product_name populated where known."""
        ...

    def mark_inventory_applied(self, sale_id: int) -> SaleRecord:
        ...

    def count_sales(self, product_id: int | None = None) -> int:
        ...

    def ping(self) -> dict:
        ...
