# Overview: SQLAlchemy implementations of the Catalog and Ledger stores.

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session, joinedload

from ..models import Category, Product, Sale
from .stores import (
    CategoryRecord,
    ConstraintViolation,
    NewSale,
    ProductFilter,
    ProductRecord,
    RecordNotFound,
    SaleFilter,
    SaleRecord,
    StoreError,
    StoreUnavailable,
    INVENTORY_APPLIED,
)


PRODUCT_STORE_FIELDS = {
    "name", "description", "sku", "category_id", "price_cents", "cost_price_cents",
    "quantity", "min_stock_level", "image_url", "is_active",
}
CATEGORY_STORE_FIELDS = {"name", "description", "is_active"}


@contextmanager
def store_call(session: Session, operation: str):
    """
    Run one store operation and translate driver failures.

    Connectivity loss, lock waits and pool/statement timeouts become
    StoreUnavailable; constraint rejections become ConstraintViolation.
    The session is rolled back on any failure so the next call starts clean.
    """
    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        raise ConstraintViolation(
            f"{operation} rejected by a constraint",
            details={"operation": operation, "reason": str(exc.orig)},
        ) from exc
    except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
        session.rollback()
        raise StoreUnavailable(
            f"{operation} failed: store unavailable",
            details={"operation": operation},
        ) from exc
    except DBAPIError as exc:
        session.rollback()
        raise StoreError(f"{operation} failed", details={"operation": operation}) from exc


def _apply(row, fields: dict[str, Any], allowed: set[str]) -> None:
    for k, v in fields.items():
        if k not in allowed:
            continue
        setattr(row, k, v)


class SqlCatalogStore:
    """Catalog store over a SQLAlchemy session (Flask-SQLAlchemy's db.session in the app)."""

    def __init__(self, session: Session):
        self.session = session

    # Products

    def list_products(self, filter: ProductFilter | None = None) -> list[ProductRecord]:
        filter = filter or ProductFilter()
        with store_call(self.session, "list_products"):
            query = self.session.query(Product)
            if filter.category_id is not None:
                query = query.filter(Product.category_id == filter.category_id)
            if filter.active_only:
                query = query.filter(Product.is_active.is_(True))
            if filter.quantity_greater_than is not None:
                query = query.filter(Product.quantity > filter.quantity_greater_than)
            rows = query.order_by(Product.name.asc(), Product.id.asc()).all()
            return [p.to_record() for p in rows]

    def get_product(self, product_id: int) -> ProductRecord | None:
        with store_call(self.session, "get_product"):
            row = self.session.get(Product, product_id)
            return row.to_record() if row else None

    def create_product(self, fields: dict[str, Any]) -> ProductRecord:
        with store_call(self.session, "create_product"):
            row = Product()
            _apply(row, fields, PRODUCT_STORE_FIELDS)
            self.session.add(row)
            self.session.commit()
            return row.to_record()

    def update_product(self, product_id: int, fields: dict[str, Any]) -> ProductRecord:
        with store_call(self.session, "update_product"):
            row = self.session.get(Product, product_id)
            if row is None:
                raise RecordNotFound("Product not found", details={"product_id": product_id})
            _apply(row, fields, PRODUCT_STORE_FIELDS)
            self.session.commit()
            return row.to_record()

    def update_product_quantity(self, product_id: int, new_quantity: int) -> None:
        if new_quantity < 0:
            raise ConstraintViolation(
                "Product quantity cannot be negative",
                details={"product_id": product_id, "quantity": new_quantity},
            )
        with store_call(self.session, "update_product_quantity"):
            updated = (
                self.session.query(Product)
                .filter(Product.id == product_id)
                .update({Product.quantity: new_quantity, Product.updated_at: func.now()}, synchronize_session="fetch")
            )
            if not updated:
                self.session.rollback()
                raise RecordNotFound("Product not found", details={"product_id": product_id})
            self.session.commit()

    def delete_product(self, product_id: int) -> None:
        with store_call(self.session, "delete_product"):
            row = self.session.get(Product, product_id)
            if row is None:
                raise RecordNotFound("Product not found", details={"product_id": product_id})
            self.session.delete(row)
            self.session.commit()

    # Categories

    def list_categories(self, active_only: bool = False) -> list[CategoryRecord]:
        with store_call(self.session, "list_categories"):
            query = self.session.query(Category)
            if active_only:
                query = query.filter(Category.is_active.is_(True))
            rows = query.order_by(Category.name.asc(), Category.id.asc()).all()
            return [c.to_record() for c in rows]

    def get_category(self, category_id: int) -> CategoryRecord | None:
        with store_call(self.session, "get_category"):
            row = self.session.get(Category, category_id)
            return row.to_record() if row else None

    def create_category(self, fields: dict[str, Any]) -> CategoryRecord:
        with store_call(self.session, "create_category"):
            row = Category()
            _apply(row, fields, CATEGORY_STORE_FIELDS)
            self.session.add(row)
            self.session.commit()
            return row.to_record()

    def update_category(self, category_id: int, fields: dict[str, Any]) -> CategoryRecord:
        with store_call(self.session, "update_category"):
            row = self.session.get(Category, category_id)
            if row is None:
                raise RecordNotFound("Category not found", details={"category_id": category_id})
            _apply(row, fields, CATEGORY_STORE_FIELDS)
            self.session.commit()
            return row.to_record()

    def delete_category(self, category_id: int) -> None:
        with store_call(self.session, "delete_category"):
            row = self.session.get(Category, category_id)
            if row is None:
                raise RecordNotFound("Category not found", details={"category_id": category_id})
            self.session.delete(row)
            self.session.commit()

    def count_products(self, category_id: int) -> int:
        with store_call(self.session, "count_products"):
            return self.session.query(Product).filter(Product.category_id == category_id).count()

    def ping(self) -> dict:
        start = time.perf_counter()
        with store_call(self.session, "ping"):
            products = self.session.query(func.count(Product.id)).scalar() or 0
            categories = self.session.query(func.count(Category.id)).scalar() or 0
        return {
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "products": int(products),
            "categories": int(categories),
        }


class SqlLedgerStore:
    """Ledger store over a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def insert_sale(self, sale: NewSale) -> SaleRecord:
        with store_call(self.session, "insert_sale"):
            row = Sale(
                product_id=sale.product_id,
                quantity_sold=sale.quantity_sold,
                unit_price_cents=sale.unit_price_cents,
                subtotal_cents=sale.subtotal_cents,
                surcharge_cents=sale.surcharge_cents,
                total_cents=sale.total_cents,
                discount_cents=sale.discount_cents,
                final_cents=sale.final_cents,
                payment_method=sale.payment_method,
                payment_status=sale.payment_status,
                sale_date=sale.sale_date,
                customer_name=sale.customer_name,
                customer_email=sale.customer_email,
                customer_phone=sale.customer_phone,
                notes=sale.notes,
                inventory_status=sale.inventory_status,
            )
            self.session.add(row)
            self.session.commit()
            return row.to_record()

    def get_sale(self, sale_id: int) -> SaleRecord | None:
        with store_call(self.session, "get_sale"):
            row = self.session.get(Sale, sale_id)
            return row.to_record() if row else None

    def list_sales(self, filter: SaleFilter | None = None) -> list[SaleRecord]:
        filter = filter or SaleFilter()
        with store_call(self.session, "list_sales"):
            query = self.session.query(Sale).options(joinedload(Sale.product))
            if filter.start is not None:
                query = query.filter(Sale.sale_date >= filter.start)
            if filter.end is not None:
                query = query.filter(Sale.sale_date <= filter.end)
            if filter.payment_method:
                query = query.filter(Sale.payment_method == filter.payment_method)
            if filter.payment_status:
                query = query.filter(Sale.payment_status == filter.payment_status)
            if filter.inventory_status:
                query = query.filter(Sale.inventory_status == filter.inventory_status)
            if filter.product_id is not None:
                query = query.filter(Sale.product_id == filter.product_id)
            rows = query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
            return [s.to_record() for s in rows]

    def mark_inventory_applied(self, sale_id: int) -> SaleRecord:
        with store_call(self.session, "mark_inventory_applied"):
            row = self.session.get(Sale, sale_id)
            if row is None:
                raise RecordNotFound("Sale not found", details={"sale_id": sale_id})
            row.inventory_status = INVENTORY_APPLIED
            self.session.commit()
            return row.to_record()

    def count_sales(self, product_id: int | None = None) -> int:
        with store_call(self.session, "count_sales"):
            query = self.session.query(func.count(Sale.id))
            if product_id is not None:
                query = query.filter(Sale.product_id == product_id)
            return int(query.scalar() or 0)

    def ping(self) -> dict:
        start = time.perf_counter()
        with store_call(self.session, "ping"):
            sales = self.session.query(func.count(Sale.id)).scalar() or 0
        return {
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "sales": int(sales),
        }
