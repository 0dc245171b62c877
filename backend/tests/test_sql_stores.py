import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from shopdesk.models import Product, Sale
from shopdesk.services.sales_service import SaleDetails, complete_sale
from shopdesk.services.sql_stores import SqlCatalogStore, SqlLedgerStore, store_call
from shopdesk.services.stores import (
    CatalogStore,
    ConstraintViolation,
    LedgerStore,
    ProductFilter,
    RecordNotFound,
    SaleFilter,
    StoreUnavailable,
    INVENTORY_APPLIED,
)
from shopdesk.time_utils import utcnow


@pytest.fixture
def catalog_store(db_session):
    return SqlCatalogStore(db_session)


@pytest.fixture
def ledger_store(db_session):
    return SqlLedgerStore(db_session)


def test_stores_satisfy_protocols(catalog_store, ledger_store):
    assert isinstance(catalog_store, CatalogStore)
    assert isinstance(ledger_store, LedgerStore)


def test_product_roundtrip(catalog_store, category):
    created = catalog_store.create_product(
        {"name": "Toner", "category_id": category.id, "price_cents": 1250, "quantity": 7, "bogus": 1}
    )

    fetched = catalog_store.get_product(created.id)
    assert fetched.name == "Toner"
    assert fetched.quantity == 7
    assert fetched.min_stock_level == 10
    assert fetched.is_active
    assert fetched.created_at is not None


def test_list_products_filters(catalog_store, product):
    product_id = product.id
    category_id = product.category_id
    catalog_store.update_product(product_id, {"is_active": False})

    assert catalog_store.list_products(ProductFilter(active_only=True)) == []
    assert [p.id for p in catalog_store.list_products(ProductFilter(category_id=category_id))] == [product_id]
    assert catalog_store.list_products(ProductFilter(quantity_greater_than=10)) == []


def test_negative_quantity_is_rejected(catalog_store, product):
    product_id = product.id
    with pytest.raises(ConstraintViolation):
        catalog_store.update_product_quantity(product_id, -1)
    assert catalog_store.get_product(product_id).quantity == 10


def test_update_quantity_of_missing_product(catalog_store, db_session):
    with pytest.raises(RecordNotFound):
        catalog_store.update_product_quantity(12345, 3)


def test_duplicate_sku_is_constraint_violation(catalog_store, product):
    with pytest.raises(ConstraintViolation):
        catalog_store.create_product(
            {"name": "Copy", "category_id": product.category_id, "price_cents": 100, "quantity": 1, "sku": "SKI-001"}
        )
    # Session is usable again after the rollback
    assert len(catalog_store.list_products()) == 1


def test_duplicate_category_name_ignores_case(catalog_store, category):
    with pytest.raises(ConstraintViolation):
        catalog_store.create_category({"name": "SKINCARE", "is_active": True})


def test_count_products_and_delete_category(catalog_store, product):
    category_id = product.category_id
    assert catalog_store.count_products(category_id) == 1

    catalog_store.delete_product(product.id)
    assert catalog_store.count_products(category_id) == 0
    catalog_store.delete_category(category_id)
    assert catalog_store.get_category(category_id) is None


def test_complete_sale_against_database(catalog_store, ledger_store, product):
    product_id = product.id

    sale = complete_sale(
        catalog_store,
        ledger_store,
        product_id=product_id,
        quantity_sold=3,
        details=SaleDetails(payment_method="card", customer_email="a@b.lk"),
    )

    assert sale.inventory_status == INVENTORY_APPLIED
    assert sale.product_name == "Hydrating Serum"
    assert catalog_store.get_product(product_id).quantity == 7
    assert ledger_store.count_sales(product_id=product_id) == 1


def test_sale_keeps_price_at_time_of_sale(catalog_store, ledger_store, product):
    product_id = product.id
    sale = complete_sale(
        catalog_store, ledger_store, product_id=product_id, quantity_sold=1, details=SaleDetails()
    )

    catalog_store.update_product(product_id, {"price_cents": 4999})

    stored = ledger_store.get_sale(sale.id)
    assert stored.unit_price_cents == 2999
    assert stored.final_cents == 2999


def test_list_sales_filters_and_orders(catalog_store, ledger_store, product):
    product_id = product.id
    first = complete_sale(catalog_store, ledger_store, product_id=product_id, quantity_sold=1, details=SaleDetails())
    second = complete_sale(
        catalog_store, ledger_store, product_id=product_id, quantity_sold=1,
        details=SaleDetails(payment_method="card", payment_status="pending"),
    )

    assert [s.id for s in ledger_store.list_sales()] == [second.id, first.id]
    assert [s.id for s in ledger_store.list_sales(SaleFilter(payment_method="card"))] == [second.id]
    assert [s.id for s in ledger_store.list_sales(SaleFilter(payment_status="completed"))] == [first.id]
    assert ledger_store.list_sales(SaleFilter(inventory_status="pending")) == []


def test_sale_row_rejects_zero_quantity(db_session, product):
    db_session.add(Sale(
        product_id=product.id, quantity_sold=0, unit_price_cents=1, subtotal_cents=0,
        surcharge_cents=0, total_cents=0, discount_cents=0, final_cents=0,
        payment_method="cash", payment_status="completed", sale_date=utcnow(),
    ))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_operational_error_becomes_store_unavailable(db_session):
    with pytest.raises(StoreUnavailable) as excinfo:
        with store_call(db_session, "list_products"):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    assert excinfo.value.retryable
    assert excinfo.value.details == {"operation": "list_products"}


def test_ping_reports_counts(catalog_store, ledger_store, product):
    assert catalog_store.ping()["products"] == 1
    assert ledger_store.ping()["sales"] == 0


def test_product_model_has_quantity_check(db_session, product):
    product_id = product.id
    with pytest.raises(IntegrityError):
        db_session.query(Product).filter(Product.id == product_id).update({Product.quantity: -5})
        db_session.commit()
    db_session.rollback()
