import re

import pytest

from shopdesk.services import catalog_service
from shopdesk.services.sales_service import SaleDetails, complete_sale
from shopdesk.services.stores import RecordNotFound
from shopdesk.validation import ConflictError, ValidationError


def test_create_category_defaults_active(catalog):
    created = catalog_service.create_category(catalog, {"name": "Skincare", "description": None})
    assert created.is_active
    assert created.name == "Skincare"


def test_category_names_unique_case_insensitive(catalog):
    catalog_service.create_category(catalog, {"name": "Skincare"})
    with pytest.raises(ConflictError, match="already exists"):
        catalog_service.create_category(catalog, {"name": "SKINCARE"})


def test_rename_category_to_own_name_is_allowed(catalog):
    skincare = catalog.add_category("Skincare")
    catalog.add_category("Makeup")

    renamed = catalog_service.update_category(catalog, skincare.id, {"name": "skincare"})
    assert renamed.name == "skincare"
    with pytest.raises(ConflictError):
        catalog_service.update_category(catalog, skincare.id, {"name": "makeup"})


def test_update_missing_category(catalog):
    with pytest.raises(RecordNotFound):
        catalog_service.update_category(catalog, 42, {"name": "Other"})


def test_toggle_category_active(catalog):
    skincare = catalog.add_category("Skincare")
    assert not catalog_service.set_category_active(catalog, skincare.id, False).is_active
    assert catalog_service.list_categories(catalog, active_only=True) == []


def test_delete_category_with_products_is_refused(catalog):
    skincare = catalog.add_category("Skincare")
    catalog.add_product("Serum", category_id=skincare.id)

    with pytest.raises(ConflictError, match='Cannot delete "Skincare"'):
        catalog_service.delete_category(catalog, skincare.id)
    assert skincare.id in catalog.categories


def test_delete_empty_category(catalog):
    skincare = catalog.add_category("Skincare")
    catalog_service.delete_category(catalog, skincare.id)
    assert catalog.categories == {}


def test_create_product_applies_defaults(catalog):
    skincare = catalog.add_category("Skincare")
    product = catalog_service.create_product(
        catalog, {"name": "Serum", "category_id": skincare.id, "price_cents": 2999}
    )

    assert product.is_active
    assert product.quantity == 0
    assert product.min_stock_level == 10
    assert product.sku is None


def test_create_product_with_generated_sku(catalog):
    skincare = catalog.add_category("Skin care")
    product = catalog_service.create_product(
        catalog, {"name": "Serum", "category_id": skincare.id, "price_cents": 2999}, auto_sku=True
    )
    assert re.fullmatch(r"SKI[A-Z0-9]{6}", product.sku)


def test_explicit_sku_is_kept(catalog):
    skincare = catalog.add_category("Skincare")
    product = catalog_service.create_product(
        catalog,
        {"name": "Serum", "category_id": skincare.id, "price_cents": 2999, "sku": "SER-1"},
        auto_sku=True,
    )
    assert product.sku == "SER-1"


def test_create_product_requires_existing_category(catalog):
    with pytest.raises(ValidationError, match="Category is required"):
        catalog_service.create_product(catalog, {"name": "Serum", "category_id": 77, "price_cents": 100})


def test_list_sellable_products_filters_stock_and_active(catalog):
    skincare = catalog.add_category("Skincare")
    makeup = catalog.add_category("Makeup")
    serum = catalog.add_product("Serum", category_id=skincare.id, quantity=4)
    catalog.add_product("Empty", category_id=skincare.id, quantity=0)
    catalog.add_product("Retired", category_id=skincare.id, quantity=4, is_active=False)
    catalog.add_product("Lipstick", category_id=makeup.id, quantity=4)

    assert catalog_service.list_sellable_products(catalog, skincare.id) == [serum]


def test_deactivate_product(catalog):
    serum = catalog.add_product("Serum")
    assert not catalog_service.deactivate_product(catalog, serum.id).is_active


def test_delete_product_with_sales_is_refused(catalog, ledger):
    serum = catalog.add_product("Serum", quantity=5)
    complete_sale(catalog, ledger, product_id=serum.id, quantity_sold=1, details=SaleDetails())

    with pytest.raises(ConflictError):
        catalog_service.delete_product(catalog, ledger, serum.id)
    assert serum.id in catalog.products


def test_delete_unreferenced_product(catalog, ledger):
    serum = catalog.add_product("Serum")
    catalog_service.delete_product(catalog, ledger, serum.id)
    assert serum.id not in catalog.products


def test_get_missing_product(catalog):
    with pytest.raises(RecordNotFound):
        catalog_service.get_product(catalog, 5)


def test_stock_bands():
    assert catalog_service.stock_band(0) == "out_of_stock"
    assert catalog_service.stock_band(1) == "low_stock"
    assert catalog_service.stock_band(10) == "low_stock"
    assert catalog_service.stock_band(11) == "in_stock"
    assert catalog_service.stock_band(3, low_stock_threshold=2) == "in_stock"


def test_filter_products(catalog):
    skincare = catalog.add_category("Skincare")
    makeup = catalog.add_category("Makeup")
    serum = catalog.add_product("Hydrating Serum", category_id=skincare.id, quantity=50, sku="SKI123")
    cream = catalog.add_product("Night Cream", category_id=skincare.id, quantity=3, description="Rich serum base")
    lipstick = catalog.add_product("Lipstick", category_id=makeup.id, quantity=0)
    products = [serum, cream, lipstick]

    assert catalog_service.filter_products(products, search="serum") == [serum, cream]
    assert catalog_service.filter_products(products, search="ski1") == [serum]
    assert catalog_service.filter_products(products, category_id=makeup.id) == [lipstick]
    assert catalog_service.filter_products(products, stock="low_stock") == [cream]
    assert catalog_service.filter_products(products, stock="out_of_stock") == [lipstick]
    assert catalog_service.filter_products(products, stock="in_stock", category_id=skincare.id) == [serum]

    with pytest.raises(ValidationError):
        catalog_service.filter_products(products, stock="plenty")


def test_inventory_summary(catalog):
    products = [
        catalog.add_product("Serum", price_cents=1000, quantity=20),
        catalog.add_product("Cream", price_cents=250, quantity=4),
        catalog.add_product("Mist", price_cents=999, quantity=0),
    ]

    summary = catalog_service.inventory_summary(products)

    assert summary.to_dict() == {
        "product_count": 3,
        "total_value_cents": 21_000,
        "low_stock_count": 1,
        "out_of_stock_count": 1,
    }
