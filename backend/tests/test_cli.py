import pytest

from shopdesk.cli import SAMPLE_CATALOG
from shopdesk.services.sales_service import PartialCommit, SaleDetails, complete_sale
from shopdesk.services.stores import StoreUnavailable, INVENTORY_APPLIED


@pytest.fixture
def runner(fake_app):
    return fake_app.test_cli_runner()


def test_seed_creates_sample_catalog(runner, catalog):
    result = runner.invoke(args=["system", "seed"])

    assert result.exit_code == 0, result.output
    assert len(catalog.categories) == len(SAMPLE_CATALOG)
    assert len(catalog.products) == sum(len(products) for _, _, products in SAMPLE_CATALOG)
    assert all(p.sku for p in catalog.products.values())


def test_seed_skips_existing_categories(runner, catalog):
    catalog.add_category("skincare")

    result = runner.invoke(args=["system", "seed"])

    assert "already exists" in result.output
    assert len(catalog.categories) == len(SAMPLE_CATALOG)


def test_sample_product_requires_known_category(runner):
    result = runner.invoke(args=["system", "sample-product", "--category-id", "99"])
    assert result.exit_code != 0
    assert "Failed to create sample product" in result.output


def test_pending_and_reconcile(runner, catalog, ledger):
    serum = catalog.add_product("Hydrating Serum", quantity=10)
    catalog.fail_on["update_product_quantity"] = StoreUnavailable("down")
    with pytest.raises(PartialCommit) as excinfo:
        complete_sale(catalog, ledger, product_id=serum.id, quantity_sold=2, details=SaleDetails())
    del catalog.fail_on["update_product_quantity"]
    sale_id = excinfo.value.sale.id

    result = runner.invoke(args=["sales", "pending"])
    assert "1 sale(s) pending reconciliation" in result.output

    result = runner.invoke(args=["sales", "reconcile", str(sale_id)])
    assert result.exit_code == 0, result.output
    assert ledger.sales[sale_id].inventory_status == INVENTORY_APPLIED
    assert catalog.products[serum.id].quantity == 8

    result = runner.invoke(args=["sales", "pending"])
    assert "No pending sales" in result.output


def test_reconcile_unknown_sale_fails(runner):
    result = runner.invoke(args=["sales", "reconcile", "404"])
    assert result.exit_code != 0
    assert "Sale not found" in result.output
