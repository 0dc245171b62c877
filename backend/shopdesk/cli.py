# Overview: Flask CLI command groups for bootstrap, seeding, and inventory reconciliation.

# backend/shopdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app wsgi <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Create sample categories and products (skips names that already exist).
# - python -m flask system sample-product --category-id 1
#   Create one timestamped test product in a category.
#
# Inventory reconciliation (sales recorded without a confirmed stock decrement):
# - python -m flask sales pending
#   List sales whose inventory_status is still "pending".
# - python -m flask sales reconcile 42
#   Decrement stock for sale 42 and mark it applied.
# - python -m flask sales reconcile 42 --no-stock
#   Mark sale 42 applied without touching stock (stock already moved).

import time

import click
from flask.cli import with_appcontext

from .extensions import db, get_catalog_store, get_ledger_store
from .money import format_cents
from .services import catalog_service
from .services.sales_service import SaleError, list_pending_inventory, reconcile_sale
from .services.stores import StoreError
from .validation import ConflictError


SAMPLE_CATALOG = [
    ("Skincare", "Cleansers, serums and moisturizers", [
        ("Hydrating Serum", 2999, 1500, 40),
        ("Gentle Cleanser", 1999, 900, 25),
    ]),
    ("Makeup", "Foundation, lipstick and mascara", [
        ("Matte Lipstick", 1499, 600, 60),
        ("Volume Mascara", 1799, 750, 8),
    ]),
    ("Haircare", "Shampoo, conditioner and treatments", [
        ("Repair Shampoo", 1299, 500, 30),
    ]),
    ("Fragrance", "Perfumes and body mists", [
        ("Citrus Body Mist", 2499, 1100, 0),
    ]),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for sample data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Create sample categories and products."""
    catalog = get_catalog_store()
    existing = {c.name.lower(): c for c in catalog.list_categories()}

    for name, description, products in SAMPLE_CATALOG:
        category = existing.get(name.lower())
        if category is None:
            category = catalog_service.create_category(catalog, {"name": name, "description": description})
            click.echo(f"PASS Created category: {category.name} (ID: {category.id})")
        else:
            click.echo(f"WARN  Category '{name}' already exists, skipping...")
            continue

        for product_name, price_cents, cost_cents, quantity in products:
            product = catalog_service.create_product(
                catalog,
                {
                    "name": product_name,
                    "category_id": category.id,
                    "price_cents": price_cents,
                    "cost_price_cents": cost_cents,
                    "quantity": quantity,
                },
                auto_sku=True,
            )
            click.echo(f"   + {product.name} [{product.sku}] {format_cents(product.price_cents)} x {product.quantity}")

    click.echo("DONE Sample catalog ready.")


@system_group.command('sample-product')
@click.option('--category-id', type=int, required=True, help='Category for the test product')
@with_appcontext
def sample_product(category_id):
    """Create a timestamped test product (price 29.99, cost 15.00, 100 in stock)."""
    catalog = get_catalog_store()
    stamp = int(time.time() * 1000)
    try:
        product = catalog_service.create_product(
            catalog,
            {
                "name": f"Test Product {stamp}",
                "description": "This is a test product created for debugging",
                "sku": f"TEST{stamp}",
                "category_id": category_id,
                "price_cents": 2999,
                "cost_price_cents": 1500,
                "quantity": 100,
                "min_stock_level": 10,
            },
        )
    except (StoreError, ValueError) as exc:
        raise click.ClickException(f"Failed to create sample product: {exc}")
    click.echo(f"PASS Created {product.name} (ID: {product.id}, SKU: {product.sku})")


@click.group('sales')
def sales_group():
    """Sales ledger inspection and reconciliation."""


@sales_group.command('pending')
@with_appcontext
def pending_sales():
    """List sales recorded without a confirmed stock decrement."""
    sales = list_pending_inventory(get_ledger_store())
    if not sales:
        click.echo("PASS No pending sales.")
        return

    click.echo(f"{'ID':<8}{'PRODUCT':<10}{'QTY':<6}{'FINAL':<18}DATE")
    for sale in sales:
        click.echo(
            f"{sale.id:<8}{sale.product_id:<10}{sale.quantity_sold:<6}"
            f"{format_cents(sale.final_cents):<18}{sale.sale_date:%Y-%m-%d %H:%M}"
        )
    click.echo(f"\nWARN  {len(sales)} sale(s) pending reconciliation.")


@sales_group.command('reconcile')
@click.argument('sale_id', type=int)
@click.option('--stock/--no-stock', 'apply_stock', default=True,
              help='Decrement stock before marking applied (default) or only mark it')
@with_appcontext
def reconcile(sale_id, apply_stock):
    """Close a partial commit for one sale."""
    try:
        sale = reconcile_sale(get_catalog_store(), get_ledger_store(), sale_id, apply_stock=apply_stock)
    except (SaleError, StoreError, ConflictError) as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Sale {sale.id} inventory_status={sale.inventory_status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sales_group)
