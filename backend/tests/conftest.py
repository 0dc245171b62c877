"""
Pytest fixtures for shopdesk backend tests.

Provides the SQL-backed app and client, plus in-memory store fakes for
service tests that need to inject failures.
"""

import pytest

from shopdesk import create_app
from shopdesk.config import TestingConfig
from shopdesk.extensions import db
from shopdesk.models import Category, Product

from fakes import InMemoryCatalogStore, InMemoryLedgerStore


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def category(db_session):
    """Create the Skincare category."""
    category = Category(name="Skincare", description="Serums and cleansers", is_active=True)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product(db_session, category):
    """Create a product with 10 units at 29.99."""
    product = Product(
        name="Hydrating Serum",
        category_id=category.id,
        sku="SKI-001",
        price_cents=2999,
        cost_price_cents=1500,
        quantity=10,
        min_stock_level=5,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def catalog():
    """Empty in-memory catalog store."""
    return InMemoryCatalogStore()


@pytest.fixture(scope='function')
def ledger(catalog):
    """Empty in-memory ledger store that resolves product names from `catalog`."""
    return InMemoryLedgerStore(catalog)


@pytest.fixture(scope='function')
def fake_app(catalog, ledger):
    """App wired to the in-memory stores instead of the database."""
    return create_app(TestingConfig, catalog_store=catalog, ledger_store=ledger)


@pytest.fixture(scope='function')
def fake_client(fake_app):
    return fake_app.test_client()
