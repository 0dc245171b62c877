# Overview: Flask extension instances for database and migrations, plus store lookup.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

STORES_KEY = "shopdesk.stores"


def get_catalog_store():
    """Catalog store constructed by create_app() for the current app."""
    return current_app.extensions[STORES_KEY]["catalog"]


def get_ledger_store():
    """Ledger store constructed by create_app() for the current app."""
    return current_app.extensions[STORES_KEY]["ledger"]
