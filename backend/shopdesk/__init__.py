# backend/shopdesk/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate, STORES_KEY


def _engine_options(uri: str, timeout: float) -> dict:
    """Bound every store call: lock waits, pool checkout and statement time."""
    options: dict = {"pool_pre_ping": True}
    if uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout}
    else:
        options["pool_timeout"] = timeout
        if uri.startswith("postgresql"):
            options["connect_args"] = {
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            }
    return options


def create_app(config_object=Config, *, catalog_store=None, ledger_store=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.config.setdefault(
        "SQLALCHEMY_ENGINE_OPTIONS",
        _engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app.config["STORE_TIMEOUT_SECONDS"]),
    )
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Stores are explicit collaborators; tests pass fakes in
    from .services.sql_stores import SqlCatalogStore, SqlLedgerStore
    app.extensions[STORES_KEY] = {
        "catalog": catalog_store if catalog_store is not None else SqlCatalogStore(db.session),
        "ledger": ledger_store if ledger_store is not None else SqlLedgerStore(db.session),
    }

    # Register blueprints
    from .routes.system import system_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
