# backend/shopdesk/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #hosted database (postgresql://...)
        "sqlite:///shopdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on any single store call; expiry is reported as StoreUnavailable
    STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "10"))

    # Card processing fee passed through to the customer, in basis points (300 = 3%)
    CARD_SURCHARGE_BPS = int(os.environ.get("CARD_SURCHARGE_BPS", "300"))

    # Inventory screen stock bands: 1..LOW_STOCK_THRESHOLD is "low stock"
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "LKR")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORE_TIMEOUT_SECONDS = 2.0
