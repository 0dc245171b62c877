# backend/shopdesk/routes/system.py
"""
System health and version endpoints.

The health check pings both stores so the UI can show whether the hosted
database is reachable before anyone tries to ring up a sale.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import get_catalog_store, get_ledger_store
from ..services.stores import StoreError
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_store_health(name: str, store) -> dict:
    """
    Check store connectivity with a cheap count query.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = store.ping()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except StoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("%s health check failed", name)
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": f"{name} unavailable",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: both stores reachable
    - 503: at least one store unreachable
    """
    start_time = time.time()

    checks = {
        "catalog": check_store_health("Catalog store", get_catalog_store()),
        "ledger": check_store_health("Ledger store", get_ledger_store()),
    }
    unhealthy = any(check["status"] == "unhealthy" for check in checks.values())

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, 503 if unhealthy else 200


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "0.1.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "currency": current_app.config["CURRENCY_CODE"],
        "card_surcharge_bps": current_app.config["CARD_SURCHARGE_BPS"],
        "server_time": utcnow().isoformat() + "Z",
    }
