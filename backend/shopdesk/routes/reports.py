from flask import Blueprint

from ..extensions import get_catalog_store, get_ledger_store
from ..services import reporting_service
from ..services.sales_service import list_pending_inventory
from ..services.stores import StoreError
from .responses import store_error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/dashboard")
def dashboard():
    try:
        stats = reporting_service.dashboard_stats(get_catalog_store(), get_ledger_store())
    except StoreError as exc:
        return store_error_response(exc, "Dashboard")
    return stats, 200


@reports_bp.get("/reports/pending-inventory")
def pending_inventory():
    """Sales recorded without a confirmed stock decrement."""
    try:
        sales = list_pending_inventory(get_ledger_store())
    except StoreError as exc:
        return store_error_response(exc, "Pending inventory report")
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}, 200
