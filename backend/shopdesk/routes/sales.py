# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/shopdesk/routes/sales.py
"""
Sales API routes.

POST /api/sales runs the composer steps (product -> customer -> payment)
from one JSON body and completes the sale. Outcomes:

    201  sale recorded and stock adjusted
    207  PARTIAL COMMIT: sale recorded, stock not yet adjusted (needs reconciliation)
    400  invalid input (nothing written)
    409  insufficient stock / duplicate submit (nothing written, retryable)
    503  store unavailable (nothing written, retryable)
"""

from flask import Blueprint, request, current_app, Response

from ..extensions import get_catalog_store, get_ledger_store
from ..money import amount_from_payload
from ..services import catalog_service, reporting_service
from ..services.pricing_service import calculate_totals, PAYMENT_METHOD_CASH
from ..services.sale_composer import SaleComposer
from ..services.sales_service import (
    SaleError,
    InsufficientStock,
    SaleInProgress,
    PartialCommit,
    PAYMENT_STATUS_COMPLETED,
)
from ..services.stores import StoreError
from ..time_utils import utcnow
from ..validation import ValidationError
from .responses import store_error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _quantity_from(payload: dict) -> int:
    quantity = payload.get("quantity_sold", 1)
    if isinstance(quantity, str) and quantity.strip().isdigit():
        quantity = int(quantity.strip())
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity_sold must be an integer")
    return quantity


def _product_id_from(payload: dict) -> int:
    product_id = payload.get("product_id")
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise ValidationError("product_id is required")
    return product_id


def _category_id_from(payload: dict):
    category_id = payload.get("category_id")
    if category_id is None:
        return None
    if isinstance(category_id, bool) or not isinstance(category_id, int):
        raise ValidationError("category_id must be an integer")
    return category_id


@sales_bp.post("/quote")
def quote_route():
    """
    Price breakdown for the current form inputs, priced from the product's
    current price. Nothing is written. A quantity above stock on hand is a 409.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product_id = _product_id_from(payload)
        quantity = _quantity_from(payload)
        discount_cents = amount_from_payload(payload, "discount", default=0)
        product = catalog_service.get_product(get_catalog_store(), product_id)
        if quantity > product.quantity:
            raise InsufficientStock(
                "Insufficient stock to complete sale",
                details={
                    "product_id": product.id,
                    "requested_quantity": quantity,
                    "on_hand": product.quantity,
                },
            )
        breakdown = calculate_totals(
            product.price_cents,
            quantity,
            payload.get("payment_method") or PAYMENT_METHOD_CASH,
            discount_cents,
            surcharge_bps=current_app.config["CARD_SURCHARGE_BPS"],
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InsufficientStock as e:
        return {"error": str(e), "details": e.details, "retryable": True}, 409
    except StoreError as e:
        return store_error_response(e, "Quote sale")

    return {
        "quote": breakdown.to_dict(),
        "available_quantity": product.quantity,
        "remaining_after_sale": product.quantity - quantity,
    }, 200


@sales_bp.post("")
def create_sale_route():
    payload = request.get_json(silent=True) or {}
    catalog = get_catalog_store()
    composer = SaleComposer(catalog, get_ledger_store(), surcharge_bps=current_app.config["CARD_SURCHARGE_BPS"])

    try:
        product_id = _product_id_from(payload)
        category_id = _category_id_from(payload)
        quantity = _quantity_from(payload)
        discount_cents = amount_from_payload(payload, "discount", default=0)

        # Step 1: product and quantity
        product = catalog_service.get_product(catalog, product_id)
        if category_id is not None:
            composer.choose_category(category_id)
        composer.select_product(product)
        composer.set_quantity(quantity)
        composer.advance()

        # Step 2: customer
        composer.set_customer_info(
            name=payload.get("customer_name"),
            email=payload.get("customer_email"),
            phone=payload.get("customer_phone"),
            notes=payload.get("notes"),
        )
        composer.advance()

        # Step 3: payment
        composer.set_payment_method(payload.get("payment_method") or PAYMENT_METHOD_CASH)
        composer.set_payment_status(payload.get("payment_status") or PAYMENT_STATUS_COMPLETED)
        composer.set_discount(discount_cents)

        sale = composer.submit()

    except ValidationError as e:
        return {"error": str(e)}, 400
    except PartialCommit as e:
        return {
            "error": str(e),
            "status": "partial_commit",
            "sale": e.sale.to_dict(),
            "details": e.details,
        }, 207
    except (InsufficientStock, SaleInProgress) as e:
        return {"error": str(e), "details": e.details, "retryable": True}, 409
    except SaleError as e:
        return {"error": str(e), "details": e.details}, 400
    except StoreError as e:
        return store_error_response(e, "Create sale")
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return {"error": "Internal server error"}, 500

    return {"sale": sale.to_dict()}, 201


def _sale_filter_from_args():
    return reporting_service.build_sale_filter(
        range_preset=request.args.get("range"),
        start=request.args.get("start"),
        end=request.args.get("end"),
        payment_method=request.args.get("payment_method"),
        payment_status=request.args.get("payment_status"),
    )


@sales_bp.get("")
def list_sales_route():
    """
    Query params:
    - range: all | today | week | month | quarter
    - start / end: ISO-8601 (start overrides range)
    - payment_method, payment_status: exact match or "all"
    """
    try:
        sales = reporting_service.list_sales(get_ledger_store(), _sale_filter_from_args())
    except reporting_service.ReportError as e:
        return {"error": str(e)}, 400
    except StoreError as e:
        return store_error_response(e, "List sales")

    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "summary": reporting_service.sales_summary(sales),
    }, 200


@sales_bp.get("/export.csv")
def export_sales_route():
    try:
        sales = reporting_service.list_sales(get_ledger_store(), _sale_filter_from_args())
    except reporting_service.ReportError as e:
        return {"error": str(e)}, 400
    except StoreError as e:
        return store_error_response(e, "Export sales")

    filename = f"sales-report-{utcnow().date().isoformat()}.csv"
    return Response(
        reporting_service.sales_csv(sales),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = get_ledger_store().get_sale(sale_id)
    except StoreError as e:
        return store_error_response(e, "Get sale")
    if sale is None:
        return {"error": "Sale not found"}, 404
    return {"sale": sale.to_dict()}, 200
