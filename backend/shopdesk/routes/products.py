# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/shopdesk/routes/products.py
"""
Product management routes.

Amounts may be sent as integer cents (price_cents, cost_price_cents) or as
major-unit decimals (price, cost_price); cents win when both are sent.
"""
from flask import Blueprint, request, current_app

from ..extensions import get_catalog_store, get_ledger_store
from ..models import Product
from ..money import amount_from_payload
from ..services import catalog_service
from ..services.stores import StoreError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from .responses import store_error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "sku", "category_id", "price_cents", "cost_price_cents",
        "quantity", "min_stock_level", "image_url", "is_active",
    }),
    required_on_create=frozenset({"name", "category_id", "price_cents"}),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _normalize_amounts(payload: dict) -> dict:
    """Fold price/cost_price decimals into their *_cents columns."""
    payload = dict(payload)
    for key in ("price", "cost_price"):
        if key in payload or f"{key}_cents" in payload:
            raw_present = payload.get(key) not in (None, "") or payload.get(f"{key}_cents") is not None
            cents = amount_from_payload(payload, key) if raw_present else None
            payload.pop(key, None)
            payload[f"{key}_cents"] = cents
    return payload


@products_bp.get("")
def list_products():
    """
    List products, then filter the fetched list the way the inventory screen does.

    Query params:
    - search: matches name, SKU or description (case-insensitive)
    - category_id: int
    - stock: all | out_of_stock | low_stock | in_stock
    - active_only: "true" to hide inactive products
    """
    search = request.args.get("search")
    category_id = request.args.get("category_id", type=int)
    stock = request.args.get("stock", "all")
    active_only = request.args.get("active_only", "false").lower() == "true"
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    try:
        products = catalog_service.list_products(get_catalog_store(), active_only=active_only)
        filtered = catalog_service.filter_products(
            products,
            search=search,
            category_id=category_id,
            stock=stock,
            low_stock_threshold=threshold,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError as e:
        return store_error_response(e, "List products")

    return {
        "items": [p.to_dict() for p in filtered],
        "count": len(filtered),
        "summary": catalog_service.inventory_summary(products, low_stock_threshold=threshold).to_dict(),
    }


@products_bp.get("/sellable")
def list_sellable_products():
    """Active, in-stock products of one category (step one of the sale flow)."""
    category_id = request.args.get("category_id", type=int)
    if not category_id:
        return {"error": "category_id is required"}, 400

    try:
        products = catalog_service.list_sellable_products(get_catalog_store(), category_id)
    except StoreError as e:
        return store_error_response(e, "List sellable products")

    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/summary")
def products_summary():
    try:
        products = catalog_service.list_products(get_catalog_store())
    except StoreError as e:
        return store_error_response(e, "Product summary")
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    return catalog_service.inventory_summary(products, low_stock_threshold=threshold).to_dict()


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(get_catalog_store(), product_id)
    except StoreError as e:
        return store_error_response(e, "Get product")
    return product.to_dict()


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    Body may include "auto_sku": true to generate a SKU from the category name.
    """
    payload = request.get_json(silent=True) or {}
    auto_sku = bool(payload.pop("auto_sku", False))

    try:
        patch = validate_payload(model=Product, payload=_normalize_amounts(payload), policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch, creating=True)
        created = catalog_service.create_product(get_catalog_store(), patch, auto_sku=auto_sku)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError as e:
        return store_error_response(e, "Create product")

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=_normalize_amounts(payload), policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(get_catalog_store(), product_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError as e:
        return store_error_response(e, "Update product")

    return updated.to_dict(), 200


@products_bp.post("/<int:product_id>/deactivate")
def deactivate_product_route(product_id: int):
    try:
        updated = catalog_service.deactivate_product(get_catalog_store(), product_id)
    except StoreError as e:
        return store_error_response(e, "Deactivate product")
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Hard delete; refused (409) once the product has sales."""
    try:
        catalog_service.delete_product(get_catalog_store(), get_ledger_store(), product_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError as e:
        return store_error_response(e, "Delete product")

    return {"ok": True}, 200
