# Overview: Flask API routes for category management; parses input and returns JSON responses.

"""
Category routes.

Categories are the first filter of the sale flow. Deleting a category
that still has products is refused (409); deactivate it instead.
"""
from flask import Blueprint, request, current_app

from ..extensions import get_catalog_store
from ..models import Category
from ..services import catalog_service
from ..services.stores import StoreError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_category,
    ValidationError,
    ConflictError,
)
from .responses import store_error_response

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "is_active"}),
    required_on_create=frozenset({"name"}),
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories():
    """
    Query params:
    - active_only: "true" to hide inactive categories
    """
    active_only = request.args.get("active_only", "false").lower() == "true"
    try:
        categories = catalog_service.list_categories(get_catalog_store(), active_only=active_only)
    except StoreError as e:
        return store_error_response(e, "List categories")
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        enforce_rules_category(patch)
        created = catalog_service.create_category(get_catalog_store(), patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError as e:
        return store_error_response(e, "Create category")

    return created.to_dict(), 201


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        enforce_rules_category(patch)
        updated = catalog_service.update_category(get_catalog_store(), category_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError as e:
        return store_error_response(e, "Update category")

    return updated.to_dict(), 200


@categories_bp.post("/<int:category_id>/active")
def set_category_active_route(category_id: int):
    """Body: {"is_active": true|false}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload.get("is_active"), bool):
        return {"error": "is_active must be true or false"}, 400

    try:
        updated = catalog_service.set_category_active(get_catalog_store(), category_id, payload["is_active"])
    except StoreError as e:
        return store_error_response(e, "Toggle category")

    return updated.to_dict(), 200


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(get_catalog_store(), category_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError as e:
        return store_error_response(e, "Delete category")
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200
