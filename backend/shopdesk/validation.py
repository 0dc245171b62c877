from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum amount: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

CATEGORY_NAME_MIN = 2
CATEGORY_NAME_MAX = 50
CATEGORY_DESCRIPTION_MAX = 200


class ValidationError(ValueError):
    """400-level input problem. Never reaches a store."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate category name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Per-model write policy:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers: reject floats, bools and decimal strings
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "." in stripped or "e" in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against the model's columns
    (nullable, type, String length) and the policy allowlist.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    Blank strings on nullable text columns become None, which is how the
    forms submit "no SKU" / "no description".
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict, *, creating: bool = False) -> None:
    """
    Product rules not captured by column metadata alone.
    Price must be positive; stock figures and cost cannot go negative.
    """
    if "price_cents" in patch:
        price = patch["price_cents"]
        if price is None or price <= 0:
            raise ValidationError("Valid price is required")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")
    elif creating:
        raise ValidationError("Valid price is required")

    cost = patch.get("cost_price_cents")
    if cost is not None:
        if cost < 0:
            raise ValidationError("Cost price cannot be negative")
        if cost > MAX_PRICE_CENTS:
            raise ValidationError(f"cost_price_cents cannot exceed {MAX_PRICE_CENTS}")

    if "quantity" in patch and (patch["quantity"] is None or patch["quantity"] < 0):
        raise ValidationError("Valid quantity is required")

    if "min_stock_level" in patch and (patch["min_stock_level"] is None or patch["min_stock_level"] < 0):
        raise ValidationError("min_stock_level must be >= 0")

    if creating and not patch.get("category_id"):
        raise ValidationError("Category is required")


def enforce_rules_category(patch: dict) -> None:
    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if len(name) < CATEGORY_NAME_MIN:
            raise ValidationError(f"Category name must be at least {CATEGORY_NAME_MIN} characters")
        if len(name) > CATEGORY_NAME_MAX:
            raise ValidationError(f"Category name must be less than {CATEGORY_NAME_MAX} characters")
        patch["name"] = name

    description = patch.get("description")
    if description is not None and len(description) > CATEGORY_DESCRIPTION_MAX:
        raise ValidationError(f"Description must be less than {CATEGORY_DESCRIPTION_MAX} characters")
