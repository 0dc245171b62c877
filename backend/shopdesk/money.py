# Overview: Currency helpers. Amounts are stored and computed as integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .validation import ValidationError, MAX_PRICE_CENTS


CENT = Decimal("0.01")


def parse_amount(value: Any, *, field: str = "amount") -> int:
    """
    Parse a major-unit amount ("19.99", 19.99, 20) into integer cents.

    Floats go through repr() first so 0.1 stays 0.1 and not its binary
    expansion. Half-cents round away from zero.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal amount")

    cents = int((amount / CENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return cents


def amount_from_payload(payload: dict, key: str, *, default: int | None = None) -> int | None:
    """
    Read an amount from a JSON body as either `<key>_cents` (integer cents)
    or `<key>` (major units). The cents form wins when both are present.
    """
    cents_key = f"{key}_cents"
    if payload.get(cents_key) is not None:
        raw = payload[cents_key]
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError(f"{cents_key} must be an integer")
        if raw < 0:
            raise ValidationError(f"{cents_key} cannot be negative")
        if raw > MAX_PRICE_CENTS:
            raise ValidationError(f"{cents_key} exceeds maximum allowed value")
        return raw
    if payload.get(key) is not None and payload.get(key) != "":
        return parse_amount(payload[key], field=key)
    return default


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


def format_amount(cents: int) -> str:
    """12345 -> '123.45' (no grouping, used in exports)."""
    return str(cents_to_decimal(cents))


def format_cents(cents: int, currency: str = "LKR") -> str:
    """12345678 -> 'LKR 123,456.78'"""
    return f"{currency} {cents_to_decimal(cents):,.2f}"
