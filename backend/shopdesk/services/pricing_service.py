# Overview: Pure sale pricing: subtotal, card surcharge, discount clamp and final amount.

"""
Pricing Calculator

    subtotal  = unit_price * quantity
    surcharge = round_half_up(subtotal * CARD_SURCHARGE_BPS / 10_000)   card only, else 0
    total     = subtotal + surcharge
    final     = total - discount            discount clamped to [0, total] first

All amounts are integer cents. No I/O, no hidden state: the same inputs
always give the same PriceBreakdown.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Literal

from ..validation import ValidationError


PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_BANK_TRANSFER = "bank_transfer"
PAYMENT_METHOD_DIGITAL_WALLET = "digital_wallet"

VALID_PAYMENT_METHODS = (
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_BANK_TRANSFER,
    PAYMENT_METHOD_DIGITAL_WALLET,
)
PaymentMethod = Literal["cash", "card", "bank_transfer", "digital_wallet"]

# 300 basis points = 3% card processing fee, passed through to the customer
CARD_SURCHARGE_BPS = 300

_BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class PriceBreakdown:
    unit_price_cents: int
    quantity: int
    subtotal_cents: int
    surcharge_cents: int
    total_cents: int
    discount_cents: int
    final_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def validate_payment_method(payment_method: str) -> None:
    if payment_method not in VALID_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}'. Must be one of: {', '.join(VALID_PAYMENT_METHODS)}"
        )


def _round_half_up_div(numerator: int, denominator: int) -> int:
    # Non-negative operands only
    return (numerator * 2 + denominator) // (denominator * 2)


def surcharge_for(subtotal_cents: int, payment_method: str, *, surcharge_bps: int = CARD_SURCHARGE_BPS) -> int:
    if payment_method != PAYMENT_METHOD_CARD:
        return 0
    return _round_half_up_div(subtotal_cents * surcharge_bps, _BPS_DENOMINATOR)


def clamp_discount(discount_cents: int, total_cents: int) -> int:
    """Clamp a requested discount into [0, total] so the final amount never goes negative."""
    return max(0, min(discount_cents, total_cents))


def calculate_totals(
    unit_price_cents: int,
    quantity: int,
    payment_method: str,
    discount_cents: int = 0,
    *,
    surcharge_bps: int = CARD_SURCHARGE_BPS,
) -> PriceBreakdown:
    """
    Compute the full price breakdown for one sale line.

    Raises:
        ValidationError: negative price, non-positive quantity, unknown payment method
    """
    if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0:
        raise ValidationError("unit price must be a non-negative amount in cents")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    if isinstance(discount_cents, bool) or not isinstance(discount_cents, int):
        raise ValidationError("discount must be an amount in cents")
    validate_payment_method(payment_method)

    subtotal = unit_price_cents * quantity
    surcharge = surcharge_for(subtotal, payment_method, surcharge_bps=surcharge_bps)
    total = subtotal + surcharge
    discount = clamp_discount(discount_cents, total)

    return PriceBreakdown(
        unit_price_cents=unit_price_cents,
        quantity=quantity,
        subtotal_cents=subtotal,
        surcharge_cents=surcharge,
        total_cents=total,
        discount_cents=discount,
        final_cents=total - discount,
    )
