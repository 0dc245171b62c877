import pytest

from shopdesk.services.pricing_service import (
    PAYMENT_METHOD_BANK_TRANSFER,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_DIGITAL_WALLET,
    calculate_totals,
    clamp_discount,
    surcharge_for,
)
from shopdesk.validation import ValidationError


def test_cash_sale_has_no_surcharge():
    breakdown = calculate_totals(2999, 2, PAYMENT_METHOD_CASH, 0)

    assert breakdown.subtotal_cents == 5998
    assert breakdown.surcharge_cents == 0
    assert breakdown.total_cents == 5998
    assert breakdown.final_cents == 5998


def test_card_sale_adds_rounded_surcharge_before_discount():
    breakdown = calculate_totals(1999, 1, PAYMENT_METHOD_CARD, 200)

    assert breakdown.subtotal_cents == 1999
    assert breakdown.surcharge_cents == 60
    assert breakdown.total_cents == 2059
    assert breakdown.discount_cents == 200
    assert breakdown.final_cents == 1859


@pytest.mark.parametrize("method", [PAYMENT_METHOD_CASH, PAYMENT_METHOD_BANK_TRANSFER, PAYMENT_METHOD_DIGITAL_WALLET])
def test_only_card_is_surcharged(method):
    assert surcharge_for(100_000, method) == 0
    assert calculate_totals(100_000, 1, method).surcharge_cents == 0


def test_surcharge_rounds_half_up():
    # 3% of 50 cents is exactly 1.5 cents
    assert surcharge_for(50, PAYMENT_METHOD_CARD) == 2
    # 3% of 49 cents is 1.47 cents
    assert surcharge_for(49, PAYMENT_METHOD_CARD) == 1
    assert surcharge_for(0, PAYMENT_METHOD_CARD) == 0


def test_surcharge_rate_is_configurable():
    assert surcharge_for(10_000, PAYMENT_METHOD_CARD, surcharge_bps=250) == 250
    assert calculate_totals(10_000, 1, PAYMENT_METHOD_CARD, surcharge_bps=0).surcharge_cents == 0


def test_subtotal_is_exact_for_large_quantities():
    breakdown = calculate_totals(333, 999, PAYMENT_METHOD_CASH)
    assert breakdown.subtotal_cents == 332_667


def test_discount_is_clamped_to_total():
    breakdown = calculate_totals(1000, 1, PAYMENT_METHOD_CASH, 5000)
    assert breakdown.discount_cents == 1000
    assert breakdown.final_cents == 0


def test_negative_discount_is_clamped_to_zero():
    breakdown = calculate_totals(1000, 1, PAYMENT_METHOD_CASH, -300)
    assert breakdown.discount_cents == 0
    assert breakdown.final_cents == 1000


def test_clamp_discount_bounds():
    assert clamp_discount(-1, 100) == 0
    assert clamp_discount(50, 100) == 50
    assert clamp_discount(101, 100) == 100


def test_final_equals_subtotal_plus_surcharge_minus_discount():
    for price, qty, method, discount in [
        (1, 1, PAYMENT_METHOD_CARD, 0),
        (1999, 3, PAYMENT_METHOD_CARD, 17),
        (250_000, 4, PAYMENT_METHOD_BANK_TRANSFER, 999),
    ]:
        b = calculate_totals(price, qty, method, discount)
        assert b.final_cents == b.subtotal_cents + b.surcharge_cents - b.discount_cents
        assert 0 <= b.final_cents <= b.total_cents


def test_same_inputs_give_same_breakdown():
    assert calculate_totals(1999, 2, PAYMENT_METHOD_CARD, 100) == calculate_totals(1999, 2, PAYMENT_METHOD_CARD, 100)


@pytest.mark.parametrize(
    "args",
    [
        (-1, 1, PAYMENT_METHOD_CASH),
        (100, 0, PAYMENT_METHOD_CASH),
        (100, -2, PAYMENT_METHOD_CASH),
        (100, 1, "cheque"),
        (1.5, 1, PAYMENT_METHOD_CASH),
        (100, True, PAYMENT_METHOD_CASH),
    ],
)
def test_invalid_inputs_raise_validation_error(args):
    with pytest.raises(ValidationError):
        calculate_totals(*args)


def test_breakdown_to_dict():
    data = calculate_totals(1999, 1, PAYMENT_METHOD_CARD, 200).to_dict()
    assert data == {
        "unit_price_cents": 1999,
        "quantity": 1,
        "subtotal_cents": 1999,
        "surcharge_cents": 60,
        "total_cents": 2059,
        "discount_cents": 200,
        "final_cents": 1859,
    }
