from datetime import datetime

import pytest

from shopdesk.money import amount_from_payload, format_amount, format_cents, parse_amount
from shopdesk.services.reporting_service import ReportError, build_sale_filter, sales_csv, sales_summary
from shopdesk.services.stores import SaleRecord
from shopdesk.time_utils import parse_iso_datetime, parse_iso_range_end, range_start, to_utc_z
from shopdesk.validation import ValidationError


@pytest.mark.parametrize(
    "value, cents",
    [("19.99", 1999), (19.99, 1999), (20, 2000), ("0.005", 1), ("  2.5 ", 250), (0.1, 10)],
)
def test_parse_amount(value, cents):
    assert parse_amount(value) == cents


@pytest.mark.parametrize("value", [None, True, "abc", "-1", "NaN", "10000000"])
def test_parse_amount_rejects(value):
    with pytest.raises(ValidationError):
        parse_amount(value, field="price")


def test_amount_from_payload_prefers_cents():
    assert amount_from_payload({"discount_cents": 150, "discount": "9.99"}, "discount") == 150
    assert amount_from_payload({"discount": "2.00"}, "discount") == 200
    assert amount_from_payload({"discount": ""}, "discount", default=0) == 0
    assert amount_from_payload({}, "discount") is None
    with pytest.raises(ValidationError):
        amount_from_payload({"discount_cents": "150"}, "discount")


def test_format_helpers():
    assert format_amount(5) == "0.05"
    assert format_amount(123456) == "1234.56"
    assert format_cents(12345678) == "LKR 123,456.78"
    assert format_cents(0, "USD") == "USD 0.00"


def test_parse_iso_datetime_normalizes_to_utc():
    assert parse_iso_datetime("2026-03-01T10:00:00Z") == datetime(2026, 3, 1, 10, 0)
    assert parse_iso_datetime("2026-03-01T15:30:00+05:30") == datetime(2026, 3, 1, 10, 0)
    assert parse_iso_datetime("2026-03-01T10:00") == datetime(2026, 3, 1, 10, 0)
    assert parse_iso_datetime("  ") is None


def test_parse_iso_range_end_covers_whole_day():
    assert parse_iso_range_end("2026-05-01") == datetime(2026, 5, 1, 23, 59, 59, 999999)
    assert parse_iso_range_end("2026-05-01T12:00:00Z") == datetime(2026, 5, 1, 12, 0)
    assert parse_iso_range_end("") is None


def test_to_utc_z():
    assert to_utc_z(datetime(2026, 3, 1, 10, 0, 0, 999)) == "2026-03-01T10:00:00Z"
    assert to_utc_z(None) is None


def test_range_start_presets():
    now = datetime(2026, 3, 31, 15, 45)

    assert range_start("all", now) is None
    assert range_start("today", now) == datetime(2026, 3, 31)
    assert range_start("week", now) == datetime(2026, 3, 24, 15, 45)
    assert range_start("month", now) == datetime(2026, 2, 28, 15, 45)
    assert range_start("quarter", now) == datetime(2025, 12, 31, 15, 45)
    with pytest.raises(ValueError):
        range_start("decade", now)


def test_build_sale_filter():
    now = datetime(2026, 5, 10, 12, 0)

    f = build_sale_filter(range_preset="week", payment_method="all", payment_status="pending", now=now)
    assert f.start == datetime(2026, 5, 3, 12, 0)
    assert f.payment_method is None
    assert f.payment_status == "pending"

    f = build_sale_filter(range_preset="week", start="2026-01-01T00:00:00Z", now=now)
    assert f.start == datetime(2026, 1, 1)

    f = build_sale_filter(start="2026-05-01", end="2026-05-01")
    assert f.start == datetime(2026, 5, 1)
    assert f.end == datetime(2026, 5, 1, 23, 59, 59, 999999)

    for bad in ({"range_preset": "decade"}, {"payment_method": "cheque"}, {"start": "yesterday"}):
        with pytest.raises(ReportError):
            build_sale_filter(**bad)


def _sale(**overrides):
    fields = dict(
        id=1, product_id=7, quantity_sold=2, unit_price_cents=1000, subtotal_cents=2000,
        surcharge_cents=0, total_cents=2000, discount_cents=0, final_cents=2000,
        payment_method="cash", payment_status="completed", sale_date=datetime(2026, 5, 1, 9, 30),
        inventory_status="applied",
    )
    fields.update(overrides)
    return SaleRecord(**fields)


def test_sales_summary():
    sales = [
        _sale(),
        _sale(id=2, quantity_sold=1, final_cents=1000, discount_cents=30, payment_status="pending",
              inventory_status="pending"),
    ]

    summary = sales_summary(sales)

    assert summary["sales_count"] == 2
    assert summary["units_sold"] == 3
    assert summary["gross_cents"] == 3000
    assert summary["completed_revenue_cents"] == 2000
    assert summary["average_sale_cents"] == 1500
    assert summary["discount_cents"] == 30
    assert summary["pending_inventory_count"] == 1
    assert sales_summary([])["average_sale_cents"] == 0


def test_sales_csv_quotes_every_field():
    text = sales_csv([_sale(customer_name='Ama "A" Perera', notes=None)])
    lines = text.split("\n")

    assert lines[0] == (
        '"Sale ID","Product ID","Customer Name","Customer Email","Quantity","Unit Price",'
        '"Total Amount","Discount","Final Amount","Payment Method","Status","Date","Notes"'
    )
    assert lines[1] == (
        '"1","7","Ama ""A"" Perera","","2","10.00","20.00","0.00","20.00","cash","completed","2026-05-01",""'
    )
