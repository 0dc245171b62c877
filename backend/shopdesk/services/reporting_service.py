# Overview: Sales listing, summary figures, dashboard stats and CSV export.

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Iterable

from ..money import format_amount
from ..time_utils import parse_iso_datetime, parse_iso_range_end, range_start, RANGE_PRESETS
from .pricing_service import VALID_PAYMENT_METHODS
from .sales_service import VALID_PAYMENT_STATUSES, PAYMENT_STATUS_COMPLETED
from .stores import CatalogStore, LedgerStore, ProductFilter, SaleFilter, SaleRecord, INVENTORY_APPLIED


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


CSV_HEADERS = [
    "Sale ID",
    "Product ID",
    "Customer Name",
    "Customer Email",
    "Quantity",
    "Unit Price",
    "Total Amount",
    "Discount",
    "Final Amount",
    "Payment Method",
    "Status",
    "Date",
    "Notes",
]


def build_sale_filter(
    *,
    range_preset: str | None = None,
    start: str | None = None,
    end: str | None = None,
    payment_method: str | None = None,
    payment_status: str | None = None,
    now: datetime | None = None,
) -> SaleFilter:
    """
    Translate query-string style parameters into a SaleFilter.

    An explicit start wins over a preset. "all" (or nothing) means no
    method/status restriction. A date-only end covers that whole day.
    """
    range_preset = range_preset or "all"
    if range_preset not in RANGE_PRESETS:
        raise ReportError(f"range must be one of: {', '.join(RANGE_PRESETS)}")

    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_range_end(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 datetimes")
    if start_dt is None:
        start_dt = range_start(range_preset, now)

    if payment_method in (None, "", "all"):
        payment_method = None
    elif payment_method not in VALID_PAYMENT_METHODS:
        raise ReportError(f"payment_method must be one of: {', '.join(VALID_PAYMENT_METHODS)}")

    if payment_status in (None, "", "all"):
        payment_status = None
    elif payment_status not in VALID_PAYMENT_STATUSES:
        raise ReportError(f"payment_status must be one of: {', '.join(VALID_PAYMENT_STATUSES)}")

    return SaleFilter(
        start=start_dt,
        end=end_dt,
        payment_method=payment_method,
        payment_status=payment_status,
    )


def list_sales(ledger: LedgerStore, sale_filter: SaleFilter) -> list[SaleRecord]:
    return ledger.list_sales(sale_filter)


def sales_summary(sales: Iterable[SaleRecord]) -> dict:
    sales = list(sales)
    count = len(sales)
    gross = sum(s.final_cents for s in sales)
    completed = sum(s.final_cents for s in sales if s.payment_status == PAYMENT_STATUS_COMPLETED)
    return {
        "sales_count": count,
        "units_sold": sum(s.quantity_sold for s in sales),
        "gross_cents": gross,
        "discount_cents": sum(s.discount_cents for s in sales),
        "surcharge_cents": sum(s.surcharge_cents for s in sales),
        "completed_revenue_cents": completed,
        # Integer division keeps the figure in whole cents
        "average_sale_cents": gross // count if count else 0,
        "pending_inventory_count": sum(1 for s in sales if s.inventory_status != INVENTORY_APPLIED),
    }


def dashboard_stats(catalog: CatalogStore, ledger: LedgerStore) -> dict:
    """Headline figures: active products, sale count, products at/below their minimum, completed revenue."""
    active_products = catalog.list_products(ProductFilter(active_only=True))
    completed_sales = ledger.list_sales(SaleFilter(payment_status=PAYMENT_STATUS_COMPLETED))
    return {
        "total_products": len(active_products),
        "total_sales": ledger.count_sales(),
        "low_stock": sum(1 for p in active_products if p.quantity <= p.min_stock_level),
        "revenue_cents": sum(s.final_cents for s in completed_sales),
    }


def sales_csv(sales: Iterable[SaleRecord]) -> str:
    """CSV text with every field quoted; amounts as plain decimals."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for sale in sales:
        writer.writerow([
            sale.id,
            sale.product_id,
            sale.customer_name or "",
            sale.customer_email or "",
            sale.quantity_sold,
            format_amount(sale.unit_price_cents),
            format_amount(sale.total_cents),
            format_amount(sale.discount_cents),
            format_amount(sale.final_cents),
            sale.payment_method,
            sale.payment_status,
            sale.sale_date.date().isoformat() if sale.sale_date else "",
            sale.notes or "",
        ])
    return buf.getvalue()
