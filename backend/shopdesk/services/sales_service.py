"""
Sales Service - Inventory Consistency Guard

WHY: A sale touches two independent stores (ledger and catalog) with no
shared transaction. The order of writes is chosen so the sale record,
which is business history, is never lost:

    1. re-read the product (fresh price and stock)
    2. refuse if stock is insufficient              -> InsufficientStock, no writes
    3. insert the sale (inventory_status=pending)    -> failure: nothing written
    4. decrement product quantity                    -> failure: PartialCommit(stage="inventory")
    5. mark the sale inventory_status=applied        -> failure: PartialCommit(stage="confirmation")

A PartialCommit leaves a pending sale in the ledger; list_pending_inventory()
and reconcile_sale() are the follow-up path (see `flask sales reconcile`).
Nothing here retries on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from ..validation import ValidationError
from ..time_utils import utcnow
from .pricing_service import (
    CARD_SURCHARGE_BPS,
    PAYMENT_METHOD_CASH,
    calculate_totals,
    validate_payment_method,
)
from .stores import (
    CatalogStore,
    LedgerStore,
    NewSale,
    SaleFilter,
    SaleRecord,
    StoreError,
    INVENTORY_APPLIED,
    INVENTORY_PENDING,
)


logger = logging.getLogger(__name__)


PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_FAILED = "failed"
PAYMENT_STATUS_REFUNDED = "refunded"

VALID_PAYMENT_STATUSES = (
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_REFUNDED,
)
PaymentStatus = Literal["completed", "pending", "failed", "refunded"]

PartialCommitStage = Literal["inventory", "confirmation"]


class SaleError(Exception):
    """Raised for sale operation errors."""

    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStock(SaleError):
    """Requested quantity exceeds stock on hand at commit time. No writes were made."""

    retryable = True


class SaleInProgress(SaleError):
    """A completion request is already in flight for this composer."""


class PartialCommit(SaleError):
    """
    The sale record was written but the matching inventory step did not finish.

    stage="inventory":     stock was NOT decremented
    stage="confirmation":  stock was decremented, the sale is still marked pending
    """

    def __init__(self, sale: SaleRecord, stage: PartialCommitStage, cause: Exception | None = None):
        if stage == "inventory":
            message = "Sale recorded, stock not yet adjusted"
        else:
            message = "Sale recorded and stock adjusted, but the sale is not yet marked as applied"
        super().__init__(
            message,
            details={
                "sale_id": sale.id,
                "product_id": sale.product_id,
                "quantity_sold": sale.quantity_sold,
                "stage": stage,
                "cause": str(cause) if cause else None,
            },
        )
        self.sale = sale
        self.stage = stage


@dataclass(frozen=True)
class SaleDetails:
    """Everything about a sale besides the product and quantity."""
    payment_method: str = PAYMENT_METHOD_CASH
    payment_status: str = PAYMENT_STATUS_COMPLETED
    discount_cents: int = 0
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


def validate_payment_status(payment_status: str) -> None:
    if payment_status not in VALID_PAYMENT_STATUSES:
        raise ValidationError(
            f"Invalid payment status '{payment_status}'. Must be one of: {', '.join(VALID_PAYMENT_STATUSES)}"
        )


def validate_quantity(quantity_sold) -> int:
    if isinstance(quantity_sold, bool) or not isinstance(quantity_sold, int):
        raise ValidationError("quantity_sold must be an integer")
    if quantity_sold < 1:
        raise ValidationError("quantity_sold must be at least 1")
    return quantity_sold


def complete_sale(
    catalog: CatalogStore,
    ledger: LedgerStore,
    *,
    product_id: int,
    quantity_sold: int,
    details: SaleDetails,
    surcharge_bps: int = CARD_SURCHARGE_BPS,
) -> SaleRecord:
    """
    Record a sale and decrement stock.

    Returns the sale record with inventory_status="applied".

    Raises:
        ValidationError: bad input; no store was called
        SaleError: product missing or inactive; no writes
        InsufficientStock: quantity_sold > stock on hand; no writes
        StoreUnavailable / StoreError: a store failed before the sale was written; no writes
        PartialCommit: the sale was written, the inventory step did not complete
    """
    validate_quantity(quantity_sold)
    validate_payment_method(details.payment_method)
    validate_payment_status(details.payment_status)
    if details.discount_cents < 0:
        raise ValidationError("discount cannot be negative")

    product = catalog.get_product(product_id)
    if product is None or not product.is_active:
        raise SaleError("Product not found", details={"product_id": product_id})

    if quantity_sold > product.quantity:
        logger.warning(
            "Refusing sale of %s x product %s: only %s on hand",
            quantity_sold, product.id, product.quantity,
        )
        raise InsufficientStock(
            "Insufficient stock to complete sale",
            details={
                "product_id": product.id,
                "requested_quantity": quantity_sold,
                "on_hand": product.quantity,
            },
        )

    # Priced from the freshly read product, never from what the form last saw
    pricing = calculate_totals(
        product.price_cents,
        quantity_sold,
        details.payment_method,
        details.discount_cents,
        surcharge_bps=surcharge_bps,
    )

    sale = ledger.insert_sale(
        NewSale(
            product_id=product.id,
            quantity_sold=quantity_sold,
            unit_price_cents=pricing.unit_price_cents,
            subtotal_cents=pricing.subtotal_cents,
            surcharge_cents=pricing.surcharge_cents,
            total_cents=pricing.total_cents,
            discount_cents=pricing.discount_cents,
            final_cents=pricing.final_cents,
            payment_method=details.payment_method,
            payment_status=details.payment_status,
            sale_date=utcnow(),
            customer_name=details.customer_name,
            customer_email=details.customer_email,
            customer_phone=details.customer_phone,
            notes=details.notes,
            inventory_status=INVENTORY_PENDING,
        )
    )

    try:
        catalog.update_product_quantity(product.id, product.quantity - quantity_sold)
    except StoreError as exc:
        logger.error(
            "Partial commit: sale %s recorded but stock for product %s not decremented by %s: %s",
            sale.id, product.id, quantity_sold, exc,
        )
        raise PartialCommit(sale, "inventory", exc) from exc

    try:
        sale = ledger.mark_inventory_applied(sale.id)
    except StoreError as exc:
        logger.error(
            "Partial commit: stock for product %s decremented but sale %s still pending: %s",
            product.id, sale.id, exc,
        )
        raise PartialCommit(sale, "confirmation", exc) from exc

    logger.info(
        "Sale %s completed: product %s x %s, final %s cents (%s/%s)",
        sale.id, product.id, quantity_sold, sale.final_cents,
        sale.payment_method, sale.payment_status,
    )
    return sale


def list_pending_inventory(ledger: LedgerStore) -> list[SaleRecord]:
    """Sales whose stock decrement has not been confirmed."""
    return ledger.list_sales(SaleFilter(inventory_status=INVENTORY_PENDING))


def reconcile_sale(
    catalog: CatalogStore,
    ledger: LedgerStore,
    sale_id: int,
    *,
    apply_stock: bool = True,
) -> SaleRecord:
    """
    Close the gap left by a PartialCommit.

    apply_stock=True decrements the product by the sale's quantity before
    marking the sale applied (stage="inventory" gaps). apply_stock=False
    only marks it (stage="confirmation" gaps, where stock already moved).
    Already-applied sales are returned unchanged.
    """
    sale = ledger.get_sale(sale_id)
    if sale is None:
        raise SaleError("Sale not found", details={"sale_id": sale_id})
    if sale.inventory_status == INVENTORY_APPLIED:
        return sale

    if apply_stock:
        product = catalog.get_product(sale.product_id)
        if product is None:
            raise SaleError("Product not found", details={"product_id": sale.product_id})
        if product.quantity < sale.quantity_sold:
            raise InsufficientStock(
                "Insufficient stock to reconcile sale",
                details={
                    "sale_id": sale.id,
                    "product_id": product.id,
                    "requested_quantity": sale.quantity_sold,
                    "on_hand": product.quantity,
                },
            )
        catalog.update_product_quantity(product.id, product.quantity - sale.quantity_sold)

    try:
        reconciled = ledger.mark_inventory_applied(sale.id)
    except StoreError as exc:
        if apply_stock:
            raise PartialCommit(sale, "confirmation", exc) from exc
        raise

    logger.info("Sale %s reconciled (stock %s)", sale.id, "applied" if apply_stock else "unchanged")
    return reconciled
