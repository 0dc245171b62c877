# Overview: Multi-step sale flow (product -> customer -> payment -> completed) as an explicit state machine.

"""
Sale Composer

STATE MACHINE:
    SelectingProduct -> EnteringCustomerInfo -> ReviewingPayment -> Completed
    ReviewingPayment -> PartiallyCommitted   (sale written, inventory step unfinished)
    any non-terminal state -> Cancelled

Each state is a frozen dataclass holding only what is valid at that step,
so a payment method cannot be read before the payment step exists.

RULES:
1. SelectingProduct needs a product with stock and 1 <= quantity_sold <= stock
2. EnteringCustomerInfo never blocks (contact fields are free-form)
3. ReviewingPayment needs payment method and status (defaults cash/completed);
   the discount is clamped to [0, total] whenever it or the total changes
4. Completed is entered only after complete_sale() returned a sale;
   PartiallyCommitted when it raised PartialCommit (terminal, never resubmitted)
5. Cancelling before Completed performs no store calls at all
6. At most one submit() may be in flight per composer

The composer never reads from a store. Product lists for step one come from
the caller (see catalog_service.list_sellable_products), which keeps
cancellation free of side effects.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Optional, Union

from ..validation import ValidationError
from .pricing_service import (
    CARD_SURCHARGE_BPS,
    PAYMENT_METHOD_CASH,
    PriceBreakdown,
    calculate_totals,
    clamp_discount,
    validate_payment_method,
)
from .sales_service import (
    PAYMENT_STATUS_COMPLETED,
    PartialCommit,
    SaleDetails,
    SaleError,
    SaleInProgress,
    complete_sale,
    validate_payment_status,
)
from .stores import CatalogStore, LedgerStore, ProductRecord, SaleRecord


class ComposerStateError(SaleError):
    """An operation was attempted in a step that does not support it."""


@dataclass(frozen=True)
class CustomerInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class SelectingProduct:
    category_id: Optional[int] = None
    product: Optional[ProductRecord] = None
    quantity_sold: int = 1

    step = 1


@dataclass(frozen=True)
class EnteringCustomerInfo:
    product: ProductRecord
    quantity_sold: int
    customer: CustomerInfo = CustomerInfo()

    step = 2


@dataclass(frozen=True)
class ReviewingPayment:
    product: ProductRecord
    quantity_sold: int
    customer: CustomerInfo
    payment_method: str = PAYMENT_METHOD_CASH
    payment_status: str = PAYMENT_STATUS_COMPLETED
    discount_cents: int = 0

    step = 3


@dataclass(frozen=True)
class Completed:
    sale: SaleRecord


@dataclass(frozen=True)
class PartiallyCommitted:
    sale: SaleRecord
    stage: str


@dataclass(frozen=True)
class Cancelled:
    pass


ComposerState = Union[
    SelectingProduct, EnteringCustomerInfo, ReviewingPayment, Completed, PartiallyCommitted, Cancelled
]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SaleComposer:
    """
    Drives one sale from product selection to a recorded sale.

    The stores are injected; the composer only touches them inside submit().
    """

    def __init__(
        self,
        catalog: CatalogStore,
        ledger: LedgerStore,
        *,
        surcharge_bps: int = CARD_SURCHARGE_BPS,
    ):
        self._catalog = catalog
        self._ledger = ledger
        self._surcharge_bps = surcharge_bps
        self._submit_lock = threading.Lock()
        self.state: ComposerState = SelectingProduct()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_finished(self) -> bool:
        return isinstance(self.state, (Completed, PartiallyCommitted, Cancelled))

    @property
    def in_flight(self) -> bool:
        return self._submit_lock.locked()

    @property
    def totals(self) -> Optional[PriceBreakdown]:
        """Always recomputed from the current inputs; None until a product is chosen."""
        state = self.state
        if isinstance(state, SelectingProduct):
            if state.product is None or state.quantity_sold < 1:
                return None
            return self._price(state.product, state.quantity_sold, PAYMENT_METHOD_CASH, 0)
        if isinstance(state, EnteringCustomerInfo):
            return self._price(state.product, state.quantity_sold, PAYMENT_METHOD_CASH, 0)
        if isinstance(state, ReviewingPayment):
            return self._price(state.product, state.quantity_sold, state.payment_method, state.discount_cents)
        return None

    def can_advance(self) -> bool:
        state = self.state
        if isinstance(state, SelectingProduct):
            return (
                state.product is not None
                and state.product.quantity > 0
                and 1 <= state.quantity_sold <= state.product.quantity
            )
        if isinstance(state, EnteringCustomerInfo):
            return True
        if isinstance(state, ReviewingPayment):
            return bool(state.payment_method and state.payment_status)
        return False

    # ------------------------------------------------------------------
    # Step 1: product selection
    # ------------------------------------------------------------------

    def choose_category(self, category_id: int) -> None:
        """Switching category drops any product picked from the previous one."""
        state = self._expect(SelectingProduct)
        self.state = replace(state, category_id=category_id, product=None, quantity_sold=1)

    def select_product(self, product: ProductRecord) -> None:
        state = self._expect(SelectingProduct)
        if not product.is_active:
            raise ValidationError("Product is not active")
        if product.quantity <= 0:
            raise ValidationError("Product is out of stock")
        if state.category_id is not None and product.category_id != state.category_id:
            raise ValidationError("Product does not belong to the selected category")
        self.state = replace(state, product=product, quantity_sold=1)

    def set_quantity(self, quantity_sold: int) -> None:
        state = self._expect(SelectingProduct)
        if isinstance(quantity_sold, bool) or not isinstance(quantity_sold, int):
            raise ValidationError("quantity_sold must be an integer")
        self.state = replace(state, quantity_sold=quantity_sold)

    # ------------------------------------------------------------------
    # Step 2: customer info
    # ------------------------------------------------------------------

    def set_customer_info(
        self,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        state = self._expect(EnteringCustomerInfo)
        self.state = replace(
            state,
            customer=CustomerInfo(
                name=_blank_to_none(name),
                email=_blank_to_none(email),
                phone=_blank_to_none(phone),
                notes=_blank_to_none(notes),
            ),
        )

    # ------------------------------------------------------------------
    # Step 3: payment
    # ------------------------------------------------------------------

    def set_payment_method(self, payment_method: str) -> None:
        state = self._expect(ReviewingPayment)
        validate_payment_method(payment_method)
        state = replace(state, payment_method=payment_method)
        # A cheaper method can shrink the total under an existing discount
        self.state = replace(state, discount_cents=self._clamped_discount(state, state.discount_cents))

    def set_payment_status(self, payment_status: str) -> None:
        state = self._expect(ReviewingPayment)
        validate_payment_status(payment_status)
        self.state = replace(state, payment_status=payment_status)

    def set_discount(self, discount_cents: int) -> None:
        state = self._expect(ReviewingPayment)
        if isinstance(discount_cents, bool) or not isinstance(discount_cents, int):
            raise ValidationError("discount must be an amount in cents")
        self.state = replace(state, discount_cents=self._clamped_discount(state, discount_cents))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self) -> ComposerState:
        """Move to the next step. Blocks with ValidationError while the step is incomplete."""
        state = self.state
        if isinstance(state, SelectingProduct):
            if state.product is None:
                raise ValidationError("Select a product first")
            if state.product.quantity <= 0:
                raise ValidationError("Product is out of stock")
            if not 1 <= state.quantity_sold <= state.product.quantity:
                raise ValidationError(
                    f"quantity_sold must be between 1 and {state.product.quantity}"
                )
            self.state = EnteringCustomerInfo(product=state.product, quantity_sold=state.quantity_sold)
        elif isinstance(state, EnteringCustomerInfo):
            self.state = ReviewingPayment(
                product=state.product,
                quantity_sold=state.quantity_sold,
                customer=state.customer,
            )
        elif isinstance(state, ReviewingPayment):
            raise ComposerStateError("Payment is the last step; submit the sale instead")
        else:
            raise ComposerStateError("Sale flow is finished")
        return self.state

    def back(self) -> ComposerState:
        """Return to the previous step; payment inputs are dropped when leaving step three."""
        state = self.state
        if isinstance(state, EnteringCustomerInfo):
            self.state = SelectingProduct(
                category_id=state.product.category_id,
                product=state.product,
                quantity_sold=state.quantity_sold,
            )
        elif isinstance(state, ReviewingPayment):
            self.state = EnteringCustomerInfo(
                product=state.product,
                quantity_sold=state.quantity_sold,
                customer=state.customer,
            )
        elif isinstance(state, SelectingProduct):
            raise ComposerStateError("Already at the first step")
        else:
            raise ComposerStateError("Sale flow is finished")
        return self.state

    def cancel(self) -> None:
        """Discard everything. Never touches a store."""
        if isinstance(self.state, (Completed, PartiallyCommitted)):
            raise ComposerStateError("Sale already recorded")
        if self.in_flight:
            raise SaleInProgress("Sale submission in progress")
        self.state = Cancelled()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def submit(self) -> SaleRecord:
        """
        Hand the reviewed sale to the inventory guard.

        Only one call may be in flight; a concurrent call raises SaleInProgress.
        On any failure the composer stays in ReviewingPayment so the user can
        re-attempt. PartialCommit moves the composer to PartiallyCommitted
        before it is re-raised: the sale exists and must not be submitted again.
        """
        if not self._submit_lock.acquire(blocking=False):
            raise SaleInProgress("Sale submission already in progress")
        try:
            state = self._expect(ReviewingPayment)
            if not self.can_advance():
                raise ValidationError("Payment method and payment status are required")

            try:
                sale = self._complete(state)
            except PartialCommit as exc:
                self.state = PartiallyCommitted(sale=exc.sale, stage=exc.stage)
                raise
            self.state = Completed(sale=sale)
            return sale
        finally:
            self._submit_lock.release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _complete(self, state: ReviewingPayment) -> SaleRecord:
        return complete_sale(
            self._catalog,
            self._ledger,
            product_id=state.product.id,
            quantity_sold=state.quantity_sold,
            details=SaleDetails(
                payment_method=state.payment_method,
                payment_status=state.payment_status,
                discount_cents=state.discount_cents,
                customer_name=state.customer.name,
                customer_email=state.customer.email,
                customer_phone=state.customer.phone,
                notes=state.customer.notes,
            ),
            surcharge_bps=self._surcharge_bps,
        )

    def _expect(self, state_type):
        if not isinstance(self.state, state_type):
            raise ComposerStateError(
                f"Operation not allowed in {type(self.state).__name__}"
            )
        return self.state

    def _price(self, product: ProductRecord, quantity: int, payment_method: str, discount_cents: int) -> PriceBreakdown:
        return calculate_totals(
            product.price_cents,
            quantity,
            payment_method,
            discount_cents,
            surcharge_bps=self._surcharge_bps,
        )

    def _clamped_discount(self, state: ReviewingPayment, discount_cents: int) -> int:
        totals = self._price(state.product, state.quantity_sold, state.payment_method, 0)
        return clamp_discount(discount_cents, totals.total_cents)
