from __future__ import annotations

from ..extensions import db
from ..services.stores import SaleRecord, INVENTORY_PENDING


class Sale(db.Model):
    """
    One recorded sale of a single product.

    Pricing columns are a snapshot taken at sale time; later price changes
    on the product never touch them. Rows are written once and only the
    inventory_status marker moves afterwards (pending -> applied).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity_sold >= 1", name="ck_sales_quantity_positive"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_discount_non_negative"),
        db.CheckConstraint("final_cents >= 0", name="ck_sales_final_non_negative"),
        db.Index("ix_sales_date", "sale_date"),
        db.Index("ix_sales_method_status", "payment_method", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    quantity_sold = db.Column(db.Integer, nullable=False)

    # All amounts in cents
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    surcharge_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False)
    payment_status = db.Column(db.String(32), nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)

    inventory_status = db.Column(db.String(16), nullable=False, default=INVENTORY_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # One-directional: products do not carry a sales collection
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} final_cents={self.final_cents}>"

    def to_record(self) -> SaleRecord:
        return SaleRecord(
            id=self.id,
            product_id=self.product_id,
            quantity_sold=self.quantity_sold,
            unit_price_cents=self.unit_price_cents,
            subtotal_cents=self.subtotal_cents,
            surcharge_cents=self.surcharge_cents,
            total_cents=self.total_cents,
            discount_cents=self.discount_cents,
            final_cents=self.final_cents,
            payment_method=self.payment_method,
            payment_status=self.payment_status,
            sale_date=self.sale_date,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            notes=self.notes,
            inventory_status=self.inventory_status,
            product_name=self.product.name if self.product is not None else None,
            created_at=self.created_at,
        )
