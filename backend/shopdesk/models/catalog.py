from __future__ import annotations

from ..extensions import db
from ..services.stores import CategoryRecord, ProductRecord


class Category(db.Model):
    """
    Product grouping used as the first filter of the sale flow.

    Names are unique case-insensitively. A category that still has
    products cannot be deleted, only deactivated.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_record(self) -> CategoryRecord:
        return CategoryRecord(
            id=self.id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# Category names are unique regardless of case
db.Index("uq_categories_name_lower", db.func.lower(Category.name), unique=True)


class Product(db.Model):
    """
    Product master data with on-hand quantity.

    quantity is a cached count decremented by each completed sale; the
    sales ledger is the authoritative history. The CHECK constraint keeps
    the store itself from accepting a negative count.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_non_negative"),
        db.Index("ix_products_category_active", "category_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    # Optional, but unique when present (NULLs do not collide)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (clients only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    image_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} quantity={self.quantity}>"

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            name=self.name,
            category_id=self.category_id,
            price_cents=self.price_cents,
            quantity=self.quantity,
            sku=self.sku,
            description=self.description,
            cost_price_cents=self.cost_price_cents,
            min_stock_level=self.min_stock_level,
            image_url=self.image_url,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
