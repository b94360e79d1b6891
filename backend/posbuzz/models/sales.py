from __future__ import annotations

from ..extensions import db
from posbuzz.time_utils import to_utc_z

class Sale(db.Model):
    """
    Completed sale.

    Created exactly once, atomically, by sales_service.create_sale together
    with its items and the stock decrements. Never updated or deleted.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Cashier who recorded the sale
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Sum of line totals can exceed 32 bits (price ceiling x stock ceiling)
    total_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
            "user": self.user.to_summary() if self.user else None,
        }

class SaleItem(db.Model):
    """
    One line of a sale.

    unit_price_cents is the product price at the time of sale; later price
    changes on the product never alter it.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "product": self.product.to_summary() if self.product else None,
        }
