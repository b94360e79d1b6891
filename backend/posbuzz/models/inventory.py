from __future__ import annotations

from ..extensions import db
from posbuzz.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with its sellable stock level.

    SKU RULES:
    - SKUs are unique among active products (partial unique index below,
      plus a service-level check that yields a 409 instead of an IntegrityError)
    - Deleting a product is a soft delete (is_active=False); its SKU can be reused
      and historical sale items keep pointing at the row

    STOCK RULES:
    - stock_quantity never goes negative (CHECK constraint)
    - Sales only decrement stock inside sales_service.create_sale's transaction
    - version_id gives optimistic locking on top of row locks, so a lost
      update surfaces as StaleDataError instead of silently overwriting stock
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index(
            "uq_products_active_sku",
            "sku",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "is_active": self.is_active,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
