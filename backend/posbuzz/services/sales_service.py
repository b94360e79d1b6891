"""
Sales Service - atomic sale creation against live stock

WHY: A sale must either fully happen (sale row, item rows, stock
decrements) or not happen at all. Two sales racing for the same limited
stock must not both succeed.

The read-check-write sequence in create_sale runs inside one transaction
with the product rows locked (SELECT ... FOR UPDATE, or BEGIN IMMEDIATE on
SQLite). There is no internal retry: a retried sale after an ambiguous
failure could be recorded twice, so only the caller may decide to retry,
and only on transient database errors.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Sale, SaleItem, Product
from ..validation import ValidationError, NotFoundError, MAX_BIGINT, coerce_int, is_row_id
from .concurrency import lock_for_update, begin_write_transaction

logger = logging.getLogger(__name__)

MAX_SALE_ITEMS = 500


class SaleError(Exception):
    """Raised for sale business-rule rejections. Never retry these."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(SaleError):
    """One or more requested products do not exist (or were deleted)."""


class InsufficientStockError(SaleError):
    """A requested quantity exceeds the product's current stock."""


def _item_product_id(item: dict, index: int):
    if "product_id" in item:
        return item["product_id"]
    if "productId" in item:
        return item["productId"]
    raise ValidationError(f"items[{index}].product_id is required")


def aggregate_quantities(items) -> dict[int, int]:
    """
    Validate requested items and sum quantities per product.

    The same product may be listed more than once; duplicates are summed so
    stock is checked once against the combined quantity. Insertion order
    follows first appearance.

    Raises ValidationError for an empty or malformed item list.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("At least one item is required")
    if len(items) > MAX_SALE_ITEMS:
        raise ValidationError(f"A sale cannot have more than {MAX_SALE_ITEMS} items")

    quantities: dict[int, int] = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")

        product_id = coerce_int(_item_product_id(item, index), f"items[{index}].product_id")
        if "quantity" not in item:
            raise ValidationError(f"items[{index}].quantity is required")
        quantity = coerce_int(item["quantity"], f"items[{index}].quantity")
        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be >= 1")

        quantities[product_id] = quantities.get(product_id, 0) + quantity

    return quantities


def _check_stock(products: dict[int, Product], quantities: dict[int, int]) -> None:
    insufficient = []
    for product_id, qty in quantities.items():
        product = products[product_id]
        if product.stock_quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "name": product.name,
                "available": product.stock_quantity,
                "requested": qty,
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStockError(
            f'Insufficient stock for product "{first["name"]}". '
            f'Available: {first["available"]}, Requested: {first["requested"]}',
            details={"items": insufficient},
        )


def create_sale(user_id: int, items: list[dict]) -> Sale:
    """
    Record a sale and decrement stock atomically.

    Steps, all inside one transaction:
    1. lock the referenced active products
    2. reject unknown products and insufficient stock (whole request fails)
    3. snapshot each product's price into its sale item
    4. insert the sale and its items, decrement stock

    Raises:
        ValidationError: malformed or empty items
        ProductNotFoundError: unknown or deleted product id
        InsufficientStockError: any aggregated quantity exceeds stock
        OperationalError / StaleDataError: transient database failure
    """
    quantities = aggregate_quantities(items)
    product_ids = list(quantities.keys())
    # Out-of-range ids cannot exist; they are reported as missing below
    lookup_ids = [pid for pid in product_ids if is_row_id(pid)]

    try:
        begin_write_transaction()

        rows = lock_for_update(
            db.session.query(Product).filter(
                Product.id.in_(lookup_ids),
                Product.is_active.is_(True),
            ).order_by(Product.id)
        ).all()
        products = {p.id: p for p in rows}

        if len(products) != len(product_ids):
            missing = [pid for pid in product_ids if pid not in products]
            raise ProductNotFoundError(
                "One or more products not found",
                details={"missing_product_ids": missing},
            )

        _check_stock(products, quantities)

        sale = Sale(user_id=user_id, total_cents=0)
        total_cents = 0
        for product_id, qty in quantities.items():
            product = products[product_id]
            line_total = product.price_cents * qty
            total_cents += line_total
            sale.items.append(SaleItem(
                product=product,
                quantity=qty,
                unit_price_cents=product.price_cents,
                line_total_cents=line_total,
            ))
            product.stock_quantity -= qty

        if total_cents > MAX_BIGINT:
            raise SaleError(
                "Sale total is too large",
                details={"total_cents": total_cents, "max_total_cents": MAX_BIGINT},
            )
        sale.total_cents = total_cents
        db.session.add(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Created sale id=%s user_id=%s total_cents=%s products=%s",
        sale.id, user_id, sale.total_cents, len(product_ids),
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id) if is_row_id(sale_id) else None
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    user_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> list[dict] | dict:
    """
    Sales newest first, optionally only those recorded by one user.

    Returns a plain list, or a paginated dict when page is given.
    """
    base_query = db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc())
    if user_id is not None:
        base_query = base_query.filter(Sale.user_id == user_id)

    if page is None:
        return [s.to_dict() for s in base_query.all()]

    per_page = max(min(per_page or 20, 100), 1)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    sales = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
