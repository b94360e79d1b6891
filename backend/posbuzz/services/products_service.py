# backend/posbuzz/services/products_service.py
"""
Products Service

SKU uniqueness is enforced among active products at create and update
time; a duplicate yields ConflictError and leaves the existing product
untouched. Deletes are soft (is_active=False) so sale history keeps its
product references.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError, is_row_id

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "description", "price_cents", "stock_quantity"}

SKU_CONFLICT_MESSAGE = "Product with this SKU already exists"
STALE_PRODUCT_MESSAGE = "Product was modified by another request; reload and retry"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _active_products():
    return db.session.query(Product).filter(Product.is_active.is_(True))


def _find_active(product_id: int) -> Product | None:
    # Ids past the 64-bit range cannot be bound as query parameters
    if not is_row_id(product_id):
        return None
    return _active_products().filter(Product.id == product_id).first()


def _sku_taken(sku: str, exclude_id: int | None = None) -> bool:
    q = _active_products().filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        # The partial unique index caught a concurrent writer with the same SKU
        db.session.rollback()
        raise ConflictError(SKU_CONFLICT_MESSAGE)
    except StaleDataError:
        # version_id moved underneath us (e.g. a sale decremented stock)
        db.session.rollback()
        raise ConflictError(STALE_PRODUCT_MESSAGE)


def list_products(
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
) -> list[dict] | dict:
    """
    Active products ordered by name, with optional search and pagination.

    Args:
        page: Page number (1-indexed). If None, returns a plain list of all items.
        per_page: Items per page (default 20, max 100)
        search: Case-insensitive substring match on name or SKU

    Returns:
        List of product dicts, or a dict with 'items', 'count' and
        'pagination' metadata when paginated.
    """
    base_query = _active_products().order_by(Product.name.asc(), Product.id.asc())

    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(
            db.or_(Product.name.ilike(pattern), Product.sku.ilike(pattern))
        )

    # If no pagination requested, return all items
    if page is None:
        return [p.to_dict() for p in base_query.all()]

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> dict:
    """Active product by id; raises NotFoundError if missing or deleted."""
    p = _find_active(product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p.to_dict()


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If SKU already exists among active products
    """
    sku = patch.get("sku")
    if sku is None:
        raise ValueError("sku is required")

    if _sku_taken(sku):
        raise ConflictError(SKU_CONFLICT_MESSAGE)

    p = Product(stock_quantity=0)
    apply_product_patch(p, patch)

    db.session.add(p)
    _commit_or_conflict()

    logger.info("Created product id=%s sku=%s", p.id, p.sku)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update an active product.

    Raises:
        NotFoundError: If product is missing or deleted
        ConflictError: If new SKU already exists on another active product
    """
    p = _find_active(product_id)
    if not p:
        raise NotFoundError("Product not found")

    # SKU uniqueness enforcement if changing SKU
    if "sku" in patch and patch["sku"] != p.sku:
        if _sku_taken(patch["sku"], exclude_id=p.id):
            raise ConflictError(SKU_CONFLICT_MESSAGE)

    apply_product_patch(p, patch)
    _commit_or_conflict()

    logger.info("Updated product id=%s fields=%s", p.id, ",".join(sorted(patch.keys())))
    return p.to_dict()


def delete_product(*, product_id: int) -> dict:
    """
    Soft-delete a product.

    Raises:
        NotFoundError: If product is missing or already deleted
    """
    p = _find_active(product_id)
    if not p:
        raise NotFoundError("Product not found")

    # Soft-delete only: preserve IDs and historical references.
    p.is_active = False
    _commit_or_conflict()

    logger.info("Deleted product id=%s sku=%s", p.id, p.sku)
    return p.to_dict()
