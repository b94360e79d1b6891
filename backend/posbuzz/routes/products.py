# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/posbuzz/routes/products.py
"""
Product management routes.

Reads are public; writes require authentication.
"""
from flask import Blueprint, request, jsonify, current_app
from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"sku", "name", "description", "price_cents", "stock_quantity"}),
    required_on_create=frozenset({"sku", "name", "price_cents"}),
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
def list_products():
    """
    List active products.

    Query params:
    - q: str (optional) - search name or SKU
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    search = request.args.get("q")

    result = products_service.list_products(page=page, per_page=per_page, search=search)
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify(products_service.get_product(product_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a new product (SKU must be unique among active products)."""
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.route("/<int:product_id>", methods=["PUT", "PATCH"])
@require_auth
def update_product_route(product_id: int):
    """Update a product. Only the provided fields change."""
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """Delete a product (soft delete; sale history keeps referencing it)."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
