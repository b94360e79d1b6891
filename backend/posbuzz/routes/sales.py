# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/posbuzz/routes/sales.py
"""Sales API routes. All routes require authentication."""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleError, ProductNotFoundError
from ..services.concurrency import TRANSIENT_DB_ERRORS
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale for the authenticated user.

    Request body:
    {
        "items": [
            {"product_id": 1, "quantity": 2},   // "productId" also accepted
            {"product_id": 7, "quantity": 1}
        ]
    }

    Returns 201 with the sale, its items and their products.
    400: empty/malformed items or insufficient stock (details name the products)
    404: unknown product
    503: transient database failure; nothing was recorded, safe to retry
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        sale = sales_service.create_sale(g.current_user.id, data.get("items"))
        return jsonify(sale.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except TRANSIENT_DB_ERRORS:
        current_app.logger.exception("Sale transaction failed")
        return jsonify({
            "error": "Sale could not be completed, please retry",
            "retryable": True,
        }), 503
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - mine: 1/true to only list sales recorded by the caller
    - page / per_page: optional pagination
    """
    mine = request.args.get("mine", "").lower() in ("1", "true", "yes")
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    result = sales_service.list_sales(
        user_id=g.current_user.id if mine else None,
        page=page,
        per_page=per_page,
    )
    return jsonify(result), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Get sale with items and the recording user's summary."""
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(sale.to_dict()), 200
