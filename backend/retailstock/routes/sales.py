# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/retailstock/routes/sales.py
"""Sales API routes. A sale that would oversell is rejected with 409."""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Sale
from ..services import sales_service
from ..services.products_service import get_product
from ..services.stock_ledger_service import InsufficientStockError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_quantity,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "unit_price_cents", "department_id"},
    required_on_create={"product_id", "quantity"},
    # Computed server-side
    ignored_fields={"totalPrice", "total_price", "userId", "user_id"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("view_sales")
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - departmentId: int (optional)
    - productId: int (optional)
    """
    return sales_service.list_sales(
        department_id=request.args.get("departmentId", type=int),
        product_id=request.args.get("productId", type=int),
    )


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("view_sales")
def get_sale_route(sale_id: int):
    try:
        return sales_service.get_sale(sale_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.post("")
@require_auth
@require_permission("edit_sales")
def create_sale_route():
    """
    Record a sale.

    unitPrice defaults to the product's price. Returns 409 with
    code INSUFFICIENT_STOCK when the product does not have enough stock;
    nothing is written in that case.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
        enforce_rules_quantity(patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400

    try:
        sale = sales_service.create_sale(patch=patch, user_id=g.current_user.id)
    except InsufficientStockError as e:
        return jsonify(e.to_dict()), 409
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "sale": sale.to_dict(),
        "product": get_product(sale.product_id).to_dict(),
    }), 201
