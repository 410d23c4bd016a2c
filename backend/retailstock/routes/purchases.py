# Overview: Flask API routes for purchases; parses input and returns JSON responses.

# backend/retailstock/routes/purchases.py
"""Purchase API routes. Each purchase adds its quantity to the product's stock."""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Purchase
from ..services import purchase_service
from ..services.products_service import get_product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_quantity,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "unit_cost_cents", "supplier_name", "department_id"},
    required_on_create={"product_id", "quantity", "unit_cost_cents"},
    # Computed server-side
    ignored_fields={"totalCost", "total_cost", "userId", "user_id"},
)

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
@require_permission("view_purchases")
def list_purchases_route():
    """
    List purchases, newest first.

    Query params:
    - departmentId: int (optional)
    - productId: int (optional)
    """
    return purchase_service.list_purchases(
        department_id=request.args.get("departmentId", type=int),
        product_id=request.args.get("productId", type=int),
    )


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_permission("view_purchases")
def get_purchase_route(purchase_id: int):
    try:
        return purchase_service.get_purchase(purchase_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@purchases_bp.post("")
@require_auth
@require_permission("edit_purchases")
def create_purchase_route():
    """
    Record a purchase.

    totalCost is always quantity x unitCost; a client-supplied total is ignored.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=False)
        enforce_rules_quantity(patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400

    try:
        purchase = purchase_service.create_purchase(patch=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "purchase": purchase.to_dict(),
        "product": get_product(purchase.product_id).to_dict(),
    }), 201
