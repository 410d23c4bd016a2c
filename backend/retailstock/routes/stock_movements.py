# Overview: Flask API routes for manual stock movements; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import StockMovement
from ..services import stock_movement_service
from ..services.products_service import get_product
from ..services.stock_ledger_service import InsufficientStockError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_movement,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

STOCK_MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "reason", "notes", "department_id"},
    required_on_create={"product_id", "type", "quantity", "reason"},
    ignored_fields={"userId", "user_id"},
)

stock_movements_bp = Blueprint("stock_movements", __name__, url_prefix="/api/stock-movements")


@stock_movements_bp.get("")
@require_auth
@require_permission("view_stock")
def list_stock_movements_route():
    """
    List stock movements, newest first.

    Query params:
    - departmentId: int (optional)
    - productId: int (optional)
    - limit: int (optional)
    """
    return stock_movement_service.list_stock_movements(
        department_id=request.args.get("departmentId", type=int),
        product_id=request.args.get("productId", type=int),
        limit=request.args.get("limit", type=int),
    )


@stock_movements_bp.get("/<int:movement_id>")
@require_auth
@require_permission("view_stock")
def get_stock_movement_route(movement_id: int):
    try:
        return stock_movement_service.get_stock_movement(movement_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@stock_movements_bp.post("")
@require_auth
@require_permission("edit_stock")
def create_stock_movement_route():
    """
    Record a manual stock adjustment.

    Body: productId, type ("in"/"out"), quantity (> 0), reason, notes.
    A stock-out larger than the on-hand quantity returns 409.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=StockMovement, payload=payload, policy=STOCK_MOVEMENT_POLICY, partial=False
        )
        enforce_rules_stock_movement(patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400

    try:
        movement = stock_movement_service.create_stock_movement(patch=patch, user_id=g.current_user.id)
    except InsufficientStockError as e:
        return jsonify(e.to_dict()), 409
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create stock movement")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "movement": movement.to_dict(),
        "product": get_product(movement.product_id).to_dict(),
    }), 201
