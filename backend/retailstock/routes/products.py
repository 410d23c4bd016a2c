# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/retailstock/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require view_products permission
- Write operations require edit_products permission
- The stock ledger of a product requires view_stock

stockQuantity can be set on create (opening balance) but not through
update; quantities change only through purchases, sales and stock
movements.
"""
from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product
from ..services import products_service
from ..services.stock_ledger_service import list_ledger_entries
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "code", "price_cents", "stock_quantity", "min_stock_level",
        "image", "department_id", "category_id", "is_active",
    },
    required_on_create={"name", "code", "price_cents", "department_id", "category_id"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields - {"stock_quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("view_products")
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - departmentId: int (optional)
    - categoryId: int (optional)
    - lowStock: "true" to return only products at or below minStockLevel
    - includeInactive: "true" to include soft-deleted products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        department_id=request.args.get("departmentId", type=int),
        category_id=request.args.get("categoryId", type=int),
        low_stock=request.args.get("lowStock", "").lower() == "true",
        include_inactive=request.args.get("includeInactive", "").lower() == "true",
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("view_products")
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@require_auth
@require_permission("edit_products")
def create_product_route():
    """
    Create a new product.

    The initial stockQuantity (default 0) becomes the product's opening
    ledger entry.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400

    try:
        created = products_service.create_product(patch=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("edit_products")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except StaleDataError:
        db.session.rollback()
        return jsonify({"error": "Product was modified concurrently, retry the update"}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("edit_products")
def delete_product_route(product_id: int):
    """Soft-delete a product; its history is kept."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True}), 200


@products_bp.get("/<int:product_id>/ledger")
@require_auth
@require_permission("view_stock")
def product_ledger_route(product_id: int):
    """
    Stock ledger of a product, newest entry first.

    Query params:
    - limit: int >= 1 (optional)
    """
    raw_limit = request.args.get("limit")
    try:
        limit = int(raw_limit) if raw_limit is not None else None
    except ValueError:
        return jsonify({"error": "limit must be an integer", "field": "limit"}), 400

    try:
        entries = list_ledger_entries(product_id, limit=limit)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "productId": product_id,
        "items": [entry.to_dict() for entry in entries],
        "count": len(entries),
    }), 200
