# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Category
from ..services import category_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "department_id", "parent_id", "is_active"},
    required_on_create={"name", "code", "department_id"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_permission("view_categories")
def list_categories_route():
    """
    List categories.

    Query params:
    - departmentId: int (optional)
    - includeInactive: "true" to include soft-deleted categories
    """
    department_id = request.args.get("departmentId", type=int)
    include_inactive = request.args.get("includeInactive", "").lower() == "true"
    return category_service.list_categories(department_id=department_id, include_inactive=include_inactive)


@categories_bp.get("/<int:category_id>")
@require_auth
@require_permission("view_categories")
def get_category_route(category_id: int):
    try:
        return category_service.get_category(category_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@categories_bp.post("")
@require_auth
@require_permission("edit_categories")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        created = category_service.create_category(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_permission("edit_categories")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        updated = category_service.update_category(category_id=category_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_permission("edit_categories")
def delete_category_route(category_id: int):
    try:
        category_service.delete_category(category_id=category_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True}), 200
