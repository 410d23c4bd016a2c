# Overview: Flask API routes for departments; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Department
from ..services import department_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

DEPARTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
)

departments_bp = Blueprint("departments", __name__, url_prefix="/api/departments")


@departments_bp.get("")
@require_auth
@require_permission("view_departments")
def list_departments_route():
    """
    List departments.

    Query params:
    - includeInactive: "true" to include soft-deleted departments
    """
    include_inactive = request.args.get("includeInactive", "").lower() == "true"
    return department_service.list_departments(include_inactive=include_inactive)


@departments_bp.get("/<int:department_id>")
@require_auth
@require_permission("view_departments")
def get_department_route(department_id: int):
    try:
        return department_service.get_department(department_id).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@departments_bp.post("")
@require_auth
@require_permission("edit_departments")
def create_department_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Department, payload=payload, policy=DEPARTMENT_POLICY, partial=False)
        created = department_service.create_department(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create department")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@departments_bp.put("/<int:department_id>")
@require_auth
@require_permission("edit_departments")
def update_department_route(department_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Department, payload=payload, policy=DEPARTMENT_POLICY, partial=True)
        updated = department_service.update_department(department_id=department_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update department")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated), 200


@departments_bp.delete("/<int:department_id>")
@require_auth
@require_permission("edit_departments")
def delete_department_route(department_id: int):
    """
    Soft-delete a department.

    Its categories, products and transactions are kept as they are.
    """
    try:
        department_service.delete_department(department_id=department_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"ok": True}), 200
