# Overview: Flask API routes for staff accounts; admin-only user and employee management.

# backend/retailstock/routes/users.py
"""
Account management routes.

/api/users manages every staff account. /api/employees is the same store
restricted to role "employee"; accounts created there are always employees
and their role cannot be changed through it.

SECURITY: admin role required on every route.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..services import users_service
from ..permissions import get_all_permission_codes, get_permission_definition
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "name", "role", "permissions", "is_active"},
    required_on_create={"username", "email", "name"},
    ignored_fields={"password"},
)

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields=USER_POLICY.writable_fields - {"role"},
    required_on_create=USER_POLICY.required_on_create,
    ignored_fields={"password"},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")
employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


def _register_account_routes(bp: Blueprint, *, policy: ModelValidationPolicy, role_scope: str | None):
    label = "employee" if role_scope else "user"

    @bp.get("")
    @require_auth
    @require_admin
    def list_accounts():
        """
        Query params:
        - includeInactive: "true" to include deactivated accounts
        """
        include_inactive = request.args.get("includeInactive", "").lower() == "true"
        return users_service.list_users(role=role_scope, include_inactive=include_inactive)

    @bp.get("/<int:user_id>")
    @require_auth
    @require_admin
    def get_account(user_id: int):
        try:
            return users_service.get_user(user_id, role=role_scope).to_dict()
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404

    @bp.post("")
    @require_auth
    @require_admin
    def create_account():
        payload = request.get_json(silent=True) or {}
        password = payload.get("password")

        try:
            patch = validate_payload(model=User, payload=payload, policy=policy, partial=False)
            if role_scope:
                patch["role"] = role_scope
            enforce_rules_user(patch, password, creating=True)
        except ValidationError as e:
            return jsonify({"error": str(e), "field": e.field}), 400

        try:
            user = users_service.create_user(patch=patch, password=password)
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500

        current_app.logger.info("%s %s created by %s", label.title(), user.username, g.current_user.username)
        return jsonify(user.to_dict()), 201

    @bp.put("/<int:user_id>")
    @require_auth
    @require_admin
    def update_account(user_id: int):
        """Partial update; a new password revokes the account's sessions."""
        payload = request.get_json(silent=True) or {}
        password = payload.get("password")

        try:
            patch = validate_payload(model=User, payload=payload, policy=policy, partial=True)
            enforce_rules_user(patch, password, creating=False)
        except ValidationError as e:
            return jsonify({"error": str(e), "field": e.field}), 400

        try:
            user = users_service.update_user(
                user_id=user_id, patch=patch, password=password, role_scope=role_scope
            )
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to update %s", label)
            return jsonify({"error": "Internal server error"}), 500

        return jsonify(user.to_dict()), 200

    @bp.delete("/<int:user_id>")
    @require_auth
    @require_admin
    def deactivate_account(user_id: int):
        """Deactivate (never delete) an account and revoke its sessions."""
        try:
            user = users_service.deactivate_user(
                user_id=user_id, acting_user_id=g.current_user.id, role_scope=role_scope
            )
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409

        return jsonify(user.to_dict()), 200


@users_bp.get("/permissions")
@require_auth
@require_admin
def list_permissions_route():
    """Permission codes an admin can grant, grouped by category for the employee editor."""
    grouped: dict[str, list[dict]] = {}
    for code in get_all_permission_codes():
        definition = get_permission_definition(code)
        grouped.setdefault(definition["category"], []).append(definition)
    return jsonify({"categories": grouped, "count": len(get_all_permission_codes())}), 200


_register_account_routes(users_bp, policy=USER_POLICY, role_scope=None)
_register_account_routes(employees_bp, policy=EMPLOYEE_POLICY, role_scope="employee")
