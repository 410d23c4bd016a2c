# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/retailstock/routes/auth.py
"""
Authentication API routes.

- POST /login exchanges username/email + password for an opaque bearer token
- POST /logout revokes the presented token
- GET /me returns the caller's profile and effective permissions
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..permissions import effective_permissions
from ..time_utils import to_utc_z
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info and session token on success.
    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)

        if not user:
            current_app.logger.warning("Failed login for %r from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(user_id=user.id)
        context = session_service.AuthContext(
            user=user,
            session=session,
            permissions=effective_permissions(user),
        )

        return jsonify({
            "user": user.to_dict(),
            "profile": context.to_dict(),
            "permissions": context.permissions,
            "token": token,
            "expiresAt": to_utc_z(session.expires_at),
        }), 200

    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the token used for this request."""
    session_service.revoke_session(g.token)
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "profile": g.auth.to_dict(),
        "permissions": g.auth.permissions,
    }), 200
