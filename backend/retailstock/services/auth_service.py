# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

WHY: Every purchase, sale and stock movement must be attributable to a
staff account. Passwords are hashed with bcrypt.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Session tokens managed separately (see session_service.py)
- Inactive users cannot authenticate
"""

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import User
from ..time_utils import utcnow


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (default 12); test configs lower it.
    """
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def find_user_by_identifier(identifier: str) -> User | None:
    """Look up a user by username or email (case-sensitive username, case-insensitive email)."""
    return db.session.query(User).filter(
        db.or_(User.username == identifier, db.func.lower(User.email) == identifier.lower())
    ).first()


def authenticate(identifier: str, password: str) -> User | None:
    """
    Return the active user matching identifier/password, or None.

    Records last_login_at on success.
    """
    user = find_user_by_identifier(identifier)
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
