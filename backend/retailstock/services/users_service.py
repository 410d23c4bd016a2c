# Overview: Service-layer operations for staff accounts (users and employees).

"""
Account management.

- Usernames and emails are globally unique (ConflictError on duplicates).
- Accounts are deactivated, never deleted; their purchases, sales and
  movements keep pointing at them.
- There is always at least one active admin: the last one cannot be
  deactivated or demoted.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_EMPLOYEE_PERMISSIONS
from ..validation import ConflictError, NotFoundError
from .auth_service import hash_password
from .session_service import revoke_user_sessions

USER_MUTABLE_FIELDS = {"username", "email", "name", "role", "permissions", "is_active"}


def get_user(user_id: int, *, role: str | None = None) -> User:
    user = db.session.get(User, user_id)
    if user is None or (role is not None and user.role != role):
        raise NotFoundError("User not found")
    return user


def list_users(*, role: str | None = None, include_inactive: bool = False) -> dict:
    q = db.session.query(User)
    if role is not None:
        q = q.filter(User.role == role)
    if not include_inactive:
        q = q.filter(User.is_active.is_(True))
    users = q.order_by(User.username.asc()).all()
    return {"items": [u.to_dict() for u in users], "count": len(users)}


def _ensure_unique(*, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    if username is not None:
        q = db.session.query(User).filter(User.username == username)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise ConflictError("Username already exists")
    if email is not None:
        q = db.session.query(User).filter(db.func.lower(User.email) == email.lower())
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise ConflictError("Email already exists")


def _active_admin_count() -> int:
    return db.session.query(User).filter(User.role == "admin", User.is_active.is_(True)).count()


def _guard_last_admin(user: User, patch: dict) -> None:
    if not (user.is_admin and user.is_active):
        return
    demoted = patch.get("role", user.role) != "admin"
    deactivated = patch.get("is_active", True) is False
    if (demoted or deactivated) and _active_admin_count() <= 1:
        raise ConflictError("Cannot remove the last active admin")


def create_user(*, patch: dict, password: str) -> User:
    """
    Create a staff account.

    Employees created without an explicit permission list get
    DEFAULT_EMPLOYEE_PERMISSIONS.
    """
    _ensure_unique(username=patch["username"], email=patch["email"])

    user = User(password_hash=hash_password(password))
    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)
    if user.role is None:
        user.role = "employee"
    if "permissions" not in patch:
        user.permissions = [] if user.role == "admin" else list(DEFAULT_EMPLOYEE_PERMISSIONS)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username or email already exists")
    return user


def update_user(
    *,
    user_id: int,
    patch: dict,
    password: str | None = None,
    role_scope: str | None = None,
) -> User:
    user = get_user(user_id, role=role_scope)

    _ensure_unique(
        username=patch.get("username") if patch.get("username") != user.username else None,
        email=patch.get("email") if patch.get("email") != user.email else None,
        exclude_id=user.id,
    )
    _guard_last_admin(user, patch)

    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)
    if password:
        user.password_hash = hash_password(password)
    if patch.get("is_active") is False or password:
        revoke_user_sessions(user.id)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username or email already exists")
    return user


def deactivate_user(*, user_id: int, acting_user_id: int, role_scope: str | None = None) -> User:
    """Soft-delete an account and revoke its sessions."""
    user = get_user(user_id, role=role_scope)
    if user.id == acting_user_id:
        raise ConflictError("You cannot deactivate your own account")
    _guard_last_admin(user, {"is_active": False})

    user.is_active = False
    revoke_user_sessions(user.id)
    db.session.commit()
    return user
