# Overview: Service-layer operations for session tokens; issue, validate and revoke bearer tokens.

"""
Session Token Management Service

WHY: Every API call carries a bearer token. The token resolves to an
AuthContext (user id, username, role, permissions) that is scoped to the
request; nothing about the caller is kept in process-wide state.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_TTL_HOURS, default 24h)
- Revocable on logout or user deactivation
"""

import secrets
import hashlib
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import effective_permissions
from ..time_utils import utcnow


@dataclass
class AuthContext:
    """
    Request-scoped identity returned by validate_session.

    Handlers receive this through flask.g.auth; it is rebuilt on every
    request from the session record.
    """
    user: User
    session: SessionToken
    permissions: list[str] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def username(self) -> str:
        return self.user.username

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "role": self.role}


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are 32 random bytes, so a single unsalted SHA-256 is used.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()
    ttl_hours = current_app.config.get("SESSION_TTL_HOURS", 24)

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> AuthContext | None:
    """
    Validate session token and return AuthContext if valid.

    Returns None if:
    - Token is unknown, expired, or revoked
    - User account is deactivated (is_active=False)
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None

    return AuthContext(user=user, session=session, permissions=effective_permissions(user))


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_user_sessions(user_id: int) -> int:
    """Revoke every live session of a user. Does not commit."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
    return len(sessions)
