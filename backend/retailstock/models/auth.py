from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Staff accounts for authentication and attribution.

    role is 'admin' or 'employee'. Admins implicitly hold every permission;
    employees hold the codes listed in permissions (see permissions package).

    WHY: Every purchase, sale and stock movement records the acting user.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="employee")
    permissions = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "permissions": list(self.permissions or []),
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "lastLoginAt": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Bearer token issued at login.

    Only the SHA-256 hash of the token is stored. Tokens expire after
    SESSION_TTL_HOURS and are revoked on logout or user deactivation.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.UniqueConstraint("token_hash", name="uq_session_tokens_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
