# backend/retailstock/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the system can be administered
(at least one active admin account).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Department, Product, User, SessionToken
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        department_count = db.session.query(Department).count()
        product_count = db.session.query(Product).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "departments": department_count,
                "products": product_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_accounts_health() -> dict:
    """An install without an active admin cannot create accounts or edit permissions."""
    start_time = time.time()
    try:
        admin_count = db.session.query(User).filter(
            User.role == "admin", User.is_active.is_(True)
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000

        if admin_count == 0:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No active admin account (run: flask system init)",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_admins": admin_count},
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Accounts health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Accounts check error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    accounts_health = check_accounts_health()

    all_checks = [database_health, accounts_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "accounts": accounts_health,
        }
    }

    return response, http_status
