# Overview: Flask API routes for dashboard figures; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import dashboard_service
from ..services.dashboard_service import DashboardError
from ..decorators import require_auth, require_permission

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_permission("view_reports")
def dashboard_stats_route():
    """
    Headline figures.

    Query params:
    - departmentId: int (optional)
    """
    department_id = request.args.get("departmentId", type=int)
    return jsonify(dashboard_service.get_stats(department_id=department_id)), 200


@dashboard_bp.get("/chart")
@require_auth
@require_permission("view_reports")
def dashboard_chart_route():
    """
    Daily sales and purchase totals.

    Query params:
    - departmentId: int (optional)
    - days: int 1..90 (default 7)
    """
    department_id = request.args.get("departmentId", type=int)
    days_raw = request.args.get("days", "7")
    try:
        days = int(days_raw)
    except ValueError:
        return jsonify({"error": "days must be an integer"}), 400

    try:
        result = dashboard_service.get_chart(department_id=department_id, days=days)
    except DashboardError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(result), 200
