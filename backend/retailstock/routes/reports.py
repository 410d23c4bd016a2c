from io import BytesIO

from flask import Blueprint, jsonify, request, send_file

from ..decorators import require_auth, require_permission
from ..services import export_service, reporting_service
from ..time_utils import utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _xlsx_response(content: bytes, prefix: str):
    filename = f"{prefix}-{utcnow().strftime('%Y%m%d')}.xlsx"
    return send_file(
        BytesIO(content),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename,
    )


@reports_bp.get("/sales")
@require_auth
@require_permission("view_reports")
def sales_report():
    department_id = request.args.get("departmentId", type=int)
    start = request.args.get("from")
    end = request.args.get("to")

    try:
        report = reporting_service.sales_report(
            department_id=department_id,
            start=start,
            end=end,
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/sales/download")
@require_auth
@require_permission("view_reports")
def sales_report_download():
    department_id = request.args.get("departmentId", type=int)
    start = request.args.get("from")
    end = request.args.get("to")

    try:
        content = export_service.sales_workbook(
            department_id=department_id,
            start=start,
            end=end,
        )
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400

    return _xlsx_response(content, "sales-report")


@reports_bp.get("/stock")
@require_auth
@require_permission("view_reports")
def stock_report():
    department_id = request.args.get("departmentId", type=int)
    return jsonify(reporting_service.stock_report(department_id=department_id)), 200


@reports_bp.get("/stock/download")
@require_auth
@require_permission("view_reports")
def stock_report_download():
    department_id = request.args.get("departmentId", type=int)
    content = export_service.stock_workbook(department_id=department_id)
    return _xlsx_response(content, "stock-report")
