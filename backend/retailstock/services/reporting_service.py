# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Department, Product, Sale
from ..money import format_cents
from ..time_utils import end_of_day, parse_iso_datetime, to_utc_z


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _parse_bound(value: str | None, name: str, *, upper: bool) -> datetime | None:
    if not value:
        return None
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ReportError(f"{name} must be an ISO-8601 date or datetime")
    # A bare date as upper bound covers the whole day
    if upper and dt is not None and len(value.strip()) == 10:
        dt = end_of_day(dt)
    return dt


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    start_dt = _parse_bound(start, "from", upper=False)
    end_dt = _parse_bound(end, "to", upper=True)
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("from must not be after to")
    return start_dt, end_dt


def _sales_query(department_id: int | None, start_dt, end_dt):
    query = db.session.query(Sale)
    if department_id is not None:
        query = query.filter(Sale.department_id == department_id)
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)
    return query


def sales_report(
    *,
    department_id: int | None,
    start: str | None,
    end: str | None,
) -> dict:
    """Sales grouped by calendar day (UTC)."""
    start_dt, end_dt = _parse_range(start, end)

    day = func.date(Sale.created_at)
    query = _sales_query(department_id, start_dt, end_dt).with_entities(
        day.label("period"),
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.quantity), 0).label("quantity"),
        func.coalesce(func.sum(Sale.total_price_cents), 0).label("total_cents"),
    )

    rows = query.group_by(day).order_by(day).all()
    grand_total = sum(int(row.total_cents or 0) for row in rows)
    return {
        "departmentId": department_id,
        "from": to_utc_z(start_dt),
        "to": to_utc_z(end_dt),
        "total": format_cents(grand_total),
        "rows": [
            {
                "date": str(row.period),
                "count": int(row.sales_count or 0),
                "quantity": int(row.quantity or 0),
                "total": format_cents(int(row.total_cents or 0)),
            }
            for row in rows
        ],
    }


def sales_detail(*, department_id: int | None, start: str | None, end: str | None) -> list[Sale]:
    """Individual sales in the range, oldest first (spreadsheet export)."""
    start_dt, end_dt = _parse_range(start, end)
    return _sales_query(department_id, start_dt, end_dt).order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def stock_report(*, department_id: int | None) -> dict:
    """On-hand quantity and value per active product, valued at selling price."""
    query = (
        db.session.query(Product)
        .join(Department, Product.department_id == Department.id)
        .filter(Product.is_active.is_(True), Department.is_active.is_(True))
    )
    if department_id is not None:
        query = query.filter(Product.department_id == department_id)
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()

    rows = []
    total_value_cents = 0
    for product in products:
        value = product.stock_quantity * product.price_cents
        total_value_cents += value
        rows.append(
            {
                "productId": product.id,
                "product": product.name,
                "code": product.code,
                "quantity": product.stock_quantity,
                "price": format_cents(product.price_cents),
                "totalValue": format_cents(value),
                "minStockLevel": product.min_stock_level,
                "lowStock": product.is_low_stock,
            }
        )

    return {
        "departmentId": department_id,
        "totalValue": format_cents(total_value_cents),
        "rows": rows,
    }
