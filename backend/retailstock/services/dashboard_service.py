# Overview: Service-layer operations for dashboard figures and charts.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Department, Product, Purchase, Sale
from ..money import format_cents
from ..time_utils import start_of_day, utcnow
from .recording import list_records
from .stock_movement_service import list_stock_movements

MAX_CHART_DAYS = 90


class DashboardError(Exception):
    """Raised when dashboard parameters are invalid."""
    pass


def _sum_between(amount_col, model, start, end, department_id):
    q = db.session.query(
        func.coalesce(func.sum(amount_col), 0),
        func.count(model.id),
    ).filter(model.created_at >= start, model.created_at < end)
    if department_id is not None:
        q = q.filter(model.department_id == department_id)
    total, count = q.one()
    return int(total or 0), int(count or 0)


def get_stats(*, department_id: int | None = None) -> dict:
    """
    Headline figures:
    - active product count
    - today's sales revenue and count
    - purchase cost over the last 7 days (today included)
    - products at or below their minimum stock level
    - five most recent sales and stock movements
    """
    now = utcnow()
    today = start_of_day(now.date())
    tomorrow = today + timedelta(days=1)
    week_start = today - timedelta(days=6)

    products = (
        db.session.query(Product)
        .join(Department, Product.department_id == Department.id)
        .filter(Product.is_active.is_(True), Department.is_active.is_(True))
    )
    if department_id is not None:
        products = products.filter(Product.department_id == department_id)

    total_products = products.count()
    low_stock = products.filter(Product.stock_quantity <= Product.min_stock_level).count()

    sales_today_cents, sales_today_count = _sum_between(
        Sale.total_price_cents, Sale, today, tomorrow, department_id
    )
    purchases_week_cents, purchases_week_count = _sum_between(
        Purchase.total_cost_cents, Purchase, week_start, tomorrow, department_id
    )

    return {
        "departmentId": department_id,
        "totalProducts": total_products,
        "salesToday": format_cents(sales_today_cents),
        "salesTodayCount": sales_today_count,
        "purchasesThisWeek": format_cents(purchases_week_cents),
        "purchasesThisWeekCount": purchases_week_count,
        "lowStockItems": low_stock,
        "recentSales": list_records(Sale, department_id=department_id, limit=5)["items"],
        "recentStockMovements": list_stock_movements(department_id=department_id, limit=5)["items"],
    }


def _daily_totals(amount_col, model, start, department_id) -> dict[str, int]:
    day = func.date(model.created_at)
    q = db.session.query(
        day.label("day"),
        func.coalesce(func.sum(amount_col), 0).label("total"),
    ).filter(model.created_at >= start)
    if department_id is not None:
        q = q.filter(model.department_id == department_id)
    rows = q.group_by(day).all()
    return {str(row.day): int(row.total or 0) for row in rows}


def get_chart(*, department_id: int | None = None, days: int = 7) -> dict:
    """Per-day sales and purchase totals for the last `days` days, zero-filled."""
    if days < 1 or days > MAX_CHART_DAYS:
        raise DashboardError(f"days must be between 1 and {MAX_CHART_DAYS}")

    today = utcnow().date()
    first_day = today - timedelta(days=days - 1)
    start = start_of_day(first_day)

    sales = _daily_totals(Sale.total_price_cents, Sale, start, department_id)
    purchases = _daily_totals(Purchase.total_cost_cents, Purchase, start, department_id)

    points = []
    for offset in range(days):
        key = (first_day + timedelta(days=offset)).isoformat()
        points.append({
            "date": key,
            "sales": format_cents(sales.get(key, 0)),
            "purchases": format_cents(purchases.get(key, 0)),
        })

    return {"departmentId": department_id, "days": days, "points": points}
