# Overview: Shared write path for purchases, sales and stock movements.

"""
Every recorder follows the same unit of work:

1. validate the product and department
2. insert the transaction row and flush (to get its id)
3. apply the signed delta through stock_ledger_service
4. commit

Any exception rolls back the whole unit, so a transaction row never
survives without its quantity change. Lock/deadlock failures are retried
by run_with_retry; InsufficientStockError is not.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy import desc

from ..extensions import db
from ..money import MAX_AMOUNT_CENTS
from ..models import Product
from ..validation import NotFoundError, ValidationError
from .concurrency import run_with_retry
from .stock_ledger_service import apply_stock_delta

T = TypeVar("T")


def resolve_department_id(product: Product, requested: int | None) -> int:
    """Transactions live in their product's department."""
    if requested is not None and requested != product.department_id:
        raise ValidationError("departmentId does not match the product's department", field="departmentId")
    return product.department_id


def compute_total_cents(quantity: int, unit_cents: int, *, field: str) -> int:
    total = quantity * unit_cents
    if total > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large", field=field)
    return total


def record_with_stock_change(
    build_row: Callable[[], T],
    *,
    delta_for: Callable[[T], int],
    source_type: str,
    user_id: int | None,
) -> T:
    """
    Insert the row returned by build_row and apply its stock delta atomically.

    build_row runs inside the retried unit so it sees fresh product state
    on every attempt.
    """
    def _op() -> T:
        try:
            row = build_row()
            db.session.add(row)
            db.session.flush()
            apply_stock_delta(
                product_id=row.product_id,
                delta=delta_for(row),
                source_type=source_type,
                source_id=row.id,
                user_id=user_id,
            )
            db.session.commit()
            return row
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def list_records(model, *, department_id: int | None = None, product_id: int | None = None,
                 limit: int | None = None) -> dict:
    q = db.session.query(model)
    if department_id is not None:
        q = q.filter(model.department_id == department_id)
    if product_id is not None:
        q = q.filter(model.product_id == product_id)
    q = q.order_by(desc(model.created_at), desc(model.id))
    if limit:
        q = q.limit(limit)
    rows = q.all()
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}


def get_record(model, record_id: int, *, label: str):
    row = db.session.get(model, record_id)
    if row is None:
        raise NotFoundError(f"{label} not found")
    return row
