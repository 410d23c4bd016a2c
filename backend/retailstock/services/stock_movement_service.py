# Overview: Service-layer operations for manual stock movements.

from __future__ import annotations

from ..models import StockMovement
from .products_service import require_active_product
from .recording import get_record, list_records, record_with_stock_change, resolve_department_id


def create_stock_movement(*, patch: dict, user_id: int | None) -> StockMovement:
    """
    Record a manual adjustment: type 'in' adds quantity, 'out' removes it.

    A stock-out larger than the on-hand quantity is rejected with
    InsufficientStockError; it is never clamped to zero.
    """
    def build() -> StockMovement:
        product = require_active_product(patch["product_id"])
        return StockMovement(
            product_id=product.id,
            type=patch["type"],
            quantity=patch["quantity"],
            reason=patch["reason"],
            notes=patch.get("notes") or None,
            user_id=user_id,
            department_id=resolve_department_id(product, patch.get("department_id")),
        )

    return record_with_stock_change(
        build,
        delta_for=lambda row: row.signed_quantity,
        source_type="stock_movement",
        user_id=user_id,
    )


def list_stock_movements(
    *,
    department_id: int | None = None,
    product_id: int | None = None,
    limit: int | None = None,
) -> dict:
    return list_records(StockMovement, department_id=department_id, product_id=product_id, limit=limit)


def get_stock_movement(movement_id: int) -> StockMovement:
    return get_record(StockMovement, movement_id, label="Stock movement")
