# Overview: Service-layer operations for purchases (stock in from suppliers).

from __future__ import annotations

from ..models import Purchase
from .products_service import require_active_product
from .recording import (
    compute_total_cents,
    get_record,
    list_records,
    record_with_stock_change,
    resolve_department_id,
)


def create_purchase(*, patch: dict, user_id: int | None) -> Purchase:
    """
    Record a purchase and add its quantity to stock.

    total_cost_cents is computed here; any client total was discarded
    during validation.
    """
    def build() -> Purchase:
        product = require_active_product(patch["product_id"])
        quantity = patch["quantity"]
        unit_cost_cents = patch["unit_cost_cents"]
        return Purchase(
            product_id=product.id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            total_cost_cents=compute_total_cents(quantity, unit_cost_cents, field="totalCost"),
            supplier_name=patch.get("supplier_name") or None,
            user_id=user_id,
            department_id=resolve_department_id(product, patch.get("department_id")),
        )

    return record_with_stock_change(
        build,
        delta_for=lambda row: row.quantity,
        source_type="purchase",
        user_id=user_id,
    )


def list_purchases(*, department_id: int | None = None, product_id: int | None = None) -> dict:
    return list_records(Purchase, department_id=department_id, product_id=product_id)


def get_purchase(purchase_id: int) -> Purchase:
    return get_record(Purchase, purchase_id, label="Purchase")
