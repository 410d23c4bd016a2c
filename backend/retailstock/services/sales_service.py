# Overview: Service-layer operations for sales (stock out to customers).

from __future__ import annotations

from ..models import Sale
from .products_service import require_active_product
from .recording import (
    compute_total_cents,
    get_record,
    list_records,
    record_with_stock_change,
    resolve_department_id,
)


def create_sale(*, patch: dict, user_id: int | None) -> Sale:
    """
    Record a sale and remove its quantity from stock.

    unit_price_cents defaults to the product's current price. If stock is
    short, InsufficientStockError propagates and no Sale row is kept.
    """
    def build() -> Sale:
        product = require_active_product(patch["product_id"])
        quantity = patch["quantity"]
        unit_price_cents = patch.get("unit_price_cents")
        if unit_price_cents is None:
            unit_price_cents = product.price_cents
        return Sale(
            product_id=product.id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=compute_total_cents(quantity, unit_price_cents, field="totalPrice"),
            user_id=user_id,
            department_id=resolve_department_id(product, patch.get("department_id")),
        )

    return record_with_stock_change(
        build,
        delta_for=lambda row: -row.quantity,
        source_type="sale",
        user_id=user_id,
    )


def list_sales(*, department_id: int | None = None, product_id: int | None = None) -> dict:
    return list_records(Sale, department_id=department_id, product_id=product_id)


def get_sale(sale_id: int) -> Sale:
    return get_record(Sale, sale_id, label="Sale")
