# Overview: Service-layer operations for stock quantities; the only code that changes Product.stock_quantity.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..models import Product, Purchase, Sale, StockMovement, StockLedgerEntry
from ..validation import NotFoundError, ValidationError
from ..time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

- Product.stock_quantity is never negative.
- Every change to stock_quantity goes through apply_stock_delta, which runs
  one conditional UPDATE:
      stock_quantity = stock_quantity + :delta WHERE id = :id
      AND stock_quantity + :delta >= 0
  and checks the affected-row count. There is no read-then-write, so two
  concurrent callers cannot both apply against the same "before" value.
- Each applied delta appends a StockLedgerEntry in the same DB transaction.
  SUM(delta) over a product's entries equals its stock_quantity.
- The caller owns the transaction: insert the originating row, flush,
  apply the delta, then commit. Any failure rolls back both writes.
- No idempotency: a retried request applies its delta again.
"""

SOURCE_TYPES = ("opening", "purchase", "sale", "stock_movement")


class InsufficientStockError(Exception):
    """Raised when a stock-out delta would drive a product below zero."""

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}"
        )

    def to_dict(self) -> dict:
        return {
            "error": "Insufficient stock",
            "code": "INSUFFICIENT_STOCK",
            "productId": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class ProductNotFoundError(NotFoundError):
    """Raised when the product row targeted by a delta does not exist."""


def _append_entry(
    *,
    product_id: int,
    delta: int,
    quantity_after: int,
    source_type: str,
    source_id: int | None,
    user_id: int | None,
) -> StockLedgerEntry:
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"unknown ledger source_type: {source_type}")
    entry = StockLedgerEntry(
        product_id=product_id,
        delta=delta,
        quantity_after=quantity_after,
        source_type=source_type,
        source_id=source_id,
        user_id=user_id,
    )
    db.session.add(entry)
    return entry


def apply_stock_delta(
    *,
    product_id: int,
    delta: int,
    source_type: str,
    source_id: int | None = None,
    user_id: int | None = None,
) -> int:
    """
    Atomically apply a signed delta to a product's stock and return the new quantity.

    Raises:
        ProductNotFoundError: product row does not exist (nothing changed)
        InsufficientStockError: result would be negative (nothing changed)

    Does not commit.
    """
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise ValueError("delta must be a non-zero integer")
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"unknown ledger source_type: {source_type}")

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .where(Product.stock_quantity + delta >= 0)
        .values(
            stock_quantity=Product.stock_quantity + delta,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != 1:
        available = (
            db.session.query(Product.stock_quantity)
            .filter(Product.id == product_id)
            .scalar()
        )
        if available is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        current_app.logger.warning(
            "Rejected stock delta %s for product %s (%s %s): available %s",
            delta, product_id, source_type, source_id, available,
        )
        raise InsufficientStockError(product_id=product_id, requested=-delta, available=available)

    quantity_after = (
        db.session.query(Product.stock_quantity)
        .filter(Product.id == product_id)
        .scalar()
    )

    # Loaded Product instances in this session now hold a stale quantity and version
    for obj in db.session.identity_map.values():
        if isinstance(obj, Product) and obj.id == product_id:
            db.session.expire(obj)

    _append_entry(
        product_id=product_id,
        delta=delta,
        quantity_after=quantity_after,
        source_type=source_type,
        source_id=source_id,
        user_id=user_id,
    )

    current_app.logger.info(
        "Applied stock delta %+d to product %s (%s %s): now %s",
        delta, product_id, source_type, source_id, quantity_after,
    )
    return quantity_after


def record_opening_balance(product: Product, *, user_id: int | None = None) -> StockLedgerEntry:
    """
    Ledger entry for the quantity a product was created with.

    Must be called in the product's creation transaction, after flush.
    """
    return _append_entry(
        product_id=product.id,
        delta=product.stock_quantity or 0,
        quantity_after=product.stock_quantity or 0,
        source_type="opening",
        source_id=product.id,
        user_id=user_id,
    )


def list_ledger_entries(product_id: int, *, limit: int | None = None) -> list[StockLedgerEntry]:
    if limit is not None and limit < 1:
        raise ValidationError("limit must be >= 1", field="limit")
    if db.session.get(Product, product_id) is None:
        raise ProductNotFoundError(f"Product {product_id} not found")

    q = (
        db.session.query(StockLedgerEntry)
        .filter(StockLedgerEntry.product_id == product_id)
        .order_by(StockLedgerEntry.id.desc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def get_ledger_quantity(product_id: int) -> int:
    q = db.session.query(
        func.coalesce(func.sum(StockLedgerEntry.delta), 0)
    ).filter(StockLedgerEntry.product_id == product_id)
    return int(q.scalar() or 0)


def get_transaction_quantity(product_id: int) -> int:
    """
    Quantity rebuilt from the transaction log itself:
    opening balance + purchases - sales + movements in - movements out.
    """
    opening = db.session.query(
        func.coalesce(func.sum(StockLedgerEntry.delta), 0)
    ).filter(
        StockLedgerEntry.product_id == product_id,
        StockLedgerEntry.source_type == "opening",
    ).scalar()

    purchased = db.session.query(
        func.coalesce(func.sum(Purchase.quantity), 0)
    ).filter(Purchase.product_id == product_id).scalar()

    sold = db.session.query(
        func.coalesce(func.sum(Sale.quantity), 0)
    ).filter(Sale.product_id == product_id).scalar()

    moved_in = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity), 0)
    ).filter(StockMovement.product_id == product_id, StockMovement.type == "in").scalar()

    moved_out = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity), 0)
    ).filter(StockMovement.product_id == product_id, StockMovement.type == "out").scalar()

    return int(opening) + int(purchased) - int(sold) + int(moved_in) - int(moved_out)


def reconcile_product(product_id: int) -> dict:
    """Compare stored stock with the ledger and the transaction log."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")

    ledger_qty = get_ledger_quantity(product_id)
    transaction_qty = get_transaction_quantity(product_id)
    return {
        "productId": product.id,
        "code": product.code,
        "stockQuantity": product.stock_quantity,
        "ledgerQuantity": ledger_qty,
        "transactionQuantity": transaction_qty,
        "consistent": product.stock_quantity == ledger_qty == transaction_qty,
    }


def reconcile_all() -> list[dict]:
    """Reconcile every product; returns one row per product, drifting ones flagged."""
    product_ids = [pid for (pid,) in db.session.query(Product.id).order_by(Product.id).all()]
    return [reconcile_product(pid) for pid in product_ids]
