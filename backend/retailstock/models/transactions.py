from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z, utcnow


class Purchase(db.Model):
    """
    Stock received from a supplier. Immutable once created.

    total_cost_cents is always quantity * unit_cost_cents, computed by
    purchase_service; a client-supplied total is never stored.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchases_quantity_positive"),
        db.Index("ix_purchases_department_created", "department_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)
    supplier_name = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unitCost": format_cents(self.unit_cost_cents),
            "totalCost": format_cents(self.total_cost_cents),
            "supplierName": self.supplier_name,
            "userId": self.user_id,
            "departmentId": self.department_id,
            "createdAt": to_utc_z(self.created_at),
        }


class Sale(db.Model):
    """Stock sold to a customer. Immutable once created."""
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        db.Index("ix_sales_department_created", "department_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unitPrice": format_cents(self.unit_price_cents),
            "totalPrice": format_cents(self.total_price_cents),
            "userId": self.user_id,
            "departmentId": self.department_id,
            "createdAt": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Manual inventory adjustment not tied to a purchase or sale
    (damage, loss, donation, audit correction). Immutable once created.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.CheckConstraint("type IN ('in', 'out')", name="ck_stock_movements_type"),
        db.Index("ix_stock_movements_department_created", "department_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")
    user = db.relationship("User")

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == "in" else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "notes": self.notes,
            "userId": self.user_id,
            "departmentId": self.department_id,
            "createdAt": to_utc_z(self.created_at),
        }


class StockLedgerEntry(db.Model):
    """
    Append-only record of every applied stock delta.

    Written by stock_ledger_service in the same DB transaction as the
    quantity UPDATE. The sum of delta per product always equals the
    product's stock_quantity; reconcile_product checks this.
    """
    __tablename__ = "stock_ledger_entries"
    __table_args__ = (
        db.Index("ix_stock_ledger_product_id", "product_id", "id"),
        db.Index("ix_stock_ledger_source", "source_type", "source_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    # opening | purchase | sale | stock_movement
    source_type = db.Column(db.String(32), nullable=False)
    source_id = db.Column(db.Integer, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "delta": self.delta,
            "quantityAfter": self.quantity_after,
            "sourceType": self.source_type,
            "sourceId": self.source_id,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
        }
