from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z, utcnow


class Department(db.Model):
    """
    Top-level partition of the catalog (a store section).

    Every category, product and transaction references exactly one
    department. Departments are soft-deleted via is_active.
    """
    __tablename__ = "departments"
    __table_args__ = (
        db.Index("ix_departments_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Department id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
        }


class Category(db.Model):
    """
    Grouping of products within a department.

    parent_id allows a category tree but nothing traverses it; it is kept
    so imported hierarchies round-trip.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_categories_code"),
        db.Index("ix_categories_department_active", "department_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    department = db.relationship("Department", backref=db.backref("categories", lazy=True))
    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} code={self.code!r} department_id={self.department_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "departmentId": self.department_id,
            "parentId": self.parent_id,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data plus the on-hand quantity.

    STOCK QUANTITY:
    stock_quantity is only ever changed through stock_ledger_service, which
    uses a single conditional UPDATE and appends a StockLedgerEntry in the
    same DB transaction. Product updates through the API never touch it.

    version_id is bumped by the ORM on ordinary updates and by the ledger
    UPDATE statement, so a stale ORM copy cannot overwrite a newer quantity.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_department_active", "department_id", "is_active"),
        db.Index("ix_products_category", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=False)

    # Authoritative storage in cents (clients send and receive "12.50")
    price_cents = db.Column(db.Integer, nullable=False)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(512), nullable=True)

    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    department = db.relationship("Department", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} stock={self.stock_quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "price": format_cents(self.price_cents),
            "stockQuantity": self.stock_quantity,
            "minStockLevel": self.min_stock_level,
            "lowStock": self.is_low_stock,
            "image": self.image,
            "departmentId": self.department_id,
            "categoryId": self.category_id,
            "isActive": self.is_active,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
