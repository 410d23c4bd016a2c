# backend/retailstock/services/products_service.py
"""
Products Service

- list_products filters active products by department/category
- create_product validates the department/category pair and records the
  opening stock balance in the stock ledger
- update_product never changes stock_quantity (see stock_ledger_service)
- delete_product is a soft delete
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Department, Product
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import run_with_retry
from .department_service import require_active_department
from .stock_ledger_service import record_opening_balance

PRODUCT_MUTABLE_FIELDS = {
    "name", "code", "price_cents", "min_stock_level", "image",
    "department_id", "category_id", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def require_active_product(product_id: int) -> Product:
    """Product that can take part in a purchase, sale or movement."""
    product = get_product(product_id)
    if not product.is_active:
        raise ValidationError("product is inactive", field="productId")
    return product


def _check_category(category_id: int, department_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None or not category.is_active:
        raise ValidationError("category not found", field="categoryId")
    if category.department_id != department_id:
        raise ValidationError("category belongs to another department", field="categoryId")
    return category


def _ensure_code_unique(code: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.code == code)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise ConflictError("Product code already exists.")


def list_products(
    *,
    department_id: int | None = None,
    category_id: int | None = None,
    low_stock: bool = False,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional pagination.

    Args:
        department_id: only products of this department
        category_id: only products of this category
        low_stock: only products at or below their minimum stock level
        include_inactive: include soft-deleted products
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if not include_inactive:
        base_query = (
            base_query.join(Department, Product.department_id == Department.id)
            .filter(Product.is_active.is_(True), Department.is_active.is_(True))
        )
    if department_id is not None:
        base_query = base_query.filter(Product.department_id == department_id)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if low_stock:
        base_query = base_query.filter(Product.stock_quantity <= Product.min_stock_level)

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(*, patch: dict, user_id: int | None = None) -> dict:
    """
    Create product using a validated patch dict.

    The initial stock_quantity is written directly on insert and recorded
    as the product's opening ledger entry in the same transaction.

    Raises:
        NotFoundError: department does not exist or is inactive
        ValidationError: category missing or in another department
        ConflictError: product code already exists
    """
    require_active_department(patch["department_id"])
    _check_category(patch["category_id"], patch["department_id"])
    _ensure_code_unique(patch["code"])

    p = Product(stock_quantity=patch.get("stock_quantity") or 0)
    apply_product_patch(p, patch)

    db.session.add(p)
    try:
        db.session.flush()  # ensure p.id exists before ledger append
        record_opening_balance(p, user_id=user_id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product code already exists.")
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update a product.

    A stock change committed between load and commit bumps version_id;
    the whole load, patch and commit is then retried on fresh state.

    Raises:
        NotFoundError: product does not exist
        ConflictError: new code already exists
        StaleDataError: still conflicting after all retries
    """
    def _op():
        p = get_product(product_id)

        if "code" in patch and patch["code"] != p.code:
            _ensure_code_unique(patch["code"], exclude_id=p.id)

        department_id = patch.get("department_id", p.department_id)
        if department_id != p.department_id:
            require_active_department(department_id)
        if "category_id" in patch or "department_id" in patch:
            _check_category(patch.get("category_id", p.category_id), department_id)

        apply_product_patch(p, patch)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Product code already exists.")
        return p.to_dict()

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> dict:
    """
    Soft-delete a product.

    Soft-delete only: preserve IDs and historical references from
    purchases, sales, movements and the stock ledger.
    """
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
    db.session.commit()
    return p.to_dict()
