# Overview: Service-layer operations for categories.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Department
from ..validation import ConflictError, NotFoundError, ValidationError
from .department_service import require_active_department

CATEGORY_MUTABLE_FIELDS = {"name", "code", "department_id", "parent_id", "is_active"}


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def list_categories(*, department_id: int | None = None, include_inactive: bool = False) -> dict:
    q = db.session.query(Category)
    if not include_inactive:
        q = (
            q.join(Department, Category.department_id == Department.id)
            .filter(Category.is_active.is_(True), Department.is_active.is_(True))
        )
    if department_id is not None:
        q = q.filter(Category.department_id == department_id)
    categories = q.order_by(Category.name.asc(), Category.id.asc()).all()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


def _ensure_code_unique(code: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Category).filter(Category.code == code)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("Category code already exists.")


def _check_parent(parent_id: int | None, department_id: int, *, self_id: int | None = None) -> None:
    if parent_id is None:
        return
    if self_id is not None and parent_id == self_id:
        raise ValidationError("a category cannot be its own parent", field="parentId")
    parent = db.session.get(Category, parent_id)
    if parent is None:
        raise ValidationError("parent category not found", field="parentId")
    if parent.department_id != department_id:
        raise ValidationError("parent category belongs to another department", field="parentId")


def create_category(*, patch: dict) -> dict:
    require_active_department(patch["department_id"])
    _ensure_code_unique(patch["code"])
    _check_parent(patch.get("parent_id"), patch["department_id"])

    category = Category()
    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category code already exists.")
    return category.to_dict()


def update_category(*, category_id: int, patch: dict) -> dict:
    category = get_category(category_id)

    if "code" in patch and patch["code"] != category.code:
        _ensure_code_unique(patch["code"], exclude_id=category.id)

    department_id = patch.get("department_id", category.department_id)
    if "department_id" in patch and patch["department_id"] != category.department_id:
        require_active_department(department_id)
    if "parent_id" in patch or "department_id" in patch:
        _check_parent(patch.get("parent_id", category.parent_id), department_id, self_id=category.id)

    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category code already exists.")
    return category.to_dict()


def delete_category(*, category_id: int) -> dict:
    """Soft-delete a category; its products are left untouched."""
    category = get_category(category_id)
    category.is_active = False
    db.session.commit()
    return category.to_dict()
