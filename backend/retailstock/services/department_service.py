# Overview: Service-layer operations for departments.

from __future__ import annotations

from ..extensions import db
from ..models import Department
from ..validation import NotFoundError

DEPARTMENT_MUTABLE_FIELDS = {"name", "description", "is_active"}


def get_department(department_id: int) -> Department:
    department = db.session.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def require_active_department(department_id: int) -> Department:
    department = get_department(department_id)
    if not department.is_active:
        raise NotFoundError("Department not found")
    return department


def list_departments(*, include_inactive: bool = False) -> dict:
    q = db.session.query(Department)
    if not include_inactive:
        q = q.filter(Department.is_active.is_(True))
    departments = q.order_by(Department.name.asc(), Department.id.asc()).all()
    return {"items": [d.to_dict() for d in departments], "count": len(departments)}


def create_department(*, patch: dict) -> dict:
    department = Department()
    for k, v in patch.items():
        if k in DEPARTMENT_MUTABLE_FIELDS:
            setattr(department, k, v)
    db.session.add(department)
    db.session.commit()
    return department.to_dict()


def update_department(*, department_id: int, patch: dict) -> dict:
    department = get_department(department_id)
    for k, v in patch.items():
        if k in DEPARTMENT_MUTABLE_FIELDS:
            setattr(department, k, v)
    db.session.commit()
    return department.to_dict()


def delete_department(*, department_id: int) -> dict:
    """
    Soft-delete a department.

    Categories and products keep their rows and their own is_active flag.
    They remain retrievable by id but drop out of active listings.
    """
    department = get_department(department_id)
    department.is_active = False
    db.session.commit()
    return department.to_dict()
