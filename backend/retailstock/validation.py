from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .money import MAX_AMOUNT_CENTS, to_cents
from .time_utils import parse_iso_datetime


ROLES = ("admin", "employee")

MOVEMENT_TYPES = ("in", "out")

# Reason codes offered for each movement direction
STOCK_IN_REASONS = ("return", "manual_addition", "promotional", "audit_adjustment")
STOCK_OUT_REASONS = ("damaged", "expired", "lost", "donation", "shop_use")

MIN_PASSWORD_LENGTH = 6

# Upper bound for quantities and stock levels
MAX_QUANTITY = 2**31 - 1

# Largest value a 64-bit INTEGER column can hold
MAX_INTEGER = 2**63 - 1

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""


class NotFoundError(LookupError):
    """404-level: a referenced row does not exist."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: column keys clients are allowed to set (security boundary)
    - required_on_create: column keys required for POST
    - ignored_fields: client keys accepted but discarded because the server
      computes them (totals, acting user)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    ignored_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def client_name(column_key: str) -> str:
    """price_cents -> price, department_id -> departmentId"""
    if column_key.endswith("_cents"):
        column_key = column_key[: -len("_cents")]
    head, *rest = column_key.split("_")
    return head + "".join(part.title() for part in rest)


def _column_key(key: str, cols: dict[str, Any]) -> str | None:
    """
    Map a client key (camelCase or snake_case) onto a column key.
    Amounts arrive without the _cents suffix and are stored in cents.
    """
    snake = _snake(key)
    if snake in cols and not snake.endswith("_cents"):
        return snake
    if f"{snake}_cents" in cols:
        return f"{snake}_cents"
    return None


def _is_money(col) -> bool:
    return col.key.endswith("_cents")


def _check_integer_range(value: int, name: str) -> int:
    if abs(value) > MAX_INTEGER:
        raise ValidationError(f"{name} is out of range", field=name)
    return value


def _coerce_value(col, value: Any, name: str):
    coltype = col.type

    if value is None:
        return None

    # Amounts - decimal input, stored as integer cents
    if _is_money(col):
        try:
            cents = to_cents(value)
        except ValueError:
            raise ValidationError(f"{name} must be a decimal amount", field=name)
        if cents < 0:
            raise ValidationError(f"{name} must be >= 0", field=name)
        if cents > MAX_AMOUNT_CENTS:
            raise ValidationError(
                f"{name} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}", field=name
            )
        return cents

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return _check_integer_range(value, name)
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{name} must be an integer", field=name)
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)", field=name)
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{name} must be an integer (no decimals)", field=name)
            try:
                parsed = int(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be an integer", field=name)
            return _check_integer_range(parsed, name)
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{name} must be an integer, not a decimal", field=name)
        raise ValidationError(f"{name} must be an integer", field=name)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{name} must be true or false", field=name)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime", field=name)
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime", field=name)
            return dt
        raise ValidationError(f"{name} must be a datetime", field=name)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{name} must be a string", field=name)
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    mapped: dict[str, tuple[str, Any]] = {}
    for k, raw in payload.items():
        if k in policy.ignored_fields:
            continue
        key = _column_key(k, cols)
        if key is None:
            raise ValidationError(f"Unknown field: {k}", field=k)
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        mapped[key] = (k, raw)

    if not partial:
        missing = sorted(client_name(f) for f in policy.required_on_create if f not in mapped)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    patch: dict = {}

    for key, (name, raw) in mapped.items():
        col = cols[key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{name} cannot be null", field=name)
            patch[key] = None
            continue

        val = _coerce_value(col, raw, name)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{name} cannot be blank", field=name)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{name} exceeds max length {col.type.length}", field=name)

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("stock_quantity", "min_stock_level"):
        if patch.get(key) is None:
            continue
        if patch[key] < 0:
            raise ValidationError(f"{client_name(key)} must be >= 0", field=client_name(key))
        if patch[key] > MAX_QUANTITY:
            raise ValidationError(
                f"{client_name(key)} cannot exceed {MAX_QUANTITY}", field=client_name(key)
            )


def enforce_rules_quantity(patch: dict) -> None:
    # Purchases, sales and movements all carry a strictly positive quantity;
    # direction comes from the record type, never from the sign.
    if "quantity" in patch:
        if patch["quantity"] is None or patch["quantity"] <= 0:
            raise ValidationError("quantity must be > 0", field="quantity")
        if patch["quantity"] > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}", field="quantity")


def enforce_rules_stock_movement(patch: dict) -> None:
    enforce_rules_quantity(patch)

    movement_type = patch.get("type")
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'", field="type")

    reasons = STOCK_IN_REASONS if movement_type == "in" else STOCK_OUT_REASONS
    if patch.get("reason") not in reasons:
        raise ValidationError(
            f"reason for stock {movement_type} must be one of: {', '.join(reasons)}",
            field="reason",
        )


def enforce_rules_user(patch: dict, password: str | None, *, creating: bool) -> None:
    from .permissions import validate_permission_code

    if "role" in patch and patch["role"] not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", field="role")

    if "email" in patch and "@" not in (patch["email"] or ""):
        raise ValidationError("email must be a valid email address", field="email")

    if "permissions" in patch:
        perms = patch["permissions"]
        if not isinstance(perms, list) or not all(isinstance(p, str) for p in perms):
            raise ValidationError("permissions must be a list of permission codes", field="permissions")
        unknown = [p for p in perms if not validate_permission_code(p)]
        if unknown:
            raise ValidationError(f"Unknown permissions: {', '.join(unknown)}", field="permissions")

    if creating and not password:
        raise ValidationError("password is required", field="password")
    if password is not None:
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )
