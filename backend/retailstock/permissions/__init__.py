# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    TRANSACTION_PERMISSIONS,
    STOCK_PERMISSIONS,
    REPORT_PERMISSIONS,
    DEFAULT_EMPLOYEE_PERMISSIONS,
)
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    validate_permission_code,
    user_has_permission,
    effective_permissions,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "TRANSACTION_PERMISSIONS",
    "STOCK_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "DEFAULT_EMPLOYEE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "validate_permission_code",
    "user_has_permission",
    "effective_permissions",
]
