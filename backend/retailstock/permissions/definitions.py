# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "view_departments",
        "View Departments",
        "List and open departments",
        PermissionCategory.CATALOG,
    ),
    (
        "edit_departments",
        "Edit Departments",
        "Create, update and deactivate departments",
        PermissionCategory.CATALOG,
    ),
    (
        "view_categories",
        "View Categories",
        "List and open categories",
        PermissionCategory.CATALOG,
    ),
    (
        "edit_categories",
        "Edit Categories",
        "Create, update and deactivate categories",
        PermissionCategory.CATALOG,
    ),
    (
        "view_products",
        "View Products",
        "List and open products",
        PermissionCategory.CATALOG,
    ),
    (
        "edit_products",
        "Edit Products",
        "Create, update and deactivate products",
        PermissionCategory.CATALOG,
    ),
]


# -- TRANSACTIONS --

TRANSACTION_PERMISSIONS = [
    (
        "view_purchases",
        "View Purchases",
        "List purchase records",
        PermissionCategory.TRANSACTIONS,
    ),
    (
        "edit_purchases",
        "Record Purchases",
        "Record purchases (increases stock)",
        PermissionCategory.TRANSACTIONS,
    ),
    (
        "view_sales",
        "View Sales",
        "List sale records",
        PermissionCategory.TRANSACTIONS,
    ),
    (
        "edit_sales",
        "Record Sales",
        "Record sales (decreases stock)",
        PermissionCategory.TRANSACTIONS,
    ),
]


# -- STOCK --

STOCK_PERMISSIONS = [
    (
        "view_stock",
        "View Stock",
        "List stock movements and product stock ledgers",
        PermissionCategory.STOCK,
    ),
    (
        "edit_stock",
        "Adjust Stock",
        "Record manual stock in/out movements",
        PermissionCategory.STOCK,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "view_reports",
        "View Reports",
        "Dashboards, sales and stock reports, spreadsheet downloads",
        PermissionCategory.REPORTS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + TRANSACTION_PERMISSIONS
    + STOCK_PERMISSIONS
    + REPORT_PERMISSIONS
)

# Granted to new employees when the creator does not pick permissions
DEFAULT_EMPLOYEE_PERMISSIONS = [
    "view_departments",
    "view_categories",
    "view_products",
    "view_purchases",
    "edit_purchases",
    "view_sales",
    "edit_sales",
    "view_stock",
]
