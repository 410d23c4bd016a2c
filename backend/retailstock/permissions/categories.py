# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for grouping in the employee editor."""
    CATALOG = "CATALOG"
    TRANSACTIONS = "TRANSACTIONS"
    STOCK = "STOCK"
    REPORTS = "REPORTS"
