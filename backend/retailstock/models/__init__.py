from .catalog import Department, Category, Product
from .transactions import Purchase, Sale, StockMovement, StockLedgerEntry
from .auth import User, SessionToken

__all__ = [
    'Department', 'Category', 'Product',
    'Purchase', 'Sale', 'StockMovement', 'StockLedgerEntry',
    'User', 'SessionToken',
]
