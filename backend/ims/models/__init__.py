from .catalog import Category, Product
from .orders import Order
from .ledger import Purchase, Expense, AuditLog, DocumentSequence

__all__ = [
    'Category', 'Product',
    'Order',
    'Purchase', 'Expense', 'AuditLog', 'DocumentSequence',
]
