# Overview: Typed errors raised by the stock-and-order ledger services.

"""
Error taxonomy for the ledger core.

Every error aborts the unit of work it is raised in; nothing partial is
committed. Callers (HTTP handlers, CLI) turn these into user-facing messages.

- InsufficientStock: a decrement would drive current_stock below zero
- NotFound: referenced product/order/category/expense does not exist
- ConstraintViolation: a relational rule blocks the write (e.g. category in use)
- StorageFailure: the store was unavailable or the unit could not commit
- ValidationError: caller input is malformed (non-positive quantity, unknown status)
"""


class LedgerError(Exception):
    """Base class for ledger errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InsufficientStock(LedgerError):
    """Raised when a stock decrement would make on-hand negative."""
    def __init__(self, product_id: int, requested: int, available: int | None):
        super().__init__(
            "Insufficient stock",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class NotFound(LedgerError):
    """Raised when a referenced row does not exist."""
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found", details={"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ConstraintViolation(LedgerError):
    """409-level business rule conflict (e.g., category still referenced)."""


class StorageFailure(LedgerError):
    """The store failed or the unit of work could not commit."""


class ValidationError(LedgerError):
    """400-level input problem."""
