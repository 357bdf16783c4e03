# Overview: Service-layer operations for the stock ledger; signed-delta adjustments of current_stock.

# backend/ims/services/stock_service.py

from sqlalchemy import func, update

from ..extensions import db
from ..models import Product, Purchase, Order
from ..models.order_values import is_active_status
from ..errors import InsufficientStock, NotFound, ValidationError
from .audit_service import append_audit, MODULE_INVENTORY, ACTION_UPDATE
from .concurrency import lock_for_update, run_atomic
"""
Stock Ledger Invariants (authoritative)

Stock model:
- Product.current_stock is the authoritative quantity on hand.
- It changes only through adjust_stock(product_id, delta) with a signed delta.
- opening_stock is the baseline recorded at product creation and never changes.

Business invariants:
- current_stock may never go negative.
- The availability check and the write are one conditional UPDATE
  (current_stock + delta >= 0) against the stored value, run while the
  product row is locked. Nothing is cached between check and write.

Transactions:
- adjust_stock() never commits. It runs inside the caller's unit of work
  (order creation, status change, purchase, manual correction) and the caller
  writes the audit entry that covers the change.
"""


def _ensure_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFound("Product", product_id)
    return product


def get_current_stock(product_id: int) -> int:
    """Read current_stock straight from the store (no identity-map copy)."""
    value = (
        db.session.query(Product.current_stock)
        .filter(Product.id == product_id)
        .scalar()
    )
    if value is None:
        raise NotFound("Product", product_id)
    return int(value)


def adjust_stock(product_id: int, delta: int) -> int:
    """
    Apply a signed delta to a product's current_stock and return the new value.

    Raises:
        InsufficientStock: delta < 0 and the result would be negative
        NotFound: unknown product
        ValidationError: delta is not an integer
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")

    product = _ensure_product(product_id, lock=True)
    if delta == 0:
        return product.current_stock

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.current_stock + delta >= 0,
        )
        .values(
            current_stock=Product.current_stock + delta,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    # Re-read what the store now holds; the loaded instance may predate the UPDATE
    db.session.refresh(product, attribute_names=["current_stock", "version_id"])

    if not result.rowcount:
        raise InsufficientStock(product_id, -delta, product.current_stock)

    return product.current_stock


def correct_stock(
    *,
    product_id: int,
    delta: int,
    changed_by: str,
    reason: str | None = None,
) -> Product:
    """
    Manual stock correction (count discrepancy, damage, found stock).

    Expressed as a delta so it goes through the same ledger path as orders
    and purchases; a correction can never push stock below zero.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("delta must be a non-zero integer")

    def _op():
        new_stock = adjust_stock(product_id, delta)
        old_stock = new_stock - delta

        append_audit(
            target_id=product_id,
            module=MODULE_INVENTORY,
            action=ACTION_UPDATE,
            old_state={"current_stock": old_stock},
            new_state={"current_stock": new_stock, "delta": delta, "reason": reason},
            changed_by=changed_by,
        )
        return _ensure_product(product_id)

    return run_atomic(_op, label="stock correction")


def get_stock_summary(product_id: int) -> dict:
    """
    Stock position for a product, with a reconciliation against its history.

    expected_stock = opening + purchased - reserved by active orders.
    Any difference from current_stock is the net of manual corrections.
    """
    product = _ensure_product(product_id)

    purchased = (
        db.session.query(func.coalesce(func.sum(Purchase.quantity), 0))
        .filter(Purchase.product_id == product_id)
        .scalar()
    )

    reserved = 0
    for quantity, delivery in (
        db.session.query(Order.quantity, Order.delivery)
        .filter(Order.product_id == product_id)
        .all()
    ):
        if is_active_status((delivery or {}).get("status")):
            reserved += quantity

    expected = product.opening_stock + int(purchased or 0) - reserved
    return {
        "product_id": product.id,
        "name": product.name,
        "opening_stock": product.opening_stock,
        "purchased": int(purchased or 0),
        "reserved_by_active_orders": reserved,
        "current_stock": product.current_stock,
        "expected_stock": expected,
        "correction_delta": product.current_stock - expected,
    }
