# Overview: Service-layer operations for purchases; incoming stock from suppliers.

"""
Purchase Recorder

A purchase is written, the product's stock is incremented by its quantity,
and a STOCK_IN audit entry is appended, all in one unit of work. If any of
the three fails, none of them is visible.
"""

from flask import current_app

from ..extensions import db
from ..models import Purchase
from ..errors import ConstraintViolation, NotFound, ValidationError
from ims.time_utils import coerce_business_date
from .audit_service import append_audit, MODULE_PURCHASE, ACTION_STOCK_IN
from .concurrency import run_atomic
from .document_service import next_document_number
from .stock_service import adjust_stock, _ensure_product


def record_purchase(
    *,
    product_id: int,
    quantity: int,
    purchase_price_cents: int,
    created_by: str,
    supplier_name: str | None = None,
    purchase_date=None,
    purchase_id: str | None = None,
) -> Purchase:
    """
    Record goods received from a supplier.

    Args:
        product_id: Product being restocked
        quantity: Units received (must be > 0)
        purchase_price_cents: Unit cost paid (cents, >= 0)
        created_by: Actor recorded on the purchase and its audit entry
        supplier_name: Optional supplier
        purchase_date: date / ISO string; defaults to today (UTC)
        purchase_id: Caller-supplied id; a PUR-###### number is allocated if omitted

    Returns:
        The persisted Purchase

    Raises:
        ValidationError: non-positive quantity, negative price, bad date
        NotFound: unknown product
        ConstraintViolation: purchase_id already used
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    if isinstance(purchase_price_cents, bool) or not isinstance(purchase_price_cents, int) or purchase_price_cents < 0:
        raise ValidationError("purchase_price_cents must be a non-negative integer")
    if not created_by:
        raise ValidationError("created_by is required")
    try:
        purchased_on = coerce_business_date(purchase_date)
    except ValueError:
        raise ValidationError("purchase_date must be an ISO-8601 date")

    def _op():
        if purchase_id is not None and db.session.get(Purchase, purchase_id) is not None:
            raise ConstraintViolation(f"Purchase {purchase_id} already exists")

        product = _ensure_product(product_id)

        purchase = Purchase(
            id=purchase_id or next_document_number(document_type="PURCHASE", prefix="PUR"),
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            purchase_price_cents=purchase_price_cents,
            total_cost_cents=quantity * purchase_price_cents,
            supplier_name=supplier_name,
            purchase_date=purchased_on,
            created_by=created_by,
        )
        db.session.add(purchase)
        db.session.flush()

        new_stock = adjust_stock(product.id, quantity)

        append_audit(
            target_id=purchase.id,
            module=MODULE_PURCHASE,
            action=ACTION_STOCK_IN,
            old_state=None,
            new_state=purchase.to_dict(),
            changed_by=created_by,
        )

        current_app.logger.info(
            "Purchase %s recorded: product=%s qty=%s stock=%s",
            purchase.id, product.id, quantity, new_stock,
        )
        return purchase

    return run_atomic(_op, label="purchase record")


def get_purchase(purchase_id: str) -> Purchase:
    purchase = db.session.query(Purchase).filter_by(id=purchase_id).first()
    if purchase is None:
        raise NotFound("Purchase", purchase_id)
    return purchase


def list_purchases(product_id: int | None = None) -> list[Purchase]:
    """Newest purchase date first."""
    query = db.session.query(Purchase)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.created_at.desc(), Purchase.id.desc()).all()
