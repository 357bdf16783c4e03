"""
Order Engine - order creation and the delivery-status state machine

WHY: An order reserves stock the moment it is placed. Its delivery status
decides whether that stock stays reserved, so every status change is also
a potential stock movement and must commit together with it.

STATE MACHINE:
- Pending is the initial status
- Confirmed, Processing, Shipped, Delivered are "active": quantity stays out of stock
- Cancelled and Returned release the quantity back to stock
- active -> released: +quantity
- released -> active: -quantity (fails with InsufficientStock, order keeps its status)
- active -> active, released -> released: no stock effect
- same status again: no stock effect and no audit entry
"""

from flask import current_app

from ..extensions import db
from ..models import Order
from ..models.order_values import (
    Delivery,
    Discount,
    Financials,
    OrderMeta,
    PaymentState,
    DISCOUNT_FLAT,
    DISCOUNT_PERCENT,
    STATUS_PENDING,
    VALID_DELIVERY_STATUSES,
    is_active_status,
)
from ..errors import ConstraintViolation, NotFound, ValidationError
from ims.time_utils import coerce_business_date, to_iso_date
from .audit_service import append_audit, MODULE_ORDER, ACTION_CREATE, ACTION_STATUS_CHANGE
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number
from .stock_service import adjust_stock, _ensure_product


def _validate_discount(discount: Discount) -> None:
    if discount.type not in (DISCOUNT_FLAT, DISCOUNT_PERCENT):
        raise ValidationError(f"Invalid discount type: {discount.type}. Must be FLAT or PERCENT")
    if discount.value < 0:
        raise ValidationError("discount value cannot be negative")
    if discount.type == DISCOUNT_PERCENT and discount.value > 100:
        raise ValidationError("percent discount cannot exceed 100")


def _validate_status(status: str) -> None:
    if status not in VALID_DELIVERY_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of {VALID_DELIVERY_STATUSES}")


def create_order(
    *,
    product_id: int,
    quantity: int,
    received_by: str,
    unit_price_cents: int | None = None,
    customer: dict | None = None,
    discount: dict | None = None,
    delivery_charge_cents: int = 0,
    delivery_address: str | None = None,
    ref_numbers: dict | None = None,
    order_date=None,
    order_id: str | None = None,
) -> Order:
    """
    Place an order and reserve its stock.

    Args:
        product_id: Product ordered
        quantity: Units ordered (> 0, fixed for the life of the order)
        received_by: Actor taking the order (stored in meta and the audit entry)
        unit_price_cents: Defaults to the product's selling price
        customer: Free-form customer details (name, phone, ...)
        discount: {"type": "FLAT"|"PERCENT", "value": int}
        delivery_charge_cents: Added to net payable
        ref_numbers: External reference numbers (invoice, courier, ...)
        order_date: date / ISO string; defaults to today (UTC)
        order_id: Caller-supplied id; an ORD-###### number is allocated if omitted

    Raises:
        InsufficientStock: current stock is below quantity (nothing is written)
        NotFound: unknown product
        ValidationError: bad quantity, price, discount or date
        ConstraintViolation: order_id already used
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    if unit_price_cents is not None and (
        isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0
    ):
        raise ValidationError("unit_price_cents must be a non-negative integer")
    if isinstance(delivery_charge_cents, bool) or not isinstance(delivery_charge_cents, int) or delivery_charge_cents < 0:
        raise ValidationError("delivery_charge_cents must be a non-negative integer")
    if not received_by:
        raise ValidationError("received_by is required")
    try:
        discount_terms = Discount.from_dict(discount)
    except (TypeError, ValueError):
        raise ValidationError("discount value must be an integer")
    _validate_discount(discount_terms)
    try:
        ordered_on = coerce_business_date(order_date)
    except ValueError:
        raise ValidationError("order_date must be an ISO-8601 date")

    def _op():
        if order_id is not None and db.session.get(Order, order_id) is not None:
            raise ConstraintViolation(f"Order {order_id} already exists")

        product = _ensure_product(product_id, lock=True)

        # Check and decrement in one conditional UPDATE; raises before anything is written
        new_stock = adjust_stock(product.id, -quantity)

        price = product.selling_price_cents if unit_price_cents is None else unit_price_cents
        subtotal = price * quantity
        financials = Financials.compute(subtotal, discount_terms, delivery_charge_cents)

        order = Order(
            id=order_id or next_document_number(document_type="ORDER", prefix="ORD"),
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price_cents=price,
            subtotal_cents=subtotal,
            ref_numbers=ref_numbers or {},
            customer=customer or {},
            discount=discount_terms.to_dict(),
            delivery=Delivery(
                status=STATUS_PENDING,
                address=delivery_address,
                charge_cents=delivery_charge_cents,
            ).to_dict(),
            payment=PaymentState.opening(financials.net_payable_cents).to_dict(),
            financials=financials.to_dict(),
            meta=OrderMeta(order_date=to_iso_date(ordered_on), received_by=received_by).to_dict(),
            order_date=ordered_on,
        )
        db.session.add(order)
        db.session.flush()

        append_audit(
            target_id=order.id,
            module=MODULE_ORDER,
            action=ACTION_CREATE,
            old_state=None,
            new_state=order.to_dict(),
            changed_by=received_by,
        )

        current_app.logger.info(
            "Order %s created: product=%s qty=%s stock=%s",
            order.id, product.id, quantity, new_stock,
        )
        return order

    return run_atomic(_op, label="order create")


def update_status(*, order_id: str, new_status: str, changed_by: str) -> Order:
    """
    Move an order to a new delivery status, reconciling stock.

    Returns:
        The order (unchanged when new_status equals the current status)

    Raises:
        ValidationError: unknown status or missing actor
        NotFound: unknown order
        InsufficientStock: re-activating a cancelled/returned order without stock
    """
    _validate_status(new_status)
    if not changed_by:
        raise ValidationError("changed_by is required")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFound("Order", order_id)

        old_status = order.status
        if old_status == new_status:
            return order

        was_active = is_active_status(old_status)
        now_active = is_active_status(new_status)
        if was_active and not now_active:
            adjust_stock(order.product_id, order.quantity)
        elif not was_active and now_active:
            adjust_stock(order.product_id, -order.quantity)

        order.delivery_info = order.delivery_info.with_status(new_status)
        db.session.flush()

        append_audit(
            target_id=order.id,
            module=MODULE_ORDER,
            action=ACTION_STATUS_CHANGE,
            old_state={"status": old_status},
            new_state={"status": new_status},
            changed_by=changed_by,
        )

        current_app.logger.info("Order %s status %s -> %s", order.id, old_status, new_status)
        return order

    return run_atomic(_op, label="order status change")


def get_order(order_id: str) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFound("Order", order_id)
    return order


def list_orders(*, status: str | None = None, product_id: int | None = None) -> list[Order]:
    """Newest order date first; status filtering happens on the decoded delivery JSON."""
    if status is not None:
        _validate_status(status)

    query = db.session.query(Order)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    orders = query.order_by(Order.order_date.desc(), Order.created_at.desc(), Order.id.desc()).all()

    if status is None:
        return orders
    return [o for o in orders if o.status == status]
