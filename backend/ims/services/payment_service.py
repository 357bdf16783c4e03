# Overview: Service-layer operations for order payments; encapsulates business logic and database work.

"""
Payment Ledger

WHY: Orders are often paid in instalments (advance, then balance on delivery).
Each payment is appended to the order's payment history and the balance is
re-derived from net payable.

DESIGN PRINCIPLES:
- Additive only: paid_amount never decreases, there is no void/refund path
- Derived balance: due = net_payable - paid, recomputed on every payment
- Overpayment is recorded as-is (due goes negative, status is Paid)
- Every payment writes a Financial/PAYMENT audit entry with before/after snapshots
"""

from flask import current_app

from ..extensions import db
from ..models import Order
from ..models.order_values import PaymentEntry
from ..errors import NotFound, ValidationError
from ims.time_utils import utcnow, to_utc_z
from .audit_service import append_audit, MODULE_FINANCIAL, ACTION_PAYMENT
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "Cash"
METHOD_CARD = "Card"
METHOD_BANK_TRANSFER = "Bank Transfer"
METHOD_MOBILE_BANKING = "Mobile Banking"
METHOD_CHEQUE = "Cheque"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CARD,
    METHOD_BANK_TRANSFER,
    METHOD_MOBILE_BANKING,
    METHOD_CHEQUE,
]


# =============================================================================
# PAYMENT APPLICATION
# =============================================================================

def apply_payment(
    *,
    order_id: str,
    amount_cents: int,
    method: str,
    received_by: str,
    transaction_id: str | None = None,
) -> Order:
    """
    Apply a payment to an order.

    Args:
        order_id: Order being paid
        amount_cents: Amount received (cents, > 0)
        method: Cash, Card, Bank Transfer, Mobile Banking, Cheque
        received_by: Actor receiving the payment
        transaction_id: Card/bank/mobile reference (optional)

    Returns:
        The order with its updated payment state

    Raises:
        ValidationError: non-positive amount, unknown method, missing actor
        NotFound: unknown order
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("Payment amount must be a positive integer (cents)")
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")
    if not received_by:
        raise ValidationError("received_by is required")

    def _op():
        # Locked: concurrent payments on one order must not both read the same paid amount
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFound("Order", order_id)

        old_state = order.payment_state
        entry = PaymentEntry(
            id=next_document_number(document_type="PAYMENT", prefix="PAY"),
            amount_cents=amount_cents,
            method=method,
            transaction_id=transaction_id,
            date=to_utc_z(utcnow()),
            received_by=received_by,
        )
        new_state = old_state.apply(entry, order.financial_summary.net_payable_cents)

        order.payment_state = new_state
        db.session.flush()

        append_audit(
            target_id=order.id,
            module=MODULE_FINANCIAL,
            action=ACTION_PAYMENT,
            old_state=old_state.to_dict(),
            new_state=new_state.to_dict(),
            changed_by=received_by,
        )

        current_app.logger.info(
            "Payment %s applied to order %s: amount=%s paid=%s due=%s",
            entry.id, order.id, amount_cents, new_state.paid_amount_cents, new_state.due_amount_cents,
        )
        return order

    return run_atomic(_op, label="payment apply")


# =============================================================================
# REPORTING
# =============================================================================

def get_payment_summary(order_id: str) -> dict:
    """
    Payment position for an order.

    Returns:
        - net_payable_cents: Amount the order totals to after discount and delivery
        - paid_amount_cents: Amount collected so far
        - due_amount_cents: Amount still owed (negative when overpaid)
        - status: Unpaid, Partial Paid, Paid
        - history: Payment entries, oldest first
    """
    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFound("Order", order_id)

    state = order.payment_state
    return {
        "order_id": order.id,
        "net_payable_cents": order.financial_summary.net_payable_cents,
        "paid_amount_cents": state.paid_amount_cents,
        "due_amount_cents": state.due_amount_cents,
        "status": state.status,
        "history": [h.to_dict() for h in state.history],
    }
