"""
Typed views over the JSON sub-objects stored on an Order.

The orders table keeps delivery, payment, financials and meta as JSON columns
(one column each) so the stored shape stays a plain document. Service code
never edits those dicts in place: it builds one of these frozen value types,
derives a new one, and writes it back whole with to_dict().
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


# =============================================================================
# DELIVERY STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"
STATUS_PROCESSING = "Processing"
STATUS_SHIPPED = "Shipped"
STATUS_DELIVERED = "Delivered"
STATUS_CANCELLED = "Cancelled"
STATUS_RETURNED = "Returned"

# Statuses that hand reserved stock back to the ledger
STOCK_RELEASING_STATUSES = frozenset({STATUS_CANCELLED, STATUS_RETURNED})

VALID_DELIVERY_STATUSES = [
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
    STATUS_RETURNED,
]


def is_active_status(status: str) -> bool:
    """Active orders hold their quantity out of current_stock."""
    return status not in STOCK_RELEASING_STATUSES


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "Unpaid"
PAYMENT_STATUS_PARTIAL = "Partial Paid"
PAYMENT_STATUS_PAID = "Paid"

DISCOUNT_FLAT = "FLAT"
DISCOUNT_PERCENT = "PERCENT"


@dataclass(frozen=True)
class Delivery:
    status: str = STATUS_PENDING
    address: str | None = None
    charge_cents: int = 0

    @classmethod
    def from_dict(cls, data: dict | None) -> "Delivery":
        data = data or {}
        return cls(
            status=data.get("status", STATUS_PENDING),
            address=data.get("address"),
            charge_cents=int(data.get("charge_cents") or 0),
        )

    def with_status(self, status: str) -> "Delivery":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "address": self.address,
            "charge_cents": self.charge_cents,
        }


@dataclass(frozen=True)
class PaymentEntry:
    """One payment received against an order."""
    id: str
    amount_cents: int
    method: str
    date: str
    received_by: str
    transaction_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentEntry":
        return cls(
            id=data["id"],
            amount_cents=int(data["amount_cents"]),
            method=data["method"],
            date=data["date"],
            received_by=data["received_by"],
            transaction_id=data.get("transaction_id"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "transaction_id": self.transaction_id,
            "date": self.date,
            "received_by": self.received_by,
        }


def derive_payment_status(paid_cents: int, due_cents: int) -> str:
    """
    PAYMENT STATUS:
    - Paid: nothing left to collect (due <= 0, overpayment included)
    - Partial Paid: something collected, something still due
    - Unpaid: nothing collected yet
    """
    if due_cents <= 0:
        return PAYMENT_STATUS_PAID
    if paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


@dataclass(frozen=True)
class PaymentState:
    paid_amount_cents: int = 0
    due_amount_cents: int = 0
    status: str = PAYMENT_STATUS_UNPAID
    history: tuple[PaymentEntry, ...] = field(default_factory=tuple)

    @classmethod
    def opening(cls, net_payable_cents: int) -> "PaymentState":
        return cls(
            paid_amount_cents=0,
            due_amount_cents=net_payable_cents,
            status=derive_payment_status(0, net_payable_cents),
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "PaymentState":
        data = data or {}
        return cls(
            paid_amount_cents=int(data.get("paid_amount_cents") or 0),
            due_amount_cents=int(data.get("due_amount_cents") or 0),
            status=data.get("status", PAYMENT_STATUS_UNPAID),
            history=tuple(PaymentEntry.from_dict(h) for h in data.get("history") or []),
        )

    def apply(self, entry: PaymentEntry, net_payable_cents: int) -> "PaymentState":
        """Add a payment; due is recomputed from net payable, never decremented in place."""
        paid = self.paid_amount_cents + entry.amount_cents
        due = net_payable_cents - paid
        return PaymentState(
            paid_amount_cents=paid,
            due_amount_cents=due,
            status=derive_payment_status(paid, due),
            history=self.history + (entry,),
        )

    def to_dict(self) -> dict:
        return {
            "paid_amount_cents": self.paid_amount_cents,
            "due_amount_cents": self.due_amount_cents,
            "status": self.status,
            "history": [h.to_dict() for h in self.history],
        }


@dataclass(frozen=True)
class Discount:
    type: str = DISCOUNT_FLAT
    value: int = 0  # cents for FLAT, whole percent for PERCENT

    @classmethod
    def from_dict(cls, data: dict | None) -> "Discount":
        data = data or {}
        value = data.get("value")
        if value is None:
            value = 0
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"discount value must be an integer, got {value!r}")
        return cls(
            type=str(data.get("type") or DISCOUNT_FLAT).upper(),
            value=value,
        )

    def amount_for(self, subtotal_cents: int) -> int:
        if self.type == DISCOUNT_PERCENT:
            # nearest-cent rounding (half-up)
            amount = (subtotal_cents * self.value + 50) // 100
        else:
            amount = self.value
        return max(0, min(amount, subtotal_cents))

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value}


@dataclass(frozen=True)
class Financials:
    subtotal_cents: int = 0
    discount_cents: int = 0
    delivery_charge_cents: int = 0
    net_payable_cents: int = 0

    @classmethod
    def compute(cls, subtotal_cents: int, discount: Discount, delivery_charge_cents: int) -> "Financials":
        discount_cents = discount.amount_for(subtotal_cents)
        return cls(
            subtotal_cents=subtotal_cents,
            discount_cents=discount_cents,
            delivery_charge_cents=delivery_charge_cents,
            net_payable_cents=subtotal_cents - discount_cents + delivery_charge_cents,
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "Financials":
        data = data or {}
        return cls(
            subtotal_cents=int(data.get("subtotal_cents") or 0),
            discount_cents=int(data.get("discount_cents") or 0),
            delivery_charge_cents=int(data.get("delivery_charge_cents") or 0),
            net_payable_cents=int(data.get("net_payable_cents") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "delivery_charge_cents": self.delivery_charge_cents,
            "net_payable_cents": self.net_payable_cents,
        }


@dataclass(frozen=True)
class OrderMeta:
    order_date: str
    received_by: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict | None) -> "OrderMeta":
        data = dict(data or {})
        return cls(
            order_date=data.pop("order_date", None),
            received_by=data.pop("received_by", None),
            extra=data,
        )

    def to_dict(self) -> dict:
        return {**self.extra, "order_date": self.order_date, "received_by": self.received_by}
