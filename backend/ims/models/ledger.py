from __future__ import annotations

from ..extensions import db
from ims.time_utils import to_utc_z, to_iso_date


class Purchase(db.Model):
    """
    Incoming stock event (goods bought from a supplier).

    Immutable once written. Each row corresponds to exactly one
    +quantity adjustment of the product's current_stock.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchases_quantity_positive"),
        db.Index("ix_purchases_purchase_date", "purchase_date"),
    )

    id = db.Column(db.String(50), primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)

    supplier_name = db.Column(db.String(255), nullable=True)
    purchase_date = db.Column(db.Date, nullable=False)

    created_by = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "purchase_price_cents": self.purchase_price_cents,
            "total_cost_cents": self.total_cost_cents,
            "supplier_name": self.supplier_name,
            "purchase_date": to_iso_date(self.purchase_date),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """Operating expense. Created or deleted, never edited."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        db.Index("ix_expenses_date", "date"),
    )

    id = db.Column(db.String(50), primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.Date, nullable=False)

    created_by = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "type": self.type,
            "description": self.description,
            "date": to_iso_date(self.date),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class AuditLog(db.Model):
    """
    Append-only before/after record of every ledger mutation.

    Rows are inserted in the same DB transaction as the change they describe
    and are never updated or deleted. id is autoincrement, so it is monotonic
    and is the ordering key for reads; timestamp is informational.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_module_target", "module", "target_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    target_id = db.Column(db.String(50), nullable=False, index=True)
    module = db.Column(db.String(32), nullable=False, index=True)  # Category, Inventory, Order, Financial, Purchase, Expense
    action = db.Column(db.String(32), nullable=False, index=True)  # CREATE, UPDATE, DELETE, STOCK_IN, STATUS_CHANGE, PAYMENT

    old_state = db.Column(db.JSON, nullable=True)
    new_state = db.Column(db.JSON, nullable=True)

    changed_by = db.Column(db.String(255), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "target_id": self.target_id,
            "module": self.module,
            "action": self.action,
            "old_state": self.old_state,
            "new_state": self.new_state,
            "changed_by": self.changed_by,
            "timestamp": to_utc_z(self.timestamp),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-type document sequences
    (orders, purchases, expenses, payment receipts).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
