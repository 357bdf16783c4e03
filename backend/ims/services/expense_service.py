# Overview: Service-layer operations for expenses; append-only expense ledger.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..errors import ConstraintViolation, NotFound, ValidationError
from ims.time_utils import coerce_business_date
from .audit_service import append_audit, MODULE_EXPENSE, ACTION_CREATE, ACTION_DELETE
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number


def create_expense(
    *,
    amount_cents: int,
    type: str,
    created_by: str,
    description: str | None = None,
    date=None,
    expense_id: str | None = None,
) -> Expense:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("amount_cents must be a positive integer")
    expense_type = (type or "").strip()
    if not expense_type:
        raise ValidationError("Expense type is required")
    if not created_by:
        raise ValidationError("created_by is required")
    try:
        spent_on = coerce_business_date(date)
    except ValueError:
        raise ValidationError("date must be an ISO-8601 date")

    def _op():
        if expense_id is not None and db.session.get(Expense, expense_id) is not None:
            raise ConstraintViolation(f"Expense {expense_id} already exists")

        expense = Expense(
            id=expense_id or next_document_number(document_type="EXPENSE", prefix="EXP"),
            amount_cents=amount_cents,
            type=expense_type,
            description=description,
            date=spent_on,
            created_by=created_by,
        )
        db.session.add(expense)
        db.session.flush()

        append_audit(
            target_id=expense.id,
            module=MODULE_EXPENSE,
            action=ACTION_CREATE,
            old_state=None,
            new_state=expense.to_dict(),
            changed_by=created_by,
        )
        return expense

    return run_atomic(_op, label="expense create")


def delete_expense(*, expense_id: str, deleted_by: str) -> None:
    """Delete an expense; the audit entry keeps the pre-delete row as old_state."""
    if not deleted_by:
        raise ValidationError("deleted_by is required")

    def _op():
        expense = lock_for_update(db.session.query(Expense).filter_by(id=expense_id)).first()
        if expense is None:
            raise NotFound("Expense", expense_id)

        snapshot = expense.to_dict()
        db.session.delete(expense)
        db.session.flush()

        append_audit(
            target_id=expense_id,
            module=MODULE_EXPENSE,
            action=ACTION_DELETE,
            old_state=snapshot,
            new_state=None,
            changed_by=deleted_by,
        )

    run_atomic(_op, label="expense delete")


def get_expense(expense_id: str) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id).first()
    if expense is None:
        raise NotFound("Expense", expense_id)
    return expense


def list_expenses() -> list[Expense]:
    return (
        db.session.query(Expense)
        .order_by(Expense.date.desc(), Expense.created_at.desc(), Expense.id.desc())
        .all()
    )
