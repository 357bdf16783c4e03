# Overview: Service-layer operations for the audit trail; append-only before/after records.

from __future__ import annotations

from typing import Any, Optional

from flask import current_app

from ..extensions import db
from ..models import AuditLog
from ..errors import ValidationError
from ims.time_utils import utcnow
"""
Audit Trail Invariants (authoritative)

- Append-only: no updates/deletes of existing rows.
- No domain/business logic in the audit trail itself.
- Entries are written inside the same DB transaction as the mutation they record;
  append_audit() flushes but never commits, so a failed append aborts the caller's unit.
- old_state/new_state are JSON snapshots (None for creates/deletes respectively).
"""

MODULE_CATEGORY = "Category"
MODULE_INVENTORY = "Inventory"
MODULE_ORDER = "Order"
MODULE_FINANCIAL = "Financial"
MODULE_PURCHASE = "Purchase"
MODULE_EXPENSE = "Expense"

VALID_MODULES = [
    MODULE_CATEGORY,
    MODULE_INVENTORY,
    MODULE_ORDER,
    MODULE_FINANCIAL,
    MODULE_PURCHASE,
    MODULE_EXPENSE,
]

ACTION_CREATE = "CREATE"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"
ACTION_STOCK_IN = "STOCK_IN"
ACTION_STATUS_CHANGE = "STATUS_CHANGE"
ACTION_PAYMENT = "PAYMENT"

VALID_ACTIONS = [
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
    ACTION_STOCK_IN,
    ACTION_STATUS_CHANGE,
    ACTION_PAYMENT,
]


def append_audit(
    *,
    target_id,
    module: str,
    action: str,
    old_state: Optional[dict[str, Any]],
    new_state: Optional[dict[str, Any]],
    changed_by: str,
) -> AuditLog:
    """
    Append-only audit entry.

    - No domain logic here.
    - Flushes so the row id is assigned; the caller's unit of work commits.
    """
    if module not in VALID_MODULES:
        raise ValidationError(f"Invalid audit module: {module}. Must be one of {VALID_MODULES}")
    if action not in VALID_ACTIONS:
        raise ValidationError(f"Invalid audit action: {action}. Must be one of {VALID_ACTIONS}")
    if not changed_by:
        raise ValidationError("changed_by is required for audit entries")

    entry = AuditLog(
        target_id=str(target_id),
        module=module,
        action=action,
        old_state=old_state,
        new_state=new_state,
        changed_by=changed_by,
        timestamp=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_recent(limit: int | None = None) -> list[AuditLog]:
    """Newest entries first. No pagination beyond the limit."""
    if limit is None:
        limit = current_app.config.get("AUDIT_RECENT_LIMIT", 100)
    if limit <= 0:
        raise ValidationError("limit must be positive")

    return (
        db.session.query(AuditLog)
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def list_for_target(target_id, module: str | None = None) -> list[AuditLog]:
    """Full history of one record, oldest first."""
    query = db.session.query(AuditLog).filter_by(target_id=str(target_id))
    if module is not None:
        query = query.filter_by(module=module)
    return query.order_by(AuditLog.id.asc()).all()
