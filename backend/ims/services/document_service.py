# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..errors import ValidationError


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Atomically allocate the next document number for a type (e.g. ORD-000042).

    Runs inside the caller's unit of work: the sequence bump commits or rolls
    back together with the document it numbers. The UPDATE takes the row lock;
    a missing sequence row is created under a savepoint so a concurrent
    creator does not abort the caller's transaction.
    """
    if not document_type:
        raise ValidationError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, next_number=2))
            return f"{prefix}-{1:0{pad}d}"
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return f"{prefix}-{current - 1:0{pad}d}"
