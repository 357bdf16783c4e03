# Overview: Service-layer operations for concurrency; the unit of work every ledger mutation runs in.

from __future__ import annotations

from flask import current_app
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import LedgerError, ConstraintViolation, StorageFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; serialize_sqlite_writes()
    covers that backend by taking the write lock at BEGIN.
    """
    return query.with_for_update()


def serialize_sqlite_writes(engine) -> None:
    """
    Make every SQLite transaction BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two transactions can both
    read, then deadlock promoting to a write lock and one fails with
    "database is locked" without waiting. BEGIN IMMEDIATE takes the write
    lock up front, so the second writer waits (busy timeout) and then reads
    the committed stock value. No-op for other backends.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def run_atomic(func, *, label: str = "ledger operation"):
    """
    Execute func as one unit of work: commit on success, roll back on anything else.

    - LedgerError subclasses are re-raised unchanged (business rejection)
    - IntegrityError becomes ConstraintViolation
    - any other SQLAlchemyError (lost connection, StaleDataError, ...) becomes StorageFailure

    No retry: callers may re-issue the whole operation.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except LedgerError as exc:
        db.session.rollback()
        current_app.logger.info("%s rejected: %s %s", label, exc.message, exc.details)
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("%s violated a database constraint: %s", label, exc.orig)
        raise ConstraintViolation(
            "Write conflicts with existing data",
            details={"error": str(exc.orig)},
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed in storage", label)
        raise StorageFailure(f"{label} could not be committed") from exc
    except Exception:
        db.session.rollback()
        raise
