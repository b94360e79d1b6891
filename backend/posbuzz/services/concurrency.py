# Overview: Service-layer helpers for transactional locking around stock mutation.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Failures that mean "the store could not complete this transaction right now".
# Safe for a caller to retry; never raised for business-rule rejections.
TRANSIENT_DB_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the current transaction with the write lock already held.

    SQLite has no row locks, so BEGIN IMMEDIATE takes the database write
    lock up front; concurrent writers wait (busy timeout) instead of reading
    stale stock. Other dialects rely on lock_for_update instead.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
