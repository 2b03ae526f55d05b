# Overview: Transaction helpers shared by the intake and sale workflows.

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..validation import BookstallError

T = TypeVar("T")


class TransactionFailed(BookstallError):
    """The store rejected or lost the transaction; nothing was written."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_serialized_write covers it there.
    """
    return query.with_for_update()


def begin_serialized_write() -> None:
    """
    Take the database write lock before the first read of a check-then-act sequence.

    On SQLite this is BEGIN IMMEDIATE: concurrent writers queue on the lock
    (bounded by the connection busy timeout) instead of both reading stale state.
    Other dialects rely on lock_for_update plus unique constraints.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_in_transaction(op: Callable[[], T], *, action: str) -> T:
    """
    Run op() as one all-or-nothing unit: commit on success, roll back on any error.

    Domain errors propagate unchanged. Unexpected store failures are reported
    as TransactionFailed. Nothing is retried here: a retried checkout could
    sell or charge twice, so the caller decides.
    """
    try:
        result = op()
        db.session.commit()
        return result
    except BookstallError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise TransactionFailed(
            f"{action} failed: the database rejected the transaction",
            details={"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
