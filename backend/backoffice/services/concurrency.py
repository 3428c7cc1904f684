# Overview: Unit-of-work, row locking and retry helpers shared by every write path.

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

T = TypeVar("T")


class ConcurrentUpdateError(Exception):
    """
    Raised when a concurrent writer won a race the current unit of work
    cannot recover from in place (e.g. two requests creating the same
    sequence row). The whole unit of work is retried from scratch.
    """
    pass


RETRYABLE_ERRORS = (OperationalError, StaleDataError, ConcurrentUpdateError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (the whole database is locked
    by the writer instead), but PostgreSQL/MySQL will honor it.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work() -> Iterator[Session]:
    """
    One atomic unit of work.

    Yields the session every write in the block must go through. Commits on
    normal exit; rolls back and re-raises on any exception, so a failure on
    the Nth item of a multi-item operation leaves nothing of items 1..N-1.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def run_with_retry(func: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts), StaleDataError
    and ConcurrentUpdateError. Business errors propagate immediately.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning("Retrying unit of work after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func: Callable[[Session], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """Run func(session) inside a unit of work, retrying the whole unit on lock conflicts."""
    def _op() -> T:
        with unit_of_work() as session:
            return func(session)

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
