# Overview: Retry and row-locking helpers for writes against the embedded database.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


def lock_for_update(query):
    """
    Row-level lock for read-modify-write sequences.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; other engines honor it.
    """
    return query.with_for_update()


def run_with_retry(func, session, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run a unit of work, retrying transient storage failures.

    OperationalError covers "database is locked" from SQLite; StaleDataError
    is raised by the version_id optimistic lock on variants and customers.
    The session is rolled back before each retry so func starts clean.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
