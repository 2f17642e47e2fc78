# Overview: Retry helpers for operations that can lose an optimistic-concurrency race.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import PersistenceError


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, StaleDataError)):
        return True
    return isinstance(exc, PersistenceError) and exc.retryable


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks), StaleDataError (version_id
    conflicts) and retryable PersistenceErrors (inventory compare-and-set
    conflicts). Domain errors propagate immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except Exception as exc:
            if not _is_retryable(exc):
                raise
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
