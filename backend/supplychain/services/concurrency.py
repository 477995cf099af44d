# Overview: Service-layer transaction boundary; every mutating operation runs through run_atomic.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from . import notification_service


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id columns
    on Item/SystemState/RegistrationRequest do the serializing.
    """
    return query.with_for_update()


def _retry_policy(attempts, backoff_base):
    config = current_app.config
    if attempts is None:
        attempts = config.get("RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("RETRY_BACKOFF_BASE", 0.1)
    return max(1, int(attempts)), float(backoff_base)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            notification_service.discard_staged()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent write conflict (attempt %d/%d): %s",
                attempt + 1,
                attempts,
                exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))


def run_atomic(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func() and commit as one unit.

    - Any exception rolls back everything func() wrote (item, history, outbox).
    - Write conflicts re-run func() from scratch against freshly committed
      state, so a losing concurrent transfer re-validates and fails cleanly.
    - Notifications staged by func() are delivered to in-process subscribers
      only after the commit succeeds.
    """
    def _op():
        try:
            result = func()
            db.session.flush()
            staged = notification_service.take_staged()
            db.session.commit()
        except Exception:
            db.session.rollback()
            notification_service.discard_staged()
            raise
        notification_service.publish(staged)
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
