# Overview: Atomic named counters (next item id).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Sequence


ITEM_SEQUENCE = "item"


class SequenceError(Exception):
    """Raised when sequence operations fail."""
    pass


def next_sequence_value(name: str) -> int:
    """
    Atomically allocate the next value of a named sequence (first value is 1).

    Uses a single UPDATE ... SET next_value = next_value + 1 so concurrent
    allocators never observe the same value. Must run inside the caller's
    transaction; nothing is consumed unless that transaction commits.
    """
    if not name:
        raise SequenceError("sequence name is required")

    stmt = (
        update(Sequence)
        .where(Sequence.name == name)
        .values(next_value=Sequence.next_value + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = db.session.query(Sequence.next_value).filter_by(name=name).scalar()
        return current - 1

    db.session.add(Sequence(name=name, next_value=2))
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another writer created the row first; run_atomic retries the whole operation
        raise StaleDataError(f"Sequence {name!r} was created concurrently") from exc
    return 1


def peek_next_value(name: str) -> int:
    """Next value that would be allocated, without allocating it."""
    value = db.session.query(Sequence.next_value).filter_by(name=name).scalar()
    return value if value is not None else 1
