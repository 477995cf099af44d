# Overview: Active-pending registration index with swap-and-pop removal.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import PendingRequestSlot

"""
Order semantics (deliberate, callers must not assume FIFO):

- push appends at position n
- remove moves the last identity into the vacated position, then drops the
  last slot

    [a, b, c, d] remove(b) -> [a, d, c]

Callers must hold the registry (system_service.bump_registry_revision) so
position rewrites never interleave.
"""


def push(identity: str) -> int:
    size = db.session.query(func.count(PendingRequestSlot.position)).scalar() or 0
    db.session.add(PendingRequestSlot(position=size, identity=identity))
    db.session.flush()
    return size


def remove(identity: str) -> bool:
    slot = db.session.query(PendingRequestSlot).filter_by(identity=identity).first()
    if slot is None:
        return False

    last = (
        db.session.query(PendingRequestSlot)
        .order_by(PendingRequestSlot.position.desc())
        .first()
    )
    if last.position == slot.position:
        db.session.delete(slot)
        db.session.flush()
        return True

    moved_identity = last.identity
    db.session.delete(last)
    db.session.flush()
    slot.identity = moved_identity
    db.session.flush()
    return True


def identities() -> list[str]:
    rows = db.session.query(PendingRequestSlot.identity).order_by(PendingRequestSlot.position).all()
    return [identity for (identity,) in rows]


def contains(identity: str) -> bool:
    return db.session.query(PendingRequestSlot.position).filter_by(identity=identity).first() is not None
