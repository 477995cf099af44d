# Overview: Outbound notifications; durable outbox rows plus in-process subscribers.

from __future__ import annotations

import json
from typing import Callable, Optional

from flask import current_app

from ..extensions import db
from ..models import Notification
from ..time_utils import utcnow

"""
Notification invariants

- Outbox rows are appended inside the mutating transaction (never on their own).
- In-process subscribers see a notification only after its transaction commits,
  in outbox id order.
- Delivery is fire-and-forget: a failing subscriber is logged and skipped.
- Remote subscribers poll list_notifications(after_id=...) for at-least-once delivery.
"""

REQUESTED = "Requested"
APPROVED = "Approved"
REJECTED = "Rejected"
REGISTERED = "Registered"
ITEM_REGISTERED = "ItemRegistered"
TRANSFERRED = "Transferred"

EVENT_TYPES = (REQUESTED, APPROVED, REJECTED, REGISTERED, ITEM_REGISTERED, TRANSFERRED)

_STAGED_KEY = "staged_notifications"

_subscribers: list[tuple[Optional[str], Callable[[dict], None]]] = []


def subscribe(callback: Callable[[dict], None], event_type: str | None = None) -> Callable[[dict], None]:
    """Register callback for one event type (or all when event_type is None)."""
    if event_type is not None and event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown notification type: {event_type}")
    _subscribers.append((event_type, callback))
    return callback


def unsubscribe(callback: Callable[[dict], None]) -> None:
    _subscribers[:] = [(t, cb) for (t, cb) in _subscribers if cb is not callback]


def clear_subscribers() -> None:
    _subscribers.clear()


def record_notification(
    event_type: str,
    *,
    item_id: int | None = None,
    identity: str | None = None,
    **data,
) -> Notification:
    """
    Append an outbox row in the current transaction and stage it for delivery.

    No commit here; run_atomic commits and then publishes.
    """
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown notification type: {event_type}")

    notification = Notification(
        event_type=event_type,
        item_id=item_id,
        identity=identity,
        payload=json.dumps(data, sort_keys=True),
        occurred_at=utcnow(),
    )
    db.session.add(notification)
    db.session.info.setdefault(_STAGED_KEY, []).append(notification)
    return notification


def take_staged() -> list[dict]:
    """Serialize and clear staged notifications (call after flush, before commit)."""
    staged = db.session.info.pop(_STAGED_KEY, [])
    return [n.to_dict() for n in staged]


def discard_staged() -> None:
    db.session.info.pop(_STAGED_KEY, None)


def publish(notifications: list[dict]) -> None:
    for notification in notifications:
        for event_type, callback in list(_subscribers):
            if event_type is not None and event_type != notification["event_type"]:
                continue
            try:
                callback(notification)
            except Exception:
                current_app.logger.exception(
                    "Notification subscriber %r failed for %s #%s",
                    callback,
                    notification["event_type"],
                    notification["id"],
                )


def list_notifications(
    *,
    after_id: int | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[Notification]:
    q = db.session.query(Notification)
    if after_id is not None:
        q = q.filter(Notification.id > after_id)
    if event_type:
        q = q.filter(Notification.event_type == event_type)
    limit = max(1, min(limit, 500))
    return q.order_by(Notification.id.asc()).limit(limit).all()
