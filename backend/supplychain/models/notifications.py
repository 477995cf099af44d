from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class Notification(db.Model):
    """
    Outbound notification outbox.

    Written inside the same transaction as the mutation it announces, so a
    committed change always has its notification and a rolled-back one never
    does. Subscribers poll by id (at-least-once).
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_type_id", "event_type", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Requested, Approved, Rejected, Registered, ItemRegistered, Transferred
    event_type = db.Column(db.String(32), nullable=False, index=True)

    item_id = db.Column(db.Integer, nullable=True, index=True)
    identity = db.Column(db.String(128), nullable=True, index=True)

    payload = db.Column(db.Text, nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def data(self) -> dict:
        return json.loads(self.payload)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "item_id": self.item_id,
            "identity": self.identity,
            "data": self.data,
            "occurred_at": to_utc_z(self.occurred_at),
        }
