from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


class Item(db.Model):
    """
    Tracked physical good with exactly one current holder.

    - id comes from the "item" sequence (starts at 1, never reused)
    - origin_manufacturer is set once at registration
    - current_holder/status are written only by custody_service
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_holder_status", "current_holder", "status"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)

    current_holder = db.Column(db.String(128), nullable=False, index=True)
    origin_manufacturer = db.Column(db.String(128), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, index=True)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    history = db.relationship(
        "HistoryEntry",
        back_populates="item",
        order_by="HistoryEntry.sequence",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} status={self.status} holder={self.current_holder!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "current_holder": self.current_holder,
            "origin_manufacturer": self.origin_manufacturer,
            "status": self.status,
            "last_updated": to_utc_z(self.last_updated),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class HistoryEntry(db.Model):
    """
    One custody event for an item.

    IMMUTABLE: Append-only. Sequence 0 is the manufacture entry
    (from_identity=None); entry[i].to_identity == entry[i+1].from_identity.
    """
    __tablename__ = "history_entries"
    __table_args__ = (
        db.UniqueConstraint("item_id", "sequence", name="uq_history_item_sequence"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    from_identity = db.Column(db.String(128), nullable=True)
    to_identity = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.String(1024), nullable=False, default="")

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    item = db.relationship("Item", back_populates="history")

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "sequence": self.sequence,
            "from": self.from_identity,
            "to": self.to_identity,
            "status": self.status,
            "timestamp": to_utc_z(self.occurred_at),
            "notes": self.notes,
        }


@event.listens_for(HistoryEntry, "before_update")
def _reject_history_update(mapper, connection, target):
    raise RuntimeError(f"History entry {target.id} is append-only and cannot be updated")


@event.listens_for(HistoryEntry, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise RuntimeError(f"History entry {target.id} is append-only and cannot be deleted")
