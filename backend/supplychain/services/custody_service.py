# backend/supplychain/services/custody_service.py
"""
Custody ledger and history log.

WHY: Record who holds each item, allow only the current holder to hand it to
the next party in the chain, and keep an append-only history of every
handoff.

LIFECYCLE:
1. MANUFACTURED: register_item by a Manufacturer (history entry 0)
2. IN_TRANSIT:   Manufacturer -> Distributor
3. DELIVERED:    Distributor -> Retailer
4. SOLD:         Retailer -> Customer

Item row, history entry and outbox notification are written in one
transaction. The history write path is private to this module.
"""
from __future__ import annotations

from flask import current_app

from ..errors import (
    InvalidRoleTransition,
    InvalidStatusTransition,
    NotFound,
    NotRegistered,
    Unauthorized,
)
from ..extensions import db
from ..models import HistoryEntry, Item
from ..roles import ItemStatus, Role, can_advance, can_hand_off
from ..time_utils import utcnow
from ..validation import MAX_NAME_LENGTH, MAX_NOTES_LENGTH, normalize_identity, optional_text, require_text
from . import notification_service, registry_service
from .concurrency import lock_for_update, run_atomic
from .sequence_service import ITEM_SEQUENCE, next_sequence_value, peek_next_value


MANUFACTURE_NOTE = "Product manufactured"


def _append_history(
    item: Item,
    *,
    from_identity: str | None,
    to_identity: str,
    status: ItemStatus,
    notes: str,
    occurred_at,
) -> HistoryEntry:
    sequence = db.session.query(HistoryEntry).filter_by(item_id=item.id).count()
    entry = HistoryEntry(
        item_id=item.id,
        sequence=sequence,
        from_identity=from_identity,
        to_identity=to_identity,
        status=status.value,
        notes=notes,
        occurred_at=occurred_at,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def register_item(name: str, description: str, *, caller: str) -> Item:
    """
    Register a newly manufactured item held by the calling Manufacturer.

    Args:
        name: Product name
        description: Product description
        caller: Authenticated identity registering the item

    Returns:
        Item: The created item (ids start at 1)

    Raises:
        NotRegistered: caller has no role
        Unauthorized: caller's role is not Manufacturer
        ValidationError: name or description empty
    """
    def _op():
        manufacturer = normalize_identity(caller, "caller")
        role = registry_service.role_of(manufacturer)
        if role is None:
            raise NotRegistered("User not registered", identity=manufacturer)
        if role is not Role.MANUFACTURER:
            raise Unauthorized(
                "Unauthorized role",
                identity=manufacturer,
                role=role.value,
                required_role=Role.MANUFACTURER.value,
            )
        clean_name = require_text(name, "Product name", max_length=MAX_NAME_LENGTH)
        clean_description = require_text(description, "Description")

        now = utcnow()
        item = Item(
            id=next_sequence_value(ITEM_SEQUENCE),
            name=clean_name,
            description=clean_description,
            current_holder=manufacturer,
            origin_manufacturer=manufacturer,
            status=ItemStatus.MANUFACTURED.value,
            last_updated=now,
        )
        db.session.add(item)
        db.session.flush()

        _append_history(
            item,
            from_identity=None,
            to_identity=manufacturer,
            status=ItemStatus.MANUFACTURED,
            notes=MANUFACTURE_NOTE,
            occurred_at=now,
        )

        notification_service.record_notification(
            notification_service.ITEM_REGISTERED,
            item_id=item.id,
            identity=manufacturer,
            id=item.id,
            name=clean_name,
            manufacturer=manufacturer,
        )
        return item

    item = run_atomic(_op)
    current_app.logger.info("Item %s registered by %s", item.id, item.origin_manufacturer)
    return item


def transfer_item(
    item_id: int,
    to: str,
    new_status: ItemStatus,
    notes: str | None = None,
    *,
    caller: str,
) -> Item:
    """
    Hand an item from its current holder to the next party in the chain.

    Checks run in this order; the first failure wins:
        NotFound                 unknown item
        Unauthorized             caller is not the current holder
        NotRegistered            recipient blank or has no role
        InvalidRoleTransition    holder role -> recipient role not a chain edge
        InvalidStatusTransition  current status -> new_status not the next step
        ValidationError          notes not a string or too long

    Concurrent transfers of the same item serialize on the item's version;
    the loser is re-run against the committed state and fails Unauthorized.
    """
    def _op():
        holder = normalize_identity(caller, "caller")

        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if item is None:
            raise NotFound("Product does not exist", item_id=item_id)

        if item.current_holder != holder:
            raise Unauthorized("Not the current owner", item_id=item_id, identity=holder)

        # A blank or non-string recipient can never be registered
        recipient = to.strip() if isinstance(to, str) else ""
        to_role = registry_service.role_of(recipient)
        if to_role is None:
            raise NotRegistered("Recipient not registered", identity=recipient or None)

        from_role = registry_service.role_of(holder)
        if not can_hand_off(from_role, to_role):
            raise InvalidRoleTransition(
                "Invalid role transition",
                from_role=from_role.value if from_role else None,
                to_role=to_role.value,
            )

        current_status = ItemStatus(item.status)
        if not can_advance(current_status, new_status):
            raise InvalidStatusTransition(
                "Invalid status transition",
                from_status=current_status.value,
                to_status=new_status.value,
            )

        clean_notes = optional_text(notes, "Notes", max_length=MAX_NOTES_LENGTH)

        now = utcnow()
        item.current_holder = recipient
        item.status = new_status.value
        item.last_updated = now
        db.session.flush()  # version check happens here

        _append_history(
            item,
            from_identity=holder,
            to_identity=recipient,
            status=new_status,
            notes=clean_notes,
            occurred_at=now,
        )

        notification_service.record_notification(
            notification_service.TRANSFERRED,
            item_id=item.id,
            identity=recipient,
            id=item.id,
            **{"from": holder, "to": recipient, "status": new_status.value},
        )
        return item

    item = run_atomic(_op)
    current_app.logger.info("Item %s transferred to %s (%s)", item.id, item.current_holder, item.status)
    return item


def get_item(item_id: int) -> Item:
    item = db.session.get(Item, item_id)
    if item is None:
        raise NotFound("Product does not exist", item_id=item_id)
    return item


def history_of(item_id: int) -> list[HistoryEntry]:
    """Ordered custody history for an item (entry 0 is the manufacture)."""
    get_item(item_id)
    return (
        db.session.query(HistoryEntry)
        .filter_by(item_id=item_id)
        .order_by(HistoryEntry.sequence.asc())
        .all()
    )


def total_items() -> int:
    return peek_next_value(ITEM_SEQUENCE) - 1


def list_items(
    *,
    holder: str | None = None,
    manufacturer: str | None = None,
    status: ItemStatus | None = None,
    limit: int = 100,
) -> list[Item]:
    q = db.session.query(Item)
    if holder:
        q = q.filter(Item.current_holder == holder)
    if manufacturer:
        q = q.filter(Item.origin_manufacturer == manufacturer)
    if status is not None:
        q = q.filter(Item.status == status.value)
    limit = max(1, min(limit, 500))
    return q.order_by(Item.id.asc()).limit(limit).all()
