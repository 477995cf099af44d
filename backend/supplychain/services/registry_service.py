# Overview: Identity Registry; the source of truth for who may act as which role.

from __future__ import annotations

from typing import Optional

from flask import current_app

from ..errors import AlreadyRegistered, InvalidRole
from ..extensions import db
from ..models import Participant, RegistrationRequest
from ..roles import Role
from ..time_utils import utcnow
from ..validation import MAX_NAME_LENGTH, normalize_identity, require_text
from . import notification_service, pending_index, system_service
from .concurrency import run_atomic


DECISION_SUPERSEDED = "SUPERSEDED"


def get_participant(identity: str) -> Optional[Participant]:
    if not identity:
        return None
    return db.session.query(Participant).filter_by(identity=identity, registered=True).first()


def is_registered(identity: str) -> bool:
    return get_participant(identity) is not None


def role_of(identity: str) -> Optional[Role]:
    participant = get_participant(identity)
    if participant is None:
        return None
    return Role(participant.role)


def list_participants(role: Role | None = None) -> list[Participant]:
    q = db.session.query(Participant).filter_by(registered=True)
    if role is not None:
        q = q.filter_by(role=role.value)
    return q.order_by(Participant.id.asc()).all()


def enroll(identity: str, role: Role, name: str, *, approved_by: str | None) -> Participant:
    """
    Insert the Participant row. No checks; callers validate first.

    Used by register_participant and by registration approval, both of which
    already hold the registry.
    """
    participant = Participant(
        identity=identity,
        role=role.value,
        name=name,
        registered=True,
        approved_by=approved_by,
        registered_at=utcnow(),
    )
    db.session.add(participant)
    db.session.flush()
    notification_service.record_notification(
        notification_service.REGISTERED,
        identity=identity,
        role=role.value,
        name=name,
    )
    return participant


def register_participant(identity: str, role: Role | None, name: str, *, caller: str) -> Participant:
    """
    Administrator-only direct enrollment.

    Raises:
        Unauthorized: caller is not the administrator
        AlreadyRegistered: identity already has a role
        InvalidRole: role is the "no role" sentinel
        ValidationError: identity or name empty

    An open self-service request for the same identity is closed as
    SUPERSEDED, so an identity is never both registered and pending.
    """
    def _op():
        system_service.require_admin(caller, "register")
        ident = normalize_identity(identity)
        if is_registered(ident):
            raise AlreadyRegistered(f"Identity {ident} is already registered", identity=ident)
        if role is None:
            raise InvalidRole("Invalid role", identity=ident)
        clean_name = require_text(name, "Name", max_length=MAX_NAME_LENGTH)

        system_service.bump_registry_revision()

        request = db.session.query(RegistrationRequest).filter_by(identity=ident, pending=True).first()
        if request is not None:
            request.pending = False
            request.decision = DECISION_SUPERSEDED
            request.decided_by = caller
            request.decided_at = utcnow()
            pending_index.remove(ident)

        return enroll(ident, role, clean_name, approved_by=caller)

    participant = run_atomic(_op)
    current_app.logger.info("Registered %s as %s", participant.identity, participant.role)
    return participant
