# backend/supplychain/services/registration_service.py
"""
Participant onboarding workflow.

WHY: Prospective participants ask for a role; only the administrator can turn
a request into a Participant. Keeps self-service requests separate from the
Identity Registry so nothing acts before it is approved.

LIFECYCLE:
1. PENDING:    request_registration (identity added to the pending index)
2. APPROVED:   approve_request (Participant created, "Approved" then "Registered")
3. REJECTED:   reject_request (no Participant, may request again)

At most one of {Participant, pending request} exists per identity.
"""
from __future__ import annotations

from typing import Optional

from flask import current_app

from ..errors import AlreadyRegistered, InvalidRole, NotFound, RequestAlreadyPending
from ..extensions import db
from ..models import RegistrationRequest
from ..roles import Role
from ..time_utils import utcnow
from ..validation import MAX_NAME_LENGTH, normalize_identity, require_text
from . import notification_service, pending_index, registry_service, system_service
from .concurrency import lock_for_update, run_atomic


DECISION_APPROVED = "APPROVED"
DECISION_REJECTED = "REJECTED"


def get_request(identity: str) -> Optional[RegistrationRequest]:
    """Latest request record for identity, pending or decided."""
    if not identity:
        return None
    return db.session.query(RegistrationRequest).filter_by(identity=identity).first()


def has_pending_request(identity: str) -> bool:
    request = get_request(identity)
    return request is not None and request.pending


def request_registration(identity: str, role: Role | None, name: str) -> RegistrationRequest:
    """
    File a self-service registration request for identity.

    Args:
        identity: Requesting identity (the authenticated caller)
        role: Requested role; None is the "no role" sentinel
        name: Display name

    Returns:
        RegistrationRequest: The pending request

    Raises:
        InvalidRole: role is None
        ValidationError: name empty
        AlreadyRegistered: identity already has a role
        RequestAlreadyPending: identity already has a pending request
    """
    def _op():
        ident = normalize_identity(identity)
        if role is None:
            raise InvalidRole("Invalid role", identity=ident)
        clean_name = require_text(name, "Name", max_length=MAX_NAME_LENGTH)
        if registry_service.is_registered(ident):
            raise AlreadyRegistered(f"Identity {ident} is already registered", identity=ident)

        system_service.bump_registry_revision()

        request = lock_for_update(db.session.query(RegistrationRequest).filter_by(identity=ident)).first()
        if request is not None and request.pending:
            raise RequestAlreadyPending("Request already pending", identity=ident)

        if request is None:
            request = RegistrationRequest(identity=ident)
            db.session.add(request)

        # A previously decided request is reused for the new attempt
        request.requested_role = role.value
        request.name = clean_name
        request.pending = True
        request.decision = None
        request.decided_by = None
        request.decided_at = None
        request.requested_at = utcnow()
        db.session.flush()

        pending_index.push(ident)

        notification_service.record_notification(
            notification_service.REQUESTED,
            identity=ident,
            role=role.value,
            name=clean_name,
        )
        return request

    request = run_atomic(_op)
    current_app.logger.info("Registration requested by %s for %s", request.identity, request.requested_role)
    return request


def _load_pending(identity: str) -> RegistrationRequest:
    request = lock_for_update(
        db.session.query(RegistrationRequest).filter_by(identity=identity, pending=True)
    ).first()
    if request is None:
        raise NotFound(f"No pending request for {identity}", identity=identity)
    return request


def approve_request(identity: str, *, caller: str) -> RegistrationRequest:
    """
    Approve a pending request (administrator action).

    Creates the Participant and emits "Approved" before "Registered".

    Raises:
        Unauthorized: caller is not the administrator
        NotFound: no pending request for identity
    """
    def _op():
        system_service.require_admin(caller, "approve")
        ident = normalize_identity(identity)
        system_service.bump_registry_revision()
        request = _load_pending(ident)

        request.pending = False
        request.decision = DECISION_APPROVED
        request.decided_by = caller
        request.decided_at = utcnow()
        pending_index.remove(ident)

        role = Role(request.requested_role)
        notification_service.record_notification(
            notification_service.APPROVED,
            identity=ident,
            role=role.value,
        )
        registry_service.enroll(ident, role, request.name, approved_by=caller)
        return request

    request = run_atomic(_op)
    current_app.logger.info("Registration approved for %s as %s", request.identity, request.requested_role)
    return request


def reject_request(identity: str, *, caller: str) -> RegistrationRequest:
    """
    Reject a pending request (administrator action). No Participant is created.

    Raises:
        Unauthorized: caller is not the administrator
        NotFound: no pending request for identity
    """
    def _op():
        system_service.require_admin(caller, "reject")
        ident = normalize_identity(identity)
        system_service.bump_registry_revision()
        request = _load_pending(ident)

        request.pending = False
        request.decision = DECISION_REJECTED
        request.decided_by = caller
        request.decided_at = utcnow()
        pending_index.remove(ident)

        notification_service.record_notification(
            notification_service.REJECTED,
            identity=ident,
        )
        return request

    request = run_atomic(_op)
    current_app.logger.info("Registration rejected for %s", request.identity)
    return request


def list_pending_identities(*, caller: str) -> list[str]:
    """
    Identities with an open request (administrator only).

    Order is position order in the pending index: insertion order until the
    first approval/rejection, after which removal has swapped the last entry
    into the vacated slot.
    """
    system_service.require_admin(caller, "list_pending")
    return pending_index.identities()
