# Overview: Security event logging for rejected privileged attempts.

"""
Security event audit trail

WHY: Every Unauthorized outcome (non-admin calling an admin operation, a
non-holder attempting a transfer, a request with no identity) is recorded
for monitoring.

DESIGN PRINCIPLES:
- Log denials only: successful operations are already in history/outbox
- Written in its own transaction AFTER the failed operation rolled back,
  so the denial is kept even though the operation left no trace
"""

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow
from . import system_service


UNAUTHORIZED = "UNAUTHORIZED"
IDENTITY_MISSING = "IDENTITY_MISSING"


def log_security_event(
    identity: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - UNAUTHORIZED
    - IDENTITY_MISSING
    """
    event = SecurityEvent(
        identity=identity,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def list_security_events(
    *,
    caller: str,
    identity: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[SecurityEvent]:
    """Most recent events first (administrator only)."""
    system_service.require_admin(caller, "list_security_events")
    q = db.session.query(SecurityEvent)
    if identity:
        q = q.filter(SecurityEvent.identity == identity)
    if event_type:
        q = q.filter(SecurityEvent.event_type == event_type)
    limit = max(1, min(limit, 500))
    return q.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
