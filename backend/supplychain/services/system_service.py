# Overview: Administrator identity and registry revision (single-row system state).

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import Unauthorized
from ..extensions import db
from ..models import SystemState
from ..validation import normalize_identity
from .concurrency import lock_for_update


SYSTEM_STATE_ID = 1


def ensure_system_state() -> SystemState:
    """
    Ensure the single system_state row exists.

    Safe to call repeatedly (idempotent). On first creation the administrator
    comes from config ADMIN_IDENTITY. The row always has id SYSTEM_STATE_ID,
    so concurrent first use cannot create a second one.
    """
    state = db.session.get(SystemState, SYSTEM_STATE_ID)
    if state:
        return state

    admin = current_app.config.get("ADMIN_IDENTITY")
    state = SystemState(
        id=SYSTEM_STATE_ID,
        admin_identity=normalize_identity(admin, "ADMIN_IDENTITY") if admin else None,
        registry_revision=0,
    )
    db.session.add(state)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another writer created the row first; run_atomic retries the whole operation
        raise StaleDataError("System state was created concurrently") from exc
    return state


def initialize_system(admin_identity: str) -> SystemState:
    """Set (or replace) the administrator. Bootstrap path only; not exposed over HTTP."""
    admin_identity = normalize_identity(admin_identity, "admin identity")
    state = ensure_system_state()
    state.admin_identity = admin_identity
    db.session.flush()
    return state


def get_admin_identity() -> str | None:
    return ensure_system_state().admin_identity


def is_admin(identity: str | None) -> bool:
    admin = get_admin_identity()
    return bool(identity) and admin is not None and identity == admin


def require_admin(caller: str | None, action: str) -> None:
    if not is_admin(caller):
        raise Unauthorized(
            "Only the administrator can perform this action",
            action=action,
        )


def bump_registry_revision() -> int:
    """
    Claim the registry for this transaction.

    The versioned UPDATE makes concurrent registry writers conflict
    (StaleDataError), which run_atomic turns into a serialized retry.
    """
    state = lock_for_update(db.session.query(SystemState).filter_by(id=ensure_system_state().id)).one()
    state.registry_revision += 1
    db.session.flush()
    return state.registry_revision
