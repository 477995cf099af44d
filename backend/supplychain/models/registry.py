from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Participant(db.Model):
    """
    Approved identity -> role binding.

    IMMUTABLE ROLE: No update or removal path exists. Role reassignment would
    need an explicit migration, not an edit of this row.
    """
    __tablename__ = "participants"
    __table_args__ = (
        db.Index("ix_participants_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity = db.Column(db.String(128), nullable=False, unique=True)
    role = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    registered = db.Column(db.Boolean, nullable=False, default=True)

    # Admin identity that approved/enrolled this participant
    approved_by = db.Column(db.String(128), nullable=True)
    registered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Participant identity={self.identity!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "role": self.role,
            "name": self.name,
            "registered": self.registered,
            "approved_by": self.approved_by,
            "registered_at": to_utc_z(self.registered_at),
        }


class RegistrationRequest(db.Model):
    """
    Self-service role request, at most one row per identity.

    LIFECYCLE:
    1. pending=True:  created by request_registration
    2. pending=False: decision APPROVED (participant created), REJECTED, or
       SUPERSEDED (admin enrolled the identity directly)

    The row is retained after a decision for audit/query; a rejected identity
    may file again, which overwrites it.
    """
    __tablename__ = "registration_requests"
    __table_args__ = (
        db.Index("ix_registration_requests_pending", "pending"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity = db.Column(db.String(128), nullable=False, unique=True)
    requested_role = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    pending = db.Column(db.Boolean, nullable=False, default=True)

    decision = db.Column(db.String(16), nullable=True)  # APPROVED, REJECTED, SUPERSEDED
    decided_by = db.Column(db.String(128), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "requested_role": self.requested_role,
            "name": self.name,
            "pending": self.pending,
            "decision": self.decision,
            "decided_by": self.decided_by,
            "decided_at": to_utc_z(self.decided_at),
            "requested_at": to_utc_z(self.requested_at),
        }


class PendingRequestSlot(db.Model):
    """
    Active-pending index: one row per pending identity, positions 0..n-1.

    Removal moves the last slot into the vacated position (swap-and-pop), so
    order is insertion order only until the first removal.
    """
    __tablename__ = "pending_request_index"

    position = db.Column(db.Integer, primary_key=True, autoincrement=False)
    identity = db.Column(db.String(128), nullable=False, unique=True)


class SystemState(db.Model):
    """
    Single-row service state: administrator identity plus the registry revision.

    Every registry/registration write bumps registry_revision; the version
    column turns concurrent registry writers into StaleDataError + retry.
    """
    __tablename__ = "system_state"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)  # always SYSTEM_STATE_ID
    admin_identity = db.Column(db.String(128), nullable=True)
    registry_revision = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "admin_identity": self.admin_identity,
            "registry_revision": self.registry_revision,
            "updated_at": to_utc_z(self.updated_at),
        }


class Sequence(db.Model):
    """
    Atomic named counters.

    WHY: Item ids are allocated once and never reused, even under concurrent
    registration.
    """
    __tablename__ = "sequences"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, unique=True)
    next_value = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "next_value": self.next_value,
            "updated_at": to_utc_z(self.updated_at),
        }
