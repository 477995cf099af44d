# Overview: Typed domain failures raised by the custody services.

from __future__ import annotations


class CustodyError(Exception):
    """
    Base class for rejected operations.

    This is a domain error, not a technical error. It indicates that the
    caller attempted an operation that violates a registry, workflow or
    custody rule. The transaction that raised it is always rolled back.
    """
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(CustodyError):
    """400-level input problem (empty or oversized text field)."""


class InvalidRole(CustodyError):
    """Role argument is the "no role" sentinel."""


class Unauthorized(CustodyError):
    """Caller is not the administrator, or not the current holder of an item."""
    status_code = 403


class NotRegistered(CustodyError):
    """Caller or a referenced party has no approved role."""
    status_code = 403


class NotFound(CustodyError):
    """Unknown item id, or no pending request for an identity."""
    status_code = 404


class AlreadyRegistered(CustodyError):
    status_code = 409


class RequestAlreadyPending(CustodyError):
    status_code = 409


class InvalidRoleTransition(CustodyError):
    """Holder role -> recipient role is not an edge of the custody chain."""
    status_code = 409


class InvalidStatusTransition(CustodyError):
    """Current status -> requested status is not the next lifecycle step."""
    status_code = 409
