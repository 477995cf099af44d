# Overview: Request decorators and error responses for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .errors import CustodyError, Unauthorized, ValidationError
from .extensions import db
from .services import security_service
from .validation import normalize_identity


def _client_context() -> dict:
    return {
        "resource": request.path,
        "action": request.method,
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def require_identity(f):
    """
    Require a caller identity and expose it as g.identity.

    The identity is authenticated upstream (gateway / wallet bridge) and
    forwarded in the IDENTITY_HEADER header; this service only trusts it.

    SECURITY: Returns 401 (and logs IDENTITY_MISSING) if the header is
    missing or blank; 400 if the identity is malformed (too long).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("IDENTITY_HEADER", "X-Identity")
        raw = request.headers.get(header)

        if raw is None or not raw.strip():
            security_service.log_security_event(
                identity=None,
                event_type=security_service.IDENTITY_MISSING,
                success=False,
                reason=f"Missing {header} header",
                **_client_context(),
            )
            return jsonify({"error": "Identity required", "code": "Unauthenticated"}), 401

        try:
            identity = normalize_identity(raw)
        except ValidationError as e:
            return jsonify(e.to_dict()), e.status_code

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def custody_error_response(exc: CustodyError):
    """
    Roll back the failed operation and render it as JSON.

    Unauthorized outcomes are also written to the security event log.
    """
    db.session.rollback()
    if isinstance(exc, Unauthorized):
        security_service.log_security_event(
            identity=getattr(g, "identity", None),
            event_type=security_service.UNAUTHORIZED,
            success=False,
            reason=exc.message,
            **_client_context(),
        )
    return jsonify(exc.to_dict()), exc.status_code


def unexpected_error_response(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
