# backend/supplychain/routes/system.py
"""
System health and security audit endpoints.
"""

import time
from flask import Blueprint, current_app, jsonify, request, g

from ..decorators import require_identity, custody_error_response, unexpected_error_response
from ..errors import CustodyError
from ..extensions import db
from ..models import Participant, Item, HistoryEntry, RegistrationRequest
from ..services import security_service, system_service
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        participant_count = db.session.query(Participant).count()
        pending_count = db.session.query(RegistrationRequest).filter_by(pending=True).count()
        item_count = db.session.query(Item).count()
        history_count = db.session.query(HistoryEntry).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "participants": participant_count,
                "pending_requests": pending_count,
                "items": item_count,
                "history_entries": history_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    try:
        admin_configured = system_service.get_admin_identity() is not None
        db.session.rollback()
    except Exception:
        current_app.logger.exception("System state health check failed")
        admin_configured = False

    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database,
            "admin_configured": admin_configured,
        },
    }), 200 if healthy else 503


@system_bp.get("/api/security-events")
@require_identity
def list_security_events():
    """
    Recent security events (administrator only).

    Query parameters:
        identity: Filter by acting identity
        event_type: UNAUTHORIZED, IDENTITY_MISSING
        limit: Max results (default 100)
    """
    try:
        events = security_service.list_security_events(
            caller=g.identity,
            identity=request.args.get("identity"),
            event_type=request.args.get("event_type"),
            limit=request.args.get("limit", default=100, type=int),
        )
        return jsonify([e.to_dict() for e in events]), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to list security events")
