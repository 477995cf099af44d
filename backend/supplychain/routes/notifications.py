# Overview: Notification outbox read API for polling subscribers.

from flask import Blueprint, request, jsonify

from ..decorators import require_identity, unexpected_error_response
from ..services import notification_service

"""
Delivery semantics:
- at-least-once: subscribers remember the last id they processed and pass it
  back as after_id; ids are strictly increasing in commit order per writer.
"""

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_identity
def list_notifications_route():
    event_type = request.args.get("event_type")
    if event_type and event_type not in notification_service.EVENT_TYPES:
        return jsonify({"error": f"Unknown event_type: {event_type}", "code": "ValidationError"}), 400

    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        rows = notification_service.list_notifications(
            after_id=request.args.get("after_id", type=int),
            event_type=event_type,
            limit=limit,
        )
    except Exception:
        return unexpected_error_response("Failed to list notifications")

    return jsonify({
        "items": [r.to_dict() for r in rows],
        "next_after_id": rows[-1].id if rows else request.args.get("after_id", type=int),
        "limit": limit,
    }), 200
