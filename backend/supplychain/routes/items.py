# backend/supplychain/routes/items.py
"""
Custody ledger API routes.

SECURITY: All routes require a caller identity.
- Registering items requires the Manufacturer role (enforced by the service)
- Transfers require being the item's current holder (enforced by the service)
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_identity, custody_error_response, unexpected_error_response
from ..errors import CustodyError, ValidationError
from ..roles import parse_status
from ..services import custody_service


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


def _status_arg(value):
    try:
        return parse_status(value)
    except ValueError as e:
        raise ValidationError(str(e), field="status")


@items_bp.route("", methods=["POST"])
@require_identity
def register_item():
    """
    Register a newly manufactured item held by the caller.

    Request body:
    {
        "name": str,
        "description": str
    }

    Returns:
        201: Item created
        400: Empty name/description
        403: Caller not registered or not a Manufacturer
    """
    data = request.get_json(silent=True) or {}

    try:
        item = custody_service.register_item(
            name=data.get("name"),
            description=data.get("description"),
            caller=g.identity,
        )
        return jsonify(item.to_dict()), 201

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to register item")


@items_bp.route("", methods=["GET"])
@require_identity
def list_items():
    """
    List items with optional filters.

    Query parameters:
        holder: Current holder identity
        manufacturer: Origin manufacturer identity
        status: Manufactured, InTransit, Delivered, Sold
        limit: Max results (default 100)
    """
    try:
        status = None
        if status_raw := request.args.get("status"):
            status = _status_arg(status_raw)

        items = custody_service.list_items(
            holder=request.args.get("holder"),
            manufacturer=request.args.get("manufacturer"),
            status=status,
            limit=request.args.get("limit", default=100, type=int),
        )
        return jsonify([i.to_dict() for i in items]), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to list items")


@items_bp.route("/count", methods=["GET"])
@require_identity
def total_items():
    try:
        return jsonify({"total": custody_service.total_items()}), 200
    except Exception:
        return unexpected_error_response("Failed to count items")


@items_bp.route("/<int:item_id>", methods=["GET"])
@require_identity
def get_item(item_id: int):
    try:
        item = custody_service.get_item(item_id)
        return jsonify(item.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to load item")


@items_bp.route("/<int:item_id>/history", methods=["GET"])
@require_identity
def get_history(item_id: int):
    """
    Ordered custody history (entry 0 is the manufacture).

    Returns:
        200: History entries
        404: Item not found
    """
    try:
        entries = custody_service.history_of(item_id)
        return jsonify({
            "item_id": item_id,
            "entries": [e.to_dict() for e in entries],
        }), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to load item history")


@items_bp.route("/<int:item_id>/transfer", methods=["POST"])
@require_identity
def transfer_item(item_id: int):
    """
    Hand the item to the next party in the chain.

    Request body:
    {
        "to": str,
        "status": "InTransit" | "Delivered" | "Sold" (or 1-3),
        "notes": str (optional)
    }

    Returns:
        200: Transfer recorded
        400: Bad status value
        403: Caller not current holder / recipient not registered
        404: Item not found
        409: Invalid role or status transition
    """
    data = request.get_json(silent=True) or {}

    try:
        if data.get("status") is None:
            raise ValidationError("status is required", field="status")
        new_status = _status_arg(data.get("status"))

        item = custody_service.transfer_item(
            item_id,
            to=data.get("to"),
            new_status=new_status,
            notes=data.get("notes"),
            caller=g.identity,
        )
        return jsonify(item.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to transfer item")
