# backend/supplychain/routes/registrations.py
"""
Registration workflow API routes.

SECURITY: All routes require a caller identity.
- Anyone may file a request for their own identity
- Listing, approving and rejecting are administrator-only (enforced by the service)
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_identity, custody_error_response, unexpected_error_response
from ..errors import CustodyError, InvalidRole, NotFound
from ..roles import parse_role
from ..services import registration_service


registrations_bp = Blueprint("registrations", __name__, url_prefix="/api/registrations")


@registrations_bp.route("", methods=["POST"])
@require_identity
def request_registration():
    """
    Request a role for the calling identity.

    Request body:
    {
        "role": "Manufacturer" | "Distributor" | "Retailer" | "Customer" (or 1-4),
        "name": str
    }

    Returns:
        201: Request created (pending)
        400: Invalid role or empty name
        409: Already registered / request already pending
    """
    data = request.get_json(silent=True) or {}

    try:
        try:
            role = parse_role(data.get("role"))
        except ValueError as e:
            raise InvalidRole(str(e))

        reg = registration_service.request_registration(
            identity=g.identity,
            role=role,
            name=data.get("name"),
        )
        return jsonify(reg.to_dict()), 201

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to request registration")


@registrations_bp.route("/pending", methods=["GET"])
@require_identity
def list_pending():
    """
    List identities with a pending request (administrator only).

    Order follows the pending index and is not guaranteed to be insertion
    order once any request has been decided.
    """
    try:
        identities = registration_service.list_pending_identities(caller=g.identity)
        return jsonify({"identities": identities, "count": len(identities)}), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to list pending registrations")


@registrations_bp.route("/<identity>", methods=["GET"])
@require_identity
def get_request(identity: str):
    """
    Latest registration request for identity (pending or decided).

    Returns:
        200: Request record
        404: No request on file
    """
    try:
        reg = registration_service.get_request(identity.strip())
        if reg is None:
            raise NotFound(f"No registration request for {identity}", identity=identity)
        return jsonify(reg.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to load registration request")


@registrations_bp.route("/<identity>/approve", methods=["POST"])
@require_identity
def approve_request(identity: str):
    """
    Approve a pending request (administrator only).

    Returns:
        200: Request approved; participant created
        403: Caller is not the administrator
        404: No pending request
    """
    try:
        reg = registration_service.approve_request(identity, caller=g.identity)
        return jsonify(reg.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to approve registration")


@registrations_bp.route("/<identity>/reject", methods=["POST"])
@require_identity
def reject_request(identity: str):
    """
    Reject a pending request (administrator only).

    Returns:
        200: Request rejected
        403: Caller is not the administrator
        404: No pending request
    """
    try:
        reg = registration_service.reject_request(identity, caller=g.identity)
        return jsonify(reg.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to reject registration")
