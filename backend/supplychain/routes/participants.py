# Overview: Flask API routes for the identity registry; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_identity, custody_error_response, unexpected_error_response
from ..errors import CustodyError, InvalidRole, NotFound
from ..roles import parse_role
from ..services import registry_service


participants_bp = Blueprint("participants", __name__, url_prefix="/api/participants")


@participants_bp.route("", methods=["POST"])
@require_identity
def register_participant():
    """
    Enroll an identity directly (administrator only).

    Request body:
    {
        "identity": str,
        "role": "Manufacturer" | "Distributor" | "Retailer" | "Customer",
        "name": str
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        try:
            role = parse_role(data.get("role"))
        except ValueError as e:
            raise InvalidRole(str(e))

        participant = registry_service.register_participant(
            identity=data.get("identity"),
            role=role,
            name=data.get("name"),
            caller=g.identity,
        )
        return jsonify(participant.to_dict()), 201

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to register participant")


@participants_bp.route("", methods=["GET"])
@require_identity
def list_participants():
    """
    List registered participants.

    Query parameters:
        role: Filter by role
    """
    try:
        role = None
        if role_raw := request.args.get("role"):
            try:
                role = parse_role(role_raw)
            except ValueError as e:
                raise InvalidRole(str(e))

        participants = registry_service.list_participants(role=role)
        return jsonify([p.to_dict() for p in participants]), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to list participants")


@participants_bp.route("/<identity>", methods=["GET"])
@require_identity
def get_participant(identity: str):
    try:
        participant = registry_service.get_participant(identity.strip())
        if participant is None:
            raise NotFound(f"Identity {identity} is not registered", identity=identity)
        return jsonify(participant.to_dict()), 200

    except CustodyError as e:
        return custody_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to load participant")


@participants_bp.route("/<identity>/registered", methods=["GET"])
@require_identity
def is_registered(identity: str):
    try:
        ident = identity.strip()
        role = registry_service.role_of(ident)
        return jsonify({
            "identity": ident,
            "registered": role is not None,
            "role": role.value if role else None,
        }), 200

    except Exception:
        return unexpected_error_response("Failed to check registration")
