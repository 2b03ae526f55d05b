# Overview: Flask API routes for donor operations; parses input and returns JSON responses.

"""
Donor Routes

donor_code is assigned by the server and cannot be set or changed by clients.
"""

from flask import Blueprint, current_app, jsonify, request

from ..models import Donor
from ..services import donor_service
from ..services.donor_service import DONOR_MUTABLE_FIELDS, DonorNotFound
from ..validation import ModelValidationPolicy, ValidationError, coerce_bool, validate_payload


donors_bp = Blueprint("donors", __name__, url_prefix="/api/donors")

DONOR_POLICY = ModelValidationPolicy(
    writable_fields=DONOR_MUTABLE_FIELDS,
    required_on_create={"name"},
)


@donors_bp.get("")
def list_donors_route():
    """
    Query parameters:
    - active: true | false (default: all donors)
    """
    raw_active = request.args.get("active")
    try:
        active = coerce_bool("active", raw_active) if raw_active not in (None, "") else None
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    donors = donor_service.list_donors(active=active)
    return jsonify({"items": [d.to_dict() for d in donors], "count": len(donors)})


@donors_bp.get("/<int:donor_id>")
def get_donor_route(donor_id: int):
    try:
        return jsonify(donor_service.get_donor(donor_id).to_dict())
    except DonorNotFound as e:
        return jsonify(e.to_dict()), 404


@donors_bp.post("")
def create_donor_route():
    """
    Request body:
    {
        "name": "Alice Johnson",   // required
        "email": "...",            // optional
        "phone": "...",            // optional
        "address": "..."           // optional
    }

    Returns:
        Created Donor with its assigned donor_code
    """
    try:
        patch = validate_payload(
            model=Donor,
            payload=request.get_json(silent=True),
            policy=DONOR_POLICY,
            partial=False,
        )
        donor = donor_service.create_donor(patch)
        return jsonify(donor.to_dict()), 201
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create donor")
        return jsonify({"error": "Internal server error"}), 500


@donors_bp.put("/<int:donor_id>")
def update_donor_route(donor_id: int):
    try:
        patch = validate_payload(
            model=Donor,
            payload=request.get_json(silent=True),
            policy=DONOR_POLICY,
            partial=True,
        )
        donor = donor_service.update_donor(donor_id, patch)
        return jsonify(donor.to_dict())
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except DonorNotFound as e:
        return jsonify(e.to_dict()), 404
    except Exception:
        current_app.logger.exception("Failed to update donor")
        return jsonify({"error": "Internal server error"}), 500


@donors_bp.patch("/<int:donor_id>/toggle-status")
def toggle_donor_status_route(donor_id: int):
    try:
        donor = donor_service.toggle_donor_status(donor_id)
        return jsonify(donor.to_dict())
    except DonorNotFound as e:
        return jsonify(e.to_dict()), 404
    except Exception:
        current_app.logger.exception("Failed to toggle donor status")
        return jsonify({"error": "Internal server error"}), 500
