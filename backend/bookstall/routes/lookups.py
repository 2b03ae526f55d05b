# Overview: Flask API routes for the author / language / category lookups used by the intake form.

from flask import Blueprint, current_app, jsonify, request

from ..services import lookup_service
from ..validation import ConflictError, ValidationError


lookups_bp = Blueprint("lookups", __name__, url_prefix="/api/lookups")


@lookups_bp.get("")
def list_lookups_route():
    return jsonify(lookup_service.list_lookups())


@lookups_bp.post("")
def create_lookup_route():
    """
    Request body: {"type": "author" | "language" | "category", "name": "..."}

    Returns 201 with the created row, 409 when the name already exists.
    """
    data = request.get_json(silent=True) or {}
    try:
        row = lookup_service.create_lookup(data.get("type"), data.get("name"))
        return jsonify(row.to_dict()), 201
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except Exception:
        current_app.logger.exception("Failed to create lookup")
        return jsonify({"error": "Internal server error"}), 500
