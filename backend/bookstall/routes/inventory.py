# Overview: Flask API routes for intake and inventory lookups; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import intake_service, inventory_service
from ..services.concurrency import TransactionFailed
from ..services.donor_service import DonorNotFound
from ..services.intake_service import DuplicateBookCode, DuplicateTitle, IntakeRequest
from ..services.inventory_service import BookCodeNotFound
from ..validation import ValidationError, coerce_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/intake")
def intake_route():
    """
    Register a donated copy and assign its book code.

    Request body:
    {
        "donor_id": 1,
        "title": "The Hobbit",
        "author_id": 2,                 // or "new" together with new_author_name
        "new_author_name": "...",
        "language_id": 1,
        "category_id": 2,
        "condition": "Good",            // New | Good | Medium | Poor
        "shelf_location": "B2-05",      // optional
        "buying_price_cents": 1304,     // ignored for free donations
        "selling_price_cents": 1500,    // optional unless is_free_donation
        "is_free_donation": false,
        "note": "..."                   // optional
    }

    Returns:
    - 201: created copy with book_code and serial_number
    - 400: validation error or unknown donor
    - 409: duplicate title / duplicate book code
    - 503: database failure, nothing written
    """
    try:
        intake = IntakeRequest.from_payload(request.get_json(silent=True))
        copy = intake_service.assign_identity(intake)
        return jsonify(copy.to_dict(include_details=True)), 201
    except (ValidationError, DonorNotFound) as e:
        return jsonify(e.to_dict()), 400
    except (DuplicateTitle, DuplicateBookCode) as e:
        return jsonify(e.to_dict()), 409
    except TransactionFailed as e:
        return jsonify(e.to_dict()), 503
    except Exception:
        current_app.logger.exception("Failed to intake book copy")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("")
def list_inventory_route():
    """
    Query parameters:
    - status: available | sold
    - donor_id: only copies from this donor
    - q: case-insensitive title substring
    """
    try:
        raw_donor = request.args.get("donor_id")
        donor_id = coerce_int("donor_id", raw_donor) if raw_donor not in (None, "") else None
        copies = inventory_service.list_copies(
            status=request.args.get("status"),
            donor_id=donor_id,
            text=request.args.get("q"),
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    return jsonify({
        "items": [c.to_dict(include_details=True) for c in copies],
        "count": len(copies),
    })


@inventory_bp.get("/by-code/<code>")
def get_by_code_route(code: str):
    try:
        copy = inventory_service.get_copy_by_code(code)
        return jsonify(copy.to_dict(include_details=True))
    except BookCodeNotFound as e:
        return jsonify(e.to_dict()), 404


@inventory_bp.get("/titles")
def list_titles_route():
    titles = inventory_service.list_titles()
    return jsonify({"items": titles, "count": len(titles)})
