# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/bookstall/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..services import sales_service
from ..services.concurrency import TransactionFailed
from ..services.sales_service import AlreadySold, BookNotFound, SaleNotFound, SaleRequest
from ..time_utils import parse_timestamp
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Finalize a checkout.

    Request body:
    {
        "items": [{"book_copy_id": 1, "price_cents": 1299}, ...],
        "sold_party_name": "...",     // optional
        "sold_party_contact": "..."   // optional
    }

    Returns:
    - 201: sale with nested items
    - 400: validation error, unknown copy, or copy already sold
    - 503: database failure, nothing written
    """
    try:
        sale_request = SaleRequest.from_payload(request.get_json(silent=True))
        sale = sales_service.finalize_sale(sale_request.items, sale_request.party)
        return jsonify(sale.to_dict()), 201
    except (ValidationError, BookNotFound, AlreadySold) as e:
        return jsonify(e.to_dict()), 400
    except TransactionFailed as e:
        return jsonify(e.to_dict()), 503
    except Exception:
        current_app.logger.exception("Failed to finalize sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    """
    Query parameters:
    - from / to: ISO-8601 dates or datetimes bounding sold_at (a bare "to" date is inclusive)
    - limit: maximum results (default: 100, max 500)
    """
    limit = request.args.get("limit", 100, type=int)
    try:
        from_date = parse_timestamp(request.args.get("from"), field="from")
        to_date = parse_timestamp(request.args.get("to"), field="to", end_of_day=True)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    sales = sales_service.list_sales(from_date=from_date, to_date=to_date, limit=limit)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        return jsonify(sales_service.get_sale(sale_id).to_dict())
    except SaleNotFound as e:
        return jsonify(e.to_dict()), 404
