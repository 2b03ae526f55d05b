# Overview: Flask API routes for read-only reports.

from flask import Blueprint, jsonify

from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
def summary_route():
    return jsonify(reporting_service.get_summary())


@reports_bp.get("/payouts")
def payouts_route():
    """Amount owed to each donor for sold copies, largest first."""
    payouts = reporting_service.get_donor_payouts()
    return jsonify({"items": payouts, "count": len(payouts)})
