# backend/aquadist/routes/reports.py
"""
Reporting routes (read-only aggregates).

SECURITY: require VIEW_FINANCES.
"""
from datetime import date

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..time_utils import parse_iso_date
from ..decorators import require_auth, require_permission

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_FINANCES")
def dashboard():
    """Query params: date (ISO date, default today)."""
    try:
        today = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be an ISO-8601 date"}), 400
    return reporting_service.dashboard(today), 200


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_FINANCES")
def sales():
    """Query params: start, end (ISO dates, default current month), group_by (day|week|month)."""
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 dates"}), 400

    end = end or date.today()
    start = start or end.replace(day=1)
    try:
        report = reporting_service.sales_report(start, end, group_by=request.args.get("group_by", "day"))
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return report, 200
