# backend/aquadist/routes/finances.py
"""
Finance routes: income/expense summary and operating expenses.

SECURITY:
- summary and expense listing require VIEW_FINANCES
- recording expenses requires MANAGE_EXPENSES
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import Expense
from ..services import finance_service
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount", "description", "expense_date"},
    required_on_create={"category", "amount"},
)

finances_bp = Blueprint("finances", __name__, url_prefix="/api/finances")


def _range_args():
    try:
        return parse_iso_date(request.args.get("start")), parse_iso_date(request.args.get("end"))
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")


@finances_bp.get("/summary")
@require_auth
@require_permission("VIEW_FINANCES")
def summary():
    """Query params: start, end (ISO dates, inclusive, optional)."""
    try:
        start, end = _range_args()
        return finance_service.financial_summary(start, end), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@finances_bp.get("/expenses")
@require_auth
@require_permission("VIEW_FINANCES")
def list_expenses():
    try:
        start, end = _range_args()
        expenses = finance_service.list_expenses(start, end, category=request.args.get("category"))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [e.to_dict() for e in expenses], "count": len(expenses)}


@finances_bp.post("/expenses")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_expense():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        expense = finance_service.create_expense(patch=patch, actor=g.current_user)
        return expense.to_dict(), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500
