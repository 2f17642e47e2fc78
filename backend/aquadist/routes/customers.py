# backend/aquadist/routes/customers.py
"""
Customer routes.

- GET /api/customers?q=... searches (min 2 chars, max 10 rows); without q lists all.
- Business customers require a valid tax id (RUT).
- POST /api/customers/import inserts spreadsheet rows with sequential CLI### codes, all or nothing.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import Customer
from ..services import customer_import, customers_service
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "code", "tax_id", "full_name", "category",
        "street", "number", "district", "city", "reference",
        "phone", "email", "contact", "comments",
        "bottles_owned", "bottles_lent", "credit_limit",
    },
    required_on_create={"code", "full_name", "street", "number", "district", "city"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers():
    q = request.args.get("q")
    if q is not None:
        customers = customers_service.search_customers(q)
    else:
        customers = customers_service.list_customers(category=request.args.get("category"))
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer(customer_id: int):
    try:
        return customers_service.get_customer(customer_id).to_dict(), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        customer = customers_service.create_customer(patch=patch)
        return customer.to_dict(), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/next-code")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def next_code():
    """The code the next imported customer would receive."""
    return {"code": customer_import.next_customer_code()}, 200


@customers_bp.post("/import")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def import_customers_route():
    """
    Body: {"rows": [{full_name, rut, type, street, number, district, city, ...}, ...]}.
    Codes are assigned in row order; one invalid row rejects the whole batch.
    """
    payload = request.get_json(silent=True) or {}
    try:
        customers = customer_import.import_customers(payload.get("rows"))
        current_app.logger.info(
            "Imported %s customers (%s..%s) by %s",
            len(customers), customers[0].code, customers[-1].code, g.current_user.id,
        )
        return {"items": [c.to_dict() for c in customers], "count": len(customers)}, 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        customer = customers_service.update_customer(customer_id, patch=patch)
        return customer.to_dict(), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("DELETE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    try:
        customers_service.delete_customer(customer_id)
        return "", 204
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
