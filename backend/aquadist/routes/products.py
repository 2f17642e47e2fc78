# backend/aquadist/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require an actor.
- Read operations require VIEW_CATALOG
- Write operations require MANAGE_PRODUCTS

Prices: send `price` (net) or `price_with_tax` (gross, converted to net).
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "description", "category", "price", "is_active", "affects_bottle_deposit"},
    required_on_create={"code", "name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    Query params:
    - active: true/false (optional)
    - q: text matched against name or code (optional)
    """
    products = products_service.list_products(active=_flag("active"), q=request.args.get("q"))
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        payload = products_service.resolve_price(payload)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = products_service.create_product(patch=patch)
        return product.to_dict(), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        payload = products_service.resolve_price(payload)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = products_service.update_product(product_id, patch=patch)
        return product.to_dict(), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
        return "", 204
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
