# backend/aquadist/routes/sales.py
"""
Sales routes (counter and mobile sales).

Body for create/edit:
    {"customer_id": 1, "payment_method": "cash", "channel": "in_person",
     "items": [{"product_id": 1, "quantity": 2}, ...]}

SECURITY:
- quote/create require CREATE_SALE
- edit requires EDIT_SALE, cancel requires CANCEL_SALE; below admin both
  only apply to sales the actor created
- delete requires DELETE_SALE
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import order_service, permission_service
from ..time_utils import parse_iso_date
from ..validation import ValidationError
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _date_arg(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@sales_bp.post("/quote")
@require_auth
@require_permission("CREATE_SALE")
def quote():
    """Totals, bottle figures and stock shortfalls for a cart; nothing is saved."""
    data = request.get_json(silent=True) or {}
    try:
        result = order_service.quote_cart(
            data.get("items"),
            customer_id=data.get("customer_id"),
            bottles_to_collect=data.get("bottles_to_collect", 0),
        )
        return result, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales():
    """
    Query params: status, channel, customer_id, start, end (ISO dates, inclusive), limit
    """
    try:
        orders = order_service.list_orders(
            status=request.args.get("status"),
            channel=request.args.get("channel"),
            customer_id=request.args.get("customer_id", type=int),
            start=_date_arg("start"),
            end=_date_arg("end"),
            limit=min(request.args.get("limit", 100, type=int) or 100, 500),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [o.to_dict() for o in orders], "count": len(orders)}


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    data = request.get_json(silent=True) or {}
    try:
        cart = order_service.build_cart(data.get("items"))
        result = order_service.finalize_order(
            data.get("customer_id"),
            cart,
            data.get("payment_method", "cash"),
            data.get("channel", "in_person"),
            actor=g.current_user,
        )
        return {"sale": result.to_dict()}, 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to finalize sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale(sale_id: int):
    try:
        order = order_service.get_order(sale_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"sale": order.to_dict(include_items=True)}, 200


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_permission("EDIT_SALE")
def edit_sale_route(sale_id: int):
    """Replace all items of a sale; prior items are returned to stock first."""
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.get_order(sale_id)
        permission_service.require(g.current_user, "EDIT_SALE", order)
        cart = order_service.build_cart(data.get("items"), prior_items=list(order.items))
        result = order_service.finalize_order(
            data.get("customer_id", order.customer_id),
            cart,
            data.get("payment_method", order.payment_method),
            data.get("channel", order.channel),
            actor=g.current_user,
            order_id=order.id,
        )
        return {"sale": result.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_permission("CANCEL_SALE")
def cancel_sale_route(sale_id: int):
    try:
        order = order_service.get_order(sale_id)
        permission_service.require(g.current_user, "CANCEL_SALE", order)
        order = order_service.cancel_order(sale_id, actor=g.current_user)
        return {"sale": order.to_dict(include_items=True)}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("DELETE_SALE")
def delete_sale_route(sale_id: int):
    try:
        order_service.delete_order(sale_id)
        return "", 204
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
