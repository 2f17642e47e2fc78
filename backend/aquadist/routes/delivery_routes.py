# backend/aquadist/routes/delivery_routes.py
"""
Delivery route routes (scheduled deliveries with bottle logistics).

Body for create/edit:
    {"customer_id": 1, "route_date": "2026-10-19", "route_order": 3,
     "payment_method": "cash", "bottles_to_collect": 2,
     "bottles_to_deliver": 3 (optional, defaults to refill units),
     "observation": "...", "payment_amount": "2975" (optional),
     "items": [{"product_id": 1, "quantity": 3}]}

SECURITY:
- list/get require VIEW_ROUTES
- create/delete require MANAGE_ROUTES
- edit requires EDIT_ROUTE (own routes unless admin)
- complete/cancel require COMPLETE_ROUTES
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import delivery_service, order_service, permission_service
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

routes_bp = Blueprint("delivery_routes", __name__, url_prefix="/api/routes")


def _route_kwargs(data: dict, route=None) -> dict:
    def pick(key, default=None):
        if key in data:
            return data[key]
        return getattr(route, key) if route is not None else default

    return {
        "payment_method": pick("payment_method", "cash"),
        "route_date": pick("route_date"),
        "route_order": data.get("route_order"),
        "bottles_to_collect": pick("bottles_to_collect", 0),
        "bottles_to_deliver": data.get("bottles_to_deliver"),
        "observation": pick("observation"),
        "payment_amount": data.get("payment_amount"),
        "sale_type": pick("sale_type", "scheduled"),
    }


@routes_bp.get("")
@require_auth
@require_permission("VIEW_ROUTES")
def list_routes():
    """Query params: date (ISO date, optional), delivery_status (optional)."""
    try:
        routes = delivery_service.list_routes(
            route_date=request.args.get("date"),
            delivery_status=request.args.get("delivery_status"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [r.to_dict() for r in routes], "count": len(routes)}


@routes_bp.post("")
@require_auth
@require_permission("MANAGE_ROUTES")
def create_route():
    data = request.get_json(silent=True) or {}
    try:
        cart = order_service.build_cart(data.get("items"))
        result = delivery_service.finalize_route(
            data.get("customer_id"),
            cart,
            actor=g.current_user,
            **_route_kwargs(data),
        )
        return {"route": result.to_dict()}, 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to schedule delivery route")
        return jsonify({"error": "Internal server error"}), 500


@routes_bp.get("/<int:route_id>")
@require_auth
@require_permission("VIEW_ROUTES")
def get_route(route_id: int):
    try:
        route = delivery_service.get_route(route_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"route": route.to_dict()}, 200


@routes_bp.put("/<int:route_id>")
@require_auth
@require_permission("EDIT_ROUTE")
def edit_route(route_id: int):
    """Replace all items of a pending route; prior items are returned to stock first."""
    data = request.get_json(silent=True) or {}
    try:
        route = delivery_service.get_route(route_id)
        permission_service.require(g.current_user, "EDIT_ROUTE", route)
        cart = order_service.build_cart(data.get("items"), prior_items=list(route.items))
        result = delivery_service.finalize_route(
            data.get("customer_id", route.customer_id),
            cart,
            actor=g.current_user,
            route_id=route.id,
            **_route_kwargs(data, route),
        )
        return {"route": result.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to edit delivery route")
        return jsonify({"error": "Internal server error"}), 500


@routes_bp.post("/<int:route_id>/complete")
@require_auth
@require_permission("COMPLETE_ROUTES")
def complete_route(route_id: int):
    try:
        route = delivery_service.complete_route(route_id, actor=g.current_user)
        return {"route": route.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete delivery route")
        return jsonify({"error": "Internal server error"}), 500


@routes_bp.post("/<int:route_id>/cancel")
@require_auth
@require_permission("COMPLETE_ROUTES")
def cancel_route(route_id: int):
    try:
        route = delivery_service.cancel_route(route_id, actor=g.current_user)
        return {"route": route.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel delivery route")
        return jsonify({"error": "Internal server error"}), 500


@routes_bp.delete("/<int:route_id>")
@require_auth
@require_permission("MANAGE_ROUTES")
def delete_route(route_id: int):
    try:
        delivery_service.delete_route(route_id)
        return "", 204
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete delivery route")
        return jsonify({"error": "Internal server error"}), 500
