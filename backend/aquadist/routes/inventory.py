# backend/aquadist/routes/inventory.py
"""
Inventory routes: on-hand levels, the movement ledger, manual movements,
low-stock alerts and ledger verification.

SECURITY:
- Reads require VIEW_INVENTORY
- Manual movements and alert thresholds require ADJUST_INVENTORY
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory():
    items = inventory_service.list_inventory(location=request.args.get("location"))
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@inventory_bp.get("/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements():
    """
    Query params:
    - product_id: int (optional)
    - reason: order | delivery_route | adjustment | maintenance (optional)
    - reference_id: int (optional)
    - limit: int (default 100, max 500)
    """
    limit = min(request.args.get("limit", 100, type=int) or 100, 500)
    movements = inventory_service.list_movements(
        product_id=request.args.get("product_id", type=int),
        reason=request.args.get("reason"),
        reference_id=request.args.get("reference_id", type=int),
        limit=limit,
    )
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}


@inventory_bp.post("/movements")
@require_auth
@require_permission("ADJUST_INVENTORY")
def record_movement():
    """
    Body: {product_id, direction, quantity, notes?, reason?}

    direction in/return adds quantity, out/loan removes it, adjustment takes
    a signed quantity.
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    direction = data.get("direction")
    if not product_id or not direction or data.get("quantity") is None:
        return jsonify({"error": "product_id, direction and quantity required"}), 400

    try:
        movement = inventory_service.record_inventory_movement(
            product_id,
            direction,
            data.get("quantity"),
            data.get("notes"),
            g.current_user.id,
            reason=data.get("reason") or "adjustment",
        )
        return movement.to_dict(), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record inventory movement")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock():
    items = inventory_service.low_stock_items(threshold=request.args.get("threshold", type=int))
    return {"items": items, "count": len(items)}


@inventory_bp.put("/alerts/<int:product_id>")
@require_auth
@require_permission("ADJUST_INVENTORY")
def set_alert(product_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("alert_quantity") is None:
        return jsonify({"error": "alert_quantity required"}), 400
    try:
        alert = inventory_service.set_alert(
            product_id,
            data.get("alert_quantity"),
            min_quantity=data.get("min_quantity", 0),
            enabled=data.get("enabled", True),
        )
        return alert.to_dict(), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set inventory alert")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/verify")
@require_auth
@require_permission("VIEW_INVENTORY")
def verify():
    """Replay the movement ledger; mismatches mean the stored quantity drifted."""
    mismatches = inventory_service.verify_ledger()
    if mismatches:
        current_app.logger.warning("Inventory ledger mismatches: %d items", len(mismatches))
    return {"ok": not mismatches, "mismatches": mismatches}
